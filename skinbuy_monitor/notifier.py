"""Push notifier.

Sends listing events to one or more devices through the Firebase Cloud Messaging
legacy HTTP API. Delivery is best-effort: `dispatch` sends every
notification concurrently, logs failures and never raises because of them.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Iterable, List, Optional, Protocol, Sequence, Union

import requests

from .config import (FCM_COLLAPSE_KEY, FCM_DRY_RUN, FCM_ENDPOINT,
                     FCM_REGISTRATION_IDS, FCM_SOUND, FCM_TIME_TO_LIVE,
                     FCM_SERVER_KEY, HTTP_TIMEOUT_SECONDS, NOTIFY_MAX_WORKERS)
from .utils import get_http_session, raise_for_status

logger = logging.getLogger(__name__)


@dataclass
class Notification:
    title: str
    body: Optional[str] = None


class NotificationSink(Protocol):
    def send(self, title: str, body: Optional[str] = None) -> None: ...


class FcmClient:
    """Posts notifications to one or more registration ids.

    A single id goes out as ``to``; several go out as ``registration_ids``.
    Optional message fields are left out of the payload when unset.
    """

    def __init__(
        self,
        server_key: Optional[str] = None,
        registration_ids: Union[str, Sequence[str], None] = None,
        *,
        endpoint: str = FCM_ENDPOINT,
        dry_run: bool = FCM_DRY_RUN,
        priority: Optional[str] = None,
        collapse_key: Optional[str] = FCM_COLLAPSE_KEY,
        time_to_live: Optional[int] = FCM_TIME_TO_LIVE,
        sound: Optional[str] = FCM_SOUND,
        icon: Optional[str] = None,
        tag: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        if registration_ids is None:
            registration_ids = FCM_REGISTRATION_IDS
        elif isinstance(registration_ids, str):
            registration_ids = [registration_ids]
        self.server_key = server_key or FCM_SERVER_KEY
        self.registration_ids: List[str] = [r for r in registration_ids if r]
        self.endpoint = endpoint
        self.dry_run = dry_run
        self.priority = priority
        self.collapse_key = collapse_key
        self.time_to_live = time_to_live
        self.sound = sound
        self.icon = icon
        self.tag = tag
        self.session = session or get_http_session()

    def build_payload(self, title: str, body: Optional[str] = None) -> dict:
        notification = {"title": title}
        for key, value in (("body", body), ("sound", self.sound),
                           ("icon", self.icon), ("tag", self.tag)):
            if value is not None:
                notification[key] = value

        payload: dict = {}
        if len(self.registration_ids) == 1:
            payload["to"] = self.registration_ids[0]
        else:
            payload["registration_ids"] = list(self.registration_ids)
        payload["notification"] = notification
        if self.priority:
            payload["priority"] = self.priority
        if self.collapse_key:
            payload["collapse_key"] = self.collapse_key
        if self.time_to_live is not None:
            payload["time_to_live"] = self.time_to_live
        if self.dry_run:
            payload["dry_run"] = True
        return payload

    def send(self, title: str, body: Optional[str] = None) -> None:
        if not (self.server_key and self.registration_ids):
            raise RuntimeError("FCM server key or registration id is not configured.")
        resp = self.session.post(
            self.endpoint,
            json=self.build_payload(title, body),
            headers={"Authorization": f"key={self.server_key}"},
            timeout=HTTP_TIMEOUT_SECONDS,
        )
        raise_for_status(resp)
        logger.debug("FCM accepted notification %r (status %s)", title, resp.status_code)

    def close(self) -> None:
        self.session.close()


def dispatch(
    notifications: Iterable[Notification],
    sink: NotificationSink,
    max_workers: int = NOTIFY_MAX_WORKERS,
) -> int:
    """Send all notifications at once and wait for every send to finish.

    Returns the number of notifications submitted. Failed sends are logged.
    """
    pending = list(notifications)
    if not pending:
        return 0

    failed = 0
    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(pending)))) as pool:
        futures = {pool.submit(sink.send, n.title, n.body): n for n in pending}
        for future in as_completed(futures):
            exc = future.exception()
            if exc is not None:
                failed += 1
                # TODO: decide whether failed sends should be persisted and retried next pass.
                logger.warning("Failed to send notification %r: %s", futures[future].title, exc)

    if failed:
        logger.warning("%d of %d notification(s) failed", failed, len(pending))
    return len(pending)


__all__ = ["Notification", "NotificationSink", "FcmClient", "dispatch"]
