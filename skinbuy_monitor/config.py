"""Configuration loader.

Reads environment variables and `.env` to configure the service.
"""

from __future__ import annotations

import os
from typing import List, Optional
from pathlib import Path

from dotenv import load_dotenv

# Load variables from a .env file if present (project root).
load_dotenv(dotenv_path=Path(__file__).resolve().parents[1] / ".env")


def _get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(name, default)


def _parse_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.lower() in ("1", "true", "yes")


def _parse_int(value: Optional[str], default: int) -> int:
    try:
        return int(value) if value is not None else default
    except ValueError:
        return default


# ---- Source page -------------------------------------------------------------

SOURCE_URL: str = _get_env("SOURCE_URL", "http://steamrmt.com/skinbuy.html")

# CSS path of the element whose text nodes hold the item sections.
SECTION_SELECTOR: str = _get_env(
    "SECTION_SELECTOR",
    "html > body > div.contents > div.inner > div.main > section",
)

USER_AGENT: str = _get_env(
    "USER_AGENT",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36",
)

HTTP_TIMEOUT_SECONDS: int = _parse_int(_get_env("HTTP_TIMEOUT_SECONDS", "30"), 30)

# Minutes between passes. 0 runs a single pass and exits.
SCRAPE_INTERVAL_MINUTES: int = _parse_int(_get_env("SCRAPE_INTERVAL_MINUTES", "0"), 0)

# ---- Storage -----------------------------------------------------------------

SQLITE_DB_PATH: str = _get_env("SQLITE_DB_PATH", "monitor.db")

# Logging level: DEBUG, INFO, WARNING, ERROR.
LOG_LEVEL: str = _get_env("LOG_LEVEL", "INFO")

# ---- Push notifications ------------------------------------------------------

FCM_SERVER_KEY: Optional[str] = _get_env("FCM_SERVER_KEY")
FCM_REGISTRATION_ID: Optional[str] = _get_env("FCM_REGISTRATION_ID")

# Comma-separated device tokens. Several ids are sent as one multicast message.
FCM_REGISTRATION_IDS: List[str] = [
    s.strip() for s in (FCM_REGISTRATION_ID or "").split(",") if s.strip()
]

# Optional message fields; unset ones are left out of the payload.
FCM_COLLAPSE_KEY: Optional[str] = _get_env("FCM_COLLAPSE_KEY") or None
FCM_SOUND: Optional[str] = _get_env("FCM_SOUND") or None
_FCM_TTL_RAW = _get_env("FCM_TIME_TO_LIVE")
FCM_TIME_TO_LIVE: Optional[int] = _parse_int(_FCM_TTL_RAW, 0) if _FCM_TTL_RAW else None

FCM_ENDPOINT: str = _get_env("FCM_ENDPOINT", "https://fcm.googleapis.com/fcm/send")

# When true, FCM validates the message without delivering it.
FCM_DRY_RUN: bool = _parse_bool(_get_env("FCM_DRY_RUN", "false"), False)

NOTIFY_MAX_WORKERS: int = _parse_int(_get_env("NOTIFY_MAX_WORKERS", "8"), 8)

# ---- Validation --------------------------------------------------------------

def validate() -> None:
    """Validate required configuration parameters."""
    missing = [
        name
        for name, value in (
            ("FCM_SERVER_KEY", FCM_SERVER_KEY),
            ("FCM_REGISTRATION_ID", FCM_REGISTRATION_IDS),
        )
        if not value
    ]
    if missing:
        raise RuntimeError(
            f"{', '.join(missing)} must be set. See .env.example for details."
        )


__all__ = [
    # Source
    "SOURCE_URL",
    "SECTION_SELECTOR",
    "USER_AGENT",
    "HTTP_TIMEOUT_SECONDS",
    "SCRAPE_INTERVAL_MINUTES",
    # Storage & logging
    "SQLITE_DB_PATH",
    "LOG_LEVEL",
    # Notifications
    "FCM_SERVER_KEY",
    "FCM_REGISTRATION_ID",
    "FCM_REGISTRATION_IDS",
    "FCM_COLLAPSE_KEY",
    "FCM_SOUND",
    "FCM_TIME_TO_LIVE",
    "FCM_ENDPOINT",
    "FCM_DRY_RUN",
    "NOTIFY_MAX_WORKERS",
    # Helpers
    "validate",
]
