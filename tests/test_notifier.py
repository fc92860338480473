import logging
import threading

import pytest

from skinbuy_monitor.notifier import FcmClient, Notification, dispatch
from skinbuy_monitor.utils import HTTPError


class BarrierSink:
    """Only succeeds when every send is in flight at the same time."""

    def __init__(self, parties):
        self.barrier = threading.Barrier(parties, timeout=5)

    def send(self, title, body=None):
        self.barrier.wait()


def _client(session, registration_ids="device", **kwargs):
    options = dict(collapse_key=None, time_to_live=None, sound=None)
    options.update(kwargs)
    return FcmClient("secret", registration_ids, session=session, **options)


def test_dispatch_sends_everything(make_sink):
    sink = make_sink()
    notifications = [Notification("a", "1"), Notification("b"), Notification("c", "3")]

    assert dispatch(notifications, sink) == 3
    assert sorted(sink.sent) == [("a", "1"), ("b", None), ("c", "3")]


def test_dispatch_runs_sends_concurrently(caplog):
    caplog.set_level(logging.WARNING)

    count = dispatch([Notification(str(i)) for i in range(4)], BarrierSink(4), max_workers=4)

    assert count == 4
    assert "Failed to send" not in caplog.text


def test_dispatch_swallows_send_failures(make_sink, caplog):
    caplog.set_level(logging.WARNING)
    sink = make_sink(fail_on={"bad"})

    count = dispatch([Notification("good"), Notification("bad")], sink)

    assert count == 2
    assert sink.sent == [("good", None)]
    assert "Failed to send notification 'bad'" in caplog.text


def test_dispatch_nothing(make_sink):
    sink = make_sink()

    assert dispatch([], sink) == 0
    assert sink.attempts == 0


def test_fcm_payload_omits_empty_fields(make_session):
    client = _client(make_session())

    assert client.build_payload("Sold: AWP | Asiimov") == {
        "to": "device",
        "notification": {"title": "Sold: AWP | Asiimov"},
    }


def test_fcm_payload_options(make_session):
    client = _client(
        make_session(), dry_run=True, priority="high", collapse_key="listing",
        time_to_live=3600, sound="default", icon="skin", tag="order-1",
    )

    assert client.build_payload("t", "b") == {
        "to": "device",
        "notification": {"title": "t", "body": "b", "sound": "default", "icon": "skin",
                         "tag": "order-1"},
        "priority": "high",
        "collapse_key": "listing",
        "time_to_live": 3600,
        "dry_run": True,
    }


def test_fcm_payload_for_several_devices(make_session):
    client = _client(make_session(), registration_ids=["phone", "tablet"])

    payload = client.build_payload("t")

    assert payload["registration_ids"] == ["phone", "tablet"]
    assert "to" not in payload


def test_fcm_send_posts_with_server_key(make_session):
    session = make_session()
    client = _client(session, endpoint="https://fcm.test/send")

    client.send("New listing: AK-47 | Redline", "15,000円")

    (url, kwargs), = session.posts
    assert url == "https://fcm.test/send"
    assert kwargs["headers"] == {"Authorization": "key=secret"}
    assert kwargs["json"]["notification"]["body"] == "15,000円"


def test_fcm_send_raises_on_error_status(make_session):
    client = _client(make_session(status_code=401))

    with pytest.raises(HTTPError) as exc_info:
        client.send("t")
    assert exc_info.value.status_code == 401


def test_fcm_send_needs_a_device(make_session):
    client = _client(make_session(), registration_ids=[])

    with pytest.raises(RuntimeError):
        client.send("t")


def test_fcm_failure_does_not_fail_dispatch(make_session):
    session = make_session(status_code=500)

    assert dispatch([Notification("t")], _client(session)) == 1
    assert len(session.posts) == 1
