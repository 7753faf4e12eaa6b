import queue

from tillpoint.services import broadcast_service
from tillpoint.services.broadcast_service import ChangeBroadcaster
from tillpoint.routes.events import format_sse


def test_publish_fans_out_to_every_subscriber():
    hub = ChangeBroadcaster()
    a = hub.subscribe()
    b = hub.subscribe()

    assert hub.publish(["PRODUCTS_UPDATED", "SALES_UPDATED"]) == 0

    for q in (a, b):
        assert q.get_nowait() == "PRODUCTS_UPDATED"
        assert q.get_nowait() == "SALES_UPDATED"


def test_unsubscribed_queue_receives_nothing():
    hub = ChangeBroadcaster()
    q = hub.subscribe()
    hub.unsubscribe(q)

    hub.publish(["PRODUCTS_UPDATED"])

    assert hub.subscriber_count == 0
    assert q.empty()


def test_full_queue_drops_instead_of_blocking():
    hub = ChangeBroadcaster(queue_size=1)
    q = hub.subscribe()

    assert hub.publish(["PRODUCTS_UPDATED", "SALES_UPDATED"]) == 1
    assert q.get_nowait() == "PRODUCTS_UPDATED"
    try:
        q.get_nowait()
        raise AssertionError("second event should have been dropped")
    except queue.Empty:
        pass


def test_notify_changes_reaches_module_broadcaster(app):
    q = broadcast_service.broadcaster.subscribe()
    try:
        with app.app_context():
            broadcast_service.notify_changes(broadcast_service.SETTINGS_UPDATED)
        assert q.get_nowait() == broadcast_service.SETTINGS_UPDATED
    finally:
        broadcast_service.broadcaster.unsubscribe(q)


def test_notify_changes_ignores_unknown_tags(app):
    q = broadcast_service.broadcaster.subscribe()
    try:
        with app.app_context():
            broadcast_service.notify_changes("SOMETHING_ELSE", broadcast_service.SALES_UPDATED)
        assert q.get_nowait() == broadcast_service.SALES_UPDATED
        assert q.empty()
    finally:
        broadcast_service.broadcaster.unsubscribe(q)


def test_notify_changes_swallows_receiver_errors(app):
    def _boom(sender, **kwargs):
        raise RuntimeError("receiver failed")

    broadcast_service.changes_committed.connect(_boom)
    try:
        with app.app_context():
            broadcast_service.notify_changes(broadcast_service.PRODUCTS_UPDATED)
    finally:
        broadcast_service.changes_committed.disconnect(_boom)


def test_format_sse():
    assert format_sse("SALES_UPDATED", '{"type": "SALES_UPDATED"}') == (
        'event: SALES_UPDATED\ndata: {"type": "SALES_UPDATED"}\n\n'
    )


def test_events_stream_requires_token(client, db_session):
    assert client.get("/api/events").status_code == 401
    assert client.get("/api/events?token=bogus").status_code == 401
