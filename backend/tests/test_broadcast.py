import threading

from kitchen.broadcast import Broadcaster
from kitchen.extensions import broadcaster as app_broadcaster
from kitchen.models import StreamConnection
from kitchen.routes.notifications import _event_frames
from kitchen.services import notification_service


def test_send_reaches_every_listener():
    hub = Broadcaster(queue_size=10)
    first, second = hub.register(), hub.register()

    assert hub.send({"type": "order", "orderId": 1}) == 2
    assert first.get(timeout=0)["orderId"] == 1
    assert second.get(timeout=0)["orderId"] == 1


def test_send_without_listeners_is_a_no_op():
    assert Broadcaster().send({"type": "order"}) == 0


def test_unregister_is_idempotent():
    hub = Broadcaster()
    listener = hub.register()
    hub.unregister(listener)
    hub.unregister(listener)

    assert len(hub) == 0
    assert hub.send({"type": "order"}) == 0
    assert listener.get(timeout=0) is None


def test_full_queue_drops_instead_of_blocking():
    hub = Broadcaster(queue_size=2)
    slow = hub.register()
    fast = hub.register()

    for n in range(3):
        hub.send({"n": n})
        fast.get(timeout=0)

    assert slow.dropped == 1
    assert fast.dropped == 0
    assert [slow.get(timeout=0)["n"], slow.get(timeout=0)["n"]] == [0, 1]


def test_registry_changes_during_send_are_safe():
    hub = Broadcaster(queue_size=1000)
    stop = threading.Event()

    def churn():
        while not stop.is_set():
            hub.unregister(hub.register())

    worker = threading.Thread(target=churn)
    worker.start()
    try:
        stable = hub.register()
        for n in range(200):
            hub.send({"n": n})
    finally:
        stop.set()
        worker.join()

    assert stable.events.qsize() == 200


def test_stream_frames_and_cleanup(db_session):
    listener = app_broadcaster.register(user_id=1)
    frames = _event_frames(listener, heartbeat=0.01)

    assert next(frames) == ": connected\n\n"
    assert next(frames) == ": keep-alive\n\n"

    app_broadcaster.send({"type": "order", "orderId": 7})
    assert next(frames) == 'data: {"type": "order", "orderId": 7}\n\n'

    frames.close()
    assert listener not in app_broadcaster.listeners()


def test_connection_history(db_session, admin_user, plain_user):
    first = notification_service.open_stream_connection(admin_user.id)
    second = notification_service.open_stream_connection(admin_user.id)
    notification_service.open_stream_connection(plain_user.id)

    closed = notification_service.close_stream_connection(first.id)
    stamp = closed.disconnected_at
    assert stamp is not None
    # closing twice keeps the first stamp
    assert notification_service.close_stream_connection(first.id).disconnected_at == stamp

    active = notification_service.list_stream_connections(admin_user.id, active_only=True)
    history = notification_service.list_stream_connections(admin_user.id)
    assert [c.id for c in active] == [second.id]
    assert {c.id for c in history} == {first.id, second.id}


def test_stream_route_records_the_connection(client, db_session, admin_user, admin_headers):
    resp = client.get("/api/notifications/stream", headers=admin_headers, buffered=False)
    assert resp.status_code == 200
    assert resp.mimetype == "text/event-stream"

    listed = client.get("/api/notifications/connections?active=true", headers=admin_headers).json["items"]
    assert len(listed) == 1
    assert listed[0]["user_id"] == admin_user.id
    assert listed[0]["disconnected_at"] is None
    assert len(app_broadcaster) == 1

    resp.close()

    db_session.expire_all()
    (connection,) = db_session.query(StreamConnection).all()
    assert connection.disconnected_at is not None
    assert len(app_broadcaster) == 0
