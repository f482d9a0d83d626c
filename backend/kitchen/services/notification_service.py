from __future__ import annotations

from flask import current_app

from ..extensions import db, broadcaster
from ..models import NotificationMessage, StreamConnection
from ..models.notifications import VALID_MESSAGE_TYPES
from kitchen.time_utils import to_utc_z, utcnow


SYSTEM_SENDER = "system"


def add_message(
    *,
    content: str,
    message_type: str,
    order_id: int | None = None,
    sender_id: str = SYSTEM_SENDER,
    recipient_id: str | None = None,
) -> NotificationMessage:
    """Stage a message in the current transaction (caller commits)."""
    if message_type not in VALID_MESSAGE_TYPES:
        raise ValueError(f"unknown message_type {message_type!r}")
    message = NotificationMessage(
        sender_id=sender_id,
        recipient_id=recipient_id,
        content=content,
        message_type=message_type,
        order_id=order_id,
        timestamp=utcnow(),
    )
    db.session.add(message)
    return message


def delete_messages_for_order(order_id: int) -> int:
    """Stage deletion of every pending message keyed by order_id (caller commits)."""
    return (
        db.session.query(NotificationMessage)
        .filter(NotificationMessage.order_id == order_id)
        .delete(synchronize_session=False)
    )


def list_messages() -> list[NotificationMessage]:
    return (
        db.session.query(NotificationMessage)
        .order_by(NotificationMessage.timestamp.asc(), NotificationMessage.id.asc())
        .all()
    )


def publish(event_type: str, order_id: int, **extra) -> int:
    """
    Fan an event out to connected listeners.

    Best-effort: never raises, so a notification problem cannot fail the
    transaction that triggered it. Returns the number of listeners reached.
    """
    event = {"type": event_type, "orderId": order_id, "timestamp": to_utc_z(utcnow())}
    event.update(extra)
    try:
        return broadcaster.send(event)
    except Exception:
        current_app.logger.warning("Broadcast of %s for order %s failed", event_type, order_id, exc_info=True)
        return 0


# ---------------------------------------------------------------------------
# Stream connection history
# ---------------------------------------------------------------------------

def open_stream_connection(user_id: int) -> StreamConnection:
    connection = StreamConnection(user_id=user_id, connected_at=utcnow())
    db.session.add(connection)
    db.session.commit()
    return connection


def close_stream_connection(connection_id: int) -> StreamConnection | None:
    """Stamp disconnected_at once; closing an already closed connection is a no-op."""
    connection = db.session.get(StreamConnection, connection_id)
    if connection is None or connection.disconnected_at is not None:
        return connection
    connection.disconnected_at = utcnow()
    db.session.commit()
    return connection


def list_stream_connections(user_id: int, active_only: bool = False) -> list[StreamConnection]:
    query = db.session.query(StreamConnection).filter(StreamConnection.user_id == user_id)
    if active_only:
        query = query.filter(StreamConnection.disconnected_at.is_(None))
    return query.order_by(StreamConnection.connected_at.desc(), StreamConnection.id.desc()).all()
