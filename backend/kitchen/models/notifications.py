from __future__ import annotations

from ..extensions import db
from kitchen.time_utils import to_utc_z, utcnow


MESSAGE_ORDER = "order"
MESSAGE_NOTIFICATION_UPDATE = "notification-update"
VALID_MESSAGE_TYPES = {MESSAGE_ORDER, MESSAGE_NOTIFICATION_UPDATE}


class NotificationMessage(db.Model):
    """
    Kitchen notification kept until its order is finished.

    Messages keyed by order_id are deleted when that order moves to DONE or
    CANCELLED.
    """
    __tablename__ = "notification_messages"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sender_id = db.Column(db.String(64), nullable=False)
    recipient_id = db.Column(db.String(64), nullable=True)
    content = db.Column(db.Text, nullable=False)
    message_type = db.Column(db.String(32), nullable=False, default=MESSAGE_ORDER)
    order_id = db.Column(db.Integer, nullable=True, index=True)
    timestamp = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sender_id": self.sender_id,
            "recipient_id": self.recipient_id,
            "content": self.content,
            "message_type": self.message_type,
            "order_id": self.order_id,
            "timestamp": to_utc_z(self.timestamp),
        }


class StreamConnection(db.Model):
    """One connection of a user to the notification stream (open while disconnected_at is NULL)."""
    __tablename__ = "stream_connections"
    __table_args__ = (
        db.Index("ix_stream_connections_user_open", "user_id", "disconnected_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    connected_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    disconnected_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "connected_at": to_utc_z(self.connected_at),
            "disconnected_at": to_utc_z(self.disconnected_at),
        }
