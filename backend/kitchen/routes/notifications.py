# Overview: Flask API routes for kitchen notifications, including the live event stream.

"""
Notifications.

GET /api/notifications lists persisted messages (pending kitchen work).
GET /api/notifications/stream is a Server-Sent Events stream of broadcast
events. Browsers' EventSource cannot set headers, so it authenticates with
?token=.
"""

import json

from flask import Blueprint, Response, current_app, g, jsonify, request

from ..decorators import require_auth
from ..extensions import broadcaster
from ..services import notification_service


notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@notifications_bp.get("")
@require_auth
def list_notifications():
    messages = notification_service.list_messages()
    return jsonify({"items": [m.to_dict() for m in messages]}), 200


@notifications_bp.get("/connections")
@require_auth
def list_connections():
    """The caller's stream connection history. ?active=true keeps open ones."""
    active_only = request.args.get("active", "false").lower() == "true"
    connections = notification_service.list_stream_connections(g.current_user.id, active_only=active_only)
    return jsonify({"items": [c.to_dict() for c in connections]}), 200


def _event_frames(listener, heartbeat: float):
    try:
        yield ": connected\n\n"
        while True:
            event = listener.get(timeout=heartbeat)
            if event is None:
                yield ": keep-alive\n\n"
                continue
            yield f"data: {json.dumps(event)}\n\n"
    finally:
        broadcaster.unregister(listener)


@notifications_bp.get("/stream")
@require_auth
def stream():
    app = current_app._get_current_object()
    connection = notification_service.open_stream_connection(g.current_user.id)
    connection_id = connection.id
    listener = broadcaster.register(user_id=g.current_user.id)
    app.logger.debug("Notification listener %s connected (connection %s)", listener.id, connection_id)
    heartbeat = app.config.get("NOTIFICATION_HEARTBEAT_SECONDS", 15)

    def on_close():
        # Runs after the request context is gone
        broadcaster.unregister(listener)
        with app.app_context():
            notification_service.close_stream_connection(connection_id)

    response = Response(
        _event_frames(listener, heartbeat),
        mimetype="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
    # Also covers a client that disconnects before the first frame
    response.call_on_close(on_close)
    return response
