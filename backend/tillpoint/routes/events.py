# Overview: Server-Sent Events stream of committed change notifications.

"""
GET /api/events streams `PRODUCTS_UPDATED`, `SALES_UPDATED` and
`SETTINGS_UPDATED` tags to connected registers and admin pages.

Each connection gets its own bounded queue from the ChangeBroadcaster; a
comment line is sent every KEEPALIVE_SECONDS so proxies keep the stream open.
EventSource cannot set headers, so the session token may be passed as the
`token` query parameter.
"""

import queue

from flask import Blueprint, Response, current_app, jsonify, request, stream_with_context

from ..services import session_service
from ..services.broadcast_service import broadcaster

events_bp = Blueprint("events", __name__, url_prefix="/api/events")

KEEPALIVE_SECONDS = 15


def format_sse(event: str, data: str = "{}") -> str:
    return f"event: {event}\ndata: {data}\n\n"


@events_bp.get("")
def stream_events():
    auth_header = request.headers.get("Authorization", "")
    token = auth_header[7:].strip() if auth_header.startswith("Bearer ") else request.args.get("token")
    if not token or not session_service.validate_session(token):
        return jsonify({"error": "Authentication required"}), 401

    subscription = broadcaster.subscribe()
    keepalive = current_app.config.get("EVENTS_KEEPALIVE_SECONDS", KEEPALIVE_SECONDS)

    def generate():
        try:
            yield ": connected\n\n"
            while True:
                try:
                    event = subscription.get(timeout=keepalive)
                except queue.Empty:
                    yield ": keepalive\n\n"
                    continue
                yield format_sse(event, '{"type": "%s"}' % event)
        finally:
            broadcaster.unsubscribe(subscription)

    return Response(
        stream_with_context(generate()),
        mimetype="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
