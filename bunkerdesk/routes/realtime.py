import asyncio
import json

from quart import Blueprint, request, jsonify, make_response

from bunkerdesk.config import REALTIME_HEARTBEAT_SECONDS
from bunkerdesk.utils.auth_utils import requires_auth
from bunkerdesk.utils.logging_utils import logger
from bunkerdesk.utils.realtime import broker, TooManyConnections

realtime_bp = Blueprint("realtime", __name__, url_prefix="/api/realtime")


def format_sse(data: dict, event: str = None) -> str:
    message = f"data: {json.dumps(data)}\n\n"
    if event:
        message = f"event: {event}\n{message}"
    return message


@realtime_bp.route("/stream", methods=["GET"])
@requires_auth()
async def stream():
    """
    Server-Sent Events change feed for the current user.

    ?tables=contacts,calls limits the feed; EventSource clients pass the
    token as ?token= since they cannot set headers.
    """
    user = request.user
    tables = [t.strip() for t in (request.args.get("tables") or "").split(",") if t.strip()]

    try:
        sub = broker.subscribe(user.id, tables or None)
    except TooManyConnections as e:
        logger.warning(f"[Realtime] {e}")
        return jsonify({"error": "Too many realtime connections"}), 429

    logger.info(f"[Realtime] Stream opened for user {user.id} ({broker.connection_count(user.id)} open)")

    async def events():
        try:
            yield format_sse({"type": "ping"}, event="ping")
            while True:
                try:
                    message = await asyncio.wait_for(sub.queue.get(), timeout=REALTIME_HEARTBEAT_SECONDS)
                except asyncio.TimeoutError:
                    yield ": heartbeat\n\n"
                    continue
                yield format_sse(message, event="change")
        finally:
            broker.unsubscribe(sub)
            logger.info(f"[Realtime] Stream closed for user {user.id}")

    response = await make_response(events(), {
        "Content-Type": "text/event-stream",
        "Cache-Control": "no-store",
        "X-Accel-Buffering": "no",
    })
    response.timeout = None
    return response
