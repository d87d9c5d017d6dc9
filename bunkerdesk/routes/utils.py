from datetime import datetime

from quart import Blueprint, request, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from bunkerdesk.database import SessionLocal
from bunkerdesk.utils.auth_utils import requires_auth
from bunkerdesk.utils.logging_utils import logger

utils_bp = Blueprint("utils", __name__, url_prefix="/api")


@utils_bp.route("/log-error", methods=["POST"])
@requires_auth()
async def log_error():
    """Frontend error reports; Sentry covers the backend."""
    user = request.user
    data = await request.get_json(silent=True) or {}
    message = data.get("message", "No message provided")
    context = data.get("context") or {}
    if not isinstance(context, dict):
        context = {"value": context}

    context["user_id"] = user.id
    context["user_email"] = user.email

    logger.error(f"[Frontend Error] {message} | Context: {context}")
    return {"status": "logged"}


@utils_bp.route("/health", methods=["GET"])
async def health():
    session = SessionLocal()
    try:
        session.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError as e:
        logger.error(f"[Health] Database check failed: {e}")
        database = "unavailable"
    finally:
        session.close()

    status = 200 if database == "ok" else 503
    return jsonify({
        "status": "ok" if status == 200 else "degraded",
        "database": database,
        "time": datetime.utcnow().isoformat() + "Z",
    }), status
