from datetime import datetime

from quart import Blueprint, request, jsonify
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from bunkerdesk.models import NotificationSettings, isoformat_utc
from bunkerdesk.database import SessionLocal
from bunkerdesk.utils.auth_utils import requires_auth
from bunkerdesk.utils.email_utils import send_email
from bunkerdesk.utils.logging_utils import log_user_action, log_error, logger
from bunkerdesk.workers import reminders_queue
from bunkerdesk.workers.reminder_jobs import build_reminder_digest, run_reminder_digest_job
from bunkerdesk.schemas.preferences import NotificationSettingsSchema

reminders_bp = Blueprint("reminders", __name__, url_prefix="/api/reminders")


def _get_or_create_settings(session, user):
    settings = session.query(NotificationSettings).filter_by(user_id=user.id).first()
    if not settings:
        settings = NotificationSettings(
            user_id=user.id,
            user_email=user.email,
            days_before_reminder=1,
            enabled=True
        )
        session.add(settings)
        session.commit()
    return settings


def _serialize_reminders(reminders):
    return [
        {**r, "next_call_date": isoformat_utc(r["next_call_date"])} for r in reminders
    ]


@reminders_bp.route("/settings", methods=["GET"])
@requires_auth()
async def get_settings():
    user = request.user
    session = SessionLocal()
    try:
        settings = _get_or_create_settings(session, user)
        return jsonify(settings.to_dict())
    finally:
        session.close()


@reminders_bp.route("/settings", methods=["PUT"])
@requires_auth()
async def save_settings():
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        data = NotificationSettingsSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400

    session = SessionLocal()
    try:
        settings = _get_or_create_settings(session, user)
        for field, value in data.model_dump(exclude_none=True).items():
            setattr(settings, field, str(value) if field == "user_email" else value)
        session.commit()
        log_user_action("updated", "notification_settings", settings.id)
        return jsonify(settings.to_dict())
    except SQLAlchemyError as e:
        session.rollback()
        log_error(e, "Saving reminder settings")
        return jsonify({"error": "Server error"}), 500
    finally:
        session.close()


@reminders_bp.route("/preview", methods=["GET"])
@requires_auth()
async def preview_digest():
    """Compose today's digest without sending it."""
    user = request.user
    session = SessionLocal()
    try:
        settings = _get_or_create_settings(session, user)
        digest = build_reminder_digest(session, settings, datetime.utcnow())
        session.commit()
        return jsonify({
            "subject": digest["subject"],
            "recipient": digest["recipient"],
            "reminders": _serialize_reminders(digest["reminders"]),
            "html": digest["html"],
        })
    finally:
        session.close()


@reminders_bp.route("/send", methods=["POST"])
@requires_auth()
async def send_now():
    """Queue the digest on RQ when Redis is up, otherwise send it inline."""
    user = request.user

    if reminders_queue is not None:
        job = reminders_queue.enqueue(run_reminder_digest_job, user.id)
        logger.info(f"[Reminders] Queued digest job {job.id} for user {user.id}")
        return jsonify({"queued": True, "job_id": job.id}), 202

    session = SessionLocal()
    try:
        settings = _get_or_create_settings(session, user)
        digest = build_reminder_digest(session, settings, datetime.utcnow())
        session.commit()

        sent = False
        if digest["reminders"]:
            sent = await send_email(digest["subject"], digest["recipient"], digest["html"], html=True)

        log_user_action("sent_reminder_digest", "notification_settings", settings.id)
        return jsonify({
            "queued": False,
            "sent": sent,
            "reminder_count": len(digest["reminders"]),
        })
    finally:
        session.close()
