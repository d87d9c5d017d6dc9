from datetime import datetime, timedelta

from quart import Blueprint, request, jsonify
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from dateutil.parser import parse as parse_date

from bunkerdesk.models import DailyGoal, GoalNotificationSettings, Call, Email, FuelDeal, isoformat_utc
from bunkerdesk.database import SessionLocal
from bunkerdesk.constants import GOAL_TYPE_OPTIONS
from bunkerdesk.utils.auth_utils import requires_auth
from bunkerdesk.utils.logging_utils import log_user_action, log_error, logger
from bunkerdesk.utils.realtime import publish_change
from bunkerdesk.utils.goal_progress import calculate_goal_progress, goal_deadline
from bunkerdesk.schemas.goals import (
    GoalCreateSchema,
    GoalUpdateSchema,
    ManualCountSchema,
    GoalNotificationSettingsSchema,
)

goals_bp = Blueprint("goals", __name__, url_prefix="/api/goals")

ACTIVITY_COLUMNS = {
    "calls": (Call.call_date, Call.user_id),
    "emails": (Email.email_date, Email.user_id),
    "deals": (FuelDeal.deal_date, FuelDeal.user_id),
}


def activity_timestamps(session, user_id, goal_type, day):
    """Event timestamps of goal_type on the given UTC day."""
    column, owner = ACTIVITY_COLUMNS[goal_type]
    start = datetime.combine(day, datetime.min.time())
    rows = session.query(column).filter(
        owner == user_id,
        column >= start,
        column < start + timedelta(days=1)
    ).all()
    return [row[0] for row in rows]


def goal_progress(session, goal, now):
    progress = calculate_goal_progress(
        goal,
        activity_timestamps(session, goal.user_id, goal.goal_type, goal.target_date),
        now,
    )
    progress["deadline"] = isoformat_utc(progress["deadline"])
    return progress


def _get_owned_goal(session, goal_id, user_id):
    return session.query(DailyGoal).filter(
        DailyGoal.id == goal_id,
        DailyGoal.user_id == user_id
    ).first()


def _get_or_create_settings(session, user_id):
    settings = session.query(GoalNotificationSettings).filter_by(user_id=user_id).first()
    if not settings:
        settings = GoalNotificationSettings(user_id=user_id, notification_frequency=30, enable_notifications=True)
        session.add(settings)
        session.commit()
    return settings


@goals_bp.route("/types", methods=["GET"])
@requires_auth()
async def goal_types():
    return jsonify(GOAL_TYPE_OPTIONS)


@goals_bp.route("", methods=["GET"])
@goals_bp.route("/", methods=["GET"])
@requires_auth()
async def list_goals():
    user = request.user
    session = SessionLocal()
    try:
        goals = session.query(DailyGoal).filter(
            DailyGoal.user_id == user.id,
            DailyGoal.is_active == True
        ).order_by(DailyGoal.target_date.asc(), DailyGoal.target_time.asc()).all()
        response = jsonify([g.to_dict() for g in goals])
        response.headers["Cache-Control"] = "no-store"
        return response
    finally:
        session.close()


@goals_bp.route("", methods=["POST"])
@goals_bp.route("/", methods=["POST"])
@requires_auth()
async def create_goal():
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        data = GoalCreateSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400

    session = SessionLocal()
    try:
        goal = DailyGoal(user_id=user.id, manual_count=0, is_active=True, **data.model_dump())
        session.add(goal)
        session.commit()
        session.refresh(goal)

        log_user_action("created", "daily_goal", goal.id)
        publish_change(user.id, "daily_goals", "INSERT", goal.id)
        return jsonify(goal.to_dict()), 201
    except SQLAlchemyError as e:
        session.rollback()
        log_error(e, "Creating goal")
        return jsonify({"error": "Server error"}), 500
    finally:
        session.close()


@goals_bp.route("/<int:goal_id>", methods=["PUT"])
@requires_auth()
async def update_goal(goal_id):
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        data = GoalUpdateSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400

    session = SessionLocal()
    try:
        goal = _get_owned_goal(session, goal_id, user.id)
        if not goal:
            return jsonify({"error": "Goal not found"}), 404

        for field, value in data.model_dump(exclude_unset=True).items():
            if value is None and field in ("goal_type", "target_amount", "target_time", "target_date"):
                continue
            setattr(goal, field, value)

        session.commit()
        publish_change(user.id, "daily_goals", "UPDATE", goal.id)
        return jsonify(goal.to_dict())
    finally:
        session.close()


@goals_bp.route("/<int:goal_id>", methods=["DELETE"])
@requires_auth()
async def delete_goal(goal_id):
    user = request.user
    session = SessionLocal()
    try:
        goal = _get_owned_goal(session, goal_id, user.id)
        if not goal:
            return jsonify({"error": "Goal not found"}), 404

        goal.is_active = False
        session.commit()
        log_user_action("deleted", "daily_goal", goal.id)
        publish_change(user.id, "daily_goals", "UPDATE", goal.id)
        return jsonify({"message": "Goal deleted"})
    finally:
        session.close()


@goals_bp.route("/<int:goal_id>/manual-count", methods=["POST"])
@requires_auth()
async def adjust_manual_count(goal_id):
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        data = ManualCountSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400

    session = SessionLocal()
    try:
        goal = _get_owned_goal(session, goal_id, user.id)
        if not goal:
            return jsonify({"error": "Goal not found"}), 404

        goal.manual_count = max(0, (goal.manual_count or 0) + data.delta)
        session.commit()
        publish_change(user.id, "daily_goals", "UPDATE", goal.id)
        return jsonify(goal_progress(session, goal, datetime.utcnow()))
    finally:
        session.close()


@goals_bp.route("/progress", methods=["GET"])
@requires_auth()
async def progress_for_date():
    """Progress of every active goal on ?date= (default today)."""
    user = request.user
    date_arg = request.args.get("date")
    try:
        day = parse_date(date_arg).date() if date_arg else datetime.utcnow().date()
    except (ValueError, OverflowError):
        return jsonify({"error": "Invalid date"}), 400

    session = SessionLocal()
    try:
        now = datetime.utcnow()
        goals = session.query(DailyGoal).filter(
            DailyGoal.user_id == user.id,
            DailyGoal.is_active == True,
            DailyGoal.target_date == day
        ).order_by(DailyGoal.target_time.asc()).all()

        response = jsonify([
            {"goal": goal.to_dict(), "progress": goal_progress(session, goal, now)}
            for goal in goals
        ])
        response.headers["Cache-Control"] = "no-store"
        return response
    finally:
        session.close()


@goals_bp.route("/<int:goal_id>/progress", methods=["GET"])
@requires_auth()
async def progress_for_goal(goal_id):
    user = request.user
    session = SessionLocal()
    try:
        goal = _get_owned_goal(session, goal_id, user.id)
        if not goal:
            return jsonify({"error": "Goal not found"}), 404
        return jsonify(goal_progress(session, goal, datetime.utcnow()))
    finally:
        session.close()


@goals_bp.route("/notification-settings", methods=["GET"])
@requires_auth()
async def get_notification_settings():
    user = request.user
    session = SessionLocal()
    try:
        settings = _get_or_create_settings(session, user.id)
        return jsonify(settings.to_dict())
    finally:
        session.close()


@goals_bp.route("/notification-settings", methods=["PUT"])
@requires_auth()
async def save_notification_settings():
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        data = GoalNotificationSettingsSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400

    session = SessionLocal()
    try:
        settings = _get_or_create_settings(session, user.id)
        for field, value in data.model_dump(exclude_none=True).items():
            setattr(settings, field, value)
        session.commit()
        return jsonify(settings.to_dict())
    finally:
        session.close()


@goals_bp.route("/notifications/check", methods=["GET"])
@requires_auth()
async def check_notifications():
    """
    Notices for the goal widget: completion notices for goals whose
    deadline has passed and "behind" notices for goals still running.
    """
    user = request.user
    session = SessionLocal()
    try:
        settings = _get_or_create_settings(session, user.id)
        if not settings.enable_notifications:
            return jsonify({"enabled": False, "notifications": []})

        now = datetime.utcnow()
        goals = session.query(DailyGoal).filter(
            DailyGoal.user_id == user.id,
            DailyGoal.is_active == True
        ).all()

        notifications = []
        for goal in goals:
            progress = goal_progress(session, goal, now)
            if goal_deadline(goal) <= now:
                achieved = progress["current_amount"] >= progress["target_amount"]
                notifications.append({
                    "type": "goal_completed" if achieved else "goal_missed",
                    "goal_id": goal.id,
                    "message": (
                        f"{goal.goal_type.capitalize()} goal "
                        f"{'achieved' if achieved else 'missed'}: "
                        f"{progress['current_amount']}/{progress['target_amount']}"
                    ),
                    "progress": progress,
                })
            elif progress["status"] == "behind":
                notifications.append({
                    "type": "goal_behind",
                    "goal_id": goal.id,
                    "message": (
                        f"Behind on {goal.goal_type} goal: {progress['current_amount']}/"
                        f"{progress['target_amount']}, {progress['time_remaining']} left"
                    ),
                    "progress": progress,
                })

        return jsonify({
            "enabled": True,
            "notification_frequency": settings.notification_frequency,
            "notifications": notifications,
        })
    finally:
        session.close()


@goals_bp.route("/archive-expired", methods=["POST"])
@requires_auth()
async def archive_expired():
    user = request.user
    session = SessionLocal()
    try:
        now = datetime.utcnow()
        goals = session.query(DailyGoal).filter(
            DailyGoal.user_id == user.id,
            DailyGoal.is_active == True
        ).all()

        archived = []
        for goal in goals:
            if goal_deadline(goal) <= now:
                goal.is_active = False
                goal.completed_at = now
                archived.append(goal.id)

        session.commit()
        for goal_id in archived:
            publish_change(user.id, "daily_goals", "UPDATE", goal_id)
        if archived:
            logger.info(f"Archived {len(archived)} expired goals for user {user.id}")
        return jsonify({"archived": len(archived), "goal_ids": archived})
    except SQLAlchemyError as e:
        session.rollback()
        log_error(e, "Archiving expired goals")
        return jsonify({"error": "Server error"}), 500
    finally:
        session.close()


@goals_bp.route("/history", methods=["GET"])
@requires_auth()
async def goal_history():
    user = request.user
    session = SessionLocal()
    try:
        page = max(request.args.get("page", 1, type=int), 1)
        per_page = min(max(request.args.get("per_page", 20, type=int), 1), 100)

        query = session.query(DailyGoal).filter(
            DailyGoal.user_id == user.id,
            DailyGoal.completed_at.isnot(None)
        )
        total = query.count()
        goals = query.order_by(DailyGoal.completed_at.desc()) \
            .offset((page - 1) * per_page).limit(per_page).all()

        now = datetime.utcnow()
        return jsonify({
            "goals": [
                {"goal": g.to_dict(), "progress": goal_progress(session, g, now)}
                for g in goals
            ],
            "total": total,
            "page": page,
            "per_page": per_page,
        })
    finally:
        session.close()
