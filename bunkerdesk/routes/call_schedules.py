from datetime import datetime

from quart import Blueprint, request, jsonify
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from bunkerdesk.models import CallSchedule, Contact, DailyGoal
from bunkerdesk.database import SessionLocal
from bunkerdesk.utils.auth_utils import requires_auth
from bunkerdesk.utils.logging_utils import log_user_action, log_error, logger
from bunkerdesk.utils.realtime import publish_change
from bunkerdesk.utils.timezones import timezone_label
from bunkerdesk.utils.call_scheduler import (
    ScheduleError,
    generate_call_schedule,
    reorder_slots,
    insert_slot,
    remove_slot,
    next_free_time,
)
from bunkerdesk.routes.contacts import load_activity_summaries
from bunkerdesk.schemas.call_schedules import (
    GenerateScheduleSchema,
    ScheduleSlotCreateSchema,
    ScheduleSlotUpdateSchema,
    ReorderScheduleSchema,
    SlotCompleteSchema,
)

call_schedules_bp = Blueprint("call_schedules", __name__, url_prefix="/api")

CANDIDATE_FIELDS = ("id", "name", "company", "timezone", "is_client", "is_jammed", "has_traction")


def build_candidates(session, user_id, now):
    """Contact dicts merged with their activity summaries; dead contacts are left out."""
    contacts = session.query(Contact).filter(
        Contact.user_id == user_id,
        Contact.is_dead == False
    ).order_by(Contact.name).all()
    summaries = load_activity_summaries(session, contacts, now)

    candidates = []
    for contact in contacts:
        candidate = {field: getattr(contact, field) for field in CANDIDATE_FIELDS}
        candidate.update(summaries[contact.id])
        candidates.append(candidate)
    return candidates


def _get_owned_goal(session, goal_id, user_id):
    return session.query(DailyGoal).filter(
        DailyGoal.id == goal_id,
        DailyGoal.user_id == user_id
    ).first()


def _goal_slots(session, goal_id):
    return session.query(CallSchedule).filter(
        CallSchedule.goal_id == goal_id
    ).order_by(CallSchedule.display_order.asc(), CallSchedule.id.asc()).all()


def _get_owned_slot(session, slot_id, user_id):
    return session.query(CallSchedule).filter(
        CallSchedule.id == slot_id,
        CallSchedule.user_id == user_id
    ).first()


def _schedule_response(slots):
    return jsonify([s.to_dict() for s in sorted(slots, key=lambda s: s.display_order)])


@call_schedules_bp.route("/goals/<int:goal_id>/schedule", methods=["GET"])
@requires_auth()
async def list_schedule(goal_id):
    user = request.user
    session = SessionLocal()
    try:
        if not _get_owned_goal(session, goal_id, user.id):
            return jsonify({"error": "Goal not found"}), 404

        response = _schedule_response(_goal_slots(session, goal_id))
        response.headers["Cache-Control"] = "no-store"
        return response
    finally:
        session.close()


@call_schedules_bp.route("/goals/<int:goal_id>/schedule/generate", methods=["POST"])
@requires_auth()
async def generate_schedule(goal_id):
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        data = GenerateScheduleSchema(**raw_data)
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

        now = datetime.utcnow()
        if data.deadline <= now:
            return jsonify({"error": "Deadline must be in the future"}), 400

        if data.replace_existing:
            session.query(CallSchedule).filter(CallSchedule.goal_id == goal.id).delete(synchronize_session=False)
            offset = 0
            start = None
        else:
            existing = _goal_slots(session, goal.id)
            offset = len(existing)
            # Appended slots continue after the current last slot
            start = next_free_time(existing)

        candidates = build_candidates(session, user.id, now)
        planned = generate_call_schedule(
            candidates,
            total_calls=data.total_calls,
            deadline=data.deadline,
            call_duration_mins=data.call_duration_mins,
            now=now,
            start=start,
        )

        for fields in planned:
            fields["display_order"] += offset
            session.add(CallSchedule(user_id=user.id, goal_id=goal.id, **fields))

        session.commit()
        slots = _goal_slots(session, goal.id)

        logger.info(
            f"Generated {len(planned)} call slots for goal {goal.id} "
            f"from {len(candidates)} contacts"
        )
        log_user_action("generated", "call_schedule", goal.id)
        publish_change(user.id, "call_schedules", "INSERT", goal.id)
        return _schedule_response(slots), 201
    except SQLAlchemyError as e:
        session.rollback()
        log_error(e, "Generating call schedule")
        return jsonify({"error": "Server error"}), 500
    finally:
        session.close()


@call_schedules_bp.route("/goals/<int:goal_id>/schedule/reorder", methods=["PUT"])
@requires_auth()
async def reorder_schedule(goal_id):
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        data = ReorderScheduleSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400

    session = SessionLocal()
    try:
        if not _get_owned_goal(session, goal_id, user.id):
            return jsonify({"error": "Goal not found"}), 404

        slots = _goal_slots(session, goal_id)
        try:
            ordered = reorder_slots(slots, data.slot_ids)
        except ScheduleError as e:
            return jsonify({"error": str(e)}), 400

        session.commit()
        publish_change(user.id, "call_schedules", "UPDATE", goal_id)
        return _schedule_response(ordered)
    finally:
        session.close()


@call_schedules_bp.route("/goals/<int:goal_id>/schedule", methods=["POST"])
@requires_auth()
async def add_slot(goal_id):
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        data = ScheduleSlotCreateSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400

    session = SessionLocal()
    try:
        if not _get_owned_goal(session, goal_id, user.id):
            return jsonify({"error": "Goal not found"}), 404

        fields = data.model_dump(exclude={"position"})
        if data.contact_id:
            contact = session.query(Contact).filter(
                Contact.id == data.contact_id,
                Contact.user_id == user.id
            ).first()
            if not contact:
                return jsonify({"error": "Contact not found"}), 404
            fields["contact_name"] = fields["contact_name"] or contact.name
            fields["timezone_label"] = fields["timezone_label"] or timezone_label(contact.timezone)
        if not fields["contact_name"]:
            return jsonify({"error": "contact_name or contact_id is required"}), 400

        slots = _goal_slots(session, goal_id)
        slot = CallSchedule(
            user_id=user.id,
            goal_id=goal_id,
            is_suggested=False,
            completed=False,
            display_order=len(slots),
            **fields,
        )
        position = len(slots) if data.position is None else data.position
        ordered = insert_slot(slots, slot, position, datetime.utcnow())

        session.add(slot)
        session.commit()

        log_user_action("created", "call_schedule", slot.id)
        publish_change(user.id, "call_schedules", "INSERT", slot.id)
        return _schedule_response(ordered), 201
    finally:
        session.close()


@call_schedules_bp.route("/schedule/<int:slot_id>", methods=["PUT"])
@requires_auth()
async def update_slot(slot_id):
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        data = ScheduleSlotUpdateSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400

    session = SessionLocal()
    try:
        slot = _get_owned_slot(session, slot_id, user.id)
        if not slot:
            return jsonify({"error": "Schedule slot not found"}), 404

        for field, value in data.model_dump(exclude_unset=True).items():
            if value is None and field in ("contact_name", "priority_label", "contact_status",
                                           "call_duration_mins", "scheduled_time"):
                continue
            setattr(slot, field, value)

        session.commit()
        publish_change(user.id, "call_schedules", "UPDATE", slot.id)
        return jsonify(slot.to_dict())
    finally:
        session.close()


@call_schedules_bp.route("/schedule/<int:slot_id>/complete", methods=["PUT"])
@requires_auth()
async def complete_slot(slot_id):
    """Mark a slot done; send {"completed": false} to undo."""
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        data = SlotCompleteSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400
    completed = data.completed

    session = SessionLocal()
    try:
        slot = _get_owned_slot(session, slot_id, user.id)
        if not slot:
            return jsonify({"error": "Schedule slot not found"}), 404

        slot.completed = completed
        slot.completed_at = datetime.utcnow() if completed else None
        session.commit()

        publish_change(user.id, "call_schedules", "UPDATE", slot.id)
        return jsonify(slot.to_dict())
    finally:
        session.close()


@call_schedules_bp.route("/schedule/<int:slot_id>", methods=["DELETE"])
@requires_auth()
async def delete_slot(slot_id):
    user = request.user
    session = SessionLocal()
    try:
        slot = _get_owned_slot(session, slot_id, user.id)
        if not slot:
            return jsonify({"error": "Schedule slot not found"}), 404

        goal_id = slot.goal_id
        slots = _goal_slots(session, goal_id)
        try:
            remaining = remove_slot(slots, slot.id)
        except ScheduleError as e:
            return jsonify({"error": str(e)}), 400

        session.delete(slot)
        session.commit()

        log_user_action("deleted", "call_schedule", slot_id)
        publish_change(user.id, "call_schedules", "DELETE", slot_id)
        return _schedule_response(remaining)
    finally:
        session.close()
