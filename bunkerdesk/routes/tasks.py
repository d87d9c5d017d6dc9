import calendar
from datetime import datetime, timedelta

from quart import Blueprint, request, jsonify
from pydantic import ValidationError
from sqlalchemy import or_, case
from sqlalchemy.exc import SQLAlchemyError
from dateutil.parser import parse as parse_date

from bunkerdesk.models import Task, Contact, Supplier
from bunkerdesk.database import SessionLocal
from bunkerdesk.constants import TASK_TYPE_OPTIONS, TASK_FILTER_OPTIONS
from bunkerdesk.utils.auth_utils import requires_auth
from bunkerdesk.utils.logging_utils import log_user_action, log_error
from bunkerdesk.utils.realtime import publish_change
from bunkerdesk.schemas.tasks import TaskCreateSchema, TaskUpdateSchema

tasks_bp = Blueprint("tasks", __name__, url_prefix="/api/tasks")


def _check_links(session, user_id, contact_id, supplier_id):
    """Return an error tuple if a linked contact/supplier isn't the user's."""
    if contact_id and not session.query(Contact).filter(
        Contact.id == contact_id, Contact.user_id == user_id
    ).first():
        return jsonify({"error": "Contact not found"}), 404
    if supplier_id and not session.query(Supplier).filter(
        Supplier.id == supplier_id, Supplier.user_id == user_id
    ).first():
        return jsonify({"error": "Supplier not found"}), 404
    return None


def _ordered(query):
    # Incomplete first, then by due date with undated tasks last
    return query.order_by(
        Task.completed.asc(),
        case((Task.due_date.is_(None), 1), else_=0),
        Task.due_date.asc(),
        Task.id.asc(),
    )


def _day_bounds(value):
    day = parse_date(value).date() if value else datetime.utcnow().date()
    start = datetime.combine(day, datetime.min.time())
    return day, start, start + timedelta(days=1)


@tasks_bp.route("/types", methods=["GET"])
@requires_auth()
async def task_types():
    return jsonify(TASK_TYPE_OPTIONS)


@tasks_bp.route("", methods=["GET"])
@tasks_bp.route("/", methods=["GET"])
@requires_auth()
async def list_tasks():
    user = request.user
    session = SessionLocal()
    try:
        status = request.args.get("filter", "all")
        if status not in TASK_FILTER_OPTIONS:
            status = "all"
        search = (request.args.get("search") or "").strip()

        query = session.query(Task).outerjoin(Contact, Task.contact_id == Contact.id) \
            .outerjoin(Supplier, Task.supplier_id == Supplier.id) \
            .filter(Task.user_id == user.id)

        contact_id = request.args.get("contact_id", type=int)
        if contact_id:
            query = query.filter(Task.contact_id == contact_id)
        supplier_id = request.args.get("supplier_id", type=int)
        if supplier_id:
            query = query.filter(Task.supplier_id == supplier_id)

        if status == "pending":
            query = query.filter(Task.completed == False)
        elif status == "completed":
            query = query.filter(Task.completed == True)

        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(
                Task.title.ilike(pattern),
                Task.notes.ilike(pattern),
                Contact.name.ilike(pattern),
                Supplier.company_name.ilike(pattern),
            ))

        tasks = _ordered(query).all()
        response = jsonify([t.to_dict() for t in tasks])
        response.headers["Cache-Control"] = "no-store"
        return response
    finally:
        session.close()


@tasks_bp.route("/day", methods=["GET"])
@requires_auth()
async def day_schedule():
    """Tasks due on ?date=YYYY-MM-DD (default today), earliest first."""
    user = request.user
    try:
        day, start, end = _day_bounds(request.args.get("date"))
    except (ValueError, OverflowError):
        return jsonify({"error": "Invalid date"}), 400

    session = SessionLocal()
    try:
        tasks = session.query(Task).filter(
            Task.user_id == user.id,
            Task.due_date >= start,
            Task.due_date < end
        ).order_by(Task.due_date.asc()).all()
        return jsonify({
            "date": day.isoformat(),
            "tasks": [t.to_dict() for t in tasks],
        })
    finally:
        session.close()


@tasks_bp.route("/calendar", methods=["GET"])
@requires_auth()
async def calendar_month():
    """Per-day task counts for ?year=&month=."""
    user = request.user
    now = datetime.utcnow()
    year = request.args.get("year", now.year, type=int)
    month = request.args.get("month", now.month, type=int)
    if not 1 <= month <= 12 or not 1 <= year <= 9998:
        return jsonify({"error": "Invalid month"}), 400

    days_in_month = calendar.monthrange(year, month)[1]
    start = datetime(year, month, 1)
    end = start + timedelta(days=days_in_month)

    session = SessionLocal()
    try:
        tasks = session.query(Task.due_date, Task.completed).filter(
            Task.user_id == user.id,
            Task.due_date >= start,
            Task.due_date < end
        ).all()

        days = {}
        for due_date, completed in tasks:
            key = due_date.date().isoformat()
            entry = days.setdefault(key, {"total": 0, "pending": 0, "completed": 0})
            entry["total"] += 1
            entry["completed" if completed else "pending"] += 1

        return jsonify({"year": year, "month": month, "days": days})
    finally:
        session.close()


@tasks_bp.route("/<int:task_id>", methods=["GET"])
@requires_auth()
async def get_task(task_id):
    user = request.user
    session = SessionLocal()
    try:
        task = session.query(Task).filter(Task.id == task_id, Task.user_id == user.id).first()
        if not task:
            return jsonify({"error": "Task not found"}), 404
        return jsonify(task.to_dict())
    finally:
        session.close()


@tasks_bp.route("", methods=["POST"])
@tasks_bp.route("/", methods=["POST"])
@requires_auth()
async def create_task():
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        data = TaskCreateSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400

    session = SessionLocal()
    try:
        error = _check_links(session, user.id, data.contact_id, data.supplier_id)
        if error:
            return error

        task = Task(user_id=user.id, **data.model_dump())
        session.add(task)
        session.commit()
        session.refresh(task)

        log_user_action("created", "task", task.id)
        publish_change(user.id, "tasks", "INSERT", task.id)
        return jsonify(task.to_dict()), 201
    except SQLAlchemyError as e:
        session.rollback()
        log_error(e, "Creating task")
        return jsonify({"error": "Server error"}), 500
    finally:
        session.close()


@tasks_bp.route("/<int:task_id>", methods=["PUT"])
@requires_auth()
async def update_task(task_id):
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        data = TaskUpdateSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400

    session = SessionLocal()
    try:
        task = session.query(Task).filter(Task.id == task_id, Task.user_id == user.id).first()
        if not task:
            return jsonify({"error": "Task not found"}), 404

        update_data = data.model_dump(exclude_unset=True)
        error = _check_links(session, user.id, update_data.get("contact_id"), update_data.get("supplier_id"))
        if error:
            return error

        completed = update_data.pop("completed", None)
        for field, value in update_data.items():
            if field in ("title", "task_type") and value is None:
                continue
            setattr(task, field, value)

        if completed is not None and completed != task.completed:
            task.completed = completed
            task.completed_at = datetime.utcnow() if completed else None

        session.commit()
        publish_change(user.id, "tasks", "UPDATE", task.id)
        return jsonify(task.to_dict())
    except SQLAlchemyError as e:
        session.rollback()
        log_error(e, "Updating task")
        return jsonify({"error": "Server error"}), 500
    finally:
        session.close()


@tasks_bp.route("/<int:task_id>/toggle", methods=["PUT"])
@requires_auth()
async def toggle_task(task_id):
    user = request.user
    session = SessionLocal()
    try:
        task = session.query(Task).filter(Task.id == task_id, Task.user_id == user.id).first()
        if not task:
            return jsonify({"error": "Task not found"}), 404

        task.completed = not task.completed
        task.completed_at = datetime.utcnow() if task.completed else None
        session.commit()

        log_user_action("completed" if task.completed else "reopened", "task", task.id)
        publish_change(user.id, "tasks", "UPDATE", task.id)
        return jsonify(task.to_dict())
    finally:
        session.close()


@tasks_bp.route("/<int:task_id>", methods=["DELETE"])
@requires_auth()
async def delete_task(task_id):
    user = request.user
    session = SessionLocal()
    try:
        task = session.query(Task).filter(Task.id == task_id, Task.user_id == user.id).first()
        if not task:
            return jsonify({"error": "Task not found"}), 404

        session.delete(task)
        session.commit()
        log_user_action("deleted", "task", task_id)
        publish_change(user.id, "tasks", "DELETE", task_id)
        return jsonify({"message": "Task deleted"})
    finally:
        session.close()
