from datetime import datetime
from collections import defaultdict

from quart import Blueprint, request, jsonify
from pydantic import ValidationError
from sqlalchemy import or_, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload

from bunkerdesk.models import Contact, ContactPerson, Call, Email, FuelDeal, Task, isoformat_utc, contact_group_members
from bunkerdesk.database import SessionLocal
from bunkerdesk.constants import CONTACT_SORT_OPTIONS, ACTIVITY_WINDOW_DAYS
from bunkerdesk.utils.auth_utils import requires_auth
from bunkerdesk.utils.phone_utils import clean_phone_number
from bunkerdesk.utils.logging_utils import log_user_action, log_error
from bunkerdesk.utils.realtime import publish_change
from bunkerdesk.utils.contact_activity import summarize_activity, within_activity_window, sort_contacts
from bunkerdesk.utils.duplicates import find_duplicate_groups, ids_to_delete
from bunkerdesk.utils.csv_utils import generate_csv_content, parse_csv_content, parse_bool, csv_response
from bunkerdesk.routes.contact_groups import get_accessible_group
from bunkerdesk.schemas.contacts import (
    ContactCreateSchema,
    ContactUpdateSchema,
    ContactStatusSchema,
    ContactPersonSchema,
    ContactPersonUpdateSchema,
    DeleteAllContactsSchema,
    DeleteDuplicatesSchema,
)

contacts_bp = Blueprint("contacts", __name__, url_prefix="/api/contacts")

# Multi-value list filters: query arg -> column
FILTER_FIELDS = [
    "name", "company", "company_size", "email", "phone", "city",
    "post_code", "website", "address", "country", "timezone",
]

STATUS_FILTERS = ["has_traction", "is_client", "is_jammed", "is_dead"]

EXPORT_COLUMNS = [
    "name", "company", "company_size", "email", "phone", "phone_type", "website",
    "address", "city", "post_code", "country", "timezone", "reminder_days",
    "is_client", "has_traction", "is_jammed", "is_dead", "jammed_reason",
    "priority_rank", "notes", "last_called", "last_emailed",
]


def serialize_summary(summary):
    return {
        key: isoformat_utc(value) if isinstance(value, datetime) else value
        for key, value in summary.items()
    }


def load_activity_summaries(session, contacts, now=None):
    """Activity summary for each contact, keyed by contact id."""
    now = now or datetime.utcnow()
    ids = [c.id for c in contacts]
    if not ids:
        return {}

    calls = defaultdict(list)
    for contact_id, call_date in session.query(Call.contact_id, Call.call_date).filter(Call.contact_id.in_(ids)):
        calls[contact_id].append(call_date)

    emails = defaultdict(list)
    for contact_id, email_date in session.query(Email.contact_id, Email.email_date).filter(Email.contact_id.in_(ids)):
        emails[contact_id].append(email_date)

    deals = defaultdict(list)
    for contact_id, deal_date in session.query(FuelDeal.contact_id, FuelDeal.deal_date).filter(FuelDeal.contact_id.in_(ids)):
        deals[contact_id].append(deal_date)

    tasks = defaultdict(list)
    for task in session.query(Task).filter(Task.contact_id.in_(ids)):
        tasks[task.contact_id].append(task)

    return {
        c.id: summarize_activity(c, calls[c.id], emails[c.id], deals[c.id], tasks[c.id], now)
        for c in contacts
    }


def _apply_person_fields(person, data: dict):
    for field, value in data.items():
        if field in ("phone", "mobile"):
            value = clean_phone_number(value) if value else None
        elif field == "email":
            value = str(value) if value else None
        setattr(person, field, value)


def _replace_persons(contact, persons):
    contact.persons.clear()
    for person_data in persons:
        person = ContactPerson()
        _apply_person_fields(person, person_data.model_dump())
        contact.persons.append(person)


def _get_owned_contact(session, contact_id, user_id):
    return session.query(Contact).filter(
        Contact.id == contact_id,
        Contact.user_id == user_id
    ).first()


@contacts_bp.route("", methods=["GET"])
@contacts_bp.route("/", methods=["GET"])
@requires_auth()
async def list_contacts():
    user = request.user
    session = SessionLocal()
    try:
        page = max(int(request.args.get("page", 1)), 1)
        per_page = min(max(int(request.args.get("per_page", 50)), 1), 500)
        sort_by = request.args.get("sort", "name")
        window = request.args.get("activity", "all")
        search = (request.args.get("search") or "").strip()

        if sort_by not in CONTACT_SORT_OPTIONS:
            sort_by = "name"
        if window not in ACTIVITY_WINDOW_DAYS:
            window = "all"

        query = session.query(Contact).filter(Contact.user_id == user.id)

        if search:
            like = f"%{search.lower()}%"
            query = query.filter(or_(
                func.lower(Contact.name).like(like),
                func.lower(Contact.company).like(like),
                func.lower(Contact.email).like(like),
                func.lower(Contact.phone).like(like),
            ))

        for field in FILTER_FIELDS:
            values = [v for v in request.args.getlist(field) if v]
            if values:
                query = query.filter(getattr(Contact, field).in_(values))

        statuses = [s for s in request.args.getlist("status") if s in STATUS_FILTERS]
        if statuses:
            query = query.filter(or_(*[getattr(Contact, s) == True for s in statuses]))

        group_id = request.args.get("group_id", type=int)
        if group_id:
            if not get_accessible_group(session, group_id, user.id):
                return jsonify({"error": "Group not found"}), 404
            query = query.filter(Contact.id.in_(
                select(contact_group_members.c.contact_id).where(contact_group_members.c.group_id == group_id)
            ))

        contacts = query.all()
        now = datetime.utcnow()
        summaries = load_activity_summaries(session, contacts, now)

        rows = [(c, summaries[c.id]) for c in contacts]
        if window != "all":
            rows = [row for row in rows if within_activity_window(row[1], window, now)]
        rows = sort_contacts(rows, sort_by)

        total = len(rows)
        page_rows = rows[(page - 1) * per_page: page * per_page]

        response = jsonify({
            "contacts": [
                {**c.to_dict(), **serialize_summary(summary)} for c, summary in page_rows
            ],
            "total": total,
            "page": page,
            "per_page": per_page,
            "sort": sort_by,
            "activity": window,
        })
        response.headers["Cache-Control"] = "no-store"
        return response
    finally:
        session.close()


@contacts_bp.route("/filter-options", methods=["GET"])
@requires_auth()
async def filter_options():
    """Distinct non-empty values for each list filter."""
    user = request.user
    session = SessionLocal()
    try:
        options = {}
        for field in FILTER_FIELDS:
            column = getattr(Contact, field)
            values = session.query(column).filter(
                Contact.user_id == user.id,
                column != None,
                column != ""
            ).distinct().order_by(column).all()
            options[field] = [v[0] for v in values]
        return jsonify(options)
    finally:
        session.close()


@contacts_bp.route("/<int:contact_id>", methods=["GET"])
@requires_auth()
async def get_contact(contact_id):
    user = request.user
    session = SessionLocal()
    try:
        contact = session.query(Contact).options(
            selectinload(Contact.persons),
            selectinload(Contact.vessels),
            selectinload(Contact.calls),
            selectinload(Contact.emails),
            selectinload(Contact.fuel_deals),
            selectinload(Contact.tasks),
        ).filter(
            Contact.id == contact_id,
            Contact.user_id == user.id
        ).first()

        if not contact:
            return jsonify({"error": "Contact not found"}), 404

        summary = load_activity_summaries(session, [contact])[contact.id]

        return jsonify({
            **contact.to_dict(),
            **serialize_summary(summary),
            "persons": [p.to_dict() for p in contact.persons],
            "vessels": [v.to_dict() for v in contact.vessels],
            "calls": [c.to_dict() for c in contact.calls],
            "emails": [e.to_dict() for e in contact.emails],
            "fuel_deals": [d.to_dict() for d in contact.fuel_deals],
            "tasks": [t.to_dict() for t in contact.tasks],
        })
    finally:
        session.close()


@contacts_bp.route("", methods=["POST"])
@contacts_bp.route("/", methods=["POST"])
@requires_auth()
async def create_contact():
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        data = ContactCreateSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400

    session = SessionLocal()
    try:
        fields = data.model_dump(exclude={"persons"})
        fields["phone"] = clean_phone_number(data.phone) if data.phone else None
        fields["email"] = str(data.email) if data.email else None

        contact = Contact(user_id=user.id, **fields)
        session.add(contact)
        if data.persons:
            _replace_persons(contact, data.persons)

        session.commit()
        session.refresh(contact)

        log_user_action("created", "contact", contact.id)
        publish_change(user.id, "contacts", "INSERT", contact.id)
        return jsonify({"id": contact.id}), 201
    except SQLAlchemyError as e:
        session.rollback()
        log_error(e, "Creating contact")
        return jsonify({"error": "Server error"}), 500
    finally:
        session.close()


@contacts_bp.route("/<int:contact_id>", methods=["PUT"])
@requires_auth()
async def update_contact(contact_id):
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        data = ContactUpdateSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400

    session = SessionLocal()
    try:
        contact = _get_owned_contact(session, contact_id, user.id)
        if not contact:
            return jsonify({"error": "Contact not found"}), 404

        update_data = data.model_dump(exclude_unset=True, exclude={"persons"})

        for field, value in update_data.items():
            if field == "phone":
                contact.phone = clean_phone_number(value) if value else None
            elif field == "email":
                contact.email = str(value) if value else None
            else:
                setattr(contact, field, value)

        if data.persons is not None:
            _replace_persons(contact, data.persons)

        session.commit()
        log_user_action("updated", "contact", contact.id)
        publish_change(user.id, "contacts", "UPDATE", contact.id)
        return jsonify({"message": "Contact updated"})
    except SQLAlchemyError as e:
        session.rollback()
        log_error(e, "Updating contact")
        return jsonify({"error": "Server error"}), 500
    finally:
        session.close()


@contacts_bp.route("/<int:contact_id>/status", methods=["PUT"])
@requires_auth()
async def set_contact_status(contact_id):
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        data = ContactStatusSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400

    session = SessionLocal()
    try:
        contact = _get_owned_contact(session, contact_id, user.id)
        if not contact:
            return jsonify({"error": "Contact not found"}), 404

        setattr(contact, data.field, data.value)
        if data.field == "is_jammed":
            contact.jammed_reason = data.jammed_reason if data.value else None

        session.commit()
        publish_change(user.id, "contacts", "UPDATE", contact.id)
        return jsonify(contact.to_dict())
    finally:
        session.close()


@contacts_bp.route("/<int:contact_id>", methods=["DELETE"])
@requires_auth()
async def delete_contact(contact_id):
    user = request.user
    session = SessionLocal()
    try:
        contact = _get_owned_contact(session, contact_id, user.id)
        if not contact:
            return jsonify({"error": "Contact not found"}), 404

        session.delete(contact)
        session.commit()
        log_user_action("deleted", "contact", contact_id)
        publish_change(user.id, "contacts", "DELETE", contact_id)
        return jsonify({"message": "Contact deleted"})
    finally:
        session.close()


@contacts_bp.route("/delete-all", methods=["POST"])
@requires_auth(roles=["admin"])
async def delete_all_contacts():
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        DeleteAllContactsSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400

    session = SessionLocal()
    try:
        contacts = session.query(Contact).filter(Contact.user_id == user.id).all()
        count = len(contacts)
        for contact in contacts:
            session.delete(contact)
        session.commit()

        log_user_action("deleted_all", "contact", None)
        publish_change(user.id, "contacts", "DELETE", None)
        return jsonify({"message": "All contacts deleted", "deleted": count})
    except SQLAlchemyError as e:
        session.rollback()
        log_error(e, "Deleting all contacts")
        return jsonify({"error": "Server error"}), 500
    finally:
        session.close()


def _row_to_contact_payload(row: dict) -> dict:
    payload = {key: value for key, value in row.items() if value not in (None, "")}
    for flag in ("is_client", "has_traction", "is_jammed", "is_dead"):
        if flag in payload:
            payload[flag] = parse_bool(payload[flag])
    return payload


@contacts_bp.route("/import", methods=["POST"])
@requires_auth()
async def import_contacts():
    """
    Bulk import from {"rows": [...]} or {"csv": "..."}.

    Rows without a name are skipped; invalid rows are reported by index.
    """
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    if raw_data.get("csv"):
        rows = parse_csv_content(raw_data["csv"])
    else:
        rows = raw_data.get("rows") or []

    if not isinstance(rows, list):
        return jsonify({"error": "rows must be a list"}), 400

    session = SessionLocal()
    try:
        imported, skipped, errors = 0, 0, []
        for index, row in enumerate(rows):
            if not isinstance(row, dict) or not str(row.get("name") or "").strip():
                skipped += 1
                continue
            try:
                data = ContactCreateSchema(**_row_to_contact_payload(row))
            except ValidationError as e:
                errors.append({"row": index, "details": e.errors(include_url=False, include_context=False)})
                continue

            fields = data.model_dump(exclude={"persons"})
            fields["phone"] = clean_phone_number(data.phone) if data.phone else None
            fields["email"] = str(data.email) if data.email else None
            session.add(Contact(user_id=user.id, **fields))
            imported += 1

        session.commit()
        log_user_action("imported", "contact", None)
        if imported:
            publish_change(user.id, "contacts", "INSERT", None)
        return jsonify({"imported": imported, "skipped": skipped, "errors": errors})
    except SQLAlchemyError as e:
        session.rollback()
        log_error(e, "Importing contacts")
        return jsonify({"error": "Server error"}), 500
    finally:
        session.close()


@contacts_bp.route("/export", methods=["GET"])
@requires_auth()
async def export_contacts():
    user = request.user
    session = SessionLocal()
    try:
        contacts = session.query(Contact).filter(
            Contact.user_id == user.id
        ).order_by(Contact.name).all()
        content = generate_csv_content([c.to_dict() for c in contacts], EXPORT_COLUMNS)
        return csv_response(content, f"contacts_{datetime.utcnow():%Y%m%d}.csv")
    finally:
        session.close()


@contacts_bp.route("/duplicates", methods=["GET"])
@requires_auth()
async def list_duplicates():
    user = request.user
    session = SessionLocal()
    try:
        contacts = session.query(Contact).filter(Contact.user_id == user.id).all()
        groups = find_duplicate_groups(contacts)
        return jsonify([
            {
                "name": group["name"],
                "count": len(group["records"]),
                "contacts": [c.to_dict() for c in group["records"]],
            } for group in groups
        ])
    finally:
        session.close()


@contacts_bp.route("/duplicates", methods=["DELETE"])
@requires_auth()
async def delete_duplicates():
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        data = DeleteDuplicatesSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400

    session = SessionLocal()
    try:
        contacts = session.query(Contact).filter(Contact.user_id == user.id).all()
        doomed = set(ids_to_delete(find_duplicate_groups(contacts), keep=data.keep))
        for contact in contacts:
            if contact.id in doomed:
                session.delete(contact)
        session.commit()

        log_user_action(f"deleted_duplicates_keep_{data.keep}", "contact", None)
        if doomed:
            publish_change(user.id, "contacts", "DELETE", None)
        return jsonify({"deleted": len(doomed), "ids": sorted(doomed)})
    except SQLAlchemyError as e:
        session.rollback()
        log_error(e, "Deleting duplicate contacts")
        return jsonify({"error": "Server error"}), 500
    finally:
        session.close()


# ---------------------------------------------------------------------------
# Contact persons
# ---------------------------------------------------------------------------

@contacts_bp.route("/<int:contact_id>/persons", methods=["GET"])
@requires_auth()
async def list_persons(contact_id):
    user = request.user
    session = SessionLocal()
    try:
        contact = _get_owned_contact(session, contact_id, user.id)
        if not contact:
            return jsonify({"error": "Contact not found"}), 404
        return jsonify([p.to_dict() for p in contact.persons])
    finally:
        session.close()


@contacts_bp.route("/<int:contact_id>/persons", methods=["POST"])
@requires_auth()
async def create_person(contact_id):
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        data = ContactPersonSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400

    session = SessionLocal()
    try:
        contact = _get_owned_contact(session, contact_id, user.id)
        if not contact:
            return jsonify({"error": "Contact not found"}), 404

        if data.is_primary:
            for other in contact.persons:
                other.is_primary = False

        person = ContactPerson(contact_id=contact.id)
        _apply_person_fields(person, data.model_dump())
        session.add(person)
        session.commit()
        session.refresh(person)

        publish_change(user.id, "contact_persons", "INSERT", person.id)
        return jsonify(person.to_dict()), 201
    finally:
        session.close()


def _get_owned_person(session, person_id, user_id):
    return session.query(ContactPerson).join(Contact).filter(
        ContactPerson.id == person_id,
        Contact.user_id == user_id
    ).first()


@contacts_bp.route("/persons/<int:person_id>", methods=["PUT"])
@requires_auth()
async def update_person(person_id):
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        data = ContactPersonUpdateSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400

    session = SessionLocal()
    try:
        person = _get_owned_person(session, person_id, user.id)
        if not person:
            return jsonify({"error": "Contact person not found"}), 404

        update_data = data.model_dump(exclude_unset=True)
        if update_data.get("is_primary"):
            for other in person.contact.persons:
                if other.id != person.id:
                    other.is_primary = False
        _apply_person_fields(person, update_data)

        session.commit()
        publish_change(user.id, "contact_persons", "UPDATE", person.id)
        return jsonify(person.to_dict())
    finally:
        session.close()


@contacts_bp.route("/persons/<int:person_id>", methods=["DELETE"])
@requires_auth()
async def delete_person(person_id):
    user = request.user
    session = SessionLocal()
    try:
        person = _get_owned_person(session, person_id, user.id)
        if not person:
            return jsonify({"error": "Contact person not found"}), 404

        session.delete(person)
        session.commit()
        publish_change(user.id, "contact_persons", "DELETE", person_id)
        return jsonify({"message": "Contact person deleted"})
    finally:
        session.close()
