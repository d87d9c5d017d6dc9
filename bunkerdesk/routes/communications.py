from quart import Blueprint, request, jsonify
from pydantic import ValidationError
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from bunkerdesk.models import Contact, Call, Email
from bunkerdesk.database import SessionLocal
from bunkerdesk.utils.auth_utils import requires_auth
from bunkerdesk.utils.phone_utils import clean_phone_number
from bunkerdesk.utils.logging_utils import log_user_action, log_error
from bunkerdesk.utils.realtime import publish_change
from bunkerdesk.schemas.communications import (
    CallCreateSchema,
    CallUpdateSchema,
    EmailCreateSchema,
    EmailUpdateSchema,
)

communications_bp = Blueprint("communications", __name__, url_prefix="/api")


def sync_last_called(session, contact_id):
    """Set contacts.last_called to the latest remaining call (or None)."""
    session.flush()
    latest = session.query(func.max(Call.call_date)).filter(Call.contact_id == contact_id).scalar()
    contact = session.get(Contact, contact_id)
    if contact:
        contact.last_called = latest


def sync_last_emailed(session, contact_id):
    session.flush()
    latest = session.query(func.max(Email.email_date)).filter(Email.contact_id == contact_id).scalar()
    contact = session.get(Contact, contact_id)
    if contact:
        contact.last_emailed = latest


def _owned_contact(session, contact_id, user_id):
    return session.query(Contact).filter(
        Contact.id == contact_id,
        Contact.user_id == user_id
    ).first()


# ---------------------------------------------------------------------------
# Calls
# ---------------------------------------------------------------------------

@communications_bp.route("/contacts/<int:contact_id>/calls", methods=["GET"])
@requires_auth()
async def list_calls(contact_id):
    user = request.user
    session = SessionLocal()
    try:
        if not _owned_contact(session, contact_id, user.id):
            return jsonify({"error": "Contact not found"}), 404

        calls = session.query(Call).filter(
            Call.contact_id == contact_id
        ).order_by(Call.call_date.desc()).all()
        return jsonify([c.to_dict() for c in calls])
    finally:
        session.close()


@communications_bp.route("/calls", methods=["POST"])
@requires_auth()
async def create_call():
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        data = CallCreateSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400

    session = SessionLocal()
    try:
        if not _owned_contact(session, data.contact_id, user.id):
            return jsonify({"error": "Contact not found"}), 404

        fields = data.model_dump()
        fields["phone_number"] = clean_phone_number(data.phone_number) if data.phone_number else None
        call = Call(user_id=user.id, **fields)
        session.add(call)
        sync_last_called(session, data.contact_id)
        session.commit()
        session.refresh(call)

        log_user_action("created", "call", call.id)
        publish_change(user.id, "calls", "INSERT", call.id)
        publish_change(user.id, "contacts", "UPDATE", data.contact_id)
        return jsonify(call.to_dict()), 201
    except SQLAlchemyError as e:
        session.rollback()
        log_error(e, "Logging call")
        return jsonify({"error": "Server error"}), 500
    finally:
        session.close()


@communications_bp.route("/calls/<int:call_id>", methods=["PUT"])
@requires_auth()
async def update_call(call_id):
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        data = CallUpdateSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400

    session = SessionLocal()
    try:
        call = session.query(Call).filter(Call.id == call_id, Call.user_id == user.id).first()
        if not call:
            return jsonify({"error": "Call not found"}), 404

        for field, value in data.model_dump(exclude_unset=True).items():
            if field == "phone_number":
                value = clean_phone_number(value) if value else None
            if field == "call_date" and value is None:
                continue
            setattr(call, field, value)

        sync_last_called(session, call.contact_id)
        session.commit()

        publish_change(user.id, "calls", "UPDATE", call.id)
        publish_change(user.id, "contacts", "UPDATE", call.contact_id)
        return jsonify(call.to_dict())
    except SQLAlchemyError as e:
        session.rollback()
        log_error(e, "Updating call")
        return jsonify({"error": "Server error"}), 500
    finally:
        session.close()


@communications_bp.route("/calls/<int:call_id>", methods=["DELETE"])
@requires_auth()
async def delete_call(call_id):
    user = request.user
    session = SessionLocal()
    try:
        call = session.query(Call).filter(Call.id == call_id, Call.user_id == user.id).first()
        if not call:
            return jsonify({"error": "Call not found"}), 404

        contact_id = call.contact_id
        session.delete(call)
        sync_last_called(session, contact_id)
        session.commit()

        log_user_action("deleted", "call", call_id)
        publish_change(user.id, "calls", "DELETE", call_id)
        publish_change(user.id, "contacts", "UPDATE", contact_id)
        return jsonify({"message": "Call deleted"})
    except SQLAlchemyError as e:
        session.rollback()
        log_error(e, "Deleting call")
        return jsonify({"error": "Server error"}), 500
    finally:
        session.close()


# ---------------------------------------------------------------------------
# Emails
# ---------------------------------------------------------------------------

@communications_bp.route("/contacts/<int:contact_id>/emails", methods=["GET"])
@requires_auth()
async def list_emails(contact_id):
    user = request.user
    session = SessionLocal()
    try:
        if not _owned_contact(session, contact_id, user.id):
            return jsonify({"error": "Contact not found"}), 404

        emails = session.query(Email).filter(
            Email.contact_id == contact_id
        ).order_by(Email.email_date.desc()).all()
        return jsonify([e.to_dict() for e in emails])
    finally:
        session.close()


@communications_bp.route("/emails", methods=["POST"])
@requires_auth()
async def create_email():
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        data = EmailCreateSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400

    session = SessionLocal()
    try:
        if not _owned_contact(session, data.contact_id, user.id):
            return jsonify({"error": "Contact not found"}), 404

        fields = data.model_dump()
        fields["email_address"] = str(data.email_address) if data.email_address else None
        email = Email(user_id=user.id, **fields)
        session.add(email)
        sync_last_emailed(session, data.contact_id)
        session.commit()
        session.refresh(email)

        log_user_action("created", "email", email.id)
        publish_change(user.id, "emails", "INSERT", email.id)
        publish_change(user.id, "contacts", "UPDATE", data.contact_id)
        return jsonify(email.to_dict()), 201
    except SQLAlchemyError as e:
        session.rollback()
        log_error(e, "Logging email")
        return jsonify({"error": "Server error"}), 500
    finally:
        session.close()


@communications_bp.route("/emails/<int:email_id>", methods=["PUT"])
@requires_auth()
async def update_email(email_id):
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        data = EmailUpdateSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400

    session = SessionLocal()
    try:
        email = session.query(Email).filter(Email.id == email_id, Email.user_id == user.id).first()
        if not email:
            return jsonify({"error": "Email not found"}), 404

        for field, value in data.model_dump(exclude_unset=True).items():
            if field == "email_address":
                value = str(value) if value else None
            if field == "email_date" and value is None:
                continue
            setattr(email, field, value)

        sync_last_emailed(session, email.contact_id)
        session.commit()

        publish_change(user.id, "emails", "UPDATE", email.id)
        publish_change(user.id, "contacts", "UPDATE", email.contact_id)
        return jsonify(email.to_dict())
    except SQLAlchemyError as e:
        session.rollback()
        log_error(e, "Updating email")
        return jsonify({"error": "Server error"}), 500
    finally:
        session.close()


@communications_bp.route("/emails/<int:email_id>", methods=["DELETE"])
@requires_auth()
async def delete_email(email_id):
    user = request.user
    session = SessionLocal()
    try:
        email = session.query(Email).filter(Email.id == email_id, Email.user_id == user.id).first()
        if not email:
            return jsonify({"error": "Email not found"}), 404

        contact_id = email.contact_id
        session.delete(email)
        sync_last_emailed(session, contact_id)
        session.commit()

        log_user_action("deleted", "email", email_id)
        publish_change(user.id, "emails", "DELETE", email_id)
        publish_change(user.id, "contacts", "UPDATE", contact_id)
        return jsonify({"message": "Email deleted"})
    except SQLAlchemyError as e:
        session.rollback()
        log_error(e, "Deleting email")
        return jsonify({"error": "Server error"}), 500
    finally:
        session.close()
