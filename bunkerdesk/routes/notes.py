from quart import Blueprint, request, jsonify
from pydantic import ValidationError
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from bunkerdesk.models import SavedNote, NoteShare, User, Contact
from bunkerdesk.database import SessionLocal
from bunkerdesk.utils.auth_utils import requires_auth
from bunkerdesk.utils.logging_utils import log_user_action, log_error
from bunkerdesk.utils.realtime import publish_change
from bunkerdesk.utils.note_formatter import format_note_content
from bunkerdesk.utils.note_sharing import ShareError, can_view, can_edit, check_share_allowed, find_share
from bunkerdesk.routes.preferences import get_preference, set_preference
from bunkerdesk.schemas.notes import NoteCreateSchema, NoteUpdateSchema, NoteShareSchema, NotepadSchema

notes_bp = Blueprint("notes", __name__, url_prefix="/api")


def _note_payload(note, user_id):
    data = note.to_dict()
    data["is_owner"] = note.user_id == user_id
    data["owner_email"] = note.owner.email if note.owner else None
    share = find_share(note, user_id)
    data["can_edit"] = data["is_owner"] or bool(share and share.can_edit)
    return data


def _visible_note(session, note_id, user_id):
    note = session.get(SavedNote, note_id)
    if not note or not can_view(note, user_id):
        return None
    return note


def _check_contact(session, contact_id, user_id):
    return session.query(Contact).filter(
        Contact.id == contact_id,
        Contact.user_id == user_id
    ).first() is not None


@notes_bp.route("/notes", methods=["GET"])
@requires_auth()
async def list_notes():
    """My notes plus the ones shared with me, most recently updated first."""
    user = request.user
    session = SessionLocal()
    try:
        shared_ids = session.query(NoteShare.note_id).filter(NoteShare.shared_with == user.id)
        query = session.query(SavedNote).filter(or_(
            SavedNote.user_id == user.id,
            SavedNote.id.in_(shared_ids)
        ))

        contact_id = request.args.get("contact_id", type=int)
        if contact_id:
            query = query.filter(SavedNote.contact_id == contact_id)

        notes = query.order_by(SavedNote.updated_at.desc()).all()
        response = jsonify([_note_payload(n, user.id) for n in notes])
        response.headers["Cache-Control"] = "no-store"
        return response
    finally:
        session.close()


@notes_bp.route("/notes", methods=["POST"])
@requires_auth()
async def create_note():
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        data = NoteCreateSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400

    session = SessionLocal()
    try:
        if data.contact_id and not _check_contact(session, data.contact_id, user.id):
            return jsonify({"error": "Contact not found"}), 404

        note = SavedNote(user_id=user.id, **data.model_dump())
        session.add(note)
        session.commit()
        session.refresh(note)

        log_user_action("created", "saved_note", note.id)
        publish_change(user.id, "saved_notes", "INSERT", note.id)
        return jsonify(_note_payload(note, user.id)), 201
    except SQLAlchemyError as e:
        session.rollback()
        log_error(e, "Creating note")
        return jsonify({"error": "Server error"}), 500
    finally:
        session.close()


@notes_bp.route("/notes/<int:note_id>", methods=["GET"])
@requires_auth()
async def get_note(note_id):
    user = request.user
    session = SessionLocal()
    try:
        note = _visible_note(session, note_id, user.id)
        if not note:
            return jsonify({"error": "Note not found"}), 404
        return jsonify(_note_payload(note, user.id))
    finally:
        session.close()


@notes_bp.route("/notes/<int:note_id>/html", methods=["GET"])
@requires_auth()
async def get_note_html(note_id):
    user = request.user
    session = SessionLocal()
    try:
        note = _visible_note(session, note_id, user.id)
        if not note:
            return jsonify({"error": "Note not found"}), 404
        return jsonify({"id": note.id, "html": format_note_content(note.content)})
    finally:
        session.close()


@notes_bp.route("/notes/<int:note_id>", methods=["PUT"])
@requires_auth()
async def update_note(note_id):
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        data = NoteUpdateSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400

    session = SessionLocal()
    try:
        note = _visible_note(session, note_id, user.id)
        if not note:
            return jsonify({"error": "Note not found"}), 404
        if not can_edit(note, user.id):
            return jsonify({"error": "You do not have permission to edit this note"}), 403

        update_data = data.model_dump(exclude_unset=True)
        if update_data.get("contact_id") and not _check_contact(session, update_data["contact_id"], note.user_id):
            return jsonify({"error": "Contact not found"}), 404

        for field, value in update_data.items():
            if field == "title" and value is None:
                continue
            if field == "content" and value is None:
                value = ""
            setattr(note, field, value)

        session.commit()

        publish_change(note.user_id, "saved_notes", "UPDATE", note.id)
        for share in note.shares:
            publish_change(share.shared_with, "saved_notes", "UPDATE", note.id)
        return jsonify(_note_payload(note, user.id))
    except SQLAlchemyError as e:
        session.rollback()
        log_error(e, "Updating note")
        return jsonify({"error": "Server error"}), 500
    finally:
        session.close()


@notes_bp.route("/notes/<int:note_id>", methods=["DELETE"])
@requires_auth()
async def delete_note(note_id):
    user = request.user
    session = SessionLocal()
    try:
        note = _visible_note(session, note_id, user.id)
        if not note:
            return jsonify({"error": "Note not found"}), 404
        if note.user_id != user.id:
            return jsonify({"error": "Only the note owner can delete it"}), 403

        recipients = [share.shared_with for share in note.shares]
        session.delete(note)
        session.commit()

        log_user_action("deleted", "saved_note", note_id)
        publish_change(user.id, "saved_notes", "DELETE", note_id)
        for recipient_id in recipients:
            publish_change(recipient_id, "saved_notes", "DELETE", note_id)
        return jsonify({"message": "Note deleted"})
    finally:
        session.close()


# ---------------------------------------------------------------------------
# Sharing
# ---------------------------------------------------------------------------

@notes_bp.route("/notes/<int:note_id>/shares", methods=["GET"])
@requires_auth()
async def list_shares(note_id):
    user = request.user
    session = SessionLocal()
    try:
        note = _visible_note(session, note_id, user.id)
        if not note:
            return jsonify({"error": "Note not found"}), 404

        shares = sorted(note.shares, key=lambda s: s.created_at or s.id)
        return jsonify([s.to_dict() for s in shares])
    finally:
        session.close()


@notes_bp.route("/notes/<int:note_id>/share", methods=["POST"])
@requires_auth()
async def share_note(note_id):
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        data = NoteShareSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400

    session = SessionLocal()
    try:
        note = _visible_note(session, note_id, user.id)
        if not note:
            return jsonify({"error": "Note not found"}), 404
        if note.user_id != user.id:
            return jsonify({"error": "Only the note owner can share it"}), 403

        if data.shared_with:
            recipient = session.get(User, data.shared_with)
        else:
            recipient = session.query(User).filter_by(email=str(data.email).lower()).first()
        if not recipient or not recipient.is_active:
            return jsonify({"error": "User not found"}), 404

        try:
            check_share_allowed(note, user.id, recipient.id)
        except ShareError as e:
            return jsonify({"error": str(e)}), 400

        share = NoteShare(
            note_id=note.id,
            shared_by=user.id,
            shared_with=recipient.id,
            can_edit=data.can_edit
        )
        session.add(share)
        try:
            session.commit()
        except IntegrityError:
            session.rollback()
            return jsonify({"error": "Note already shared with this user"}), 409

        session.refresh(share)
        log_user_action("shared", "saved_note", note.id)
        publish_change(user.id, "note_shares", "INSERT", share.id)
        publish_change(recipient.id, "saved_notes", "INSERT", note.id)
        return jsonify(share.to_dict()), 201
    except SQLAlchemyError as e:
        session.rollback()
        log_error(e, "Sharing note")
        return jsonify({"error": "Server error"}), 500
    finally:
        session.close()


@notes_bp.route("/notes/<int:note_id>/shares/<int:share_id>", methods=["DELETE"])
@requires_auth()
async def revoke_share(note_id, share_id):
    user = request.user
    session = SessionLocal()
    try:
        note = session.query(SavedNote).filter(
            SavedNote.id == note_id,
            SavedNote.user_id == user.id
        ).first()
        if not note:
            return jsonify({"error": "Note not found"}), 404

        share = session.query(NoteShare).filter(
            NoteShare.id == share_id,
            NoteShare.note_id == note.id
        ).first()
        if not share:
            return jsonify({"error": "Share not found"}), 404

        recipient_id = share.shared_with
        session.delete(share)
        session.commit()

        log_user_action("unshared", "saved_note", note.id)
        publish_change(user.id, "note_shares", "DELETE", share_id)
        publish_change(recipient_id, "saved_notes", "DELETE", note.id)
        return jsonify({"message": "Share removed"})
    finally:
        session.close()


# ---------------------------------------------------------------------------
# Notepad (per-user scratch note kept in user_preferences)
# ---------------------------------------------------------------------------

@notes_bp.route("/notepad", methods=["GET"])
@requires_auth()
async def get_notepad():
    user = request.user
    session = SessionLocal()
    try:
        content = get_preference(session, user.id, "notepad", "content", default="")
        response = jsonify({"content": content})
        response.headers["Cache-Control"] = "no-store"
        return response
    finally:
        session.close()


@notes_bp.route("/notepad", methods=["PUT"])
@requires_auth()
async def save_notepad():
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        data = NotepadSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400

    session = SessionLocal()
    try:
        pref = set_preference(session, user.id, "notepad", "content", data.content)
        session.commit()
        publish_change(user.id, "user_preferences", "UPDATE", pref.id)
        return jsonify({"content": data.content})
    except SQLAlchemyError as e:
        session.rollback()
        log_error(e, "Saving notepad")
        return jsonify({"error": "Server error"}), 500
    finally:
        session.close()
