from quart import Blueprint, request, jsonify
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from bunkerdesk.models import ContactGroup, Contact
from bunkerdesk.database import SessionLocal
from bunkerdesk.utils.auth_utils import requires_auth
from bunkerdesk.utils.logging_utils import log_user_action, log_error
from bunkerdesk.utils.realtime import publish_change
from bunkerdesk.routes.workspaces import workspace_access
from bunkerdesk.schemas.preferences import (
    ContactGroupCreateSchema,
    ContactGroupUpdateSchema,
    GroupContactsSchema,
)

contact_groups_bp = Blueprint("contact_groups", __name__, url_prefix="/api")


def _owned_contacts(session, contact_ids, user_id):
    """Load the user's contacts by id; None when any id is unknown or foreign."""
    wanted = set(contact_ids)
    if not wanted:
        return []
    contacts = session.query(Contact).filter(
        Contact.id.in_(wanted),
        Contact.user_id == user_id
    ).all()
    return contacts if len(contacts) == len(wanted) else None


def get_accessible_group(session, group_id, user_id):
    """A group in a workspace the user owns or is a member of."""
    group = session.query(ContactGroup).filter(ContactGroup.id == group_id).first()
    if not group:
        return None
    workspace, _ = workspace_access(session, group.workspace_id, user_id)
    return group if workspace else None


def _notify(workspace, event, group_id):
    publish_change(workspace.user_id, "contact_groups", event, group_id)
    for member in workspace.members:
        publish_change(member.user_id, "contact_groups", event, group_id)


@contact_groups_bp.route("/workspaces/<int:workspace_id>/groups", methods=["GET"])
@requires_auth()
async def list_groups(workspace_id):
    user = request.user
    session = SessionLocal()
    try:
        workspace, _ = workspace_access(session, workspace_id, user.id)
        if not workspace:
            return jsonify({"error": "Workspace not found"}), 404

        groups = session.query(ContactGroup).filter(
            ContactGroup.workspace_id == workspace.id
        ).order_by(ContactGroup.name.asc(), ContactGroup.id.asc()).all()

        response = jsonify([g.to_dict() for g in groups])
        response.headers["Cache-Control"] = "no-store"
        return response
    finally:
        session.close()


@contact_groups_bp.route("/workspaces/<int:workspace_id>/groups", methods=["POST"])
@requires_auth()
async def create_group(workspace_id):
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        data = ContactGroupCreateSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400

    session = SessionLocal()
    try:
        workspace, _ = workspace_access(session, workspace_id, user.id)
        if not workspace:
            return jsonify({"error": "Workspace not found"}), 404

        contacts = _owned_contacts(session, data.contact_ids, user.id)
        if contacts is None:
            return jsonify({"error": "Contact not found"}), 404

        group = ContactGroup(
            workspace_id=workspace.id,
            user_id=user.id,
            name=data.name,
            color=data.color,
        )
        group.contacts.extend(contacts)
        session.add(group)
        session.commit()
        session.refresh(group)

        log_user_action("created", "contact_group", group.id)
        _notify(workspace, "INSERT", group.id)
        return jsonify(group.to_dict()), 201
    except SQLAlchemyError as e:
        session.rollback()
        log_error(e, "Creating contact group")
        return jsonify({"error": "Server error"}), 500
    finally:
        session.close()


@contact_groups_bp.route("/groups/<int:group_id>", methods=["PUT"])
@requires_auth()
async def update_group(group_id):
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        data = ContactGroupUpdateSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400

    session = SessionLocal()
    try:
        group = get_accessible_group(session, group_id, user.id)
        if not group:
            return jsonify({"error": "Group not found"}), 404

        for field, value in data.model_dump(exclude_none=True).items():
            setattr(group, field, value)

        session.commit()
        _notify(group.workspace, "UPDATE", group.id)
        return jsonify(group.to_dict())
    finally:
        session.close()


@contact_groups_bp.route("/groups/<int:group_id>", methods=["DELETE"])
@requires_auth()
async def delete_group(group_id):
    """Delete a group; its contacts are kept."""
    user = request.user
    session = SessionLocal()
    try:
        group = get_accessible_group(session, group_id, user.id)
        if not group:
            return jsonify({"error": "Group not found"}), 404

        workspace = group.workspace
        session.delete(group)
        session.commit()

        log_user_action("deleted", "contact_group", group_id)
        _notify(workspace, "DELETE", group_id)
        return jsonify({"message": "Group deleted"})
    finally:
        session.close()


@contact_groups_bp.route("/groups/<int:group_id>/contacts", methods=["POST"])
@requires_auth()
async def add_group_contacts(group_id):
    """Assign contacts to a group; ones already in it are skipped."""
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        data = GroupContactsSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400

    session = SessionLocal()
    try:
        group = get_accessible_group(session, group_id, user.id)
        if not group:
            return jsonify({"error": "Group not found"}), 404

        contacts = _owned_contacts(session, data.contact_ids, user.id)
        if contacts is None:
            return jsonify({"error": "Contact not found"}), 404

        existing = {c.id for c in group.contacts}
        added = [c for c in contacts if c.id not in existing]
        group.contacts.extend(added)
        session.commit()

        _notify(group.workspace, "UPDATE", group.id)
        return jsonify({"added": len(added), "group": group.to_dict()})
    except SQLAlchemyError as e:
        session.rollback()
        log_error(e, "Assigning contacts to group")
        return jsonify({"error": "Server error"}), 500
    finally:
        session.close()


@contact_groups_bp.route("/groups/<int:group_id>/contacts", methods=["DELETE"])
@requires_auth()
async def remove_group_contacts(group_id):
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        data = GroupContactsSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400

    session = SessionLocal()
    try:
        group = get_accessible_group(session, group_id, user.id)
        if not group:
            return jsonify({"error": "Group not found"}), 404

        doomed = set(data.contact_ids)
        before = len(group.contacts)
        group.contacts = [c for c in group.contacts if c.id not in doomed]
        removed = before - len(group.contacts)
        session.commit()

        _notify(group.workspace, "UPDATE", group.id)
        return jsonify({"removed": removed, "group": group.to_dict()})
    finally:
        session.close()
