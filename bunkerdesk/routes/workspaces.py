from quart import Blueprint, request, jsonify
from pydantic import ValidationError
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from bunkerdesk.models import Workspace, WorkspaceMember, User
from bunkerdesk.database import SessionLocal
from bunkerdesk.constants import DEFAULT_WORKSPACE_NAME, DEFAULT_WORKSPACE_COLOR
from bunkerdesk.utils.auth_utils import requires_auth
from bunkerdesk.utils.logging_utils import log_user_action, log_error
from bunkerdesk.utils.realtime import publish_change
from bunkerdesk.schemas.preferences import (
    WorkspaceCreateSchema,
    WorkspaceUpdateSchema,
    WorkspaceMemberCreateSchema,
    WorkspaceMemberUpdateSchema,
)

workspaces_bp = Blueprint("workspaces", __name__, url_prefix="/api/workspaces")


def get_or_create_default_workspace(session, user_id):
    workspace = session.query(Workspace).filter_by(user_id=user_id, is_default=True).first()
    if not workspace:
        workspace = Workspace(
            user_id=user_id,
            name=DEFAULT_WORKSPACE_NAME,
            color=DEFAULT_WORKSPACE_COLOR,
            is_default=True,
            display_order=0
        )
        session.add(workspace)
        session.commit()
    return workspace


def _get_owned_workspace(session, workspace_id, user_id):
    return session.query(Workspace).filter(
        Workspace.id == workspace_id,
        Workspace.user_id == user_id
    ).first()


def workspace_access(session, workspace_id, user_id):
    """
    Return (workspace, role) for a workspace the user owns or belongs to.

    role is "owner", "admin" or "member"; (None, None) when there is no access.
    """
    workspace = session.query(Workspace).filter(Workspace.id == workspace_id).first()
    if not workspace:
        return None, None
    if workspace.user_id == user_id:
        return workspace, "owner"
    member = session.query(WorkspaceMember).filter_by(workspace_id=workspace_id, user_id=user_id).first()
    if member:
        return workspace, member.role
    return None, None


def can_manage(role):
    return role in ("owner", "admin")


@workspaces_bp.route("", methods=["GET"])
@workspaces_bp.route("/", methods=["GET"])
@requires_auth()
async def list_workspaces():
    user = request.user
    session = SessionLocal()
    try:
        get_or_create_default_workspace(session, user.id)
        workspaces = session.query(Workspace).filter(
            Workspace.user_id == user.id
        ).order_by(Workspace.display_order.asc(), Workspace.id.asc()).all()
        memberships = session.query(WorkspaceMember).filter(
            WorkspaceMember.user_id == user.id
        ).order_by(WorkspaceMember.created_at.asc(), WorkspaceMember.id.asc()).all()

        # Own workspaces first, then the ones shared with this user
        result = [w.to_dict() for w in workspaces]
        result.extend(m.workspace.to_dict(role=m.role) for m in memberships)
        return jsonify(result)
    finally:
        session.close()


@workspaces_bp.route("/default", methods=["GET"])
@requires_auth()
async def default_workspace():
    user = request.user
    session = SessionLocal()
    try:
        return jsonify(get_or_create_default_workspace(session, user.id).to_dict())
    finally:
        session.close()


@workspaces_bp.route("", methods=["POST"])
@workspaces_bp.route("/", methods=["POST"])
@requires_auth()
async def create_workspace():
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        data = WorkspaceCreateSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400

    session = SessionLocal()
    try:
        get_or_create_default_workspace(session, user.id)
        max_order = session.query(func.max(Workspace.display_order)).filter(
            Workspace.user_id == user.id
        ).scalar()

        workspace = Workspace(
            user_id=user.id,
            name=data.name,
            color=data.color,
            is_default=False,
            display_order=(max_order if max_order is not None else -1) + 1
        )
        session.add(workspace)
        session.commit()
        session.refresh(workspace)

        log_user_action("created", "workspace", workspace.id)
        publish_change(user.id, "workspaces", "INSERT", workspace.id)
        return jsonify(workspace.to_dict()), 201
    except SQLAlchemyError as e:
        session.rollback()
        log_error(e, "Creating workspace")
        return jsonify({"error": "Server error"}), 500
    finally:
        session.close()


@workspaces_bp.route("/<int:workspace_id>", methods=["PUT"])
@requires_auth()
async def update_workspace(workspace_id):
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        data = WorkspaceUpdateSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400

    session = SessionLocal()
    try:
        workspace = _get_owned_workspace(session, workspace_id, user.id)
        if not workspace:
            return jsonify({"error": "Workspace not found"}), 404

        for field, value in data.model_dump(exclude_none=True).items():
            setattr(workspace, field, value)

        session.commit()
        publish_change(user.id, "workspaces", "UPDATE", workspace.id)
        return jsonify(workspace.to_dict())
    finally:
        session.close()


@workspaces_bp.route("/<int:workspace_id>", methods=["DELETE"])
@requires_auth()
async def delete_workspace(workspace_id):
    user = request.user
    session = SessionLocal()
    try:
        workspace = _get_owned_workspace(session, workspace_id, user.id)
        if not workspace:
            return jsonify({"error": "Workspace not found"}), 404
        if workspace.is_default:
            return jsonify({"error": "The default workspace cannot be deleted"}), 400

        session.delete(workspace)
        session.commit()
        log_user_action("deleted", "workspace", workspace_id)
        publish_change(user.id, "workspaces", "DELETE", workspace_id)
        return jsonify({"message": "Workspace deleted"})
    finally:
        session.close()


@workspaces_bp.route("/<int:workspace_id>/members", methods=["GET"])
@requires_auth()
async def list_members(workspace_id):
    user = request.user
    session = SessionLocal()
    try:
        workspace, role = workspace_access(session, workspace_id, user.id)
        if not workspace:
            return jsonify({"error": "Workspace not found"}), 404

        members = session.query(WorkspaceMember).filter(
            WorkspaceMember.workspace_id == workspace.id
        ).order_by(WorkspaceMember.created_at.asc(), WorkspaceMember.id.asc()).all()

        owner = session.query(User).filter(User.id == workspace.user_id).first()
        return jsonify({
            "owner": {"user_id": workspace.user_id, "email": owner.email if owner else None},
            "my_role": role,
            "members": [m.to_dict() for m in members],
        })
    finally:
        session.close()


@workspaces_bp.route("/<int:workspace_id>/members", methods=["POST"])
@requires_auth()
async def add_member(workspace_id):
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        data = WorkspaceMemberCreateSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400
    if not data.user_id and not data.email:
        return jsonify({"error": "user_id or email is required"}), 400

    session = SessionLocal()
    try:
        workspace, role = workspace_access(session, workspace_id, user.id)
        if not workspace:
            return jsonify({"error": "Workspace not found"}), 404
        if not can_manage(role):
            return jsonify({"error": "Only the owner or an admin can add members"}), 403

        query = session.query(User).filter(User.is_active == True)
        if data.user_id:
            query = query.filter(User.id == data.user_id)
        else:
            query = query.filter(User.email == data.email)
        new_user = query.first()
        if not new_user:
            return jsonify({"error": "User not found"}), 404
        if new_user.id == workspace.user_id:
            return jsonify({"error": "The owner already has access to this workspace"}), 400

        member = WorkspaceMember(
            workspace_id=workspace.id,
            user_id=new_user.id,
            added_by=user.id,
            role=data.role,
        )
        session.add(member)
        try:
            session.commit()
        except IntegrityError:
            session.rollback()
            return jsonify({"error": "This user is already a member of this workspace"}), 409

        session.refresh(member)
        log_user_action("added_member", "workspace", workspace.id)
        publish_change(workspace.user_id, "workspace_members", "INSERT", member.id)
        publish_change(new_user.id, "workspaces", "INSERT", workspace.id)
        return jsonify(member.to_dict()), 201
    except SQLAlchemyError as e:
        session.rollback()
        log_error(e, "Adding workspace member")
        return jsonify({"error": "Server error"}), 500
    finally:
        session.close()


@workspaces_bp.route("/<int:workspace_id>/members/<int:member_id>", methods=["PUT"])
@requires_auth()
async def update_member(workspace_id, member_id):
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        data = WorkspaceMemberUpdateSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400

    session = SessionLocal()
    try:
        workspace, role = workspace_access(session, workspace_id, user.id)
        if not workspace:
            return jsonify({"error": "Workspace not found"}), 404
        if not can_manage(role):
            return jsonify({"error": "Only the owner or an admin can change roles"}), 403

        member = session.query(WorkspaceMember).filter_by(id=member_id, workspace_id=workspace.id).first()
        if not member:
            return jsonify({"error": "Member not found"}), 404

        member.role = data.role
        session.commit()
        publish_change(workspace.user_id, "workspace_members", "UPDATE", member.id)
        return jsonify(member.to_dict())
    finally:
        session.close()


@workspaces_bp.route("/<int:workspace_id>/members/<int:member_id>", methods=["DELETE"])
@requires_auth()
async def remove_member(workspace_id, member_id):
    """Owners and admins remove anyone; a member may remove themselves to leave."""
    user = request.user
    session = SessionLocal()
    try:
        workspace, role = workspace_access(session, workspace_id, user.id)
        if not workspace:
            return jsonify({"error": "Workspace not found"}), 404

        member = session.query(WorkspaceMember).filter_by(id=member_id, workspace_id=workspace.id).first()
        if not member:
            return jsonify({"error": "Member not found"}), 404
        if member.user_id != user.id and not can_manage(role):
            return jsonify({"error": "Only the owner or an admin can remove members"}), 403

        removed_user_id = member.user_id
        session.delete(member)
        session.commit()

        log_user_action("removed_member", "workspace", workspace.id)
        publish_change(workspace.user_id, "workspace_members", "DELETE", member_id)
        publish_change(removed_user_id, "workspaces", "DELETE", workspace.id)
        return jsonify({"message": "Member removed"})
    finally:
        session.close()
