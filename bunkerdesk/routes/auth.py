from quart import Blueprint, request, jsonify
from sqlalchemy.exc import SQLAlchemyError
from bunkerdesk.models import User
from bunkerdesk.database import SessionLocal
from bunkerdesk.utils.auth_utils import (
    verify_password,
    create_token,
    hash_password,
    requires_auth,
)
from bunkerdesk.utils.rate_limiter import rate_limit
from bunkerdesk.utils.logging_utils import log_user_action

auth_bp = Blueprint("auth", __name__, url_prefix="/api")


def _user_payload(user):
    return {
        "id": user.id,
        "email": user.email,
        "full_name": user.full_name,
        "roles": [role.name for role in user.roles],
    }


@auth_bp.route("/login", methods=["POST"])
@rate_limit(max_attempts=5, window_seconds=60)  # 5 login attempts per minute per IP
async def login():
    data = await request.get_json() or {}

    email = (data.get("email") or "").lower().strip()
    password = data.get("password")

    if not email or not password:
        return jsonify({"error": "Missing credentials"}), 400

    session = SessionLocal()
    try:
        user = session.query(User).filter_by(email=email).first()
        if not user or not verify_password(password, user.password_hash):
            return jsonify({"error": "Invalid credentials"}), 401

        if not user.is_active:
            return jsonify({"error": "Account disabled"}), 403

        token = create_token(user)

        response = jsonify({
            "user": _user_payload(user),
            "token": token
        })
        response.headers["Cache-Control"] = "no-store"
        return response
    except SQLAlchemyError:
        session.rollback()
        return jsonify({"error": "Server error"}), 500
    finally:
        session.close()


@auth_bp.route("/me", methods=["GET"])
@requires_auth()
async def me():
    response = jsonify(_user_payload(request.user))
    response.headers["Cache-Control"] = "no-store"
    return response


@auth_bp.route("/change-password", methods=["POST"])
@requires_auth()
async def change_password():
    data = await request.get_json() or {}
    current_password = data.get("current_password")
    new_password = data.get("new_password")
    user = request.user

    if not current_password or not new_password:
        return jsonify({"error": "Missing required fields"}), 400

    if len(new_password) < 8:
        return jsonify({"error": "Password must be at least 8 characters"}), 400

    if not verify_password(current_password, user.password_hash):
        return jsonify({"error": "Incorrect current password"}), 403

    session = SessionLocal()
    try:
        db_user = session.get(User, user.id)
        db_user.password_hash = hash_password(new_password)
        session.commit()
        log_user_action("changed_password", "user", user.id)
        return jsonify({"message": "Password changed successfully"})
    except SQLAlchemyError:
        session.rollback()
        return jsonify({"error": "Server error"}), 500
    finally:
        session.close()


@auth_bp.route("/users", methods=["GET"])
@requires_auth()
async def list_users():
    """Other active users, for picking note share recipients."""
    user = request.user
    session = SessionLocal()
    try:
        users = session.query(User).filter(
            User.is_active == True,
            User.id != user.id
        ).order_by(User.email).all()
        return jsonify([
            {"id": u.id, "email": u.email, "full_name": u.full_name} for u in users
        ])
    finally:
        session.close()
