from quart import Blueprint, request, jsonify
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from bunkerdesk.models import UserPreference
from bunkerdesk.database import SessionLocal
from bunkerdesk.utils.auth_utils import requires_auth
from bunkerdesk.utils.logging_utils import log_error
from bunkerdesk.utils.realtime import publish_change
from bunkerdesk.schemas.preferences import PreferenceValueSchema, check_preference_key

preferences_bp = Blueprint("preferences", __name__, url_prefix="/api/preferences")


def get_preference(session, user_id, category, key, default=None):
    pref = session.query(UserPreference).filter_by(
        user_id=user_id,
        category=category,
        preference_key=key
    ).first()
    return pref.preference_value if pref else default


def set_preference(session, user_id, category, key, value):
    """Insert or update one preference row; the caller commits."""
    pref = session.query(UserPreference).filter_by(
        user_id=user_id,
        category=category,
        preference_key=key
    ).first()
    if pref:
        pref.preference_value = value
    else:
        pref = UserPreference(
            user_id=user_id,
            category=category,
            preference_key=key,
            preference_value=value
        )
        session.add(pref)
    return pref


@preferences_bp.route("", methods=["GET"])
@preferences_bp.route("/", methods=["GET"])
@requires_auth()
async def get_all_preferences():
    """All preferences grouped by category."""
    user = request.user
    session = SessionLocal()
    try:
        prefs = session.query(UserPreference).filter_by(user_id=user.id).all()

        result = {}
        for pref in prefs:
            result.setdefault(pref.category, {})[pref.preference_key] = pref.preference_value

        response = jsonify(result)
        response.headers["Cache-Control"] = "no-store"
        return response
    finally:
        session.close()


@preferences_bp.route("/<category>/<key>", methods=["GET"])
@requires_auth()
async def get_one_preference(category, key):
    user = request.user
    try:
        check_preference_key(category, key)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    session = SessionLocal()
    try:
        value = get_preference(session, user.id, category, key)
        return jsonify({"category": category, "key": key, "value": value})
    finally:
        session.close()


@preferences_bp.route("/<category>/<key>", methods=["PUT"])
@requires_auth()
async def save_preference(category, key):
    user = request.user
    try:
        check_preference_key(category, key)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    raw_data = await request.get_json(silent=True) or {}
    try:
        data = PreferenceValueSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400

    session = SessionLocal()
    try:
        pref = set_preference(session, user.id, category, key, data.value)
        session.commit()
        publish_change(user.id, "user_preferences", "UPDATE", pref.id)
        return jsonify({"category": category, "key": key, "value": pref.preference_value})
    except SQLAlchemyError as e:
        session.rollback()
        log_error(e, "Saving preference")
        return jsonify({"error": "Server error"}), 500
    finally:
        session.close()
