from quart import Blueprint, request, jsonify
from pydantic import ValidationError
from bunkerdesk.models import Contact, Vessel
from bunkerdesk.database import SessionLocal
from bunkerdesk.utils.auth_utils import requires_auth
from bunkerdesk.utils.realtime import publish_change
from bunkerdesk.utils.logging_utils import log_user_action
from bunkerdesk.schemas.contacts import VesselCreateSchema, VesselUpdateSchema

vessels_bp = Blueprint("vessels", __name__, url_prefix="/api")


def _get_owned_vessel(session, vessel_id, user_id):
    return session.query(Vessel).join(Contact).filter(
        Vessel.id == vessel_id,
        Contact.user_id == user_id
    ).first()


@vessels_bp.route("/contacts/<int:contact_id>/vessels", methods=["GET"])
@requires_auth()
async def list_vessels(contact_id):
    user = request.user
    session = SessionLocal()
    try:
        contact = session.query(Contact).filter(
            Contact.id == contact_id,
            Contact.user_id == user.id
        ).first()
        if not contact:
            return jsonify({"error": "Contact not found"}), 404

        vessels = session.query(Vessel).filter(
            Vessel.contact_id == contact.id
        ).order_by(Vessel.vessel_name).all()
        return jsonify([v.to_dict() for v in vessels])
    finally:
        session.close()


@vessels_bp.route("/contacts/<int:contact_id>/vessels", methods=["POST"])
@requires_auth()
async def create_vessel(contact_id):
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        data = VesselCreateSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400

    session = SessionLocal()
    try:
        contact = session.query(Contact).filter(
            Contact.id == contact_id,
            Contact.user_id == user.id
        ).first()
        if not contact:
            return jsonify({"error": "Contact not found"}), 404

        vessel = Vessel(contact_id=contact.id, **data.model_dump())
        session.add(vessel)
        session.commit()
        session.refresh(vessel)

        log_user_action("created", "vessel", vessel.id)
        publish_change(user.id, "vessels", "INSERT", vessel.id)
        return jsonify(vessel.to_dict()), 201
    finally:
        session.close()


@vessels_bp.route("/vessels/<int:vessel_id>", methods=["PUT"])
@requires_auth()
async def update_vessel(vessel_id):
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        data = VesselUpdateSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400

    session = SessionLocal()
    try:
        vessel = _get_owned_vessel(session, vessel_id, user.id)
        if not vessel:
            return jsonify({"error": "Vessel not found"}), 404

        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(vessel, field, value)

        session.commit()
        publish_change(user.id, "vessels", "UPDATE", vessel.id)
        return jsonify(vessel.to_dict())
    finally:
        session.close()


@vessels_bp.route("/vessels/<int:vessel_id>", methods=["DELETE"])
@requires_auth()
async def delete_vessel(vessel_id):
    user = request.user
    session = SessionLocal()
    try:
        vessel = _get_owned_vessel(session, vessel_id, user.id)
        if not vessel:
            return jsonify({"error": "Vessel not found"}), 404

        session.delete(vessel)
        session.commit()
        log_user_action("deleted", "vessel", vessel_id)
        publish_change(user.id, "vessels", "DELETE", vessel_id)
        return jsonify({"message": "Vessel deleted"})
    finally:
        session.close()
