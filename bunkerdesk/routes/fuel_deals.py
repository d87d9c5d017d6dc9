from quart import Blueprint, request, jsonify
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from dateutil.parser import parse as parse_date
from bunkerdesk.models import Contact, Vessel, FuelDeal, Task, Supplier
from bunkerdesk.database import SessionLocal
from bunkerdesk.constants import FUEL_TYPES
from bunkerdesk.utils.auth_utils import requires_auth
from bunkerdesk.utils.logging_utils import log_user_action, log_error
from bunkerdesk.utils.realtime import publish_change
from bunkerdesk.schemas.fuel_deals import FuelDealCreateSchema, FuelDealUpdateSchema

fuel_deals_bp = Blueprint("fuel_deals", __name__, url_prefix="/api/fuel-deals")


def _resolve_vessel(session, contact_id, vessel_id):
    return session.query(Vessel).filter(
        Vessel.id == vessel_id,
        Vessel.contact_id == contact_id
    ).first()


@fuel_deals_bp.route("/fuel-types", methods=["GET"])
@requires_auth()
async def fuel_types():
    return jsonify(FUEL_TYPES)


@fuel_deals_bp.route("", methods=["GET"])
@fuel_deals_bp.route("/", methods=["GET"])
@requires_auth()
async def list_deals():
    user = request.user
    session = SessionLocal()
    try:
        query = session.query(FuelDeal).filter(FuelDeal.user_id == user.id)

        contact_id = request.args.get("contact_id", type=int)
        if contact_id:
            query = query.filter(FuelDeal.contact_id == contact_id)

        start_date = request.args.get("start_date")
        end_date = request.args.get("end_date")
        try:
            if start_date:
                query = query.filter(FuelDeal.deal_date >= parse_date(start_date))
            if end_date:
                query = query.filter(FuelDeal.deal_date <= parse_date(end_date))
        except (ValueError, OverflowError):
            return jsonify({"error": "Invalid date filter"}), 400

        deals = query.order_by(FuelDeal.deal_date.desc()).all()
        response = jsonify([d.to_dict() for d in deals])
        response.headers["Cache-Control"] = "no-store"
        return response
    finally:
        session.close()


@fuel_deals_bp.route("", methods=["POST"])
@fuel_deals_bp.route("/", methods=["POST"])
@requires_auth()
async def create_deal():
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        data = FuelDealCreateSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400

    session = SessionLocal()
    try:
        contact = session.query(Contact).filter(
            Contact.id == data.contact_id,
            Contact.user_id == user.id
        ).first()
        if not contact:
            return jsonify({"error": "Contact not found"}), 404

        vessel_name = data.vessel_name
        if data.vessel_id:
            vessel = _resolve_vessel(session, contact.id, data.vessel_id)
            if not vessel:
                return jsonify({"error": "Vessel not found"}), 404
            if not vessel_name:
                vessel_name = vessel.vessel_name

        deal = FuelDeal(
            user_id=user.id,
            contact_id=contact.id,
            vessel_id=data.vessel_id,
            vessel_name=vessel_name,
            fuel_quantity=data.fuel_quantity,
            fuel_type=data.fuel_type,
            deal_date=data.deal_date,
            port=data.port,
            notes=data.notes,
        )
        session.add(deal)

        task = None
        if data.follow_up_task:
            follow_up = data.follow_up_task
            supplier_id = follow_up.supplier_id
            if supplier_id and not session.query(Supplier).filter(
                Supplier.id == supplier_id,
                Supplier.user_id == user.id
            ).first():
                session.rollback()
                return jsonify({"error": "Supplier not found"}), 404

            task = Task(
                user_id=user.id,
                contact_id=None if supplier_id else contact.id,
                supplier_id=supplier_id,
                task_type=follow_up.task_type,
                title=follow_up.title,
                notes=follow_up.notes,
                due_date=follow_up.due_date,
            )
            session.add(task)

        session.commit()
        session.refresh(deal)

        log_user_action("created", "fuel_deal", deal.id)
        publish_change(user.id, "fuel_deals", "INSERT", deal.id)
        payload = deal.to_dict()
        if task:
            publish_change(user.id, "tasks", "INSERT", task.id)
            payload["follow_up_task_id"] = task.id
        return jsonify(payload), 201
    except SQLAlchemyError as e:
        session.rollback()
        log_error(e, "Creating fuel deal")
        return jsonify({"error": "Server error"}), 500
    finally:
        session.close()


@fuel_deals_bp.route("/<int:deal_id>", methods=["PUT"])
@requires_auth()
async def update_deal(deal_id):
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        data = FuelDealUpdateSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400

    session = SessionLocal()
    try:
        deal = session.query(FuelDeal).filter(
            FuelDeal.id == deal_id,
            FuelDeal.user_id == user.id
        ).first()
        if not deal:
            return jsonify({"error": "Fuel deal not found"}), 404

        update_data = data.model_dump(exclude_unset=True)
        if update_data.get("vessel_id"):
            vessel = _resolve_vessel(session, deal.contact_id, update_data["vessel_id"])
            if not vessel:
                return jsonify({"error": "Vessel not found"}), 404
            if not update_data.get("vessel_name"):
                update_data["vessel_name"] = vessel.vessel_name

        for field, value in update_data.items():
            if value is None and field in ("vessel_name", "fuel_quantity", "fuel_type", "deal_date", "port"):
                continue
            setattr(deal, field, value)

        session.commit()
        publish_change(user.id, "fuel_deals", "UPDATE", deal.id)
        return jsonify(deal.to_dict())
    finally:
        session.close()


@fuel_deals_bp.route("/<int:deal_id>", methods=["DELETE"])
@requires_auth()
async def delete_deal(deal_id):
    user = request.user
    session = SessionLocal()
    try:
        deal = session.query(FuelDeal).filter(
            FuelDeal.id == deal_id,
            FuelDeal.user_id == user.id
        ).first()
        if not deal:
            return jsonify({"error": "Fuel deal not found"}), 404

        session.delete(deal)
        session.commit()
        log_user_action("deleted", "fuel_deal", deal_id)
        publish_change(user.id, "fuel_deals", "DELETE", deal_id)
        return jsonify({"message": "Fuel deal deleted"})
    finally:
        session.close()
