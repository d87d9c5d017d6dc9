from datetime import datetime

from quart import Blueprint, request, jsonify
from pydantic import ValidationError
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from bunkerdesk.models import (
    Supplier,
    SupplierContact,
    SupplierOrder,
    SupplierPort,
    Contact,
    ContactPerson,
)
from bunkerdesk.database import SessionLocal
from bunkerdesk.utils.auth_utils import requires_auth
from bunkerdesk.utils.phone_utils import clean_phone_number
from bunkerdesk.utils.logging_utils import log_user_action, log_error
from bunkerdesk.utils.realtime import publish_change
from bunkerdesk.utils.duplicates import find_duplicate_groups, ids_to_delete
from bunkerdesk.utils.csv_utils import generate_csv_content, parse_csv_content, parse_bool, csv_response
from bunkerdesk.utils.supplier_ports import list_field_matches, resolve_port_flags, port_payload
from bunkerdesk.schemas.suppliers import (
    SupplierCreateSchema,
    SupplierUpdateSchema,
    SupplierContactSchema,
    SupplierContactUpdateSchema,
    SupplierOrderSchema,
    SupplierOrderUpdateSchema,
    SupplierPortCreateSchema,
    SupplierPortUpdateSchema,
    DeletePortDuplicatesSchema,
)

suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")

EXPORT_COLUMNS = [
    "company_name", "contact_person", "email", "general_email", "phone", "website",
    "address", "country", "supplier_type", "products_services", "payment_terms",
    "currency", "ports", "fuel_types", "default_has_barge", "default_has_truck",
    "default_has_expipe", "rating", "notes",
]

REQUIRED_SUPPLIER_FIELDS = ("company_name",)


def _get_owned_supplier(session, supplier_id, user_id):
    return session.query(Supplier).filter(
        Supplier.id == supplier_id,
        Supplier.user_id == user_id
    ).first()


def _get_owned_child(session, model, child_id, user_id):
    return session.query(model).join(Supplier).filter(
        model.id == child_id,
        Supplier.user_id == user_id
    ).first()


def _supplier_fields(data):
    fields = data.model_dump(exclude_unset=True) if isinstance(data, SupplierUpdateSchema) else data.model_dump()
    for field in ("email", "general_email"):
        if fields.get(field) is not None:
            fields[field] = str(fields[field])
    if fields.get("phone"):
        fields["phone"] = clean_phone_number(fields["phone"])
    return fields


def _contact_fields(data, partial=False):
    fields = data.model_dump(exclude_unset=partial)
    if fields.get("email") is not None:
        fields["email"] = str(fields["email"])
    for field in ("phone", "mobile"):
        if fields.get(field):
            fields[field] = clean_phone_number(fields[field])
    return fields


def _supplier_detail(supplier):
    data = supplier.to_dict()
    data["contacts"] = [c.to_dict() for c in supplier.contacts]
    data["orders"] = [o.to_dict() for o in supplier.orders]
    data["port_details"] = [port_payload(p, supplier) for p in supplier.port_details]
    return data


# ---------------------------------------------------------------------------
# Suppliers
# ---------------------------------------------------------------------------

@suppliers_bp.route("", methods=["GET"])
@suppliers_bp.route("/", methods=["GET"])
@requires_auth()
async def list_suppliers():
    user = request.user
    session = SessionLocal()
    try:
        search = (request.args.get("search") or "").strip()
        port = request.args.get("port")
        fuel_type = request.args.get("fuel_type")

        query = session.query(Supplier).filter(Supplier.user_id == user.id)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(
                Supplier.company_name.ilike(pattern),
                Supplier.contact_person.ilike(pattern),
                Supplier.email.ilike(pattern),
                Supplier.country.ilike(pattern),
                Supplier.ports.ilike(pattern),
                Supplier.fuel_types.ilike(pattern),
            ))

        suppliers = [
            s for s in query.order_by(Supplier.company_name.asc()).all()
            if list_field_matches(s.ports, port) and list_field_matches(s.fuel_types, fuel_type)
        ]

        response = jsonify([s.to_dict() for s in suppliers])
        response.headers["Cache-Control"] = "no-store"
        return response
    finally:
        session.close()


@suppliers_bp.route("/<int:supplier_id>", methods=["GET"])
@requires_auth()
async def get_supplier(supplier_id):
    user = request.user
    session = SessionLocal()
    try:
        supplier = _get_owned_supplier(session, supplier_id, user.id)
        if not supplier:
            return jsonify({"error": "Supplier not found"}), 404

        response = jsonify(_supplier_detail(supplier))
        response.headers["Cache-Control"] = "no-store"
        return response
    finally:
        session.close()


@suppliers_bp.route("", methods=["POST"])
@suppliers_bp.route("/", methods=["POST"])
@requires_auth()
async def create_supplier():
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        data = SupplierCreateSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400

    session = SessionLocal()
    try:
        supplier = Supplier(user_id=user.id, **_supplier_fields(data))
        session.add(supplier)
        session.commit()
        session.refresh(supplier)

        log_user_action("created", "supplier", supplier.id)
        publish_change(user.id, "suppliers", "INSERT", supplier.id)
        return jsonify(supplier.to_dict()), 201
    except SQLAlchemyError as e:
        session.rollback()
        log_error(e, "Creating supplier")
        return jsonify({"error": "Server error"}), 500
    finally:
        session.close()


@suppliers_bp.route("/<int:supplier_id>", methods=["PUT"])
@requires_auth()
async def update_supplier(supplier_id):
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        data = SupplierUpdateSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400

    session = SessionLocal()
    try:
        supplier = _get_owned_supplier(session, supplier_id, user.id)
        if not supplier:
            return jsonify({"error": "Supplier not found"}), 404

        for field, value in _supplier_fields(data).items():
            if value is None and (field in REQUIRED_SUPPLIER_FIELDS or field.startswith("default_has_")):
                continue
            setattr(supplier, field, value)

        session.commit()
        publish_change(user.id, "suppliers", "UPDATE", supplier.id)
        return jsonify(supplier.to_dict())
    finally:
        session.close()


@suppliers_bp.route("/<int:supplier_id>", methods=["DELETE"])
@requires_auth()
async def delete_supplier(supplier_id):
    user = request.user
    session = SessionLocal()
    try:
        supplier = _get_owned_supplier(session, supplier_id, user.id)
        if not supplier:
            return jsonify({"error": "Supplier not found"}), 404

        session.delete(supplier)
        session.commit()
        log_user_action("deleted", "supplier", supplier_id)
        publish_change(user.id, "suppliers", "DELETE", supplier_id)
        return jsonify({"message": "Supplier deleted"})
    except SQLAlchemyError as e:
        session.rollback()
        log_error(e, "Deleting supplier")
        return jsonify({"error": "Server error"}), 500
    finally:
        session.close()


@suppliers_bp.route("/import", methods=["POST"])
@requires_auth()
async def import_suppliers():
    """Bulk import from {"rows": [...]} or {"csv": "..."}."""
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    rows = parse_csv_content(raw_data["csv"]) if raw_data.get("csv") else raw_data.get("rows") or []
    if not isinstance(rows, list):
        return jsonify({"error": "rows must be a list"}), 400

    session = SessionLocal()
    try:
        imported, skipped, errors = 0, 0, []
        for index, row in enumerate(rows):
            if not isinstance(row, dict) or not str(row.get("company_name") or "").strip():
                skipped += 1
                continue

            payload = {k: v for k, v in row.items() if v not in (None, "")}
            for flag in ("default_has_barge", "default_has_truck", "default_has_expipe"):
                if flag in payload:
                    payload[flag] = parse_bool(payload[flag])
            try:
                data = SupplierCreateSchema(**payload)
            except ValidationError as e:
                errors.append({"row": index, "details": e.errors(include_url=False, include_context=False)})
                continue

            session.add(Supplier(user_id=user.id, **_supplier_fields(data)))
            imported += 1

        session.commit()
        log_user_action("imported", "supplier", None)
        if imported:
            publish_change(user.id, "suppliers", "INSERT", None)
        return jsonify({"imported": imported, "skipped": skipped, "errors": errors})
    except SQLAlchemyError as e:
        session.rollback()
        log_error(e, "Importing suppliers")
        return jsonify({"error": "Server error"}), 500
    finally:
        session.close()


@suppliers_bp.route("/export", methods=["GET"])
@requires_auth()
async def export_suppliers():
    user = request.user
    session = SessionLocal()
    try:
        suppliers = session.query(Supplier).filter(
            Supplier.user_id == user.id
        ).order_by(Supplier.company_name).all()
        content = generate_csv_content([s.to_dict() for s in suppliers], EXPORT_COLUMNS)
        return csv_response(content, f"suppliers_{datetime.utcnow():%Y%m%d}.csv")
    finally:
        session.close()


# ---------------------------------------------------------------------------
# Supplier contacts
# ---------------------------------------------------------------------------

@suppliers_bp.route("/<int:supplier_id>/contacts", methods=["POST"])
@requires_auth()
async def create_supplier_contact(supplier_id):
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        data = SupplierContactSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400

    session = SessionLocal()
    try:
        supplier = _get_owned_supplier(session, supplier_id, user.id)
        if not supplier:
            return jsonify({"error": "Supplier not found"}), 404

        fields = _contact_fields(data)
        if fields.get("display_order") is None:
            fields["display_order"] = len(supplier.contacts)
        if fields["is_primary"]:
            for other in supplier.contacts:
                other.is_primary = False

        contact = SupplierContact(supplier_id=supplier.id, **fields)
        session.add(contact)
        session.commit()
        session.refresh(contact)

        publish_change(user.id, "supplier_contacts", "INSERT", contact.id)
        return jsonify(contact.to_dict()), 201
    finally:
        session.close()


@suppliers_bp.route("/contacts/<int:contact_id>", methods=["PUT"])
@requires_auth()
async def update_supplier_contact(contact_id):
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        data = SupplierContactUpdateSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400

    session = SessionLocal()
    try:
        contact = _get_owned_child(session, SupplierContact, contact_id, user.id)
        if not contact:
            return jsonify({"error": "Supplier contact not found"}), 404

        fields = _contact_fields(data, partial=True)
        if fields.get("is_primary"):
            for other in contact.supplier.contacts:
                if other.id != contact.id:
                    other.is_primary = False

        for field, value in fields.items():
            if value is None and field in ("name", "is_primary", "display_order"):
                continue
            setattr(contact, field, value)

        session.commit()
        publish_change(user.id, "supplier_contacts", "UPDATE", contact.id)
        return jsonify(contact.to_dict())
    finally:
        session.close()


@suppliers_bp.route("/contacts/<int:contact_id>", methods=["DELETE"])
@requires_auth()
async def delete_supplier_contact(contact_id):
    user = request.user
    session = SessionLocal()
    try:
        contact = _get_owned_child(session, SupplierContact, contact_id, user.id)
        if not contact:
            return jsonify({"error": "Supplier contact not found"}), 404

        session.delete(contact)
        session.commit()
        publish_change(user.id, "supplier_contacts", "DELETE", contact_id)
        return jsonify({"message": "Supplier contact deleted"})
    finally:
        session.close()


@suppliers_bp.route("/contacts/<int:contact_id>/convert", methods=["POST"])
@requires_auth()
async def convert_supplier_contact(contact_id):
    """Copy a supplier contact into the CRM as a Contact with a primary person."""
    user = request.user
    session = SessionLocal()
    try:
        supplier_contact = _get_owned_child(session, SupplierContact, contact_id, user.id)
        if not supplier_contact:
            return jsonify({"error": "Supplier contact not found"}), 404

        supplier = supplier_contact.supplier
        contact = Contact(
            user_id=user.id,
            name=supplier.company_name,
            company=supplier.company_name,
            email=supplier_contact.email or supplier.email,
            phone=supplier_contact.phone or supplier.phone,
            phone_type=supplier_contact.phone_type if supplier_contact.phone else None,
            website=supplier.website,
            address=supplier.address,
            country=supplier.country,
            notes=f"Converted from supplier contact at {supplier.company_name}",
        )
        contact.persons.append(ContactPerson(
            name=supplier_contact.name,
            job_title=supplier_contact.title,
            phone=supplier_contact.phone,
            phone_type=supplier_contact.phone_type,
            mobile=supplier_contact.mobile,
            mobile_type=supplier_contact.mobile_type,
            email=supplier_contact.email,
            is_primary=True,
        ))
        session.add(contact)
        session.commit()
        session.refresh(contact)

        log_user_action("converted_supplier_contact", "contact", contact.id)
        publish_change(user.id, "contacts", "INSERT", contact.id)
        data = contact.to_dict()
        data["persons"] = [p.to_dict() for p in contact.persons]
        return jsonify(data), 201
    except SQLAlchemyError as e:
        session.rollback()
        log_error(e, "Converting supplier contact")
        return jsonify({"error": "Server error"}), 500
    finally:
        session.close()


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------

@suppliers_bp.route("/<int:supplier_id>/orders", methods=["POST"])
@requires_auth()
async def create_order(supplier_id):
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        data = SupplierOrderSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400

    session = SessionLocal()
    try:
        supplier = _get_owned_supplier(session, supplier_id, user.id)
        if not supplier:
            return jsonify({"error": "Supplier not found"}), 404

        fields = data.model_dump()
        fields["currency"] = (fields["currency"] or supplier.currency or "").upper() or None
        order = SupplierOrder(supplier_id=supplier.id, **fields)
        session.add(order)
        session.commit()
        session.refresh(order)

        log_user_action("created", "supplier_order", order.id)
        publish_change(user.id, "supplier_orders", "INSERT", order.id)
        return jsonify(order.to_dict()), 201
    finally:
        session.close()


@suppliers_bp.route("/orders/<int:order_id>", methods=["PUT"])
@requires_auth()
async def update_order(order_id):
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        data = SupplierOrderUpdateSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400

    session = SessionLocal()
    try:
        order = _get_owned_child(session, SupplierOrder, order_id, user.id)
        if not order:
            return jsonify({"error": "Order not found"}), 404

        for field, value in data.model_dump(exclude_unset=True).items():
            if value is None and field in ("order_date", "status"):
                continue
            if field == "currency" and value:
                value = value.upper()
            setattr(order, field, value)

        session.commit()
        publish_change(user.id, "supplier_orders", "UPDATE", order.id)
        return jsonify(order.to_dict())
    finally:
        session.close()


@suppliers_bp.route("/orders/<int:order_id>", methods=["DELETE"])
@requires_auth()
async def delete_order(order_id):
    user = request.user
    session = SessionLocal()
    try:
        order = _get_owned_child(session, SupplierOrder, order_id, user.id)
        if not order:
            return jsonify({"error": "Order not found"}), 404

        session.delete(order)
        session.commit()
        publish_change(user.id, "supplier_orders", "DELETE", order_id)
        return jsonify({"message": "Order deleted"})
    finally:
        session.close()


# ---------------------------------------------------------------------------
# Ports
# ---------------------------------------------------------------------------

@suppliers_bp.route("/<int:supplier_id>/ports", methods=["GET"])
@requires_auth()
async def list_ports(supplier_id):
    user = request.user
    session = SessionLocal()
    try:
        supplier = _get_owned_supplier(session, supplier_id, user.id)
        if not supplier:
            return jsonify({"error": "Supplier not found"}), 404
        return jsonify([port_payload(p, supplier) for p in supplier.port_details])
    finally:
        session.close()


@suppliers_bp.route("/<int:supplier_id>/ports", methods=["POST"])
@requires_auth()
async def create_ports(supplier_id):
    """Add one port per name in "A; B; C"; flags left unset inherit the supplier defaults."""
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        data = SupplierPortCreateSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400

    names = data.port_names()
    if not names:
        return jsonify({"error": "At least one port name is required"}), 400
    if any(len(name) > 100 for name in names):
        return jsonify({"error": "Port names must be 100 characters or fewer"}), 400

    session = SessionLocal()
    try:
        supplier = _get_owned_supplier(session, supplier_id, user.id)
        if not supplier:
            return jsonify({"error": "Supplier not found"}), 404

        flags = resolve_port_flags(supplier, data.has_barge, data.has_truck, data.has_expipe)
        created = []
        for name in names:
            port = SupplierPort(
                supplier_id=supplier.id,
                port_name=name,
                custom_delivery_methods=list(data.custom_delivery_methods),
                has_vlsfo=data.has_vlsfo,
                has_lsmgo=data.has_lsmgo,
                custom_fuel_types=list(data.custom_fuel_types),
                notes=data.notes,
                **flags,
            )
            session.add(port)
            created.append(port)

        session.commit()
        for port in created:
            publish_change(user.id, "supplier_ports", "INSERT", port.id)
        log_user_action(f"added_{len(created)}_ports", "supplier", supplier.id)
        return jsonify([port_payload(p, supplier) for p in created]), 201
    except SQLAlchemyError as e:
        session.rollback()
        log_error(e, "Adding supplier ports")
        return jsonify({"error": "Server error"}), 500
    finally:
        session.close()


@suppliers_bp.route("/ports/<int:port_id>", methods=["PUT"])
@requires_auth()
async def update_port(port_id):
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        data = SupplierPortUpdateSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400

    session = SessionLocal()
    try:
        port = _get_owned_child(session, SupplierPort, port_id, user.id)
        if not port:
            return jsonify({"error": "Port not found"}), 404

        for field, value in data.model_dump(exclude_unset=True).items():
            if value is None and field != "notes":
                continue
            setattr(port, field, value)

        session.commit()
        publish_change(user.id, "supplier_ports", "UPDATE", port.id)
        return jsonify(port_payload(port, port.supplier))
    finally:
        session.close()


@suppliers_bp.route("/ports/<int:port_id>", methods=["DELETE"])
@requires_auth()
async def delete_port(port_id):
    user = request.user
    session = SessionLocal()
    try:
        port = _get_owned_child(session, SupplierPort, port_id, user.id)
        if not port:
            return jsonify({"error": "Port not found"}), 404

        session.delete(port)
        session.commit()
        publish_change(user.id, "supplier_ports", "DELETE", port_id)
        return jsonify({"message": "Port deleted"})
    finally:
        session.close()


@suppliers_bp.route("/<int:supplier_id>/ports/duplicates", methods=["GET"])
@requires_auth()
async def list_port_duplicates(supplier_id):
    user = request.user
    session = SessionLocal()
    try:
        supplier = _get_owned_supplier(session, supplier_id, user.id)
        if not supplier:
            return jsonify({"error": "Supplier not found"}), 404

        groups = find_duplicate_groups(supplier.port_details, name_attr="port_name")
        return jsonify([
            {
                "name": group["name"],
                "count": len(group["records"]),
                "ports": [port_payload(p, supplier) for p in group["records"]],
            } for group in groups
        ])
    finally:
        session.close()


@suppliers_bp.route("/<int:supplier_id>/ports/duplicates", methods=["DELETE"])
@requires_auth()
async def delete_port_duplicates(supplier_id):
    """Remove duplicate ports, keeping the chosen id per name or else the newest."""
    user = request.user
    raw_data = await request.get_json(silent=True) or {}

    try:
        data = DeletePortDuplicatesSchema(**raw_data)
    except ValidationError as e:
        return jsonify({
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False)
        }), 400

    session = SessionLocal()
    try:
        supplier = _get_owned_supplier(session, supplier_id, user.id)
        if not supplier:
            return jsonify({"error": "Supplier not found"}), 404

        groups = find_duplicate_groups(supplier.port_details, name_attr="port_name")
        doomed = set(ids_to_delete(groups, keep="newest", keep_ids=data.keep))
        for port in list(supplier.port_details):
            if port.id in doomed:
                session.delete(port)
        session.commit()

        log_user_action("deleted_duplicate_ports", "supplier", supplier.id)
        for port_id in sorted(doomed):
            publish_change(user.id, "supplier_ports", "DELETE", port_id)
        return jsonify({"deleted": len(doomed), "ids": sorted(doomed)})
    except SQLAlchemyError as e:
        session.rollback()
        log_error(e, "Deleting duplicate ports")
        return jsonify({"error": "Server error"}), 500
    finally:
        session.close()
