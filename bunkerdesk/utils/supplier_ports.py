"""
Supplier port helpers: delivery-method resolution and the ";"-separated
port/fuel list fields on suppliers.
"""

DELIVERY_FLAGS = ("barge", "truck", "expipe")


def split_list_field(value):
    """"Singapore; Rotterdam" -> ["Singapore", "Rotterdam"]"""
    return [part.strip() for part in (value or "").split(";") if part.strip()]


def list_field_matches(value, needle) -> bool:
    """Case-insensitive substring match against any entry of a ";" list."""
    needle = (needle or "").strip().lower()
    if not needle:
        return True
    return any(needle in part.lower() for part in split_list_field(value))


def resolve_port_flags(supplier, has_barge=None, has_truck=None, has_expipe=None):
    """Flags for a new port; None inherits the supplier's default."""
    given = {"barge": has_barge, "truck": has_truck, "expipe": has_expipe}
    return {
        f"has_{method}": bool(getattr(supplier, f"default_has_{method}")) if given[method] is None else given[method]
        for method in DELIVERY_FLAGS
    }


def effective_delivery_methods(port, supplier) -> dict:
    """A method is available when the port has it or the supplier offers it by default."""
    methods = {
        method: bool(getattr(port, f"has_{method}")) or bool(getattr(supplier, f"default_has_{method}"))
        for method in DELIVERY_FLAGS
    }
    methods["custom"] = list(port.custom_delivery_methods or [])
    return methods


def port_payload(port, supplier) -> dict:
    data = port.to_dict()
    data["effective_delivery_methods"] = effective_delivery_methods(port, supplier)
    return data
