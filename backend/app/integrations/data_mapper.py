"""
Data Mapping and Transformation Layer

Normalizes provider webhook payloads into column values for the synced_*
tables. Shopify payloads are mapped object by object; HubSpot sends one
property at a time, so its properties are mapped through a lookup table and
anything without a column lands in the record's ``data`` blob.
"""

import re
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_currency(amount: Any) -> Optional[float]:
    """Parse "59.99", 59.99 or "$1,200.00"; blanks become None"""
    if amount is None or amount == "":
        return None
    if isinstance(amount, bool):
        return None
    if isinstance(amount, (int, float)):
        return float(amount)
    if isinstance(amount, str):
        clean_amount = re.sub(r"[^\d.-]", "", amount)
        try:
            return float(clean_amount)
        except ValueError:
            return None
    return None


def normalize_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def normalize_boolean(value: Any) -> Optional[bool]:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.lower() in ("true", "1", "yes", "on", "enabled")
    if isinstance(value, (int, float)):
        return bool(value)
    return False


def normalize_email(email: Any) -> Optional[str]:
    if not email:
        return None
    return str(email).lower().strip()


def parse_timestamp(value: Any) -> Optional[datetime]:
    """ISO 8601 strings and epoch milliseconds (HubSpot) both become aware datetimes"""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)) or (isinstance(value, str) and value.isdigit()):
        return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


def get_nested_value(data: Dict[str, Any], path: str) -> Any:
    """Get value from nested dictionary using dot notation"""
    value: Any = data
    for key in path.split("."):
        if isinstance(value, dict) and key in value:
            value = value[key]
        elif isinstance(value, list) and key.isdigit():
            try:
                value = value[int(key)]
            except IndexError:
                return None
        else:
            return None
    return value


def _without_none(values: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


# Shopify

def shopify_order_status(order: Dict[str, Any]) -> str:
    """Collapse Shopify's financial and fulfillment states into one status"""
    if order.get("cancelled_at"):
        return "cancelled"

    fulfillment_status = order.get("fulfillment_status")
    if fulfillment_status == "fulfilled":
        return "fulfilled"
    if fulfillment_status == "partial":
        return "partially_fulfilled"

    return order.get("financial_status") or "open"


def shopify_tracking_numbers(order: Dict[str, Any]) -> List[str]:
    return [
        f["tracking_number"] for f in order.get("fulfillments") or []
        if isinstance(f, dict) and f.get("tracking_number")
    ]


def shopify_order_values(order: Dict[str, Any], shop_domain: str) -> Dict[str, Any]:
    customer = order.get("customer") or {}
    tracking_numbers = shopify_tracking_numbers(order)
    customer_name = " ".join(
        part for part in (customer.get("first_name"), customer.get("last_name")) if part
    )

    values = {
        "order_number": str(order.get("order_number") or order.get("name") or "") or None,
        "customer_id": str(customer["id"]) if customer.get("id") is not None else None,
        "customer_email": customer.get("email") or order.get("email"),
        "customer_name": customer_name or None,
        "total_amount": normalize_currency(order.get("total_price")),
        "currency": order.get("currency"),
        "status": shopify_order_status(order),
        "financial_status": order.get("financial_status"),
        "fulfillment_status": order.get("fulfillment_status"),
        "tracking_number": tracking_numbers[0] if tracking_numbers else None,
        "line_items": order.get("line_items") or [],
        "shipping_address": order.get("shipping_address"),
        "billing_address": order.get("billing_address"),
        "shop_domain": shop_domain,
        "data": _without_none({
            "name": order.get("name"),
            "gateway": order.get("gateway"),
            "cancel_reason": order.get("cancel_reason"),
            "cancelled_at": order.get("cancelled_at"),
            "tracking_numbers": tracking_numbers or None,
        }),
        "created_at": parse_timestamp(order.get("created_at")),
        "updated_at": parse_timestamp(order.get("updated_at")) or utcnow(),
        "last_synced_at": utcnow(),
    }
    if values["created_at"] is None:
        del values["created_at"]
    return values


def shopify_customer_values(customer: Dict[str, Any], shop_domain: str) -> Dict[str, Any]:
    values = {
        "email": customer.get("email"),
        "first_name": customer.get("first_name"),
        "last_name": customer.get("last_name"),
        "phone": customer.get("phone"),
        "company": get_nested_value(customer, "default_address.company"),
        "total_spent": normalize_currency(customer.get("total_spent")) or 0.0,
        "orders_count": normalize_int(customer.get("orders_count")) or 0,
        "accepts_marketing": normalize_boolean(customer.get("accepts_marketing")),
        "shop_domain": shop_domain,
        "data": _without_none({
            "marketing_opt_in_level": customer.get("marketing_opt_in_level"),
            "tags": customer.get("tags") or None,
            "state": customer.get("state"),
        }),
        "created_at": parse_timestamp(customer.get("created_at")),
        "updated_at": parse_timestamp(customer.get("updated_at")) or utcnow(),
        "last_synced_at": utcnow(),
    }
    if values["created_at"] is None:
        del values["created_at"]
    return values


def shopify_product_values(product: Dict[str, Any], shop_domain: str) -> Dict[str, Any]:
    variants = [v for v in product.get("variants") or [] if isinstance(v, dict)]
    first_variant = variants[0] if variants else {}

    quantities = [
        normalize_int(v.get("inventory_quantity")) for v in variants
        if v.get("inventory_quantity") is not None
    ]
    tags = product.get("tags") or []
    if isinstance(tags, str):
        tags = [tag.strip() for tag in tags.split(",") if tag.strip()]

    values = {
        "name": product.get("title") or "Untitled product",
        "handle": product.get("handle"),
        "description": product.get("body_html"),
        "price": normalize_currency(first_variant.get("price")),
        "sku": first_variant.get("sku") or None,
        "inventory_quantity": sum(q for q in quantities if q is not None) if quantities else None,
        "status": product.get("status"),
        "product_type": product.get("product_type"),
        "vendor": product.get("vendor"),
        "tags": tags,
        "images": [img.get("src") for img in product.get("images") or [] if isinstance(img, dict) and img.get("src")],
        "variants": variants,
        "shop_domain": shop_domain,
        "created_at": parse_timestamp(product.get("created_at")),
        "updated_at": parse_timestamp(product.get("updated_at")) or utcnow(),
        "last_synced_at": utcnow(),
    }
    if values["created_at"] is None:
        del values["created_at"]
    return values


# HubSpot

Coercer = Callable[[Any], Any]

HUBSPOT_CONTACT_PROPERTIES: Dict[str, Tuple[str, Optional[Coercer]]] = {
    "email": ("email", None),
    "firstname": ("first_name", None),
    "lastname": ("last_name", None),
    "phone": ("phone", None),
    "company": ("company", None),
    "jobtitle": ("title", None),
    "hs_analytics_source": ("lead_source", None),
    "lifecyclestage": ("lifecycle_stage", None),
}

HUBSPOT_DEAL_PROPERTIES: Dict[str, Tuple[str, Optional[Coercer]]] = {
    "dealname": ("name", None),
    "amount": ("amount", normalize_currency),
    "deal_currency_code": ("currency", None),
    "dealstage": ("stage", None),
    "pipeline": ("pipeline", None),
    "closedate": ("close_date", parse_timestamp),
    "hs_deal_stage_probability": ("probability", normalize_currency),
    "dealtype": ("deal_type", None),
}

HUBSPOT_COMPANY_PROPERTIES: Dict[str, Tuple[str, Optional[Coercer]]] = {
    "name": ("name", None),
    "domain": ("domain", None),
    "industry": ("industry", None),
}


def map_hubspot_property(
    mapping: Dict[str, Tuple[str, Optional[Coercer]]],
    property_name: Optional[str],
    property_value: Any
) -> Tuple[Optional[str], Any]:
    """
    Resolve a HubSpot property to a column.

    Returns:
        (column, value) for known properties, (None, value) for anything that
        belongs in the ``data`` blob
    """
    if not property_name or property_name not in mapping:
        return None, property_value

    column, coerce = mapping[property_name]
    return column, coerce(property_value) if coerce else property_value
