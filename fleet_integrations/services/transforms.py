"""Platform payload to canonical field transforms.

Each transform takes a validated payload (see :mod:`..schemas`) and
returns only the canonical fields it could derive, so that updates never
blank out a stored value the platform simply did not send.

Where a field can come from several places the candidates are listed in
order and the first non-empty one wins.
"""

from collections import namedtuple
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from ..status import PlatformKind, map_status
from ..utils import (
    drop_none,
    first_non_empty,
    full_name,
    join_non_empty,
    normalize_external_id,
    normalize_phone,
    to_external_id,
)

OrderRecord = namedtuple("OrderRecord", ["external_id", "fields", "customer"])

WOOCOMMERCE_ID_PREFIX = "woo"
SHOPIFY_ID_PREFIX = "shopify"

# Delivery address components, each taken from shipping then billing.
WOO_ADDRESS_PARTS = ("address_1", "address_2", "city", "state", "postcode", "country")

SHOPIFY_PAYMENT_STATUSES = frozenset({"paid", "refunded", "partially_refunded"})

RIDER_CREATE_DEFAULTS = {"vehicle_type": "motorcycle", "status": "offline"}

_CENT = Decimal("0.01")


def to_decimal(value):
    """Parse a money amount leniently; unparseable values become 0."""
    if value in (None, ""):
        return Decimal("0.00")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return Decimal("0.00")
    if not amount.is_finite():
        return Decimal("0.00")
    return amount.quantize(_CENT, rounding=ROUND_HALF_UP)


def _optional_total(value):
    return to_decimal(value) if value is not None else None


def _optional_items(value):
    return value if isinstance(value, list) else None


def _line_item(item, price_key):
    return drop_none(
        {
            "name": item.get("name") or "",
            "quantity": item.get("quantity"),
            "price": float(to_decimal(item.get(price_key))),
            "sku": item.get("sku") or None,
        }
    )


def _customer_fields(name, phone, email, address=None):
    """Customer candidate fields, or ``{}`` when there is no contact to match on."""
    phone = normalize_phone(phone) or None
    email = (email or "").strip() or None
    if not phone and not email:
        return {}
    return drop_none(
        {"name": name, "phone": phone, "email": email, "address": address or None}
    )


# ---------------------------------------------------------------------------
# WooCommerce
# ---------------------------------------------------------------------------


def woocommerce_payment_status(order):
    paid_statuses = ("completed", "processing")
    if order.get("payment_method") and order.get("status") in paid_statuses:
        return "paid"
    return "pending"


def transform_woocommerce_order(order):
    """Transform a WooCommerce order webhook payload.

    Field sources:

    * ``delivery_address``: each of address_1, address_2, city, state,
      postcode and country from shipping, else billing; joined with ", ".
      Falls back to ``"Address pending"``.
    * customer name: billing first/last, shipping first/last,
      ``"WooCommerce Customer"``.
    * phone and email: billing only (WooCommerce has no shipping email).
    """
    billing = order.get("billing") or {}
    shipping = order.get("shipping") or {}

    delivery_address = join_non_empty(
        first_non_empty(shipping.get(part), billing.get(part))
        for part in WOO_ADDRESS_PARTS
    )
    customer_name = first_non_empty(
        full_name(billing.get("first_name"), billing.get("last_name")),
        full_name(shipping.get("first_name"), shipping.get("last_name")),
        "WooCommerce Customer",
    )

    fields = {
        "status": map_status(PlatformKind.WOOCOMMERCE.value, order.get("status")),
        "delivery_address": delivery_address or "Address pending",
        "items": [
            _line_item(item, "total") for item in order.get("line_items") or []
        ],
        "total": to_decimal(order.get("total")),
        "notes": order.get("customer_note") or "",
        "payment_status": woocommerce_payment_status(order),
    }
    customer = _customer_fields(
        customer_name, billing.get("phone"), billing.get("email"), delivery_address
    )
    return OrderRecord(
        to_external_id(WOOCOMMERCE_ID_PREFIX, order["id"]), fields, customer
    )


# ---------------------------------------------------------------------------
# Shopify
# ---------------------------------------------------------------------------


def shopify_payment_status(order):
    financial_status = (order.get("financial_status") or "").lower()
    if financial_status in SHOPIFY_PAYMENT_STATUSES:
        return financial_status
    return "pending"


def transform_shopify_order(order):
    """Transform a Shopify order webhook payload.

    The whole address object is taken from ``shipping_address``, else
    ``billing_address``. Status comes from ``cancelled_at`` (any value
    means cancelled), else ``fulfillment_status``.
    """
    address = (
        first_non_empty(order.get("shipping_address"), order.get("billing_address"))
        or {}
    )

    delivery_address = join_non_empty(
        [
            address.get("address1"),
            address.get("address2"),
            address.get("city"),
            join_non_empty(
                [address.get("province"), address.get("zip")], separator=" "
            ),
            address.get("country"),
        ]
    )
    customer_name = first_non_empty(
        full_name(address.get("first_name"), address.get("last_name")),
        order.get("email"),
        "Shopify Customer",
    )
    external_status = order.get("fulfillment_status")
    if order.get("cancelled_at"):
        external_status = "cancelled"

    fields = {
        "status": map_status(PlatformKind.SHOPIFY.value, external_status),
        "delivery_address": delivery_address or "No address provided",
        "items": [
            _line_item(item, "price") for item in order.get("line_items") or []
        ],
        "total": to_decimal(order.get("total_price")),
        "notes": order.get("note") or "",
        "payment_status": shopify_payment_status(order),
    }
    customer = _customer_fields(
        customer_name,
        first_non_empty(address.get("phone"), order.get("phone")),
        order.get("email"),
        delivery_address,
    )
    return OrderRecord(
        to_external_id(SHOPIFY_ID_PREFIX, order["id"]), fields, customer
    )


# ---------------------------------------------------------------------------
# Generic webhook events
# ---------------------------------------------------------------------------


def transform_generic_order(data):
    """Transform a generic ``order.created`` event body."""
    fields = drop_none(
        {
            "status": map_status(PlatformKind.CUSTOM.value, data.get("status")),
            "pickup_address": data.get("pickup_address"),
            "delivery_address": data.get("delivery_address"),
            "items": _optional_items(data.get("items")),
            "total": _optional_total(data.get("total")),
            "notes": data.get("notes"),
        }
    )
    customer = _customer_fields(
        data.get("customer_name"),
        data.get("customer_phone"),
        data.get("customer_email"),
        data.get("delivery_address"),
    )
    return OrderRecord(data["external_id"], fields, customer)


# ---------------------------------------------------------------------------
# Pull sync collections
# ---------------------------------------------------------------------------


def transform_external_rider(rider):
    """Return ``(external_id, fields)`` for a pulled rider.

    The external id is the rider's id, else its normalized phone.
    """
    phone = normalize_phone(rider.get("phone"))
    external_id = first_non_empty(normalize_external_id(rider.get("id")), phone)
    fields = drop_none(
        {
            "name": rider.get("name"),
            "phone": phone or None,
            "email": rider.get("email") or None,
            "vehicle_type": rider.get("vehicle_type") or None,
            "status": rider.get("status") or None,
            "latitude": rider.get("latitude"),
            "longitude": rider.get("longitude"),
        }
    )
    return external_id, fields


def transform_external_order(order, default_pickup_address=None):
    """Transform a pulled order.

    Status uses the generic table regardless of integration type.
    ``pickup_address`` falls back to ``default_pickup_address`` (the
    integration's name) when the feed does not carry one.
    """
    fields = drop_none(
        {
            "status": map_status(PlatformKind.CUSTOM.value, order.get("status")),
            "pickup_address": first_non_empty(
                order.get("pickup_address"), default_pickup_address
            ),
            "delivery_address": order.get("delivery_address") or None,
            "notes": order.get("notes") or None,
            "total": _optional_total(order.get("total")),
            "items": _optional_items(order.get("items")),
        }
    )
    customer = _customer_fields(
        first_non_empty(order.get("customer_name"), "Unknown"),
        order.get("customer_phone"),
        order.get("customer_email"),
        order.get("delivery_address"),
    )
    return OrderRecord(normalize_external_id(order["id"]), fields, customer)


def transform_external_customer(customer):
    """Return ``(external_id, fields)`` for a pulled customer.

    Field sources:

    * name: ``name``, first/last, billing first/last, ``"Unknown"``.
    * phone, email: top level, else billing.
    * address: ``address``, else billing ``address_1``.
    """
    billing = customer.get("billing") or {}
    fields = drop_none(
        {
            "name": first_non_empty(
                customer.get("name"),
                full_name(customer.get("first_name"), customer.get("last_name")),
                full_name(billing.get("first_name"), billing.get("last_name")),
                "Unknown",
            ),
            "phone": normalize_phone(
                first_non_empty(customer.get("phone"), billing.get("phone"))
            ),
            "email": first_non_empty(customer.get("email"), billing.get("email")),
            "address": first_non_empty(
                customer.get("address"), billing.get("address_1")
            ),
        }
    )
    return normalize_external_id(customer["id"]), fields
