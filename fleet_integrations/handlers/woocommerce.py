import logging

from ..exceptions import RecordResolutionError
from ..router import register_handler
from ..schemas import WooCommerceOrderSerializer, validate_payload
from ..services.transforms import (
    WOOCOMMERCE_ID_PREFIX,
    transform_woocommerce_order,
)
from ..utils import to_external_id

logger = logging.getLogger(__name__)


def handle_order_upsert(resolver, payload):
    """Handle ``order.created`` and ``order.updated``.

    Resolves the billing contact to a Customer, then upserts the Order
    keyed by ``woo_<id>``. A redelivery of the same order updates it in
    place.
    """
    order = validate_payload(WooCommerceOrderSerializer, payload, "orders")
    record = transform_woocommerce_order(order)
    resolution = resolver.upsert_order(record)
    action = "created" if resolution.created else "updated"
    logger.info(
        "%s WooCommerce order %s as order %s (company=%s)",
        action.capitalize(),
        record.external_id,
        resolution.record.pk,
        resolver.company.pk,
    )
    return action, resolution.record.pk


def handle_order_delete(resolver, payload):
    """Handle ``order.deleted``: cancel the order, never create one.

    WooCommerce sends only ``{"id": <order_id>}`` for deletions.
    """
    native_id = payload.get("id") if isinstance(payload, dict) else None
    if not native_id:
        raise RecordResolutionError(
            "orders", None, "Missing order ID in delete webhook payload"
        )

    external_id = to_external_id(WOOCOMMERCE_ID_PREFIX, native_id)
    order = resolver.cancel_order(external_id)
    if order is None:
        logger.info(
            "No order %s to cancel (company=%s)", external_id, resolver.company.pk
        )
        return "noop", None

    logger.info(
        "Cancelled WooCommerce order %s (company=%s)", external_id, resolver.company.pk
    )
    return "cancelled", order.pk


# ---------------------------------------------------------------------------
# Handler registration, called when this module is imported via apps.ready()
# ---------------------------------------------------------------------------
register_handler("woocommerce", "order.created", handle_order_upsert)
register_handler("woocommerce", "order.updated", handle_order_upsert)
register_handler("woocommerce", "order.deleted", handle_order_delete)
