import logging

from ..exceptions import RecordResolutionError
from ..router import SHOPIFY_CANCEL_TOPICS, SHOPIFY_UPSERT_TOPICS, register_handler
from ..schemas import ShopifyOrderSerializer, validate_payload
from ..services.transforms import SHOPIFY_ID_PREFIX, transform_shopify_order
from ..utils import to_external_id

logger = logging.getLogger(__name__)


def handle_order_upsert(resolver, payload):
    """Handle the ``orders/*`` topics that carry a full order.

    The order is keyed by ``shopify_<id>``. ``orders/cancelled`` arrives
    here too: the transform reads ``cancelled_at`` and maps it to
    ``cancelled``.
    """
    order = validate_payload(ShopifyOrderSerializer, payload, "orders")
    record = transform_shopify_order(order)
    resolution = resolver.upsert_order(record)
    action = "created" if resolution.created else "updated"
    logger.info(
        "%s Shopify order %s as order %s (company=%s)",
        action.capitalize(),
        record.external_id,
        resolution.record.pk,
        resolver.company.pk,
    )
    return action, resolution.record.pk


def handle_order_delete(resolver, payload):
    """Handle ``orders/delete``: cancel the order if we have it."""
    native_id = payload.get("id") if isinstance(payload, dict) else None
    if not native_id:
        raise RecordResolutionError(
            "orders", None, "Missing order ID in delete webhook payload"
        )

    order = resolver.cancel_order(to_external_id(SHOPIFY_ID_PREFIX, native_id))
    if order is None:
        return "noop", None
    return "cancelled", order.pk


# ---------------------------------------------------------------------------
# Handler registration, called when this module is imported via apps.ready()
# ---------------------------------------------------------------------------
for _topic in SHOPIFY_UPSERT_TOPICS:
    register_handler("shopify", _topic, handle_order_upsert)
for _topic in SHOPIFY_CANCEL_TOPICS:
    register_handler("shopify", _topic, handle_order_delete)
