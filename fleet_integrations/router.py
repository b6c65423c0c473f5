import logging
from dataclasses import dataclass

from .middleware import SIGNATURE_BASE64, SIGNATURE_HEX_PREFIXED

logger = logging.getLogger(__name__)

# Topic sets for each webhook platform.
# Used by the ingestion handler to decide between upsert and cancel.
WOOCOMMERCE_UPSERT_TOPICS = frozenset({"order.created", "order.updated"})
WOOCOMMERCE_CANCEL_TOPICS = frozenset({"order.deleted"})

SHOPIFY_UPSERT_TOPICS = frozenset(
    {
        "orders/create",
        "orders/updated",
        "orders/paid",
        "orders/fulfilled",
        "orders/partially_fulfilled",
        "orders/cancelled",
    }
)
SHOPIFY_CANCEL_TOPICS = frozenset({"orders/delete"})

GENERIC_EVENTS = frozenset(
    {
        "order.created",
        "order.status_updated",
        "rider.status_updated",
        "rider.location_updated",
    }
)


@dataclass(frozen=True)
class WebhookPlatform:
    """How one platform authenticates and labels its webhook deliveries.

    ``topic_header`` is ``None`` for platforms that carry the topic in the
    body. ``integration_type`` names the :class:`~.status.PlatformKind`
    whose status table and strict-signature setting apply.
    ``rejects_bad_signature`` refuses a signature that fails to verify
    even outside strict mode; unsigned deliveries still follow the
    strict-signature settings.
    """

    name: str
    integration_type: str
    signature_header: str
    signature_format: str
    topic_header: str = None
    delivery_id_header: str = None
    source_header: str = None
    topics: frozenset = frozenset()
    default_topic: str = ""
    rejects_bad_signature: bool = False


PLATFORMS = {
    "woocommerce": WebhookPlatform(
        name="woocommerce",
        integration_type="woocommerce",
        signature_header="HTTP_X_WC_WEBHOOK_SIGNATURE",
        signature_format=SIGNATURE_BASE64,
        topic_header="HTTP_X_WC_WEBHOOK_TOPIC",
        delivery_id_header="HTTP_X_WC_WEBHOOK_DELIVERY_ID",
        source_header="HTTP_X_WC_WEBHOOK_SOURCE",
        topics=WOOCOMMERCE_UPSERT_TOPICS | WOOCOMMERCE_CANCEL_TOPICS,
    ),
    "shopify": WebhookPlatform(
        name="shopify",
        integration_type="shopify",
        signature_header="HTTP_X_SHOPIFY_HMAC_SHA256",
        signature_format=SIGNATURE_BASE64,
        topic_header="HTTP_X_SHOPIFY_TOPIC",
        delivery_id_header="HTTP_X_SHOPIFY_WEBHOOK_ID",
        source_header="HTTP_X_SHOPIFY_SHOP_DOMAIN",
        topics=SHOPIFY_UPSERT_TOPICS | SHOPIFY_CANCEL_TOPICS,
        default_topic="orders/updated",
    ),
    "generic": WebhookPlatform(
        name="generic",
        integration_type="custom",
        signature_header="HTTP_X_WEBHOOK_SIGNATURE",
        signature_format=SIGNATURE_HEX_PREFIXED,
        topics=GENERIC_EVENTS,
        rejects_bad_signature=True,
    ),
}


def get_platform(name):
    """Return the :class:`WebhookPlatform` for ``name``, or None."""
    return PLATFORMS.get(name)


# Registry mapping (platform, topic) to handler callables.
# Handlers are registered by the handler modules (woocommerce.py,
# shopify.py, generic.py) at import time, triggered from apps.ready().
_topic_handlers = {}


def register_handler(platform, topic, handler):
    """Register a handler callable for one platform's webhook topic."""
    _topic_handlers[(platform, topic)] = handler
    logger.debug("Registered handler for %s topic: %s", platform, topic)


def get_handler(platform, topic):
    """Return the handler callable for the platform and topic, or None."""
    return _topic_handlers.get((platform, topic))
