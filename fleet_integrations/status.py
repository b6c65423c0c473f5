"""Canonical status mapping.

Every external platform speaks its own order-status vocabulary. The tables
below translate each one onto the canonical delivery lifecycle. Lookups are
case-insensitive and total: anything not in a table falls back to
``pending`` so that unknown states surface for attention instead of being
dropped.
"""

import logging

from django.db import models

logger = logging.getLogger(__name__)


class PlatformKind(models.TextChoices):
    WOOCOMMERCE = "woocommerce"
    SHOPIFY = "shopify"
    WORDPRESS = "wordpress"
    CUSTOM = "custom"


class CanonicalStatus(models.TextChoices):
    PENDING = "pending"
    ASSIGNED = "assigned"
    PICKED_UP = "picked_up"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset(
    {CanonicalStatus.DELIVERED.value, CanonicalStatus.CANCELLED.value}
)

WOOCOMMERCE_STATUS_MAP = {
    "pending": CanonicalStatus.PENDING,
    "processing": CanonicalStatus.PENDING,
    "on-hold": CanonicalStatus.PENDING,
    "completed": CanonicalStatus.DELIVERED,
    "cancelled": CanonicalStatus.CANCELLED,
    "refunded": CanonicalStatus.CANCELLED,
    "failed": CanonicalStatus.CANCELLED,
}

# Shopify orders carry ``fulfillment_status``; the transform passes
# "cancelled" when the order has a ``cancelled_at`` timestamp.
SHOPIFY_STATUS_MAP = {
    "fulfilled": CanonicalStatus.DELIVERED,
    "partial": CanonicalStatus.IN_TRANSIT,
    "restocked": CanonicalStatus.CANCELLED,
    "cancelled": CanonicalStatus.CANCELLED,
}

# Generic REST APIs (wordpress and custom integrations). Canonical names
# map onto themselves so that well-behaved feeds pass straight through.
GENERIC_STATUS_MAP = {
    "pending": CanonicalStatus.PENDING,
    "assigned": CanonicalStatus.ASSIGNED,
    "processing": CanonicalStatus.ASSIGNED,
    "confirmed": CanonicalStatus.ASSIGNED,
    "picked_up": CanonicalStatus.PICKED_UP,
    "shipped": CanonicalStatus.IN_TRANSIT,
    "in_transit": CanonicalStatus.IN_TRANSIT,
    "in_progress": CanonicalStatus.IN_TRANSIT,
    "out_for_delivery": CanonicalStatus.IN_TRANSIT,
    "delivered": CanonicalStatus.DELIVERED,
    "completed": CanonicalStatus.DELIVERED,
    "cancelled": CanonicalStatus.CANCELLED,
    "refunded": CanonicalStatus.CANCELLED,
}

STATUS_MAPS = {
    PlatformKind.WOOCOMMERCE.value: WOOCOMMERCE_STATUS_MAP,
    PlatformKind.SHOPIFY.value: SHOPIFY_STATUS_MAP,
    PlatformKind.WORDPRESS.value: GENERIC_STATUS_MAP,
    PlatformKind.CUSTOM.value: GENERIC_STATUS_MAP,
}


def map_status(platform, external_status):
    """Map an external order status onto :class:`CanonicalStatus`.

    Never raises. Unknown platforms use the generic table; unknown or
    empty statuses map to ``pending``.
    """
    table = STATUS_MAPS.get(str(platform), GENERIC_STATUS_MAP)
    key = str(external_status).strip().lower() if external_status is not None else ""
    status = table.get(key)
    if status is None:
        if key:
            logger.info(
                "Unknown %s status %r, falling back to pending", platform, key
            )
        return CanonicalStatus.PENDING
    return status


def is_regression(current, incoming):
    """Return True if moving ``current`` to ``incoming`` leaves a terminal state."""
    current, incoming = str(current), str(incoming)
    return current in TERMINAL_STATUSES and incoming != current
