"""Handlers for generic ``{"event": ..., "data": {...}}`` webhooks.

Any system can push these. Records are addressed either by platform id
(``order_id``/``rider_id``) or by external id
(``external_order_id``/``external_rider_id``).
"""

import logging

from django.utils import timezone

from ..router import register_handler
from ..schemas import (
    GenericOrderSerializer,
    GenericOrderStatusSerializer,
    GenericRiderLocationSerializer,
    GenericRiderStatusSerializer,
    validate_payload,
)
from ..services.transforms import transform_generic_order
from ..status import PlatformKind, map_status

logger = logging.getLogger(__name__)


def _reference(data, id_key, external_key):
    if data.get(id_key):
        return {"pk": data[id_key]}
    return {"external_id": data[external_key]}


def _result(record, action="updated"):
    if record is None:
        return "noop", None
    return action, record.pk


def handle_order_created(resolver, data):
    data = validate_payload(GenericOrderSerializer, data, "orders")
    resolution = resolver.upsert_order(transform_generic_order(data))
    return _result(
        resolution.record, "created" if resolution.created else "updated"
    )


def handle_order_status_updated(resolver, data):
    data = validate_payload(GenericOrderStatusSerializer, data, "orders")
    status = map_status(PlatformKind.CUSTOM.value, data["status"])
    order = resolver.update_existing(
        "orders",
        _reference(data, "order_id", "external_order_id"),
        {"status": status},
    )
    if order is None:
        logger.warning(
            "order.status_updated for unknown order (company=%s)",
            resolver.company.pk,
        )
    return _result(order)


def handle_rider_status_updated(resolver, data):
    data = validate_payload(GenericRiderStatusSerializer, data, "riders")
    rider = resolver.update_existing(
        "riders",
        _reference(data, "rider_id", "external_rider_id"),
        {"status": data["status"]},
    )
    return _result(rider)


def handle_rider_location_updated(resolver, data):
    data = validate_payload(GenericRiderLocationSerializer, data, "riders")
    fields = {
        "latitude": data["latitude"],
        "longitude": data["longitude"],
        "last_seen": timezone.now(),
        "status": "active",
    }
    if data.get("battery_level") is not None:
        fields["battery_level"] = data["battery_level"]
    rider = resolver.update_existing(
        "riders", _reference(data, "rider_id", "external_rider_id"), fields
    )
    return _result(rider)


# ---------------------------------------------------------------------------
# Handler registration, called when this module is imported via apps.ready()
# ---------------------------------------------------------------------------
register_handler("generic", "order.created", handle_order_created)
register_handler("generic", "order.status_updated", handle_order_status_updated)
register_handler("generic", "rider.status_updated", handle_rider_status_updated)
register_handler("generic", "rider.location_updated", handle_rider_location_updated)
