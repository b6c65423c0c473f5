import logging

from datadog import statsd
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from ..models import Integration, SyncLog

logger = logging.getLogger(__name__)

RECORD_OUTCOMES = ("created", "updated", "failed")


def record(integration, sync_result, duration_ms, sync_type=SyncLog.SyncType.FULL):
    """Persist the outcome of one sync run.

    Writes one append-only :class:`SyncLog` row and rolls the run up into
    the Integration: last sync time, status and error, and the lifetime
    counters, which grow by this run's ``created`` counts only.

    Returns the new SyncLog.
    """
    status = sync_result.status
    error_message = "; ".join(sync_result.errors) or None

    with transaction.atomic():
        sync_log = SyncLog.objects.create(
            integration=integration,
            sync_type=sync_type,
            status=status,
            records_fetched=sync_result.total("fetched"),
            records_created=sync_result.total("created"),
            records_updated=sync_result.total("updated"),
            records_failed=sync_result.total("failed"),
            error_message=error_message,
            duration_ms=duration_ms,
        )
        Integration.objects.filter(pk=integration.pk).update(
            last_sync_at=timezone.now(),
            last_sync_status=status,
            last_sync_error=error_message,
            total_riders_synced=F("total_riders_synced") + sync_result.riders.created,
            total_orders_synced=F("total_orders_synced") + sync_result.orders.created,
            total_customers_synced=(
                F("total_customers_synced") + sync_result.customers.created
            ),
            updated_at=timezone.now(),
        )
    integration.refresh_from_db()

    tags = [f"integration_type:{integration.integration_type}", f"status:{status}"]
    statsd.increment("fleet_sync.sync.completed", tags=tags)
    statsd.histogram("fleet_sync.sync.duration_ms", duration_ms, tags=tags)
    for kind in ("riders", "orders", "customers"):
        counts = sync_result.for_kind(kind)
        for outcome in RECORD_OUTCOMES:
            value = getattr(counts, outcome)
            if value:
                statsd.increment(
                    "fleet_sync.sync.records",
                    value,
                    tags=[f"kind:{kind}", f"outcome:{outcome}"],
                )

    logger.info(
        "Recorded %s sync of integration %s: status=%s fetched=%s created=%s "
        "updated=%s failed=%s duration=%sms",
        sync_type,
        integration.pk,
        status,
        sync_log.records_fetched,
        sync_log.records_created,
        sync_log.records_updated,
        sync_log.records_failed,
        duration_ms,
    )
    return sync_log
