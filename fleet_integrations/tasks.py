import logging
from datetime import timedelta

import dramatiq
from django.db import InterfaceError, OperationalError
from django.db.models import Q
from django.utils import timezone

from .conf import get_setting
from .exceptions import IntegrationInactiveError
from .models import Integration, SyncLog
from .services.pull_sync import sync_integration

logger = logging.getLogger(__name__)

INTEGRATION_SYNC_QUEUE = get_setting("FLEET_SYNC_QUEUE")


def should_retry(retries_so_far, exception):
    """Return True for transient errors, False for permanent ones.

    Upstream fetch failures never reach this: ``run_sync`` records them
    as error strings on the SyncLog. What can escape is the store itself,
    so lost connections and lock timeouts (``OperationalError``,
    ``InterfaceError``) and OS-level errors are retried; anything else,
    ``IntegrityError`` included, is permanent.
    """
    return isinstance(exception, (OperationalError, InterfaceError, OSError))


def due_integrations(now=None):
    """Active integrations never synced or not synced within their interval."""
    now = now or timezone.now()
    due = []
    for integration in Integration.objects.filter(is_active=True).filter(
        Q(sync_riders=True) | Q(sync_orders=True) | Q(sync_customers=True)
    ):
        last_sync_at = integration.last_sync_at
        interval = timedelta(minutes=integration.sync_interval_minutes)
        if last_sync_at is None or last_sync_at + interval <= now:
            due.append(integration)
    return due


@dramatiq.actor(
    queue_name=INTEGRATION_SYNC_QUEUE,
    max_retries=3,
    min_backoff=30_000,
    max_backoff=600_000,
    retry_when=should_retry,
)
def sync_integration_task(integration_id, sync_type=SyncLog.SyncType.SCHEDULED.value):
    """Run one pull sync and record its telemetry."""
    try:
        integration = Integration.objects.select_related("company").get(
            id=integration_id
        )
    except Integration.DoesNotExist:
        logger.error("Integration %s not found", integration_id)
        return

    try:
        sync_integration(integration, sync_type=sync_type)
    except IntegrationInactiveError:
        logger.info("Skipping sync of inactive integration %s", integration_id)


@dramatiq.actor(queue_name=INTEGRATION_SYNC_QUEUE, max_retries=0)
def enqueue_due_integrations():
    """Enqueue a scheduled sync for every integration that is due.

    Meant to be fired periodically by an external scheduler.
    """
    integrations = due_integrations()
    for integration in integrations:
        sync_integration_task.send(integration.id, SyncLog.SyncType.SCHEDULED.value)
    logger.info("Enqueued %s due integration syncs", len(integrations))
    return len(integrations)
