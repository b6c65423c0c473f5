"""
Run pull syncs for integrations, synchronously.

Usage:
    python manage.py sync_integrations --integration-id <id>

    # Every active integration whose sync interval has elapsed
    python manage.py sync_integrations --due

    # Every active integration
    python manage.py sync_integrations --all
"""

import logging

from django.core.management.base import BaseCommand, CommandError

from fleet_integrations.exceptions import IntegrationInactiveError
from fleet_integrations.models import Integration, SyncLog
from fleet_integrations.services.pull_sync import ENTITY_KINDS, sync_integration
from fleet_integrations.tasks import due_integrations

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Pull riders, orders and customers for one or more integrations"

    def add_arguments(self, parser):
        group = parser.add_mutually_exclusive_group(required=True)
        group.add_argument(
            "--integration-id",
            type=int,
            help="Sync this integration only.",
        )
        group.add_argument(
            "--due",
            action="store_true",
            help="Sync every active integration whose interval has elapsed.",
        )
        group.add_argument(
            "--all",
            action="store_true",
            dest="sync_all",
            help="Sync every active integration.",
        )

    def handle(self, *args, **options):
        if options["integration_id"] is not None:
            try:
                integrations = [
                    Integration.objects.select_related("company").get(
                        id=options["integration_id"]
                    )
                ]
            except Integration.DoesNotExist:
                raise CommandError(
                    f"Integration {options['integration_id']} does not exist"
                )
            sync_type = SyncLog.SyncType.FULL
        elif options["due"]:
            integrations = due_integrations()
            sync_type = SyncLog.SyncType.SCHEDULED
        else:
            integrations = list(
                Integration.objects.select_related("company").filter(is_active=True)
            )
            sync_type = SyncLog.SyncType.FULL

        if not integrations:
            self.stdout.write("No integrations to sync")
            return

        failed = 0
        for integration in integrations:
            try:
                result = sync_integration(integration, sync_type=sync_type)
            except IntegrationInactiveError as exc:
                logger.warning("Skipping integration %s: %s", integration.pk, exc)
                self.stderr.write(f"  SKIP: {integration.name}: {exc}")
                failed += 1
                continue

            self.stdout.write(
                f"{integration.name} (id={integration.pk}): {result.status} "
                f"in {result.duration_ms}ms"
            )
            for kind in ENTITY_KINDS:
                counts = result.for_kind(kind)
                self.stdout.write(
                    f"  {kind:<10} fetched={counts.fetched} created={counts.created} "
                    f"updated={counts.updated} failed={counts.failed}"
                )
            for error in result.errors:
                self.stdout.write(f"  ERROR: {error}")

        self.stdout.write(
            f"\nDone: {len(integrations) - failed} synced, {failed} skipped"
        )
