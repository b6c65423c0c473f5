"""Tests for the sync_integrations management command."""

from io import StringIO

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from fleet_integrations.models import SyncLog
from fleet_integrations.tests.conftest import make_response
from fleet_integrations.tests.factories import make_integration

pytestmark = pytest.mark.django_db


@pytest.fixture(autouse=True)
def fake_session(mocker):
    mocker.patch("fleet_integrations.services.telemetry.statsd")
    session = mocker.MagicMock()
    session.get.return_value = make_response(
        json_data=[{"id": "r1", "name": "Sam", "phone": "555-2222"}]
    )
    mocker.patch(
        "fleet_integrations.services.pull_sync.requests.Session",
        return_value=session,
    )
    return session


def _run(*args):
    out = StringIO()
    call_command("sync_integrations", *args, stdout=out, stderr=StringIO())
    return out.getvalue()


class TestSyncIntegrationsCommand:
    def test_single_integration(self, integration, company):
        integration.sync_orders = False
        integration.sync_customers = False
        integration.save()

        output = _run("--integration-id", str(integration.pk))

        assert "success" in output
        assert "riders     fetched=1 created=1 updated=0 failed=0" in output
        assert SyncLog.objects.get(integration=integration).sync_type == "full"

    def test_unknown_integration(self):
        with pytest.raises(CommandError):
            _run("--integration-id", "424242")

    def test_due_runs_scheduled(self, integration):
        _run("--due")
        assert SyncLog.objects.get(integration=integration).sync_type == "scheduled"

    def test_all_skips_inactive(self, company):
        make_integration(company=company)
        make_integration(company=company, is_active=False)
        _run("--all")
        assert SyncLog.objects.count() == 1

    def test_requires_a_mode(self):
        with pytest.raises(CommandError):
            call_command("sync_integrations")

    def test_nothing_to_do(self):
        assert "No integrations to sync" in _run("--all")
