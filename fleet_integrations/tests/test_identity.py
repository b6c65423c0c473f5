"""Tests for the identity resolver."""

from decimal import Decimal

import pytest
from django.db import IntegrityError

from fleet_integrations.exceptions import RecordResolutionError
from fleet_integrations.models import Customer, Order, Rider
from fleet_integrations.services.identity import (
    IdentityResolver,
    resolve_and_upsert,
)
from fleet_integrations.services.transforms import OrderRecord
from fleet_integrations.tests.factories import make_company

pytestmark = pytest.mark.django_db


@pytest.fixture
def resolver(company):
    return IdentityResolver(company, source="custom")


class TestResolveAndUpsert:
    def test_creates_then_updates(self, resolver, company):
        record, created = resolver.resolve_and_upsert(
            "riders", "r1", {"name": "Sam", "phone": "5552222"}
        )
        assert created is True
        assert record.external_source == "custom"

        again, created = resolver.resolve_and_upsert(
            "riders", "r1", {"name": "Samuel"}
        )
        assert created is False
        assert again.pk == record.pk
        again.refresh_from_db()
        assert again.name == "Samuel"
        # Fields not supplied are left alone.
        assert again.phone == "5552222"
        assert Rider.objects.filter(company=company).count() == 1

    def test_external_id_is_string_normalized(self, resolver):
        first, _ = resolver.resolve_and_upsert("customers", 42, {"name": "A"})
        second, created = resolver.resolve_and_upsert("customers", " 42 ", {"name": "B"})
        assert created is False
        assert second.pk == first.pk

    def test_scoped_per_company(self, resolver):
        other = IdentityResolver(make_company(), source="custom")
        resolver.resolve_and_upsert("customers", "c1", {"name": "A"})
        _, created = other.resolve_and_upsert("customers", "c1", {"name": "A"})
        assert created is True
        assert Customer.objects.filter(external_id="c1").count() == 2

    def test_create_defaults_apply_on_insert_only(self, resolver):
        defaults = {"vehicle_type": "motorcycle", "status": "offline"}
        rider, _ = resolver.resolve_and_upsert(
            "riders", "r2", {"name": "Al", "status": "active"}, create_defaults=defaults
        )
        assert rider.status == "active"
        assert rider.vehicle_type == "motorcycle"

    @pytest.mark.parametrize("external_id", [None, "", "   "])
    def test_missing_external_id(self, resolver, external_id):
        with pytest.raises(RecordResolutionError):
            resolver.resolve_and_upsert("orders", external_id, {})

    def test_unknown_kind(self, resolver):
        with pytest.raises(ValueError):
            resolver.resolve_and_upsert("vehicles", "v1", {})

    def test_store_failure_becomes_record_error(self, resolver, mocker):
        mocker.patch.object(
            IdentityResolver, "_insert", side_effect=IntegrityError("boom")
        )
        with pytest.raises(RecordResolutionError) as excinfo:
            resolver.resolve_and_upsert("customers", "c5", {"name": "A"})
        assert excinfo.value.external_id == "c5"

    def test_lost_insert_race_retried_as_update(self, resolver, company, mocker):
        existing = Customer.objects.create(
            company=company, external_id="c6", name="Old"
        )
        real_queryset = resolver._queryset
        calls = {"count": 0}

        def racing_queryset(model):
            # First lookup misses, as if the row was inserted just after it.
            calls["count"] += 1
            if calls["count"] == 1:
                return real_queryset(model).none()
            return real_queryset(model)

        mocker.patch.object(resolver, "_queryset", side_effect=racing_queryset)
        record, created = resolver.resolve_and_upsert("customers", "c6", {"name": "New"})

        assert created is False
        assert record.pk == existing.pk
        existing.refresh_from_db()
        assert existing.name == "New"

    def test_module_shortcut(self, company):
        record_id, created = resolve_and_upsert(
            company, "orders", "o1", {"total": Decimal("5.00")}, source="custom"
        )
        assert created is True
        assert Order.objects.get(pk=record_id).total == Decimal("5.00")


class TestStatusGuard:
    def test_terminal_status_not_regressed(self, resolver, company):
        Order.objects.create(company=company, external_id="o1", status="delivered")
        order, _ = resolver.resolve_and_upsert(
            "orders", "o1", {"status": "pending", "notes": "late update"}
        )
        order.refresh_from_db()
        assert order.status == "delivered"
        assert order.notes == "late update"

    def test_regression_allowed_by_setting(self, resolver, company, settings):
        settings.FLEET_SYNC_ALLOW_STATUS_REGRESSION = True
        Order.objects.create(company=company, external_id="o1", status="cancelled")
        order, _ = resolver.resolve_and_upsert("orders", "o1", {"status": "pending"})
        order.refresh_from_db()
        assert order.status == "pending"

    def test_forward_transition(self, resolver, company):
        Order.objects.create(company=company, external_id="o1", status="pending")
        order, _ = resolver.resolve_and_upsert("orders", "o1", {"status": "delivered"})
        order.refresh_from_db()
        assert order.status == "delivered"


class TestResolveCustomerByContact:
    def test_no_contact_returns_none(self, resolver):
        assert resolver.resolve_customer_by_contact(None, "", {"name": "X"}) is None

    def test_creates_without_external_id(self, resolver):
        customer, created = resolver.resolve_customer_by_contact(
            "555-1111", None, {"name": "Ann Lee", "phone": "555-1111"}
        )
        assert created is True
        assert customer.external_id is None
        assert customer.name == "Ann Lee"

    def test_matches_on_email_and_fills_blanks(self, resolver, company):
        existing = Customer.objects.create(
            company=company, name="Ann", email="ann@x.com"
        )
        customer, created = resolver.resolve_customer_by_contact(
            "555-1111",
            "ann@x.com",
            {"name": "Ann Lee", "phone": "555-1111", "email": "ann@x.com"},
        )
        assert created is False
        assert customer.pk == existing.pk
        customer.refresh_from_db()
        # Existing values win; blanks get filled.
        assert customer.name == "Ann"
        assert customer.phone == "555-1111"


class TestUpsertOrder:
    def test_links_customer(self, resolver, company):
        record = OrderRecord(
            "woo_1",
            {"delivery_address": "1 Main St"},
            {"name": "Ann", "email": "ann@x.com"},
        )
        order, created = resolver.upsert_order(record)
        assert created is True
        assert order.customer.email == "ann@x.com"

        order, created = resolver.upsert_order(record)
        assert created is False
        assert Customer.objects.filter(company=company).count() == 1
        assert Order.objects.filter(company=company).count() == 1

    def test_without_customer(self, resolver):
        order, _ = resolver.upsert_order(OrderRecord("woo_2", {}, {}))
        assert order.customer is None

    def test_failed_order_write_keeps_no_customer(self, resolver, company, mocker):
        insert = resolver._insert

        def insert_customer_only(model, *args, **kwargs):
            if model is Order:
                raise IntegrityError("orders write failed")
            return insert(model, *args, **kwargs)

        mocker.patch.object(resolver, "_insert", side_effect=insert_customer_only)
        record = OrderRecord("woo_3", {}, {"name": "Ann", "email": "ann@x.com"})
        with pytest.raises(RecordResolutionError):
            resolver.upsert_order(record)
        assert not Customer.objects.filter(company=company).exists()
        assert not Order.objects.filter(company=company).exists()


class TestCancelOrder:
    def test_cancels_existing(self, resolver, company):
        Order.objects.create(company=company, external_id="woo_1")
        order = resolver.cancel_order("woo_1")
        order.refresh_from_db()
        assert order.status == "cancelled"

    def test_cancels_delivered_order(self, resolver, company):
        Order.objects.create(company=company, external_id="woo_7", status="delivered")
        order = resolver.cancel_order("woo_7")
        order.refresh_from_db()
        assert order.status == "cancelled"

    def test_missing_order_is_not_created(self, resolver, company):
        assert resolver.cancel_order("woo_404") is None
        assert not Order.objects.filter(company=company).exists()

    def test_empty_id(self, resolver, company):
        Order.objects.create(company=company)
        assert resolver.cancel_order(None) is None


class TestUpdateExisting:
    def test_by_pk(self, resolver, company):
        rider = Rider.objects.create(company=company, name="Sam")
        updated = resolver.update_existing("riders", {"pk": rider.pk}, {"status": "busy"})
        assert updated.status == "busy"

    def test_other_company_not_touched(self, resolver):
        rider = Rider.objects.create(company=make_company(), name="Sam")
        assert resolver.update_existing("riders", {"pk": rider.pk}, {"status": "x"}) is None
