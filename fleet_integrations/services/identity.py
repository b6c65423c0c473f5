"""Identity resolution: find-or-create canonical records per company.

Records are keyed by ``(company, external_id)``. Updates merge the
candidate fields over the stored record; fields the caller did not supply
are left untouched. Customers that arrive without an external id (webhook
orders, embedded customers on pulled orders) are matched best-effort on
phone or email instead.

The find-then-write sequence runs inside ``transaction.atomic`` and is
backed by partial unique constraints on ``(company, external_id)``. When a
concurrent writer wins the insert race the resulting ``IntegrityError`` is
retried once as an update.
"""

import logging
from collections import namedtuple

from django.core.exceptions import ValidationError
from django.db import DEFAULT_DB_ALIAS, DatabaseError, IntegrityError, transaction
from django.db.models import Q

from ..conf import get_setting
from ..exceptions import RecordResolutionError
from ..models import Customer, Order, Rider
from ..status import CanonicalStatus, is_regression
from ..utils import normalize_external_id

logger = logging.getLogger(__name__)

ENTITY_MODELS = {
    "customers": Customer,
    "orders": Order,
    "riders": Rider,
}

Resolution = namedtuple("Resolution", ["record", "created"])


class IdentityResolver:
    """Upserts Customers, Orders and Riders for one company.

    Args:
        company: :class:`~fleet_integrations.models.Company` that owns
            every record touched.
        source: platform name stamped into ``external_source`` on insert.
        using: database alias for every read and write.
    """

    def __init__(self, company, source, using=DEFAULT_DB_ALIAS):
        self.company = company
        self.source = source
        self.using = using

    def _model_for(self, kind):
        try:
            return ENTITY_MODELS[kind]
        except KeyError:
            raise ValueError(f"Unknown entity kind: {kind}")

    def _queryset(self, model):
        return model.objects.using(self.using).filter(company=self.company)

    def resolve_and_upsert(self, kind, external_id, fields, create_defaults=None):
        """Update the record keyed by ``external_id`` or insert a new one.

        Returns:
            :class:`Resolution` of ``(record, created)``.

        Raises:
            RecordResolutionError: the id was empty or the write failed.
        """
        model = self._model_for(kind)
        external_id = normalize_external_id(external_id)
        if external_id is None:
            raise RecordResolutionError(kind, None, f"Missing external id for {kind}")

        try:
            try:
                with transaction.atomic(using=self.using):
                    record = (
                        self._queryset(model)
                        .select_for_update()
                        .filter(external_id=external_id)
                        .first()
                    )
                    if record is not None:
                        self._apply(record, fields)
                        return Resolution(record, False)
                    record = self._insert(
                        model, fields, create_defaults, external_id=external_id
                    )
                    return Resolution(record, True)
            except IntegrityError:
                logger.info(
                    "Concurrent insert for %s %s (company=%s), retrying as update",
                    kind,
                    external_id,
                    self.company.pk,
                )
                with transaction.atomic(using=self.using):
                    record = (
                        self._queryset(model)
                        .select_for_update()
                        .get(external_id=external_id)
                    )
                    self._apply(record, fields)
                    return Resolution(record, False)
        except (DatabaseError, ValidationError, model.DoesNotExist) as exc:
            raise RecordResolutionError(
                kind, external_id, f"Failed to upsert {kind} {external_id}: {exc}"
            ) from exc

    def resolve_customer_by_contact(self, phone, email, fields):
        """Find a customer by phone or email, creating one if neither matches.

        Matching is best-effort: the same person can end up as two
        customers when their phone and email both change between orders.
        Returns ``None`` when neither phone nor email is present.
        """
        lookup = Q()
        if phone:
            lookup |= Q(phone=phone)
        if email:
            lookup |= Q(email=email)
        if not lookup:
            return None

        try:
            with transaction.atomic(using=self.using):
                record = self._queryset(Customer).filter(lookup).order_by("pk").first()
                if record is not None:
                    self._apply(record, _fill_blanks(record, fields))
                    return Resolution(record, False)
                record = self._insert(Customer, fields, {"name": "Unknown"})
                return Resolution(record, True)
        except (DatabaseError, ValidationError) as exc:
            raise RecordResolutionError(
                "customers", phone or email, f"Failed to resolve customer: {exc}"
            ) from exc

    def upsert_order(self, order_record):
        """Resolve the order's customer by contact, then upsert the order.

        Args:
            order_record: :class:`~.transforms.OrderRecord`.
        """
        fields = dict(order_record.fields)
        customer = order_record.customer
        with transaction.atomic(using=self.using):
            if customer:
                resolution = self.resolve_customer_by_contact(
                    customer.get("phone"), customer.get("email"), customer
                )
                if resolution is not None:
                    fields["customer"] = resolution.record
            return self.resolve_and_upsert("orders", order_record.external_id, fields)

    def cancel_order(self, external_id):
        """Cancel the order keyed by ``external_id``. Never creates one.

        Returns the order, or ``None`` if no such order exists.
        """
        external_id = normalize_external_id(external_id)
        if external_id is None:
            return None
        return self.update_existing(
            "orders",
            {"external_id": external_id},
            {"status": CanonicalStatus.CANCELLED},
            force=True,
        )

    def update_existing(self, kind, lookup, fields, force=False):
        """Apply ``fields`` to the company's record matching ``lookup``.

        ``force`` lets an explicit status change leave a terminal status.
        Returns the record, or ``None`` when nothing matches.
        """
        model = self._model_for(kind)
        try:
            with transaction.atomic(using=self.using):
                record = (
                    self._queryset(model).select_for_update().filter(**lookup).first()
                )
                if record is None:
                    return None
                self._apply(record, fields, force=force)
                return record
        except (DatabaseError, ValidationError) as exc:
            raise RecordResolutionError(
                kind, lookup, f"Failed to update {kind} {lookup}: {exc}"
            ) from exc

    def _insert(self, model, fields, create_defaults, **identity):
        values = dict(create_defaults or {})
        values.update(fields)
        values.update(identity)
        record = model(company=self.company, external_source=self.source, **values)
        record.save(using=self.using)
        return record

    def _apply(self, record, fields, force=False):
        fields = dict(fields)
        if isinstance(record, Order) and not force:
            self._guard_status(record, fields)
        changed = [
            name for name, value in fields.items() if getattr(record, name) != value
        ]
        if not changed:
            return
        for name in changed:
            setattr(record, name, fields[name])
        record.save(using=self.using, update_fields=changed + ["updated_at"])

    def _guard_status(self, order, fields):
        incoming = fields.get("status")
        if incoming is None or not is_regression(order.status, incoming):
            return
        if get_setting("FLEET_SYNC_ALLOW_STATUS_REGRESSION"):
            return
        logger.warning(
            "Ignoring status change %s -> %s for terminal order %s (company=%s)",
            order.status,
            incoming,
            order.external_id,
            self.company.pk,
        )
        del fields["status"]


def _fill_blanks(record, fields):
    """Keep only the fields that would fill an empty value on ``record``."""
    return {
        name: value
        for name, value in fields.items()
        if value not in (None, "") and not getattr(record, name)
    }


def resolve_and_upsert(company, kind, external_id, candidate_fields, source=""):
    """Module-level shortcut returning ``(record_id, created)``."""
    record, created = IdentityResolver(company, source).resolve_and_upsert(
        kind, external_id, candidate_fields
    )
    return record.pk, created
