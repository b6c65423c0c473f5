"""Pull sync: fetch riders, orders and customers from an integration's API.

Entity kinds run one after another in a fixed order, and records within a
kind one at a time. A failure fetching one kind is recorded as an error
string and the run moves on to the next kind; a failure applying one
record is counted and the loop continues. Apart from the inactive
integration precondition nothing escapes :func:`run_sync`.
"""

import base64
import logging
import time
from dataclasses import dataclass, field

import requests

from ..conf import get_setting
from ..exceptions import (
    IntegrationInactiveError,
    RecordResolutionError,
    UpstreamFetchError,
)
from ..models import Integration, SyncLog
from ..schemas import (
    ExternalCustomerSerializer,
    ExternalOrderSerializer,
    ExternalRiderSerializer,
    validate_payload,
)
from ..status import PlatformKind
from .identity import IdentityResolver
from . import telemetry
from .transforms import (
    RIDER_CREATE_DEFAULTS,
    transform_external_customer,
    transform_external_order,
    transform_external_rider,
)

logger = logging.getLogger(__name__)

# Processed in this order, one kind at a time.
ENTITY_KINDS = ("riders", "orders", "customers")

CANCELLED_ERROR = "Sync cancelled"


@dataclass
class KindResult:
    fetched: int = 0
    created: int = 0
    updated: int = 0
    failed: int = 0

    def to_dict(self):
        return {
            "fetched": self.fetched,
            "created": self.created,
            "updated": self.updated,
            "failed": self.failed,
        }


@dataclass
class SyncResult:
    """Per-kind counts plus the non-fatal errors of one sync run."""

    riders: KindResult = field(default_factory=KindResult)
    orders: KindResult = field(default_factory=KindResult)
    customers: KindResult = field(default_factory=KindResult)
    errors: list = field(default_factory=list)
    duration_ms: int = 0

    def for_kind(self, kind):
        return getattr(self, kind)

    @property
    def status(self):
        if self.errors:
            return Integration.SyncStatus.PARTIAL.value
        return Integration.SyncStatus.SUCCESS.value

    def total(self, counter):
        """Sum one counter (``fetched``, ``created``...) across every kind."""
        return sum(getattr(self.for_kind(kind), counter) for kind in ENTITY_KINDS)

    def to_dict(self):
        return {kind: self.for_kind(kind).to_dict() for kind in ENTITY_KINDS}


def build_auth_headers(integration):
    """Return the credential headers for ``integration``'s platform.

    No credential header is sent when the integration has no api key.
    """
    headers = {
        "Accept": "application/json",
        "Content-Type": "application/json",
        "User-Agent": get_setting("FLEET_SYNC_USER_AGENT"),
    }
    if not integration.api_key:
        return headers

    if integration.integration_type == PlatformKind.WOOCOMMERCE:
        token = f"{integration.api_key}:{integration.api_secret or ''}"
        encoded = base64.b64encode(token.encode("utf-8")).decode("ascii")
        headers["Authorization"] = f"Basic {encoded}"
    elif integration.integration_type == PlatformKind.SHOPIFY:
        headers["X-Shopify-Access-Token"] = integration.api_key
    else:
        headers["Authorization"] = f"Bearer {integration.api_key}"
    return headers


def extract_collection(data, kind):
    """Pull the record list out of a response body.

    Accepts a bare list, or an object holding the list under the kind's
    own key (``riders``, ``orders``, ``customers``) or under ``data``.
    Anything else yields an empty list.
    """
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in (kind, "data"):
            records = data.get(key)
            if isinstance(records, list):
                return records
    return []


def fetch_collection(session, integration, kind, headers):
    """GET one entity collection.

    Raises:
        UpstreamFetchError: non-2xx status, network failure, timeout or
            an unparseable body.
    """
    label = kind.capitalize()
    url = integration.endpoint_url(kind)
    logger.info("Fetching %s for integration %s from %s", kind, integration.pk, url)
    try:
        response = session.get(
            url, headers=headers, timeout=get_setting("FLEET_SYNC_HTTP_TIMEOUT")
        )
    except requests.RequestException as exc:
        raise UpstreamFetchError(kind, f"{label} sync error: {exc}") from exc

    if not 200 <= response.status_code < 300:
        message = f"{label} sync failed: {response.status_code} {response.reason or ''}"
        raise UpstreamFetchError(
            kind,
            message.rstrip(),
            status_code=response.status_code,
        )

    try:
        data = response.json()
    except ValueError as exc:
        raise UpstreamFetchError(
            kind,
            f"{label} sync error: invalid JSON response",
            status_code=response.status_code,
        ) from exc
    return extract_collection(data, kind)


# ---------------------------------------------------------------------------
# Per-kind record appliers. Each returns a Resolution.
# ---------------------------------------------------------------------------


def apply_rider(resolver, integration, record):
    rider = validate_payload(ExternalRiderSerializer, record, "riders")
    external_id, fields = transform_external_rider(rider)
    return resolver.resolve_and_upsert(
        "riders", external_id, fields, create_defaults=RIDER_CREATE_DEFAULTS
    )


def apply_order(resolver, integration, record):
    order = validate_payload(ExternalOrderSerializer, record, "orders")
    return resolver.upsert_order(
        transform_external_order(order, default_pickup_address=integration.name)
    )


def apply_customer(resolver, integration, record):
    customer = validate_payload(ExternalCustomerSerializer, record, "customers")
    external_id, fields = transform_external_customer(customer)
    return resolver.resolve_and_upsert("customers", external_id, fields)


APPLIERS = {
    "riders": apply_rider,
    "orders": apply_order,
    "customers": apply_customer,
}


def _cancelled(cancel_event):
    return cancel_event is not None and cancel_event.is_set()


def _sync_kind(session, integration, resolver, kind, headers, result, cancel_event):
    """Fetch and apply one kind. Returns False if the run was cancelled."""
    counts = result.for_kind(kind)
    records = fetch_collection(session, integration, kind, headers)
    counts.fetched = len(records)
    apply = APPLIERS[kind]

    for record in records:
        if _cancelled(cancel_event):
            return False
        try:
            resolution = apply(resolver, integration, record)
        except RecordResolutionError as exc:
            counts.failed += 1
            logger.warning(
                "Failed to sync %s record %s for integration %s: %s",
                kind,
                exc.external_id,
                integration.pk,
                exc,
            )
            continue
        except Exception:
            counts.failed += 1
            logger.exception(
                "Unexpected error syncing %s record for integration %s",
                kind,
                integration.pk,
            )
            continue
        if resolution.created:
            counts.created += 1
        else:
            counts.updated += 1
    return True


def run_sync(integration, session=None, cancel_event=None):
    """Run one pull sync for ``integration`` and return a :class:`SyncResult`.

    Args:
        integration: the :class:`~fleet_integrations.models.Integration`.
        session: ``requests.Session`` used for every GET. A private
            session is opened and closed when omitted.
        cancel_event: optional ``threading.Event``; once set, remaining
            records and kinds are skipped and ``"Sync cancelled"`` is
            recorded as an error.

    Raises:
        IntegrationInactiveError: the integration is switched off. No
            request is made.
    """
    if not integration.is_active:
        raise IntegrationInactiveError(integration.pk)

    owns_session = session is None
    if owns_session:
        session = requests.Session()

    result = SyncResult()
    resolver = IdentityResolver(
        integration.company, source=integration.integration_type
    )
    headers = build_auth_headers(integration)
    start = time.monotonic()
    try:
        for kind in ENTITY_KINDS:
            enabled = getattr(integration, f"sync_{kind}")
            if not enabled or not integration.endpoint_url(kind):
                continue
            if _cancelled(cancel_event):
                result.errors.append(CANCELLED_ERROR)
                break
            try:
                finished = _sync_kind(
                    session, integration, resolver, kind, headers, result, cancel_event
                )
            except UpstreamFetchError as exc:
                logger.warning(
                    "Upstream fetch failed for integration %s: %s", integration.pk, exc
                )
                result.errors.append(str(exc))
                continue
            except Exception as exc:
                logger.exception(
                    "Unexpected error syncing %s for integration %s",
                    kind,
                    integration.pk,
                )
                result.errors.append(f"{kind.capitalize()} sync error: {exc}")
                continue
            if not finished:
                result.errors.append(CANCELLED_ERROR)
                break
    finally:
        if owns_session:
            session.close()
        result.duration_ms = int((time.monotonic() - start) * 1000)

    logger.info(
        "Sync of integration %s finished in %sms: "
        "status=%s riders=%s orders=%s customers=%s",
        integration.pk,
        result.duration_ms,
        result.status,
        result.riders.to_dict(),
        result.orders.to_dict(),
        result.customers.to_dict(),
    )
    return result


def sync_integration(
    integration, sync_type=SyncLog.SyncType.FULL, session=None, cancel_event=None
):
    """Run a sync and record its telemetry. Returns the :class:`SyncResult`."""
    result = run_sync(integration, session=session, cancel_event=cancel_event)
    telemetry.record(integration, result, result.duration_ms, sync_type=sync_type)
    return result
