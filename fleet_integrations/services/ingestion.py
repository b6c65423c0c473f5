"""Webhook ingestion: authenticate, decode and apply one delivery.

Every delivery that gets past the api key check is recorded as a
:class:`~fleet_integrations.models.WebhookEvent`. Per-record problems
(bad payload shape, failed write) mark the event ``failed`` but still
count as processed; only authentication problems are fatal.
"""

import hashlib
import json
import logging
import time
from dataclasses import dataclass

from datadog import statsd

from ..conf import get_setting
from ..exceptions import RecordResolutionError, SignatureMismatch, UnauthorizedError
from ..middleware import verify_signature
from ..models import Company, WebhookEvent
from ..router import get_handler, get_platform
from ..schemas import GenericEventSerializer, validate_payload
from ..utils import key_prefix
from .identity import IdentityResolver

logger = logging.getLogger(__name__)

PLATFORM_LABELS = {
    "woocommerce": "WooCommerce",
    "shopify": "Shopify",
    "generic": "Generic",
}


@dataclass
class HandlerResult:
    """Outcome of one authenticated webhook delivery."""

    company: Company
    platform: str
    topic: str
    status: str
    action: str = ""
    record_id: int = None
    event_id: int = None
    error: str = ""

    @property
    def message(self):
        label = PLATFORM_LABELS.get(self.platform, self.platform)
        return f"{label} webhook processed: {self.topic or 'unknown'}"

    def to_dict(self):
        return {
            "success": True,
            "message": self.message,
            "company": self.company.name,
        }


def resolve_company(api_key):
    """Return the Company owning ``api_key``.

    Raises:
        UnauthorizedError: the key is missing or unknown.
    """
    if not api_key:
        raise UnauthorizedError("API key required")
    try:
        return Company.objects.get(api_key=api_key)
    except Company.DoesNotExist:
        logger.warning("Webhook with unknown api key %s", key_prefix(api_key))
        raise UnauthorizedError("Invalid API key")


def is_strict(platform, company):
    """Whether a signature mismatch rejects the delivery for this company."""
    if get_setting("FLEET_SYNC_STRICT_SIGNATURES"):
        return True
    return company.integrations.filter(
        integration_type=platform.integration_type,
        is_active=True,
        enforce_webhook_signature=True,
    ).exists()


def check_signature(platform, company, raw_body, signature):
    """Verify the delivery signature against the company's webhook secret.

    Returns ``True``/``False``, or ``None`` when there was nothing to
    verify. In strict mode a missing or bad signature raises
    :class:`SignatureMismatch`, as does a bad one for platforms that
    always reject it; otherwise a bad one is only logged.
    """
    strict = is_strict(platform, company)
    if not signature or not company.webhook_secret:
        if strict:
            logger.warning(
                "Rejected unsigned %s webhook (company=%s)", platform.name, company.pk
            )
            raise SignatureMismatch(platform.name)
        return None

    if verify_signature(
        platform.signature_format, raw_body, signature, company.webhook_secret
    ):
        return True

    statsd.increment(
        "fleet_sync.webhook.signature_mismatch", tags=[f"platform:{platform.name}"]
    )
    if strict or platform.rejects_bad_signature:
        logger.warning(
            "Rejected %s webhook with bad signature (company=%s)",
            platform.name,
            company.pk,
        )
        raise SignatureMismatch(platform.name)
    logger.warning(
        "Signature verification failed for %s webhook (company=%s), processing anyway",
        platform.name,
        company.pk,
    )
    return False


def decode_payload(platform, raw_body, topic):
    """Parse the body and return ``(topic, payload)`` for the handler.

    Generic deliveries carry the topic in the body as ``event``.
    """
    body = json.loads(raw_body)
    if platform.topic_header is None:
        envelope = validate_payload(GenericEventSerializer, body, "events")
        return envelope["event"], envelope["data"]
    return topic or platform.default_topic, body


def handle_webhook(
    company_api_key,
    signature,
    raw_body,
    topic,
    platform="woocommerce",
    delivery_id="",
    source_domain="",
):
    """Authenticate and apply one webhook delivery.

    Args:
        company_api_key: value of the ``x-api-key`` header.
        signature: value of the platform's signature header, if any.
        raw_body: request body bytes, exactly as received.
        topic: value of the platform's topic header, if any.
        platform: ``woocommerce``, ``shopify`` or ``generic``.

    Returns:
        :class:`HandlerResult`. The result is returned even when the
        record itself could not be applied; check ``status``.

    Raises:
        UnauthorizedError: unknown api key. Nothing is parsed or recorded.
        SignatureMismatch: bad signature under strict mode.
    """
    descriptor = get_platform(platform)
    if descriptor is None:
        raise ValueError(f"Unsupported webhook platform: {platform}")

    company = resolve_company(company_api_key)
    signature_valid = check_signature(descriptor, company, raw_body, signature)

    event = WebhookEvent.objects.create(
        company=company,
        platform=platform,
        topic=topic or "",
        delivery_id=delivery_id or "",
        source_domain=source_domain or "",
        signature_valid=signature_valid,
        status=WebhookEvent.Status.RECEIVED,
        payload_hash=hashlib.sha256(raw_body).hexdigest(),
    )
    tags = [f"platform:{platform}"]
    statsd.increment("fleet_sync.webhook.received", tags=tags)

    result = HandlerResult(
        company=company, platform=platform, topic=event.topic, status=event.status
    )
    start = time.monotonic()
    try:
        event.topic, payload = decode_payload(descriptor, raw_body, topic)
        handler = get_handler(platform, event.topic)
        if handler is None:
            logger.info("Unhandled %s webhook topic: %s", platform, event.topic)
            event.status = WebhookEvent.Status.IGNORED
            event.action = "ignored"
        else:
            resolver = IdentityResolver(company, source=platform)
            event.action, result.record_id = handler(resolver, payload)
            event.status = WebhookEvent.Status.SUCCESS
    except (RecordResolutionError, ValueError) as exc:
        event.status = WebhookEvent.Status.FAILED
        event.error_message = str(exc)[:2000]
        logger.warning(
            "Could not apply %s webhook %s (company=%s): %s",
            platform,
            event.topic,
            company.pk,
            exc,
        )
    except Exception as exc:
        event.status = WebhookEvent.Status.FAILED
        event.error_message = str(exc)[:2000]
        logger.exception(
            "Failed to process %s webhook event %s (topic=%s)",
            platform,
            event.pk,
            event.topic,
        )
        raise
    finally:
        event.processing_time_ms = int((time.monotonic() - start) * 1000)
        event.save(
            update_fields=[
                "topic",
                "status",
                "action",
                "error_message",
                "processing_time_ms",
                "updated_at",
            ]
        )
        result_tags = tags + [f"topic:{event.topic}", f"status:{event.status}"]
        if event.status == WebhookEvent.Status.FAILED:
            statsd.increment("fleet_sync.webhook.failed", tags=result_tags)
        else:
            statsd.increment("fleet_sync.webhook.processed", tags=result_tags)
        statsd.histogram(
            "fleet_sync.webhook.processing_time_ms",
            event.processing_time_ms,
            tags=result_tags,
        )

    logger.info(
        "Processed %s webhook %s: %s %s (company=%s)",
        platform,
        event.topic,
        event.status,
        event.action,
        company.pk,
    )
    result.topic = event.topic
    result.status = event.status
    result.action = event.action
    result.event_id = event.pk
    result.error = event.error_message
    return result
