import logging

from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from .exceptions import IntegrationInactiveError, SignatureMismatch, UnauthorizedError
from .models import Integration
from .router import get_platform
from .services.ingestion import handle_webhook, resolve_company
from .services.pull_sync import sync_integration

logger = logging.getLogger(__name__)


def get_api_key(request, allow_header=True):
    """Read the company api key from ``Authorization: Bearer`` or ``x-api-key``."""
    authorization = request.META.get("HTTP_AUTHORIZATION", "")
    if authorization.startswith("Bearer "):
        return authorization[len("Bearer "):].strip()
    if allow_header:
        return request.META.get("HTTP_X_API_KEY", "").strip()
    return ""


class BaseWebhookView(APIView):
    """Base view for the per-platform webhook endpoints.

    Authenticates by company api key, then hands the raw body to
    :func:`~.services.ingestion.handle_webhook`. Any authenticated
    delivery gets a 200, whatever happened to the record itself.
    Concrete subclasses set ``platform`` and the ``docs`` served on GET.
    """

    authentication_classes = []
    permission_classes = [AllowAny]
    platform = None
    docs = {}
    headers_optional = []

    def post(self, request):
        descriptor = get_platform(self.platform)
        meta = request.META
        raw_body = request.body
        try:
            result = handle_webhook(
                get_api_key(request),
                meta.get(descriptor.signature_header, ""),
                raw_body,
                meta.get(descriptor.topic_header or "", ""),
                platform=self.platform,
                delivery_id=meta.get(descriptor.delivery_id_header or "", ""),
                source_domain=meta.get(descriptor.source_header or "", ""),
            )
        except UnauthorizedError as exc:
            return Response({"error": str(exc)}, status=status.HTTP_401_UNAUTHORIZED)
        except SignatureMismatch as exc:
            return Response({"error": str(exc)}, status=status.HTTP_401_UNAUTHORIZED)
        except Exception:
            logger.exception("Failed to process %s webhook", self.platform)
            return Response(
                {"error": f"Failed to process {self.platform} webhook"},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )
        return Response(result.to_dict(), status=status.HTTP_200_OK)

    def get(self, request):
        descriptor = get_platform(self.platform)
        return Response(
            {
                **self.docs,
                "supported_topics": sorted(descriptor.topics),
                "headers_required": ["x-api-key: Your Fleet Management API key"],
                "headers_optional": self.headers_optional,
            }
        )


class WooCommerceWebhookView(BaseWebhookView):
    """Handles order.created, order.updated and order.deleted."""

    platform = "woocommerce"
    docs = {
        "name": "WooCommerce Webhook Endpoint",
        "version": "1.0",
        "description": "Receives order webhooks from WooCommerce/WordPress sites",
    }
    headers_optional = [
        "x-wc-webhook-signature: WooCommerce signature (auto-sent)",
        "x-wc-webhook-topic: Event type (auto-sent)",
    ]


class ShopifyWebhookView(BaseWebhookView):
    """Handles the orders/* topics."""

    platform = "shopify"
    docs = {
        "name": "Shopify Webhook Endpoint",
        "version": "1.0",
        "description": "Receives order webhooks from Shopify stores",
    }
    headers_optional = [
        "x-shopify-hmac-sha256: Shopify signature (auto-sent)",
        "x-shopify-topic: Event type (auto-sent)",
        "x-shopify-shop-domain: Store domain (auto-sent)",
    ]


class GenericWebhookView(BaseWebhookView):
    """Handles ``{"event": ..., "data": ...}`` deliveries from any system."""

    platform = "generic"
    docs = {
        "name": "Generic Webhook Endpoint",
        "version": "1.0",
        "description": "Receives order and rider events from custom systems",
    }
    headers_optional = [
        "x-webhook-signature: sha256=<hex HMAC-SHA256 of the body>",
    ]


class IntegrationSyncView(APIView):
    """Run a pull sync for one of the calling company's integrations.

    Authenticated with the company api key as a bearer token.
    """

    authentication_classes = []
    permission_classes = [AllowAny]

    def post(self, request, pk):
        try:
            company = resolve_company(get_api_key(request, allow_header=False))
        except UnauthorizedError as exc:
            return Response(
                {"success": False, "error": str(exc)},
                status=status.HTTP_401_UNAUTHORIZED,
            )

        try:
            integration = Integration.objects.select_related("company").get(
                pk=pk, company=company
            )
        except Integration.DoesNotExist:
            return Response(
                {"success": False, "error": "Integration not found"},
                status=status.HTTP_404_NOT_FOUND,
            )

        try:
            result = sync_integration(integration)
        except IntegrationInactiveError:
            return Response(
                {"success": False, "error": "Integration is not active"},
                status=status.HTTP_400_BAD_REQUEST,
            )
        except Exception:
            logger.exception("Integration sync error (integration=%s)", integration.pk)
            return Response(
                {"success": False, "error": "Internal server error"},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        body = {
            "success": True,
            "message": f"Sync completed in {result.duration_ms}ms",
            "status": result.status,
            "results": result.to_dict(),
        }
        if result.errors:
            body["errors"] = result.errors
        return Response(body, status=status.HTTP_200_OK)
