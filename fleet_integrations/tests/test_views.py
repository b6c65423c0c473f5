"""Tests for the webhook and sync HTTP endpoints."""

import base64
import hashlib
import hmac as hmac_mod
import json

import pytest
from rest_framework.test import APIClient

from fleet_integrations.models import Order, SyncLog, WebhookEvent
from fleet_integrations.tests.conftest import make_response
from fleet_integrations.tests.factories import make_company, make_integration

pytestmark = pytest.mark.django_db

WOO_URL = "/webhooks/woocommerce/"
SHOPIFY_URL = "/webhooks/shopify/"
GENERIC_URL = "/webhooks/generic/"

WOO_ORDER = {
    "id": 501,
    "status": "processing",
    "billing": {"first_name": "Ann", "last_name": "Lee", "email": "ann@x.com"},
    "total": "19.98",
}


def _hmac_header(body: bytes, secret: str = "whsec_test") -> str:
    return base64.b64encode(
        hmac_mod.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    ).decode("utf-8")


@pytest.fixture(autouse=True)
def mock_statsd(mocker):
    mocker.patch("fleet_integrations.services.ingestion.statsd")
    mocker.patch("fleet_integrations.services.telemetry.statsd")


@pytest.fixture
def client():
    return APIClient()


def _post_woo(client, payload, api_key, topic="order.created", **headers):
    body = json.dumps(payload).encode("utf-8")
    return client.post(
        WOO_URL,
        data=body,
        content_type="application/json",
        HTTP_X_API_KEY=api_key,
        HTTP_X_WC_WEBHOOK_TOPIC=topic,
        HTTP_X_WC_WEBHOOK_SIGNATURE=_hmac_header(body),
        **headers,
    )


class TestWebhookViewSecurity:
    def test_missing_api_key_returns_401(self, client):
        response = client.post(
            WOO_URL, data=b"{}", content_type="application/json"
        )
        assert response.status_code == 401
        assert "error" in response.json()

    def test_invalid_api_key_returns_401(self, client, company):
        response = _post_woo(client, WOO_ORDER, "wrong-key")
        assert response.status_code == 401
        assert response.json() == {"error": "Invalid API key"}
        assert not WebhookEvent.objects.exists()

    def test_bad_signature_still_200_by_default(self, client, company):
        body = json.dumps(WOO_ORDER).encode("utf-8")
        response = client.post(
            WOO_URL,
            data=body,
            content_type="application/json",
            HTTP_X_API_KEY=company.api_key,
            HTTP_X_WC_WEBHOOK_TOPIC="order.created",
            HTTP_X_WC_WEBHOOK_SIGNATURE="forged",
        )
        assert response.status_code == 200
        assert Order.objects.filter(company=company).count() == 1

    def test_bad_signature_401_in_strict_mode(self, client, company, settings):
        settings.FLEET_SYNC_STRICT_SIGNATURES = True
        body = json.dumps(WOO_ORDER).encode("utf-8")
        response = client.post(
            WOO_URL,
            data=body,
            content_type="application/json",
            HTTP_X_API_KEY=company.api_key,
            HTTP_X_WC_WEBHOOK_TOPIC="order.created",
            HTTP_X_WC_WEBHOOK_SIGNATURE="forged",
        )
        assert response.status_code == 401

    def test_bearer_api_key_accepted(self, client, company):
        body = json.dumps({"id": 5, "email": "a@b.c"}).encode("utf-8")
        response = client.post(
            SHOPIFY_URL,
            data=body,
            content_type="application/json",
            HTTP_AUTHORIZATION=f"Bearer {company.api_key}",
            HTTP_X_SHOPIFY_TOPIC="orders/create",
            HTTP_X_SHOPIFY_HMAC_SHA256=_hmac_header(body),
            HTTP_X_SHOPIFY_SHOP_DOMAIN="test-shop.myshopify.com",
            HTTP_X_SHOPIFY_WEBHOOK_ID="wh_1",
        )
        assert response.status_code == 200
        event = WebhookEvent.objects.get()
        assert event.source_domain == "test-shop.myshopify.com"
        assert event.delivery_id == "wh_1"


class TestWebhookViewProcessing:
    def test_created(self, client, company):
        response = _post_woo(client, WOO_ORDER, company.api_key)
        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "WooCommerce webhook processed: order.created",
            "company": company.name,
        }
        assert Order.objects.get(company=company).external_id == "woo_501"

    def test_bad_payload_still_200(self, client, company):
        response = _post_woo(client, {"no": "id"}, company.api_key)
        assert response.status_code == 200
        assert WebhookEvent.objects.get().status == WebhookEvent.Status.FAILED

    def test_unexpected_error_returns_500(self, client, company, mocker):
        mocker.patch(
            "fleet_integrations.services.ingestion.IdentityResolver.upsert_order",
            side_effect=RuntimeError("boom"),
        )
        response = _post_woo(client, WOO_ORDER, company.api_key)
        assert response.status_code == 500
        assert response.json() == {"error": "Failed to process woocommerce webhook"}

    def test_generic_accepts_unsigned(self, client, company):
        response = client.post(
            GENERIC_URL,
            data=json.dumps({"event": "order.created", "data": {"external_id": "g-1"}}),
            content_type="application/json",
            HTTP_X_API_KEY=company.api_key,
        )
        assert response.status_code == 200
        assert Order.objects.filter(company=company, external_id="g-1").exists()

    def test_generic_rejects_bad_signature(self, client, company):
        response = client.post(
            GENERIC_URL,
            data=json.dumps({"event": "order.created", "data": {"external_id": "g-1"}}),
            content_type="application/json",
            HTTP_X_API_KEY=company.api_key,
            HTTP_X_WEBHOOK_SIGNATURE="sha256=deadbeef",
        )
        assert response.status_code == 401
        assert not Order.objects.exists()


class TestWebhookDocs:
    @pytest.mark.parametrize(
        "url,topic",
        [
            (WOO_URL, "order.deleted"),
            (SHOPIFY_URL, "orders/fulfilled"),
            (GENERIC_URL, "rider.location_updated"),
        ],
    )
    def test_get_lists_topics(self, client, url, topic):
        response = client.get(url)
        assert response.status_code == 200
        body = response.json()
        assert topic in body["supported_topics"]
        assert body["headers_required"]


class TestIntegrationSyncView:
    def _url(self, integration):
        return f"/integrations/{integration.pk}/sync/"

    def _auth(self, company):
        return {"HTTP_AUTHORIZATION": f"Bearer {company.api_key}"}

    def test_requires_bearer(self, client, integration):
        response = client.post(
            self._url(integration), HTTP_X_API_KEY=integration.company.api_key
        )
        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_other_company_gets_404(self, client, integration):
        other = make_company()
        response = client.post(self._url(integration), **self._auth(other))
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Integration not found"}

    def test_inactive_returns_400(self, client, company):
        integration = make_integration(company=company, is_active=False)
        response = client.post(self._url(integration), **self._auth(company))
        assert response.status_code == 400
        assert response.json()["error"] == "Integration is not active"
        assert not SyncLog.objects.exists()

    def test_partial_sync(self, client, integration, mocker):
        session = mocker.MagicMock()
        responses = {
            "/api/riders": make_response(
                json_data={"data": [{"id": "r1", "name": "Sam", "phone": "555-2222"}]}
            ),
            "/api/orders": make_response(503, reason="Service Unavailable"),
            "/api/customers": make_response(json_data=[]),
        }
        session.get.side_effect = lambda url, **kwargs: next(
            response for path, response in responses.items() if url.endswith(path)
        )
        mocker.patch(
            "fleet_integrations.services.pull_sync.requests.Session",
            return_value=session,
        )

        response = client.post(self._url(integration), **self._auth(integration.company))

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["status"] == "partial"
        assert body["results"]["riders"] == {
            "fetched": 1,
            "created": 1,
            "updated": 0,
            "failed": 0,
        }
        assert body["errors"] == ["Orders sync failed: 503 Service Unavailable"]
        assert body["message"].startswith("Sync completed in ")
        assert SyncLog.objects.get(integration=integration).status == "partial"

    def test_success_has_no_errors_key(self, client, integration, mocker):
        session = mocker.MagicMock()
        session.get.return_value = make_response(json_data=[])
        mocker.patch(
            "fleet_integrations.services.pull_sync.requests.Session",
            return_value=session,
        )
        response = client.post(self._url(integration), **self._auth(integration.company))
        assert response.status_code == 200
        assert "errors" not in response.json()
