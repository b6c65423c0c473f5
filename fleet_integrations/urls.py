from django.urls import path

from .views import (
    GenericWebhookView,
    IntegrationSyncView,
    ShopifyWebhookView,
    WooCommerceWebhookView,
)

urlpatterns = [
    path(
        "webhooks/woocommerce/",
        WooCommerceWebhookView.as_view(),
        name="woocommerce_webhook",
    ),
    path(
        "webhooks/shopify/",
        ShopifyWebhookView.as_view(),
        name="shopify_webhook",
    ),
    path(
        "webhooks/generic/",
        GenericWebhookView.as_view(),
        name="generic_webhook",
    ),
    path(
        "integrations/<int:pk>/sync/",
        IntegrationSyncView.as_view(),
        name="integration_sync",
    ),
]
