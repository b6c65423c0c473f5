from django.core.serializers.json import DjangoJSONEncoder
from django.db import models

from .status import CanonicalStatus, PlatformKind

DEFAULT_ENDPOINTS = {
    PlatformKind.WOOCOMMERCE.value: {
        "riders_endpoint": "/wp-json/delivery/v1/riders",
        "orders_endpoint": "/wp-json/wc/v3/orders",
        "customers_endpoint": "/wp-json/wc/v3/customers",
    },
    PlatformKind.SHOPIFY.value: {
        "riders_endpoint": "/admin/api/2024-01/delivery_profiles.json",
        "orders_endpoint": "/admin/api/2024-01/orders.json",
        "customers_endpoint": "/admin/api/2024-01/customers.json",
    },
}


class Company(models.Model):
    """Tenant. Owns every other record and authenticates by api key."""

    name = models.CharField(max_length=255)
    api_key = models.CharField(max_length=255, unique=True)
    webhook_secret = models.CharField(max_length=255, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "fleet_company"
        verbose_name_plural = "companies"

    def __str__(self):
        return f"{self.name} (id={self.pk})"


class Integration(models.Model):
    """A company's connection to one external platform."""

    class SyncStatus(models.TextChoices):
        SUCCESS = "success"
        PARTIAL = "partial"
        FAILED = "failed"

    company = models.ForeignKey(
        Company, on_delete=models.CASCADE, related_name="integrations"
    )
    integration_type = models.CharField(max_length=20, choices=PlatformKind.choices)
    name = models.CharField(max_length=255)
    api_url = models.URLField(max_length=500)
    api_key = models.TextField(blank=True, default="")
    api_secret = models.TextField(blank=True, default="")
    webhook_secret = models.CharField(max_length=255, blank=True, default="")
    enforce_webhook_signature = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)
    sync_riders = models.BooleanField(default=True)
    sync_orders = models.BooleanField(default=True)
    sync_customers = models.BooleanField(default=True)
    sync_interval_minutes = models.PositiveIntegerField(default=5)
    riders_endpoint = models.CharField(max_length=500, blank=True, default="")
    orders_endpoint = models.CharField(max_length=500, blank=True, default="")
    customers_endpoint = models.CharField(max_length=500, blank=True, default="")
    last_sync_at = models.DateTimeField(null=True, blank=True)
    last_sync_status = models.CharField(
        max_length=20, choices=SyncStatus.choices, blank=True, default=""
    )
    last_sync_error = models.TextField(null=True, blank=True)
    total_riders_synced = models.PositiveIntegerField(default=0)
    total_orders_synced = models.PositiveIntegerField(default=0)
    total_customers_synced = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "fleet_integration"

    def __str__(self):
        return f"{self.name} [{self.integration_type}] (company={self.company_id})"

    def save(self, *args, **kwargs):
        self.api_url = (self.api_url or "").rstrip("/")
        defaults = DEFAULT_ENDPOINTS.get(str(self.integration_type), {})
        for field, default in defaults.items():
            if not getattr(self, field):
                setattr(self, field, default)
        super().save(*args, **kwargs)

    def endpoint_url(self, kind):
        """Return the absolute URL for an entity kind, or ``""`` if unset."""
        path = getattr(self, f"{kind}_endpoint")
        if not path:
            return ""
        return f"{self.api_url}{path}"


class Customer(models.Model):
    company = models.ForeignKey(
        Company, on_delete=models.CASCADE, related_name="customers"
    )
    external_id = models.CharField(max_length=255, null=True, blank=True)
    external_source = models.CharField(max_length=50, blank=True, default="")
    name = models.CharField(max_length=255)
    phone = models.CharField(max_length=50, null=True, blank=True)
    email = models.CharField(max_length=255, null=True, blank=True)
    address = models.TextField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "fleet_customer"
        indexes = [
            models.Index(
                fields=["company", "phone"], name="fleet_cust_company_phone_idx"
            ),
            models.Index(
                fields=["company", "email"], name="fleet_cust_company_email_idx"
            ),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "external_id"],
                condition=models.Q(external_id__isnull=False),
                name="unique_customer_external_id",
            ),
        ]

    def __str__(self):
        return f"{self.name} (company={self.company_id})"


class Rider(models.Model):
    company = models.ForeignKey(
        Company, on_delete=models.CASCADE, related_name="riders"
    )
    external_id = models.CharField(max_length=255, null=True, blank=True)
    external_source = models.CharField(max_length=50, blank=True, default="")
    name = models.CharField(max_length=255)
    phone = models.CharField(max_length=50, blank=True, default="")
    email = models.CharField(max_length=255, null=True, blank=True)
    vehicle_type = models.CharField(max_length=50, default="motorcycle")
    status = models.CharField(max_length=20, default="offline")
    latitude = models.FloatField(null=True, blank=True)
    longitude = models.FloatField(null=True, blank=True)
    battery_level = models.IntegerField(null=True, blank=True)
    last_seen = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "fleet_rider"
        constraints = [
            models.UniqueConstraint(
                fields=["company", "external_id"],
                condition=models.Q(external_id__isnull=False),
                name="unique_rider_external_id",
            ),
        ]

    def __str__(self):
        return f"{self.name} [{self.status}] (company={self.company_id})"


class Order(models.Model):
    company = models.ForeignKey(
        Company, on_delete=models.CASCADE, related_name="orders"
    )
    external_id = models.CharField(max_length=255, null=True, blank=True)
    external_source = models.CharField(max_length=50, blank=True, default="")
    customer = models.ForeignKey(
        Customer,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="orders",
    )
    rider = models.ForeignKey(
        Rider, on_delete=models.SET_NULL, null=True, blank=True, related_name="orders"
    )
    status = models.CharField(
        max_length=20, choices=CanonicalStatus.choices, default=CanonicalStatus.PENDING
    )
    pickup_address = models.TextField(null=True, blank=True)
    delivery_address = models.TextField(null=True, blank=True)
    items = models.JSONField(default=list, blank=True, encoder=DjangoJSONEncoder)
    total = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    notes = models.TextField(null=True, blank=True)
    payment_status = models.CharField(max_length=20, default="pending")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "fleet_order"
        constraints = [
            models.UniqueConstraint(
                fields=["company", "external_id"],
                condition=models.Q(external_id__isnull=False),
                name="unique_order_external_id",
            ),
        ]

    def __str__(self):
        return f"Order {self.external_id or self.pk} [{self.status}]"


class SyncLog(models.Model):
    """Append-only audit record of one pull sync. Never updated."""

    class SyncType(models.TextChoices):
        FULL = "full"
        SCHEDULED = "scheduled"

    integration = models.ForeignKey(
        Integration, on_delete=models.CASCADE, related_name="sync_logs"
    )
    sync_type = models.CharField(
        max_length=20, choices=SyncType.choices, default=SyncType.FULL
    )
    status = models.CharField(max_length=20, choices=Integration.SyncStatus.choices)
    records_fetched = models.PositiveIntegerField(default=0)
    records_created = models.PositiveIntegerField(default=0)
    records_updated = models.PositiveIntegerField(default=0)
    records_failed = models.PositiveIntegerField(default=0)
    error_message = models.TextField(null=True, blank=True)
    duration_ms = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "fleet_integration_sync_log"
        indexes = [
            models.Index(
                fields=["integration", "created_at"],
                name="fleet_synclog_int_created_idx",
            ),
        ]

    def __str__(self):
        return (
            f"{self.sync_type} sync [{self.status}] "
            f"(integration={self.integration_id})"
        )

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("SyncLog rows are append-only")
        super().save(*args, **kwargs)


class WebhookEvent(models.Model):
    """Audit log of inbound webhook deliveries that passed authentication."""

    class Status(models.TextChoices):
        RECEIVED = "received"
        SUCCESS = "success"
        FAILED = "failed"
        IGNORED = "ignored"

    company = models.ForeignKey(
        Company, on_delete=models.CASCADE, related_name="webhook_events"
    )
    platform = models.CharField(max_length=20)
    topic = models.CharField(max_length=100, blank=True, default="")
    delivery_id = models.CharField(max_length=255, blank=True, default="")
    source_domain = models.CharField(max_length=255, blank=True, default="")
    signature_valid = models.BooleanField(null=True)
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.RECEIVED
    )
    action = models.CharField(max_length=20, blank=True, default="")
    payload_hash = models.CharField(max_length=64)
    error_message = models.TextField(blank=True, default="")
    processing_time_ms = models.IntegerField(null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "fleet_webhook_event"
        indexes = [
            models.Index(
                fields=["company", "platform", "created_at"],
                name="fleet_webhook_co_plat_idx",
            ),
        ]

    def __str__(self):
        return f"{self.platform} {self.topic} [{self.status}]"
