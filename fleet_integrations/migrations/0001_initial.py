# Generated manually for fleet_integrations app

import django.core.serializers.json
import django.db.models.deletion
from django.db import migrations, models


def _id_field():
    return models.AutoField(
        auto_created=True,
        primary_key=True,
        serialize=False,
        verbose_name="ID",
    )


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Company",
            fields=[
                ("id", _id_field()),
                ("name", models.CharField(max_length=255)),
                ("api_key", models.CharField(max_length=255, unique=True)),
                (
                    "webhook_secret",
                    models.CharField(blank=True, default="", max_length=255),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "db_table": "fleet_company",
                "verbose_name_plural": "companies",
            },
        ),
        migrations.CreateModel(
            name="Integration",
            fields=[
                ("id", _id_field()),
                (
                    "integration_type",
                    models.CharField(
                        choices=[
                            ("woocommerce", "Woocommerce"),
                            ("shopify", "Shopify"),
                            ("wordpress", "Wordpress"),
                            ("custom", "Custom"),
                        ],
                        max_length=20,
                    ),
                ),
                ("name", models.CharField(max_length=255)),
                ("api_url", models.URLField(max_length=500)),
                ("api_key", models.TextField(blank=True, default="")),
                ("api_secret", models.TextField(blank=True, default="")),
                (
                    "webhook_secret",
                    models.CharField(blank=True, default="", max_length=255),
                ),
                ("enforce_webhook_signature", models.BooleanField(default=False)),
                ("is_active", models.BooleanField(default=True)),
                ("sync_riders", models.BooleanField(default=True)),
                ("sync_orders", models.BooleanField(default=True)),
                ("sync_customers", models.BooleanField(default=True)),
                ("sync_interval_minutes", models.PositiveIntegerField(default=5)),
                (
                    "riders_endpoint",
                    models.CharField(blank=True, default="", max_length=500),
                ),
                (
                    "orders_endpoint",
                    models.CharField(blank=True, default="", max_length=500),
                ),
                (
                    "customers_endpoint",
                    models.CharField(blank=True, default="", max_length=500),
                ),
                ("last_sync_at", models.DateTimeField(blank=True, null=True)),
                (
                    "last_sync_status",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("success", "Success"),
                            ("partial", "Partial"),
                            ("failed", "Failed"),
                        ],
                        default="",
                        max_length=20,
                    ),
                ),
                ("last_sync_error", models.TextField(blank=True, null=True)),
                ("total_riders_synced", models.PositiveIntegerField(default=0)),
                ("total_orders_synced", models.PositiveIntegerField(default=0)),
                ("total_customers_synced", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "company",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="integrations",
                        to="fleet_integrations.company",
                    ),
                ),
            ],
            options={
                "db_table": "fleet_integration",
            },
        ),
        migrations.CreateModel(
            name="Customer",
            fields=[
                ("id", _id_field()),
                (
                    "external_id",
                    models.CharField(blank=True, max_length=255, null=True),
                ),
                (
                    "external_source",
                    models.CharField(blank=True, default="", max_length=50),
                ),
                ("name", models.CharField(max_length=255)),
                ("phone", models.CharField(blank=True, max_length=50, null=True)),
                ("email", models.CharField(blank=True, max_length=255, null=True)),
                ("address", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "company",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="customers",
                        to="fleet_integrations.company",
                    ),
                ),
            ],
            options={
                "db_table": "fleet_customer",
                "indexes": [
                    models.Index(
                        fields=["company", "phone"],
                        name="fleet_cust_company_phone_idx",
                    ),
                    models.Index(
                        fields=["company", "email"],
                        name="fleet_cust_company_email_idx",
                    ),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(external_id__isnull=False),
                        fields=("company", "external_id"),
                        name="unique_customer_external_id",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Rider",
            fields=[
                ("id", _id_field()),
                (
                    "external_id",
                    models.CharField(blank=True, max_length=255, null=True),
                ),
                (
                    "external_source",
                    models.CharField(blank=True, default="", max_length=50),
                ),
                ("name", models.CharField(max_length=255)),
                ("phone", models.CharField(blank=True, default="", max_length=50)),
                ("email", models.CharField(blank=True, max_length=255, null=True)),
                (
                    "vehicle_type",
                    models.CharField(default="motorcycle", max_length=50),
                ),
                ("status", models.CharField(default="offline", max_length=20)),
                ("latitude", models.FloatField(blank=True, null=True)),
                ("longitude", models.FloatField(blank=True, null=True)),
                ("battery_level", models.IntegerField(blank=True, null=True)),
                ("last_seen", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "company",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="riders",
                        to="fleet_integrations.company",
                    ),
                ),
            ],
            options={
                "db_table": "fleet_rider",
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(external_id__isnull=False),
                        fields=("company", "external_id"),
                        name="unique_rider_external_id",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Order",
            fields=[
                ("id", _id_field()),
                (
                    "external_id",
                    models.CharField(blank=True, max_length=255, null=True),
                ),
                (
                    "external_source",
                    models.CharField(blank=True, default="", max_length=50),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("assigned", "Assigned"),
                            ("picked_up", "Picked Up"),
                            ("in_transit", "In Transit"),
                            ("delivered", "Delivered"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("pickup_address", models.TextField(blank=True, null=True)),
                ("delivery_address", models.TextField(blank=True, null=True)),
                (
                    "items",
                    models.JSONField(
                        blank=True,
                        default=list,
                        encoder=django.core.serializers.json.DjangoJSONEncoder,
                    ),
                ),
                (
                    "total",
                    models.DecimalField(decimal_places=2, default=0, max_digits=12),
                ),
                ("notes", models.TextField(blank=True, null=True)),
                (
                    "payment_status",
                    models.CharField(default="pending", max_length=20),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "company",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="orders",
                        to="fleet_integrations.company",
                    ),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="orders",
                        to="fleet_integrations.customer",
                    ),
                ),
                (
                    "rider",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="orders",
                        to="fleet_integrations.rider",
                    ),
                ),
            ],
            options={
                "db_table": "fleet_order",
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(external_id__isnull=False),
                        fields=("company", "external_id"),
                        name="unique_order_external_id",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="SyncLog",
            fields=[
                ("id", _id_field()),
                (
                    "sync_type",
                    models.CharField(
                        choices=[("full", "Full"), ("scheduled", "Scheduled")],
                        default="full",
                        max_length=20,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("success", "Success"),
                            ("partial", "Partial"),
                            ("failed", "Failed"),
                        ],
                        max_length=20,
                    ),
                ),
                ("records_fetched", models.PositiveIntegerField(default=0)),
                ("records_created", models.PositiveIntegerField(default=0)),
                ("records_updated", models.PositiveIntegerField(default=0)),
                ("records_failed", models.PositiveIntegerField(default=0)),
                ("error_message", models.TextField(blank=True, null=True)),
                ("duration_ms", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "integration",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="sync_logs",
                        to="fleet_integrations.integration",
                    ),
                ),
            ],
            options={
                "db_table": "fleet_integration_sync_log",
                "indexes": [
                    models.Index(
                        fields=["integration", "created_at"],
                        name="fleet_synclog_int_created_idx",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="WebhookEvent",
            fields=[
                ("id", _id_field()),
                ("platform", models.CharField(max_length=20)),
                ("topic", models.CharField(blank=True, default="", max_length=100)),
                (
                    "delivery_id",
                    models.CharField(blank=True, default="", max_length=255),
                ),
                (
                    "source_domain",
                    models.CharField(blank=True, default="", max_length=255),
                ),
                ("signature_valid", models.BooleanField(null=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("received", "Received"),
                            ("success", "Success"),
                            ("failed", "Failed"),
                            ("ignored", "Ignored"),
                        ],
                        default="received",
                        max_length=20,
                    ),
                ),
                ("action", models.CharField(blank=True, default="", max_length=20)),
                ("payload_hash", models.CharField(max_length=64)),
                ("error_message", models.TextField(blank=True, default="")),
                ("processing_time_ms", models.IntegerField(null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "company",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="webhook_events",
                        to="fleet_integrations.company",
                    ),
                ),
            ],
            options={
                "db_table": "fleet_webhook_event",
                "indexes": [
                    models.Index(
                        fields=["company", "platform", "created_at"],
                        name="fleet_webhook_co_plat_idx",
                    ),
                ],
            },
        ),
    ]
