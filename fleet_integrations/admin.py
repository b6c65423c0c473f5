from django.contrib import admin

from .models import Company, Integration, SyncLog, WebhookEvent


@admin.register(Company)
class CompanyAdmin(admin.ModelAdmin):
    list_display = ("name", "created_at")
    search_fields = ("name",)
    readonly_fields = ("created_at",)


@admin.register(Integration)
class IntegrationAdmin(admin.ModelAdmin):
    list_display = (
        "name",
        "company",
        "integration_type",
        "is_active",
        "last_sync_status",
        "last_sync_at",
        "total_riders_synced",
        "total_orders_synced",
        "total_customers_synced",
    )
    list_filter = (
        "integration_type",
        "is_active",
        "last_sync_status",
        "enforce_webhook_signature",
    )
    search_fields = (
        "name",
        "api_url",
        "company__name",
    )
    raw_id_fields = ("company",)
    readonly_fields = (
        "last_sync_at",
        "last_sync_status",
        "last_sync_error",
        "total_riders_synced",
        "total_orders_synced",
        "total_customers_synced",
        "created_at",
        "updated_at",
    )


@admin.register(SyncLog)
class SyncLogAdmin(admin.ModelAdmin):
    list_display = (
        "integration",
        "sync_type",
        "status",
        "records_fetched",
        "records_created",
        "records_updated",
        "records_failed",
        "duration_ms",
        "created_at",
    )
    list_filter = (
        "status",
        "sync_type",
    )
    raw_id_fields = ("integration",)
    date_hierarchy = "created_at"
    ordering = ("-created_at",)

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    list_display = (
        "delivery_id",
        "platform",
        "topic",
        "company",
        "status",
        "action",
        "signature_valid",
        "processing_time_ms",
        "created_at",
    )
    list_filter = (
        "platform",
        "status",
        "topic",
    )
    search_fields = (
        "delivery_id",
        "source_domain",
    )
    raw_id_fields = ("company",)
    readonly_fields = ("payload_hash", "processing_time_ms")
    date_hierarchy = "created_at"
    ordering = ("-created_at",)
