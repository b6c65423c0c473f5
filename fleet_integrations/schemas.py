"""Payload shapes accepted from external platforms.

One serializer per platform shape. Payloads are validated here, at the
boundary, before any transform runs; a shape mismatch becomes a
:class:`~.exceptions.RecordResolutionError` for that one record.
Unknown keys are ignored.
"""

from rest_framework import serializers

from .exceptions import RecordResolutionError


def _text(**kwargs):
    """Optional free-text field that tolerates null and blank values."""
    kwargs.setdefault("required", False)
    return serializers.CharField(allow_blank=True, allow_null=True, **kwargs)


def _coordinate():
    return serializers.FloatField(required=False, allow_null=True)


# ---------------------------------------------------------------------------
# WooCommerce
# ---------------------------------------------------------------------------


class WooAddressSerializer(serializers.Serializer):
    first_name = _text()
    last_name = _text()
    email = _text()
    phone = _text()
    address_1 = _text()
    address_2 = _text()
    city = _text()
    state = _text()
    postcode = _text()
    country = _text()


class WooLineItemSerializer(serializers.Serializer):
    name = _text()
    quantity = serializers.IntegerField(default=1)
    total = _text()
    sku = _text()


class WooCommerceOrderSerializer(serializers.Serializer):
    id = serializers.CharField()
    status = _text()
    total = _text()
    customer_note = _text()
    payment_method = _text()
    billing = WooAddressSerializer(required=False, allow_null=True)
    shipping = WooAddressSerializer(required=False, allow_null=True)
    line_items = WooLineItemSerializer(many=True, required=False)


# ---------------------------------------------------------------------------
# Shopify
# ---------------------------------------------------------------------------


class ShopifyAddressSerializer(serializers.Serializer):
    first_name = _text()
    last_name = _text()
    address1 = _text()
    address2 = _text()
    city = _text()
    province = _text()
    country = _text()
    zip = _text()
    phone = _text()


class ShopifyLineItemSerializer(serializers.Serializer):
    name = _text()
    quantity = serializers.IntegerField(default=1)
    price = _text()
    sku = _text()


class ShopifyOrderSerializer(serializers.Serializer):
    id = serializers.CharField()
    order_number = _text()
    email = _text()
    phone = _text()
    total_price = _text()
    currency = _text()
    financial_status = _text()
    fulfillment_status = _text()
    cancelled_at = _text()
    note = _text()
    shipping_address = ShopifyAddressSerializer(required=False, allow_null=True)
    billing_address = ShopifyAddressSerializer(required=False, allow_null=True)
    line_items = ShopifyLineItemSerializer(many=True, required=False)


# ---------------------------------------------------------------------------
# Generic webhook events
# ---------------------------------------------------------------------------


class GenericEventSerializer(serializers.Serializer):
    event = serializers.CharField()
    data = serializers.DictField(default=dict)


class GenericOrderSerializer(serializers.Serializer):
    external_id = serializers.CharField()
    status = _text()
    customer_name = _text()
    customer_phone = _text()
    customer_email = _text()
    pickup_address = _text()
    delivery_address = _text()
    items = serializers.JSONField(required=False)
    total = _text()
    notes = _text()


class _OrderReferenceSerializer(serializers.Serializer):
    order_id = serializers.IntegerField(required=False, allow_null=True)
    external_order_id = _text()

    def validate(self, attrs):
        if not attrs.get("order_id") and not attrs.get("external_order_id"):
            raise serializers.ValidationError(
                "order_id or external_order_id is required"
            )
        return attrs


class _RiderReferenceSerializer(serializers.Serializer):
    rider_id = serializers.IntegerField(required=False, allow_null=True)
    external_rider_id = _text()

    def validate(self, attrs):
        if not attrs.get("rider_id") and not attrs.get("external_rider_id"):
            raise serializers.ValidationError(
                "rider_id or external_rider_id is required"
            )
        return attrs


class GenericOrderStatusSerializer(_OrderReferenceSerializer):
    status = serializers.CharField()


class GenericRiderStatusSerializer(_RiderReferenceSerializer):
    status = serializers.CharField()


class GenericRiderLocationSerializer(_RiderReferenceSerializer):
    latitude = serializers.FloatField()
    longitude = serializers.FloatField()
    battery_level = serializers.IntegerField(required=False, allow_null=True)


# ---------------------------------------------------------------------------
# Pull sync collections
# ---------------------------------------------------------------------------


class ExternalRiderSerializer(serializers.Serializer):
    id = _text()
    name = serializers.CharField()
    phone = _text()
    email = _text()
    vehicle_type = _text()
    status = _text()
    latitude = _coordinate()
    longitude = _coordinate()

    def validate(self, attrs):
        if not attrs.get("id") and not attrs.get("phone"):
            raise serializers.ValidationError("id or phone is required")
        return attrs


class ExternalOrderSerializer(serializers.Serializer):
    id = serializers.CharField()
    status = _text()
    customer_name = _text()
    customer_phone = _text()
    customer_email = _text()
    delivery_address = _text()
    pickup_address = _text()
    total = _text()
    currency = _text()
    items = serializers.JSONField(required=False)
    notes = _text()


class ExternalBillingSerializer(serializers.Serializer):
    first_name = _text()
    last_name = _text()
    phone = _text()
    email = _text()
    address_1 = _text()
    city = _text()
    country = _text()


class ExternalCustomerSerializer(serializers.Serializer):
    id = serializers.CharField()
    name = _text()
    first_name = _text()
    last_name = _text()
    phone = _text()
    email = _text()
    address = _text()
    billing = ExternalBillingSerializer(required=False, allow_null=True)


def validate_payload(serializer_class, data, kind):
    """Validate ``data`` against ``serializer_class``.

    Returns the validated dict. Raises :class:`RecordResolutionError`
    carrying whatever identifier the raw payload had.
    """
    if not isinstance(data, dict):
        raise RecordResolutionError(
            kind, None, f"Expected an object, got {type(data).__name__}"
        )
    serializer = serializer_class(data=data)
    if not serializer.is_valid():
        raise RecordResolutionError(
            kind,
            data.get("id") or data.get("external_id"),
            f"Invalid {kind} payload: {dict(serializer.errors)}",
        )
    return serializer.validated_data
