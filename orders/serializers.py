from rest_framework import serializers

from common.utils import PHONE_RE
from .models import Order, OrderItem, OrderStatusHistory


class OrderItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderItem
        fields = ["id", "product", "name", "image", "quantity", "price", "discount", "final_price", "subtotal"]
        read_only_fields = fields


class StatusHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderStatusHistory
        fields = ["status", "note", "timestamp"]
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    customer_name = serializers.CharField(source="user.name", read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "customer_name",
            "total_items",
            "total_amount",
            "payment_method",
            "payment_status",
            "status",
            "created_at",
        ]
        read_only_fields = fields


class OrderDetailSerializer(serializers.ModelSerializer):
    """Full order: snapshot lines, totals, history and invoice reference."""

    items = OrderItemSerializer(many=True, read_only=True)
    status_history = StatusHistorySerializer(many=True, read_only=True)
    customer_name = serializers.CharField(source="user.name", read_only=True)
    customer_email = serializers.EmailField(source="user.email", read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "customer_name",
            "customer_email",
            "customer",
            "shipping_address",
            "items",
            "total_items",
            "subtotal",
            "discount",
            "shipping_charges",
            "tax",
            "total_amount",
            "payment_method",
            "payment_status",
            "status",
            "status_history",
            "notes",
            "cancel_reason",
            "invoice_url",
            "invoice_number",
            "delivered_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ShippingAddressSerializer(serializers.Serializer):
    full_name = serializers.CharField(max_length=255)
    phone = serializers.CharField(max_length=10)
    address_line1 = serializers.CharField(max_length=255)
    address_line2 = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    city = serializers.CharField(max_length=100)
    state = serializers.CharField(max_length=100)
    pincode = serializers.CharField(max_length=10)
    country = serializers.CharField(max_length=100, required=False, default="India")

    def validate_phone(self, value):
        if not PHONE_RE.match(value):
            raise serializers.ValidationError("Enter a valid 10-digit phone number.")
        return value


class PlaceOrderSerializer(serializers.Serializer):
    """Either an inline shipping address or one of the caller's saved addresses."""

    shipping_address = ShippingAddressSerializer(required=False)
    address_id = serializers.IntegerField(required=False)
    customer_id = serializers.IntegerField(required=False)
    notes = serializers.CharField(max_length=1000, required=False, allow_blank=True, default="")

    def validate(self, attrs):
        if not attrs.get("shipping_address") and not attrs.get("address_id"):
            raise serializers.ValidationError(
                {"shipping_address": "Provide a shipping address or address_id."}
            )
        return attrs


class StatusUpdateSerializer(serializers.Serializer):
    # Membership is checked by the service so the failure carries InvalidStatus.
    status = serializers.CharField(max_length=20)
    note = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")

    def validate_status(self, value):
        return value.strip().upper()


class CancelSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=500)

