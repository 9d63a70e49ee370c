from rest_framework import serializers

from common.utils import PHONE_RE
from .models import Customer


class CustomerSerializer(serializers.ModelSerializer):
    class Meta:
        model = Customer
        fields = [
            "id",
            "name",
            "phone",
            "email",
            "address_line1",
            "address_line2",
            "city",
            "state",
            "pincode",
            "country",
            "notes",
            "is_active",
            "total_orders",
            "total_spent",
            "last_order_at",
            "created_at",
        ]
        read_only_fields = ["id", "total_orders", "total_spent", "last_order_at", "created_at"]
        # (shop, phone) uniqueness is checked by the service, within the caller's shop.
        validators = []

    def validate_phone(self, value):
        if not PHONE_RE.match(value):
            raise serializers.ValidationError("Enter a valid 10-digit phone number.")
        return value
