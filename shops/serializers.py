"""Serializers for the shop (tenant) record."""
from rest_framework import serializers

from .models import Shop


class ShopSerializer(serializers.ModelSerializer):
    owner_name = serializers.CharField(source="owner.name", read_only=True, default="")
    owner_email = serializers.EmailField(source="owner.email", read_only=True, default="")

    class Meta:
        model = Shop
        fields = [
            "id",
            "name",
            "slug",
            "owner",
            "owner_name",
            "owner_email",
            "plan",
            "inventory_enabled",
            "orders_enabled",
            "customers_enabled",
            "is_active",
            "email",
            "phone",
            "street",
            "city",
            "state",
            "pincode",
            "country",
            "gst_number",
            "is_gst_registered",
            "agreed_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ShopUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = Shop
        fields = [
            "name",
            "email",
            "phone",
            "street",
            "city",
            "state",
            "pincode",
            "country",
            "gst_number",
            "is_gst_registered",
        ]


class ShopSettingsSerializer(serializers.ModelSerializer):
    class Meta:
        model = Shop
        fields = ["plan", "is_active", "inventory_enabled", "orders_enabled", "customers_enabled"]
        read_only_fields = ["plan", "is_active"]


class PublicShopSerializer(serializers.ModelSerializer):
    class Meta:
        model = Shop
        fields = [
            "name",
            "slug",
            "plan",
            "is_active",
            "email",
            "phone",
            "street",
            "city",
            "state",
            "pincode",
            "country",
            "inventory_enabled",
            "orders_enabled",
            "customers_enabled",
        ]
        read_only_fields = fields
