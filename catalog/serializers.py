from rest_framework import serializers

from .models import Product


class ProductSerializer(serializers.ModelSerializer):
    """Staff view of a product. final_price and slug are derived."""

    images = serializers.ListField(child=serializers.URLField(), required=False)
    specifications = serializers.DictField(child=serializers.CharField(), required=False)

    class Meta:
        model = Product
        fields = [
            "id",
            "name",
            "slug",
            "description",
            "price",
            "discount",
            "final_price",
            "stock",
            "category",
            "images",
            "brand",
            "specifications",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "slug", "final_price", "created_at", "updated_at"]


class PublicProductSerializer(serializers.ModelSerializer):
    in_stock = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = [
            "id",
            "name",
            "slug",
            "description",
            "price",
            "discount",
            "final_price",
            "in_stock",
            "stock",
            "category",
            "images",
            "brand",
            "specifications",
        ]
        read_only_fields = fields

    def get_in_stock(self, obj):
        return obj.stock > 0
