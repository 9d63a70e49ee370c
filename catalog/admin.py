from django.contrib import admin

from .models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ["name", "shop", "category", "price", "discount", "final_price", "stock", "is_active", "is_deleted"]
    list_filter = ["category", "is_active", "is_deleted"]
    search_fields = ["name", "slug", "brand", "shop__slug"]
    readonly_fields = ["slug", "final_price", "created_by", "updated_by", "created_at", "updated_at"]
