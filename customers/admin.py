from django.contrib import admin

from .models import Customer


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ["name", "phone", "shop", "total_orders", "total_spent", "last_order_at", "is_active"]
    list_filter = ["is_active", "is_deleted"]
    search_fields = ["name", "phone", "email", "shop__slug"]
