from django.contrib import admin

from .models import Order, OrderItem, OrderSequence, OrderStatusHistory


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    can_delete = False
    readonly_fields = ["product", "name", "quantity", "price", "discount", "final_price", "subtotal"]
    fields = readonly_fields


class OrderStatusHistoryInline(admin.TabularInline):
    model = OrderStatusHistory
    extra = 0
    can_delete = False
    readonly_fields = ["status", "note", "timestamp"]


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ["order_number", "shop", "user", "status", "payment_status", "total_amount", "created_at"]
    list_filter = ["status", "payment_status", "payment_method"]
    search_fields = ["order_number", "user__email", "shop__slug"]
    readonly_fields = [
        "order_number",
        "subtotal",
        "discount",
        "shipping_charges",
        "tax",
        "total_amount",
        "status",
        "delivered_at",
        "invoice_url",
        "invoice_number",
    ]
    inlines = [OrderItemInline, OrderStatusHistoryInline]


@admin.register(OrderSequence)
class OrderSequenceAdmin(admin.ModelAdmin):
    list_display = ["shop", "day", "last_value"]
    readonly_fields = ["shop", "day", "last_value"]
