from django.contrib import admin

from .models import Cart, CartItem


class CartItemInline(admin.TabularInline):
    model = CartItem
    extra = 0
    fields = ["product", "quantity", "price", "discount", "final_price"]


@admin.register(Cart)
class CartAdmin(admin.ModelAdmin):
    list_display = ["user", "shop", "total_items", "final_amount", "updated_at"]
    search_fields = ["user__email", "shop__slug"]
    readonly_fields = ["total_items", "total_amount", "discount", "final_amount"]
    inlines = [CartItemInline]
