from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .models import Address, User


@admin.register(User)
class UserAdmin(UserAdmin):
    list_display = ["email", "name", "shop", "role", "is_active", "is_deleted", "last_login"]
    list_filter = ["role", "is_active", "is_deleted", "is_staff"]
    search_fields = ["email", "name", "phone", "shop__slug"]
    ordering = ["shop", "email"]
    fieldsets = (
        (None, {"fields": ("shop", "email", "password")}),
        ("Personal", {"fields": ("name", "phone")}),
        (
            "Shop role",
            {
                "fields": (
                    "role",
                    "can_manage_products",
                    "can_manage_orders",
                    "can_manage_customers",
                    "can_view_reports",
                )
            },
        ),
        ("Permissions", {"fields": ("is_active", "is_staff", "is_superuser")}),
        ("Important dates", {"fields": ("last_login", "date_joined", "deleted_at")}),
    )
    add_fieldsets = (
        (None, {"fields": ("shop", "email", "password1", "password2")}),
        ("Personal", {"fields": ("name", "phone", "role")}),
        ("Permissions", {"fields": ("is_active", "is_staff", "is_superuser")}),
    )


@admin.register(Address)
class AddressAdmin(admin.ModelAdmin):
    list_display = ["full_name", "user", "city", "pincode", "is_default"]
    search_fields = ["full_name", "user__email", "pincode"]
