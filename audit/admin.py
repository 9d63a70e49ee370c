from django.contrib import admin

from .models import AuditLog


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ["created_at", "shop", "user", "action", "entity", "entity_id", "ip_address"]
    list_filter = ["action", "entity"]
    search_fields = ["entity_id", "user__email", "shop__slug"]
    readonly_fields = [f.name for f in AuditLog._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
