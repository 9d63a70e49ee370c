import django_filters

from .models import AuditAction, AuditEntity, AuditLog


class AuditLogFilter(django_filters.FilterSet):
    action = django_filters.ChoiceFilter(choices=AuditAction.choices)
    entity = django_filters.ChoiceFilter(choices=AuditEntity.choices)
    user = django_filters.NumberFilter(field_name="user_id")

    class Meta:
        model = AuditLog
        fields = ["action", "entity", "user"]
