from rest_framework import viewsets
from django_filters.rest_framework import DjangoFilterBackend

from core.permissions import Capability, HasCapability
from .filters import AuditLogFilter
from .serializers import AuditLogSerializer
from .services import list_logs


class AuditLogViewSet(viewsets.ReadOnlyModelViewSet):
    """GET /api/audit-logs/?action=&entity=&page=&limit=: newest first."""

    serializer_class = AuditLogSerializer
    permission_classes = [HasCapability]
    required_capability = Capability.VIEW_REPORTS
    filter_backends = [DjangoFilterBackend]
    filterset_class = AuditLogFilter

    def get_queryset(self):
        return list_logs(self.request.auth)
