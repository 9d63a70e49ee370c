from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from audit.decorators import audited
from audit.models import AuditAction, AuditEntity
from common.pagination import paginate_queryset
from core.permissions import Capability, HasCapability
from orders.serializers import OrderListSerializer
from . import services
from .serializers import CustomerSerializer


class CustomerViewSet(viewsets.ModelViewSet):
    """/api/customers/?search=: the shop's customer records."""

    serializer_class = CustomerSerializer
    permission_classes = [HasCapability]
    required_capability = Capability.MANAGE_CUSTOMERS
    required_module = "customers_enabled"
    http_method_names = ["get", "post", "patch", "delete", "head", "options"]

    def get_queryset(self):
        return services.list_customers(self.request.auth, self.request.query_params.get("search"))

    def get_object(self):
        return services.get_customer(self.request.auth, self.kwargs["pk"])

    @audited(AuditAction.CREATE_CUSTOMER, AuditEntity.CUSTOMER)
    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        customer = services.create_customer(request.auth, **serializer.validated_data)
        return Response(CustomerSerializer(customer).data, status=status.HTTP_201_CREATED)

    @audited(AuditAction.UPDATE_CUSTOMER, AuditEntity.CUSTOMER)
    def partial_update(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        customer = services.update_customer(request.auth, kwargs["pk"], **serializer.validated_data)
        return Response(CustomerSerializer(customer).data)

    @audited(AuditAction.DELETE_CUSTOMER, AuditEntity.CUSTOMER)
    def destroy(self, request, *args, **kwargs):
        services.delete_customer(request.auth, kwargs["pk"])
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["get"])
    def orders(self, request, pk=None):
        return paginate_queryset(self, services.customer_orders(request.auth, pk), OrderListSerializer)
