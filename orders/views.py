from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.services import get_address
from audit.decorators import audited
from audit.models import AuditAction, AuditEntity
from core.permissions import Capability, HasCapability
from . import reports, services
from .filters import ManageOrderFilter, OrderFilter
from .serializers import (
    CancelSerializer,
    OrderDetailSerializer,
    OrderListSerializer,
    PlaceOrderSerializer,
    StatusUpdateSerializer,
)


class OrderViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """
    Buyer side: /api/orders/.
    POST checks out the caller's cart; list shows the caller's own orders.
    """

    permission_classes = [HasCapability]
    required_capability = Capability.OWN_ORDERS
    required_module = "orders_enabled"
    filterset_class = OrderFilter

    def get_queryset(self):
        return services.my_orders(self.request.auth)

    def get_object(self):
        return services.get_order(self.request.auth, self.kwargs["pk"])

    def get_serializer_class(self):
        if self.action == "list":
            return OrderListSerializer
        return OrderDetailSerializer

    def create(self, request, *args, **kwargs):
        serializer = PlaceOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        if data.get("address_id"):
            shipping_address = get_address(request.auth, data["address_id"]).as_snapshot()
        else:
            shipping_address = dict(data["shipping_address"])
        order = services.place_order(
            request.auth,
            shipping_address,
            customer_id=data.get("customer_id"),
            notes=data.get("notes", ""),
        )
        order = services.get_order(request.auth, order.pk)
        return Response(OrderDetailSerializer(order).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        serializer = CancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        services.cancel_order(request.auth, pk, serializer.validated_data["reason"])
        return Response(OrderDetailSerializer(services.get_order(request.auth, pk)).data)

    @action(detail=True, methods=["get"])
    def invoice(self, request, pk=None):
        order = services.get_invoice(request.auth, pk)
        return Response(
            {
                "order_number": order.order_number,
                "invoice_number": order.invoice_number,
                "invoice_url": request.build_absolute_uri(order.invoice_url),
            }
        )


class ManageOrderViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """Shop-side order management: /api/manage/orders/?status=&search=."""

    permission_classes = [HasCapability]
    required_capability = Capability.MANAGE_ORDERS
    required_module = "orders_enabled"
    filterset_class = ManageOrderFilter

    def get_queryset(self):
        return services.manage_orders(self.request.auth)

    def get_object(self):
        return services.get_managed_order(self.request.auth, self.kwargs["pk"])

    def get_serializer_class(self):
        if self.action == "list":
            return OrderListSerializer
        return OrderDetailSerializer

    @action(detail=True, methods=["patch"], url_path="status")
    @audited(AuditAction.UPDATE_ORDER_STATUS, AuditEntity.ORDER)
    def update_status(self, request, pk=None):
        serializer = StatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        services.update_order_status(request.auth, pk, **serializer.validated_data)
        return Response(OrderDetailSerializer(services.get_managed_order(request.auth, pk)).data)


class DashboardView(APIView):
    """GET /api/reports/dashboard/"""

    permission_classes = [HasCapability]
    required_capability = Capability.VIEW_REPORTS

    def get(self, request):
        data = reports.dashboard(request.auth)
        data["recent_orders"] = OrderListSerializer(data["recent_orders"], many=True).data
        return Response(data)
