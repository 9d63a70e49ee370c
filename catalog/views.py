from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.generics import ListAPIView, RetrieveAPIView
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from audit.decorators import audited
from audit.models import AuditAction, AuditEntity
from core.permissions import Capability, HasCapability
from . import services
from .choices import Category
from .filters import ProductFilter, StorefrontProductFilter
from .models import Product
from .serializers import ProductSerializer, PublicProductSerializer


def _toggle_action(request, response):
    return AuditAction.ACTIVATE_PRODUCT if response.data.get("is_active") else AuditAction.DEACTIVATE_PRODUCT


class ProductViewSet(viewsets.ModelViewSet):
    """
    Staff product management: /api/products/.
    Includes inactive products; soft-deleted ones are gone for good.
    """

    serializer_class = ProductSerializer
    permission_classes = [HasCapability]
    required_capability = Capability.MANAGE_PRODUCTS
    required_module = "inventory_enabled"
    filterset_class = ProductFilter
    http_method_names = ["get", "post", "patch", "delete", "head", "options"]

    def get_queryset(self):
        return self.request.auth.scope.query(Product)

    def get_object(self):
        return services.get_product(self.request.auth, self.kwargs["pk"])

    @audited(AuditAction.CREATE_PRODUCT, AuditEntity.PRODUCT)
    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        product = services.create_product(request.auth, **serializer.validated_data)
        return Response(ProductSerializer(product).data, status=status.HTTP_201_CREATED)

    @audited(AuditAction.UPDATE_PRODUCT, AuditEntity.PRODUCT)
    def partial_update(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        product = services.update_product(request.auth, kwargs["pk"], **serializer.validated_data)
        return Response(ProductSerializer(product).data)

    @audited(AuditAction.DELETE_PRODUCT, AuditEntity.PRODUCT)
    def destroy(self, request, *args, **kwargs):
        services.delete_product(request.auth, kwargs["pk"])
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["patch"], url_path="toggle-active")
    @audited(_toggle_action, AuditEntity.PRODUCT)
    def toggle_active(self, request, pk=None):
        product = services.toggle_product(request.auth, pk)
        return Response(ProductSerializer(product).data)

    @action(detail=False, methods=["get"])
    def categories(self, request):
        return Response({"categories": services.list_categories()})


class StorefrontProductListView(ListAPIView):
    """GET /api/public/shops/{slug}/products/: anonymous catalog browsing."""

    permission_classes = [AllowAny]
    authentication_classes = []
    serializer_class = PublicProductSerializer
    filterset_class = StorefrontProductFilter

    def get_queryset(self):
        _, qs = services.storefront_products(self.kwargs["slug"])
        return qs


class StorefrontProductDetailView(RetrieveAPIView):
    """GET /api/public/shops/{slug}/products/{product_slug}/"""

    permission_classes = [AllowAny]
    authentication_classes = []
    serializer_class = PublicProductSerializer

    def get_object(self):
        return services.storefront_product(self.kwargs["slug"], self.kwargs["product_slug"])


class StorefrontCategoryView(APIView):
    """GET /api/public/shops/{slug}/categories/: categories in use by the shop."""

    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request, slug):
        shop, _ = services.storefront_products(slug)
        return Response({"categories": services.list_categories(shop), "all": Category.values})
