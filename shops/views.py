from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from audit.decorators import audited
from audit.models import AuditAction, AuditEntity
from core.permissions import Capability, HasCapability
from . import services
from .serializers import (
    PublicShopSerializer,
    ShopSerializer,
    ShopSettingsSerializer,
    ShopUpdateSerializer,
)


class MyShopView(APIView):
    """GET/PATCH /api/shops/my-shop/: the caller's shop."""

    permission_classes = [HasCapability]
    required_capabilities = {"patch": Capability.MANAGE_SHOP}

    def get(self, request):
        return Response(ShopSerializer(services.get_my_shop(request.auth)).data)

    @audited(AuditAction.UPDATE_SHOP, AuditEntity.SHOP)
    def patch(self, request):
        serializer = ShopUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        shop = services.update_shop(request.auth, **serializer.validated_data)
        return Response(ShopSerializer(shop).data)


class ShopSettingsView(APIView):
    """GET/PATCH /api/shops/settings/: plan and module flags. Changes are owner-only."""

    permission_classes = [HasCapability]
    required_capabilities = {"patch": Capability.MANAGE_SHOP}

    def get(self, request):
        return Response(ShopSettingsSerializer(services.get_my_shop(request.auth)).data)

    @audited(AuditAction.UPDATE_SHOP, AuditEntity.SHOP)
    def patch(self, request):
        serializer = ShopSettingsSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        shop = services.update_shop_settings(request.auth, **serializer.validated_data)
        return Response(ShopSettingsSerializer(shop).data)


class PublicShopView(APIView):
    """GET /api/public/shops/{slug}/: storefront header; no authentication."""

    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request, slug):
        return Response(PublicShopSerializer(services.get_public_shop(slug)).data)
