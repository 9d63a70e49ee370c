from rest_framework.response import Response
from rest_framework.views import APIView

from core.permissions import Capability, HasCapability
from . import services
from .models import Cart
from .serializers import AddItemSerializer, CartSerializer, UpdateItemSerializer


def cart_response(cart):
    cart = Cart.objects.prefetch_related("items__product").get(pk=cart.pk)
    return Response(CartSerializer(cart).data)


class CartView(APIView):
    """GET /api/cart/ (created on first access), DELETE /api/cart/ clears it."""

    permission_classes = [HasCapability]
    required_capability = Capability.OWN_CART

    def get(self, request):
        return cart_response(services.get_or_create_cart(request.auth))

    def delete(self, request):
        return cart_response(services.clear_cart(request.auth))


class CartItemsView(APIView):
    """POST /api/cart/items/ {product_id, quantity}"""

    permission_classes = [HasCapability]
    required_capability = Capability.OWN_CART

    def post(self, request):
        serializer = AddItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return cart_response(services.add_item(request.auth, **serializer.validated_data))


class CartItemDetailView(APIView):
    """PATCH/DELETE /api/cart/items/{product_id}/"""

    permission_classes = [HasCapability]
    required_capability = Capability.OWN_CART

    def patch(self, request, product_id):
        serializer = UpdateItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        cart = services.update_item(request.auth, product_id, serializer.validated_data["quantity"])
        return cart_response(cart)

    def delete(self, request, product_id):
        return cart_response(services.remove_item(request.auth, product_id))
