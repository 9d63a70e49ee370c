from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from audit.decorators import audited
from audit.models import AuditAction, AuditEntity
from core.permissions import Capability, HasCapability
from . import services, tokens
from .models import User
from .serializers import (
    AddressSerializer,
    BlockSerializer,
    InviteStaffSerializer,
    LoginSerializer,
    PasswordChangeSerializer,
    ProfileUpdateSerializer,
    RefreshSerializer,
    RegisterCustomerSerializer,
    RegisterOwnerSerializer,
    ShopSummarySerializer,
    StaffPermissionsSerializer,
    UserFilterSerializer,
    UserSerializer,
)


def session_payload(user):
    """User, shop and a fresh token pair, as returned by register/login."""
    return {
        "user": UserSerializer(user).data,
        "shop": ShopSummarySerializer(user.shop).data,
        **tokens.issue_pair(user),
    }


# ---------------------------------------------------------------------------
# Public auth
# ---------------------------------------------------------------------------


class RegisterOwnerView(APIView):
    """POST /api/auth/register-owner/: create a shop and its owner."""

    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request):
        serializer = RegisterOwnerSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        shop, owner = services.register_owner(**serializer.to_service_kwargs())
        return Response(session_payload(owner), status=status.HTTP_201_CREATED)


class RegisterCustomerView(APIView):
    """POST /api/auth/register-customer/: self-service customer account in a shop."""

    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request):
        serializer = RegisterCustomerSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = services.register_customer(**serializer.validated_data)
        return Response(session_payload(user), status=status.HTTP_201_CREATED)


class LoginView(APIView):
    """POST /api/auth/login/: email + password within a shop (by slug)."""

    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_scope = "login"

    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = services.authenticate_in_shop(request, **serializer.validated_data)
        return Response(session_payload(user))


class RefreshView(APIView):
    """POST /api/auth/refresh/: rotate a refresh token into a new pair."""

    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request):
        serializer = RefreshSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return Response(tokens.renew(serializer.validated_data["refresh"]))


# ---------------------------------------------------------------------------
# Authenticated self-service
# ---------------------------------------------------------------------------


class LogoutView(APIView):
    permission_classes = [HasCapability]
    required_capability = Capability.OWN_PROFILE

    def post(self, request):
        serializer = RefreshSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        tokens.revoke(serializer.validated_data["refresh"], user=request.user)
        return Response({"detail": "Logged out successfully."})


class MeView(APIView):
    """GET/PATCH /api/auth/me/: current user and shop."""

    permission_classes = [HasCapability]
    required_capability = Capability.OWN_PROFILE

    def get(self, request):
        user = request.user
        return Response(
            {"user": UserSerializer(user).data, "shop": ShopSummarySerializer(request.auth.shop).data}
        )

    def patch(self, request):
        serializer = ProfileUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        user = services.update_profile(request.auth, **serializer.validated_data)
        return Response({"user": UserSerializer(user).data})


class PasswordChangeView(APIView):
    """POST /api/auth/password/: older tokens stop working; a new pair is returned."""

    permission_classes = [HasCapability]
    required_capability = Capability.OWN_PROFILE

    def post(self, request):
        serializer = PasswordChangeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = services.change_password(request.auth, **serializer.validated_data)
        return Response(tokens.issue_pair(user))


class InviteStaffView(APIView):
    permission_classes = [HasCapability]
    required_capability = Capability.MANAGE_STAFF

    @audited(AuditAction.CREATE_USER, AuditEntity.USER)
    def post(self, request):
        serializer = InviteStaffSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = services.invite_staff(request.auth, **serializer.validated_data)
        return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)


# ---------------------------------------------------------------------------
# User management
# ---------------------------------------------------------------------------


def _block_action(request, response):
    return AuditAction.UNBLOCK_USER if response.data.get("is_active") else AuditAction.BLOCK_USER


class UserViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """
    Staff and customer accounts of the caller's shop.
    Owner accounts are listed but cannot be changed from here.
    """

    serializer_class = UserSerializer
    permission_classes = [HasCapability]
    required_capability = Capability.MANAGE_STAFF

    def get_queryset(self):
        params = UserFilterSerializer(data=self.request.query_params)
        params.is_valid(raise_exception=True)
        return services.list_users(self.request.auth, **params.validated_data)

    def get_object(self):
        return self.request.auth.scope.get(User, self.kwargs["pk"])

    @action(detail=True, methods=["patch"], url_path="permissions")
    @audited(AuditAction.UPDATE_USER, AuditEntity.USER)
    def set_permissions(self, request, pk=None):
        serializer = StaffPermissionsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = services.update_staff_permissions(request.auth, pk, serializer.validated_data)
        return Response(UserSerializer(user).data)

    @action(detail=True, methods=["post"])
    @audited(_block_action, AuditEntity.USER)
    def block(self, request, pk=None):
        serializer = BlockSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = services.set_user_blocked(request.auth, pk, serializer.validated_data["blocked"])
        return Response(UserSerializer(user).data)

    @audited(AuditAction.DELETE_USER, AuditEntity.USER)
    def destroy(self, request, pk=None):
        services.delete_user(request.auth, pk)
        return Response(status=status.HTTP_204_NO_CONTENT)


class AddressViewSet(viewsets.ViewSet):
    """/api/me/addresses/: the caller's saved shipping addresses."""

    permission_classes = [HasCapability]
    required_capability = Capability.OWN_PROFILE

    def list(self, request):
        addresses = services.list_addresses(request.auth)
        return Response({"results": AddressSerializer(addresses, many=True).data})

    def create(self, request):
        serializer = AddressSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        address = services.add_address(request.auth, **serializer.validated_data)
        return Response(AddressSerializer(address).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, pk=None):
        serializer = AddressSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        address = services.update_address(request.auth, pk, **serializer.validated_data)
        return Response(AddressSerializer(address).data)

    def destroy(self, request, pk=None):
        services.delete_address(request.auth, pk)
        return Response(status=status.HTTP_204_NO_CONTENT)
