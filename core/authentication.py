"""
Tenant context resolution.

A bearer token is turned into a TenantContext (user, shop, role, permissions)
after re-checking the shop and the user against the database. Handlers receive
the context as ``request.auth``; nothing else carries shop identity.
"""
import logging
from dataclasses import dataclass, field

from django.db import DatabaseError
from django.utils import timezone
from django.utils.crypto import constant_time_compare
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import InvalidToken

from common.exceptions import (
    AccountDeactivated,
    InvalidCredential,
    ShopNotFound,
    ShopSuspended,
)
from .scoping import ShopScope

logger = logging.getLogger(__name__)

SHOP_CLAIM = "shop_id"
ROLE_CLAIM = "role"
SESSION_HASH_CLAIM = "sah"


@dataclass(frozen=True)
class TenantContext:
    """Immutable per-request identity. Always has both a user and a shop."""

    user: object
    shop: object
    role: str
    permissions: dict = field(default_factory=dict)

    @property
    def user_id(self):
        return self.user.pk

    @property
    def shop_id(self):
        return self.shop.pk

    @property
    def scope(self) -> ShopScope:
        return ShopScope(self.shop_id)

    @classmethod
    def for_user(cls, user):
        """Build a context from an already-verified user (login, registration)."""
        return cls(
            user=user,
            shop=user.shop,
            role=user.role,
            permissions=user.staff_permissions(),
        )


def resolve_tenant_context(validated_token) -> TenantContext:
    """
    Re-verify a decoded access token against current state.

    Shop lookup comes first so a suspended shop is reported as such even for a
    valid user. The session-hash claim ties the token to the password it was
    issued under; rotating the password invalidates older tokens.
    """
    from accounts.models import User
    from shops.models import Shop

    try:
        user_id = validated_token["user_id"]
        shop_id = validated_token[SHOP_CLAIM]
    except KeyError:
        raise InvalidCredential()

    shop = Shop.objects.filter(pk=shop_id).first()
    if shop is None:
        raise ShopNotFound()
    if not shop.is_active:
        raise ShopSuspended()

    user = (
        User.objects.for_shop(shop)
        .filter(pk=user_id)
        .first()
    )
    if user is None:
        raise InvalidCredential("User not found. Invalid token.")
    if not user.is_active:
        raise AccountDeactivated()

    token_hash = validated_token.get(SESSION_HASH_CLAIM, "")
    if not constant_time_compare(token_hash, user.get_session_auth_hash()):
        raise InvalidCredential()
    if validated_token.get(ROLE_CLAIM) != user.role:
        raise InvalidCredential()

    try:
        User.objects.filter(pk=user.pk).update(last_login=timezone.now())
    except DatabaseError:
        logger.warning("Could not record last_login for user %s", user.pk, exc_info=True)

    return TenantContext(
        user=user,
        shop=shop,
        role=user.role,
        permissions=user.staff_permissions(),
    )


class TenantJWTAuthentication(JWTAuthentication):
    """
    simplejwt authentication that resolves the tenant context.
    request.user is the User, request.auth the TenantContext.
    """

    def authenticate(self, request):
        header = self.get_header(request)
        if header is None:
            return None
        raw_token = self.get_raw_token(header)
        if raw_token is None:
            return None
        try:
            validated_token = self.get_validated_token(raw_token)
        except InvalidToken:
            raise InvalidCredential()
        ctx = resolve_tenant_context(validated_token)
        return ctx.user, ctx

    def authenticate_header(self, request):
        return 'Bearer realm="api"'
