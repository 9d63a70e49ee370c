"""
Credential issuance on top of simplejwt.

Tokens carry the shop id, the role and a fingerprint of the password hash
(`sah`). The resolver compares all three against the database on every
request, so a role change or password rotation retires older tokens.
"""
import logging

from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken
from rest_framework_simplejwt.tokens import RefreshToken

from common.exceptions import InvalidCredential, NotAuthorized
from core.authentication import ROLE_CLAIM, SESSION_HASH_CLAIM, SHOP_CLAIM, resolve_tenant_context

logger = logging.getLogger(__name__)


class ShopRefreshToken(RefreshToken):
    @classmethod
    def for_user(cls, user):
        token = super().for_user(user)
        token[SHOP_CLAIM] = user.shop_id
        token[ROLE_CLAIM] = user.role
        token[SESSION_HASH_CLAIM] = user.get_session_auth_hash()
        return token


def issue_pair(user):
    """{"refresh", "access"} for a verified user."""
    refresh = ShopRefreshToken.for_user(user)
    return {"refresh": str(refresh), "access": str(refresh.access_token)}


def _load(raw):
    try:
        return ShopRefreshToken(raw)
    except TokenError:
        raise InvalidCredential()


def renew(raw):
    """
    Exchange a refresh token for a new pair.
    The user and shop are re-verified; the old refresh token is blacklisted.
    """
    refresh = _load(raw)
    ctx = resolve_tenant_context(refresh)
    refresh.blacklist()
    return issue_pair(ctx.user)


def revoke(raw, user=None):
    """Blacklist one refresh token (logout). Only its own user may revoke it."""
    refresh = _load(raw)
    if user is not None and str(refresh.get("user_id")) != str(user.pk):
        raise NotAuthorized()
    refresh.blacklist()


def revoke_all(user):
    """Blacklist every outstanding refresh token of a user."""
    count = 0
    for token in OutstandingToken.objects.filter(user=user):
        _, created = BlacklistedToken.objects.get_or_create(token=token)
        count += int(created)
    logger.info("Revoked %s refresh tokens for user %s", count, user.pk)
    return count
