"""
Authorization gate: (role, staff permission flags, capability) -> allow/deny.

Definitions:
- OWNER holds every capability in their shop.
- STAFF holds a management capability only when the matching flag is set on
  their account. Staff and shop administration stay owner-only.
- CUSTOMER holds only the self-service capabilities (own cart, own orders,
  own profile).

The gate is consulted before any data access, so a denied caller never learns
whether the target row exists.
"""
from django.db import models
from rest_framework import permissions

from accounts.choices import Role
from common.exceptions import Forbidden


class Capability(models.TextChoices):
    MANAGE_PRODUCTS = "manage_products", "Manage products"
    MANAGE_ORDERS = "manage_orders", "Manage orders"
    MANAGE_CUSTOMERS = "manage_customers", "Manage customers"
    VIEW_REPORTS = "view_reports", "View reports"
    MANAGE_STAFF = "manage_staff", "Manage staff"
    MANAGE_SHOP = "manage_shop", "Manage shop"
    OWN_CART = "own_cart", "Own cart"
    OWN_ORDERS = "own_orders", "Own orders"
    OWN_PROFILE = "own_profile", "Own profile"


# Capabilities a STAFF member may hold, keyed to the User flag that grants it.
STAFF_FLAGS = {
    Capability.MANAGE_PRODUCTS: "can_manage_products",
    Capability.MANAGE_ORDERS: "can_manage_orders",
    Capability.MANAGE_CUSTOMERS: "can_manage_customers",
    Capability.VIEW_REPORTS: "can_view_reports",
}

SELF_CAPABILITIES = frozenset(
    {Capability.OWN_CART, Capability.OWN_ORDERS, Capability.OWN_PROFILE}
)


def permitted(ctx, capability) -> bool:
    """Pure decision on a TenantContext (or anything with role/permissions)."""
    if ctx is None:
        return False
    role = getattr(ctx, "role", None)
    if role == Role.OWNER:
        return True
    if capability in SELF_CAPABILITIES:
        return role in (Role.STAFF, Role.CUSTOMER)
    if role == Role.STAFF:
        flag = STAFF_FLAGS.get(capability)
        return bool(flag and (ctx.permissions or {}).get(flag))
    return False


def require(ctx, capability):
    """Raise Forbidden unless the context holds the capability."""
    if not permitted(ctx, capability):
        raise Forbidden(
            "You do not have permission to perform this action.",
            capability=str(capability),
        )


def is_management_role(ctx) -> bool:
    return getattr(ctx, "role", None) in (Role.OWNER, Role.STAFF)


class HasCapability(permissions.BasePermission):
    """
    Checks the capability a view declares for the current action.

    Views set either ``required_capability`` (one for every action) or
    ``required_capabilities`` (a dict keyed by action name, or by lowercase
    HTTP method on plain APIViews, with an optional "*" fallback). An action
    with no declared capability is allowed for any authenticated tenant
    context. ``required_module`` names a Shop flag (e.g. "orders_enabled")
    that must be on.
    """

    def has_permission(self, request, view):
        ctx = request.auth
        if ctx is None or not request.user or not request.user.is_authenticated:
            return False

        module = getattr(view, "required_module", None)
        if module and not getattr(ctx.shop, module, True):
            raise Forbidden("This module is not enabled for your shop.", module=module)

        capability = _capability_for(request, view)
        if capability is None:
            return True
        require(ctx, capability)
        return True


def _capability_for(request, view):
    by_action = getattr(view, "required_capabilities", None)
    if by_action:
        action = getattr(view, "action", None) or request.method.lower()
        if action in by_action:
            return by_action[action]
        return by_action.get("*")
    return getattr(view, "required_capability", None)
