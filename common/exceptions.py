"""
Error taxonomy shared by every app.

Each failure carries a stable kind (Unauthenticated, Forbidden, NotFound,
ValidationFailed, Conflict) plus a machine code and a human-readable message.
TenantScopeError is the fatal kind: a shop-owned query was built without a
shop. It is never rendered with detail.
"""
import logging

from rest_framework import exceptions, status
from rest_framework.response import Response

logger = logging.getLogger(__name__)


class ServiceError(exceptions.APIException):
    """Base for typed failures raised by services and the tenant resolver."""

    kind = "Error"

    def __init__(self, detail=None, code=None, **details):
        super().__init__(detail=detail, code=code)
        self.details = details


# ---------------------------------------------------------------------------
# Unauthenticated (401)
# ---------------------------------------------------------------------------


class Unauthenticated(ServiceError):
    kind = "Unauthenticated"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Not authorized. Please login to access this resource."
    default_code = "unauthenticated"


class InvalidCredential(Unauthenticated):
    default_detail = "Invalid or expired token. Please login again."
    default_code = "invalid_credential"


# ---------------------------------------------------------------------------
# Forbidden (403)
# ---------------------------------------------------------------------------


class Forbidden(ServiceError):
    kind = "Forbidden"
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "You do not have permission to perform this action."
    default_code = "forbidden"


class NotAuthorized(Forbidden):
    default_detail = "Not authorized to act on this resource."
    default_code = "not_authorized"


class ShopNotFound(Forbidden):
    default_detail = "Shop not found. Invalid token."
    default_code = "shop_not_found"


class ShopSuspended(Forbidden):
    default_detail = "Shop is suspended. Please contact support."
    default_code = "shop_suspended"


class AccountDeactivated(Forbidden):
    default_detail = "Your account has been deactivated. Please contact shop owner."
    default_code = "account_deactivated"


# ---------------------------------------------------------------------------
# NotFound (404) - only ever "not found in your shop"
# ---------------------------------------------------------------------------


class NotFound(ServiceError):
    kind = "NotFound"
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found."
    default_code = "not_found"


class ProductNotFound(NotFound):
    default_detail = "Product not found."
    default_code = "product_not_found"


class OrderNotFound(NotFound):
    default_detail = "Order not found."
    default_code = "order_not_found"


# ---------------------------------------------------------------------------
# ValidationFailed (400)
# ---------------------------------------------------------------------------


class ValidationFailed(ServiceError):
    kind = "ValidationFailed"
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid input."
    default_code = "validation_failed"


class InvalidStatus(ValidationFailed):
    default_detail = "Invalid order status."
    default_code = "invalid_status"


# ---------------------------------------------------------------------------
# Conflict (409) - business-rule violations
# ---------------------------------------------------------------------------


class Conflict(ServiceError):
    kind = "Conflict"
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Request conflicts with the current state."
    default_code = "conflict"


class EmptyCart(Conflict):
    default_detail = "Cart is empty."
    default_code = "empty_cart"


class ProductUnavailable(Conflict):
    default_detail = "Product is not available."
    default_code = "product_unavailable"


class InsufficientStock(Conflict):
    default_detail = "Insufficient stock."
    default_code = "insufficient_stock"


class InvalidTransition(Conflict):
    default_detail = "Order cannot move to that status from its current status."
    default_code = "invalid_transition"


class DuplicateKey(Conflict):
    default_detail = "A record with this value already exists in your shop."
    default_code = "duplicate_key"


# ---------------------------------------------------------------------------
# Fatal
# ---------------------------------------------------------------------------


class TenantScopeError(RuntimeError):
    """A shop-owned query or write was attempted without a shop identity."""


_KIND_BY_STATUS = {
    status.HTTP_400_BAD_REQUEST: "ValidationFailed",
    status.HTTP_401_UNAUTHORIZED: "Unauthenticated",
    status.HTTP_403_FORBIDDEN: "Forbidden",
    status.HTTP_404_NOT_FOUND: "NotFound",
    status.HTTP_405_METHOD_NOT_ALLOWED: "ValidationFailed",
    status.HTTP_409_CONFLICT: "Conflict",
    status.HTTP_429_TOO_MANY_REQUESTS: "Throttled",
}


def _message(detail):
    if isinstance(detail, dict):
        for value in detail.values():
            return _message(value)
        return ""
    if isinstance(detail, list):
        return _message(detail[0]) if detail else ""
    return str(detail)


def exception_handler(exc, context):
    """
    DRF exception handler rendering {"success": false, "error": {...}}.
    TenantScopeError halts the request with a generic 500.
    """
    if isinstance(exc, TenantScopeError):
        view = context.get("view")
        logger.critical(
            "Tenant isolation violated in %s: %s",
            view.__class__.__name__ if view else "unknown view",
            exc,
        )
        return Response(
            {
                "success": False,
                "error": {
                    "kind": "Fatal",
                    "code": "internal_error",
                    "message": "Internal server error.",
                    "details": {},
                },
            },
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    # rest_framework.views imports the authentication classes, which import this module.
    from rest_framework.views import exception_handler as drf_exception_handler

    response = drf_exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, ServiceError):
        kind = exc.kind
        code = exc.get_codes()
        details = exc.details
    else:
        kind = _KIND_BY_STATUS.get(response.status_code, "Error")
        code = exc.get_codes() if isinstance(exc, exceptions.APIException) else "error"
        details = response.data if isinstance(exc, exceptions.ValidationError) else {}
        if isinstance(exc, exceptions.ValidationError):
            code = "validation_failed"

    response.data = {
        "success": False,
        "error": {
            "kind": kind,
            "code": code if isinstance(code, str) else "error",
            "message": _message(exc.detail) if hasattr(exc, "detail") else str(exc),
            "details": details,
        },
    }
    return response
