"""Choice enums and the status order for the orders app."""

from django.db import models


class OrderStatus(models.TextChoices):
    PLACED = "PLACED", "Placed"
    CONFIRMED = "CONFIRMED", "Confirmed"
    PACKED = "PACKED", "Packed"
    SHIPPED = "SHIPPED", "Shipped"
    DELIVERED = "DELIVERED", "Delivered"
    CANCELLED = "CANCELLED", "Cancelled"


class PaymentMethod(models.TextChoices):
    COD = "COD", "Cash on delivery"
    ONLINE = "ONLINE", "Online"


class PaymentStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    COMPLETED = "COMPLETED", "Completed"
    FAILED = "FAILED", "Failed"
    REFUNDED = "REFUNDED", "Refunded"


# Forward order of the fulfilment pipeline. CANCELLED sits outside it.
STATUS_SEQUENCE = (
    OrderStatus.PLACED,
    OrderStatus.CONFIRMED,
    OrderStatus.PACKED,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
)
CANCELLABLE_STATUSES = frozenset({OrderStatus.PLACED, OrderStatus.CONFIRMED})
TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})


def can_transition(current, target):
    """
    Forward-only moves along STATUS_SEQUENCE, skipping allowed.
    CANCELLED only from PLACED or CONFIRMED. Terminal states never move.
    """
    if current in TERMINAL_STATUSES or current == target:
        return False
    if target == OrderStatus.CANCELLED:
        return current in CANCELLABLE_STATUSES
    return STATUS_SEQUENCE.index(target) > STATUS_SEQUENCE.index(current)
