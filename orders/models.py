"""
Orders are financial records: the item snapshot and totals are fixed at
creation. Status moves only through Order.set_status(), which appends exactly
one OrderStatusHistory row per change.
"""
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from common.models import TimeStampedModel
from core.querysets import ShopScopedQuerySet

from .choices import OrderStatus, PaymentMethod, PaymentStatus

ZERO = Decimal("0.00")


class Order(TimeStampedModel):
    shop = models.ForeignKey(
        "shops.Shop",
        on_delete=models.CASCADE,
        related_name="orders",
        verbose_name=_("shop"),
    )
    order_number = models.CharField(
        max_length=32,
        verbose_name=_("order number"),
        help_text=_("Date-coded daily sequence, unique within the shop (e.g. ORD2501150001)."),
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="orders",
        verbose_name=_("user"),
        help_text=_("Account that placed the order."),
    )
    customer = models.ForeignKey(
        "customers.Customer",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="orders",
        verbose_name=_("customer record"),
    )
    shipping_address = models.JSONField(verbose_name=_("shipping address"))
    total_items = models.PositiveIntegerField(default=0)
    subtotal = models.DecimalField(max_digits=14, decimal_places=2, verbose_name=_("subtotal"))
    discount = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO, verbose_name=_("discount"))
    shipping_charges = models.DecimalField(max_digits=10, decimal_places=2, default=ZERO)
    tax = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)
    total_amount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        verbose_name=_("total amount"),
        help_text=_("subtotal + shipping + tax. Never recomputed after creation."),
    )
    payment_method = models.CharField(max_length=10, choices=PaymentMethod.choices, default=PaymentMethod.COD)
    payment_status = models.CharField(max_length=10, choices=PaymentStatus.choices, default=PaymentStatus.PENDING)
    status = models.CharField(
        max_length=10,
        choices=OrderStatus.choices,
        default=OrderStatus.PLACED,
        db_index=True,
        verbose_name=_("status"),
    )
    invoice_url = models.CharField(max_length=500, blank=True, default="")
    invoice_number = models.CharField(max_length=64, blank=True, default="")
    notes = models.TextField(blank=True, default="")
    cancel_reason = models.CharField(max_length=500, blank=True, default="")
    delivered_at = models.DateTimeField(null=True, blank=True)

    objects = ShopScopedQuerySet.as_manager()

    class Meta:
        verbose_name = _("order")
        verbose_name_plural = _("orders")
        ordering = ["-created_at", "-id"]
        constraints = [
            models.UniqueConstraint(fields=["shop", "order_number"], name="unique_shop_order_number"),
        ]
        indexes = [
            models.Index(fields=["shop", "user", "-created_at"], name="order_shop_user_idx"),
            models.Index(fields=["shop", "status"], name="order_shop_status_idx"),
        ]

    def __str__(self):
        return self.order_number

    def set_status(self, status, note=""):
        """Persist a new status and append its history entry."""
        self.status = status
        fields = ["status", "updated_at"]
        if status == OrderStatus.DELIVERED:
            self.delivered_at = timezone.now()
            self.payment_status = PaymentStatus.COMPLETED
            fields += ["delivered_at", "payment_status"]
        self.save(update_fields=fields)
        return OrderStatusHistory.objects.create(order=self, status=status, note=note or "")


class OrderItem(models.Model):
    """Line snapshot copied from the product at checkout."""

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    product = models.ForeignKey(
        "catalog.Product",
        on_delete=models.SET_NULL,
        null=True,
        related_name="+",
    )
    name = models.CharField(max_length=200)
    image = models.CharField(max_length=500, blank=True, default="")
    quantity = models.PositiveIntegerField()
    price = models.DecimalField(max_digits=12, decimal_places=2)
    discount = models.DecimalField(max_digits=5, decimal_places=2, default=ZERO)
    final_price = models.DecimalField(max_digits=12, decimal_places=2)
    subtotal = models.DecimalField(max_digits=14, decimal_places=2)

    class Meta:
        verbose_name = _("order item")
        verbose_name_plural = _("order items")
        ordering = ["id"]

    def __str__(self):
        return f"{self.quantity} x {self.name}"


class OrderStatusHistory(models.Model):
    """Append-only; one row per status the order has entered."""

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="status_history")
    status = models.CharField(max_length=10, choices=OrderStatus.choices)
    note = models.CharField(max_length=500, blank=True, default="")
    timestamp = models.DateTimeField(default=timezone.now)

    class Meta:
        verbose_name = _("order status history")
        verbose_name_plural = _("order status history")
        ordering = ["timestamp", "id"]

    def __str__(self):
        return f"{self.order_id} -> {self.status}"


class OrderSequence(models.Model):
    """Per-(shop, day) counter behind order numbers. Incremented under a row lock."""

    shop = models.ForeignKey("shops.Shop", on_delete=models.CASCADE, related_name="+")
    day = models.DateField()
    last_value = models.PositiveIntegerField(default=0)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["shop", "day"], name="unique_shop_order_sequence_day"),
        ]

    def __str__(self):
        return f"{self.shop_id}@{self.day}: {self.last_value}"
