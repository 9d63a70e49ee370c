"""
Customer records: a shop's own address book, kept by staff. Distinct from
CUSTOMER-role user accounts, although an order may reference both.
"""
from decimal import Decimal

from django.db import models
from django.db.models import Q
from django.utils.translation import gettext_lazy as _

from accounts.models import phone_validator
from common.models import SoftDeleteModel, TimeStampedModel
from core.querysets import ShopScopedQuerySet


class Customer(TimeStampedModel, SoftDeleteModel):
    shop = models.ForeignKey(
        "shops.Shop",
        on_delete=models.CASCADE,
        related_name="customers",
        verbose_name=_("shop"),
    )
    name = models.CharField(max_length=100, verbose_name=_("name"))
    phone = models.CharField(
        max_length=10,
        validators=[phone_validator],
        verbose_name=_("phone"),
        help_text=_("10-digit phone number, unique within the shop."),
    )
    email = models.EmailField(blank=True, default="", verbose_name=_("email"))
    address_line1 = models.CharField(max_length=255, blank=True, default="")
    address_line2 = models.CharField(max_length=255, blank=True, default="")
    city = models.CharField(max_length=100, blank=True, default="")
    state = models.CharField(max_length=100, blank=True, default="")
    pincode = models.CharField(max_length=10, blank=True, default="")
    country = models.CharField(max_length=100, blank=True, default="India")
    notes = models.TextField(blank=True, default="")
    total_orders = models.PositiveIntegerField(default=0, verbose_name=_("total orders"))
    total_spent = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0"),
        verbose_name=_("total spent"),
    )
    last_order_at = models.DateTimeField(null=True, blank=True, verbose_name=_("last order at"))
    is_active = models.BooleanField(default=True, verbose_name=_("is active"))

    objects = ShopScopedQuerySet.as_manager()

    class Meta:
        verbose_name = _("customer")
        verbose_name_plural = _("customers")
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["shop", "phone"],
                condition=Q(is_deleted=False),
                name="unique_shop_customer_phone",
            )
        ]
        indexes = [
            models.Index(fields=["shop", "-total_spent"], name="customer_shop_spent_idx"),
        ]

    def __str__(self):
        return f"{self.name} ({self.phone})"
