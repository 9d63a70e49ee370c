"""
Cart: one per (shop, user). Totals are a pure function of the items and are
recomputed by Cart.recalculate() after every mutation.
"""
from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils.translation import gettext_lazy as _

from common.models import TimeStampedModel
from core.querysets import ShopScopedQuerySet

ZERO = Decimal("0.00")


class Cart(TimeStampedModel):
    shop = models.ForeignKey(
        "shops.Shop",
        on_delete=models.CASCADE,
        related_name="carts",
        verbose_name=_("shop"),
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="carts",
        verbose_name=_("user"),
    )
    total_items = models.PositiveIntegerField(default=0, verbose_name=_("total items"))
    total_amount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=ZERO,
        verbose_name=_("total amount"),
        help_text=_("Sum of price x quantity before discounts."),
    )
    discount = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO, verbose_name=_("discount"))
    final_amount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=ZERO,
        verbose_name=_("final amount"),
        help_text=_("Sum of final price x quantity."),
    )

    objects = ShopScopedQuerySet.as_manager()

    class Meta:
        verbose_name = _("cart")
        verbose_name_plural = _("carts")
        constraints = [
            models.UniqueConstraint(fields=["shop", "user"], name="unique_shop_user_cart"),
        ]

    def __str__(self):
        return f"Cart of {self.user_id} in shop {self.shop_id}"

    def recalculate(self, save=True):
        total_items, total_amount, final_amount = 0, ZERO, ZERO
        for item in self.items.all():
            total_items += item.quantity
            total_amount += item.price * item.quantity
            final_amount += item.final_price * item.quantity
        self.total_items = total_items
        self.total_amount = total_amount
        self.final_amount = final_amount
        self.discount = total_amount - final_amount
        if save:
            self.save(update_fields=["total_items", "total_amount", "discount", "final_amount", "updated_at"])
        return self

    @property
    def is_empty(self):
        return self.total_items == 0


class CartItem(models.Model):
    """A line in a cart. price/discount/final_price are captured when added."""

    cart = models.ForeignKey(Cart, on_delete=models.CASCADE, related_name="items", verbose_name=_("cart"))
    product = models.ForeignKey(
        "catalog.Product",
        on_delete=models.CASCADE,
        related_name="+",
        verbose_name=_("product"),
    )
    quantity = models.PositiveIntegerField(
        default=1,
        validators=[MinValueValidator(1)],
        verbose_name=_("quantity"),
    )
    price = models.DecimalField(max_digits=12, decimal_places=2, verbose_name=_("price"))
    discount = models.DecimalField(max_digits=5, decimal_places=2, default=ZERO, verbose_name=_("discount (%)"))
    final_price = models.DecimalField(max_digits=12, decimal_places=2, verbose_name=_("final price"))
    added_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("cart item")
        verbose_name_plural = _("cart items")
        ordering = ["added_at", "id"]
        constraints = [
            models.UniqueConstraint(fields=["cart", "product"], name="unique_cart_product"),
            models.CheckConstraint(condition=models.Q(quantity__gte=1), name="cart_item_quantity_positive"),
        ]

    def __str__(self):
        return f"{self.quantity} x {self.product_id}"

    @property
    def line_total(self):
        return self.final_price * self.quantity
