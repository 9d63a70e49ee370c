from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Q
from django.utils.translation import gettext_lazy as _

from common.models import SoftDeleteModel, TimeStampedModel
from common.utils import unique_slug
from core.querysets import ShopScopedQuerySet
from shops.models import Shop

from .choices import Category

CENT = Decimal("0.01")


def compute_final_price(price, discount):
    """price x (1 - discount/100), rounded half-up to the cent."""
    price = Decimal(price)
    discount = Decimal(discount or 0)
    return (price * (Decimal(100) - discount) / Decimal(100)).quantize(CENT, rounding=ROUND_HALF_UP)


class Product(TimeStampedModel, SoftDeleteModel):
    """Product in a shop's catalog."""

    shop = models.ForeignKey(
        Shop,
        on_delete=models.CASCADE,
        related_name="products",
        verbose_name=_("shop"),
        help_text=_("Shop that owns this product."),
    )
    name = models.CharField(
        max_length=200,
        verbose_name=_("name"),
        help_text=_("Display name of the product."),
    )
    slug = models.SlugField(
        max_length=220,
        blank=True,
        verbose_name=_("slug"),
        help_text=_("Generated from name; unique within the shop."),
    )
    description = models.TextField(
        max_length=2000,
        blank=True,
        default="",
        verbose_name=_("description"),
    )
    price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0"))],
        verbose_name=_("price"),
    )
    discount = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("0"),
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
        verbose_name=_("discount (%)"),
    )
    final_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        editable=False,
        default=Decimal("0"),
        verbose_name=_("final price"),
        help_text=_("price less discount. Recomputed on every save."),
    )
    stock = models.PositiveIntegerField(
        default=0,
        verbose_name=_("stock"),
        help_text=_("Units on hand. Changed through atomic increments only."),
    )
    category = models.CharField(
        max_length=32,
        choices=Category.choices,
        default=Category.OTHER,
        verbose_name=_("category"),
    )
    images = models.JSONField(
        default=list,
        blank=True,
        verbose_name=_("images"),
        help_text=_("List of image URLs; the first is the primary image."),
    )
    brand = models.CharField(max_length=100, blank=True, default="", verbose_name=_("brand"))
    specifications = models.JSONField(default=dict, blank=True, verbose_name=_("specifications"))
    is_active = models.BooleanField(
        default=True,
        verbose_name=_("is active"),
        help_text=_("Inactive products are hidden from the storefront and cannot be ordered."),
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    objects = ShopScopedQuerySet.as_manager()

    class Meta:
        verbose_name = _("product")
        verbose_name_plural = _("products")
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(fields=["shop", "slug"], name="unique_shop_product_slug"),
            models.CheckConstraint(condition=Q(stock__gte=0), name="product_stock_non_negative"),
            models.CheckConstraint(
                condition=Q(discount__gte=0) & Q(discount__lte=100),
                name="product_discount_range",
            ),
        ]
        indexes = [
            models.Index(fields=["shop", "category"], name="product_shop_category_idx"),
            models.Index(fields=["shop", "is_active"], name="product_shop_active_idx"),
        ]

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = unique_slug(self.name)
        self.final_price = compute_final_price(self.price, self.discount)
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and ({"price", "discount"} & set(update_fields)):
            kwargs["update_fields"] = {*update_fields, "final_price"}
        super().save(*args, **kwargs)

    @property
    def primary_image(self):
        return self.images[0] if self.images else ""
