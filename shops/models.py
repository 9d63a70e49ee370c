"""
Shop model: the tenant root. Every other shop-owned row points here.
"""
from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.text import slugify
from django.utils.translation import gettext_lazy as _

from common.models import TimeStampedModel


class Shop(TimeStampedModel):
    """A tenant. Created together with its single OWNER user."""

    class Plan(models.TextChoices):
        FREE = "FREE", _("Free")
        BASIC = "BASIC", _("Basic")
        PREMIUM = "PREMIUM", _("Premium")

    name = models.CharField(
        max_length=255,
        verbose_name=_("name"),
        help_text=_("Display name of the shop."),
    )
    slug = models.SlugField(
        max_length=100,
        unique=True,
        blank=True,
        verbose_name=_("slug"),
        help_text=_("URL-friendly identifier for the shop. Generated from name when blank."),
    )
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="owned_shops",
        verbose_name=_("owner"),
        help_text=_("OWNER user of this shop. Empty only while the shop is being created."),
    )
    plan = models.CharField(
        max_length=20,
        choices=Plan.choices,
        default=Plan.FREE,
        verbose_name=_("plan"),
    )
    inventory_enabled = models.BooleanField(default=True, verbose_name=_("inventory enabled"))
    orders_enabled = models.BooleanField(default=True, verbose_name=_("orders enabled"))
    customers_enabled = models.BooleanField(default=True, verbose_name=_("customers enabled"))
    is_active = models.BooleanField(
        default=True,
        verbose_name=_("is active"),
        help_text=_("Suspended shops reject every authenticated request."),
    )
    email = models.EmailField(blank=True, default="", verbose_name=_("contact email"))
    phone = models.CharField(max_length=15, blank=True, default="", verbose_name=_("contact phone"))
    street = models.CharField(max_length=255, blank=True, default="")
    city = models.CharField(max_length=100, blank=True, default="")
    state = models.CharField(max_length=100, blank=True, default="")
    pincode = models.CharField(max_length=10, blank=True, default="")
    country = models.CharField(max_length=100, blank=True, default="India")
    gst_number = models.CharField(max_length=20, blank=True, default="", verbose_name=_("GST number"))
    is_gst_registered = models.BooleanField(default=False, verbose_name=_("GST registered"))
    terms_accepted = models.BooleanField(default=False)
    privacy_accepted = models.BooleanField(default=False)
    seller_agreement_accepted = models.BooleanField(default=False)
    agreed_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name=_("agreed at"),
        help_text=_("Set once all three agreements are accepted."),
    )
    suspended_at = models.DateTimeField(null=True, blank=True)
    suspension_reason = models.CharField(max_length=255, blank=True, default="")

    class Meta:
        verbose_name = _("shop")
        verbose_name_plural = _("shops")
        ordering = ["name"]

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = self._unique_slug()
        if self.agreements_accepted and self.agreed_at is None:
            self.agreed_at = timezone.now()
        super().save(*args, **kwargs)

    @property
    def agreements_accepted(self):
        return self.terms_accepted and self.privacy_accepted and self.seller_agreement_accepted

    def suspend(self, reason=""):
        self.is_active = False
        self.suspended_at = timezone.now()
        self.suspension_reason = reason
        self.save(update_fields=["is_active", "suspended_at", "suspension_reason", "updated_at"])

    def _unique_slug(self):
        base = slugify(self.name)[:90] or "shop"
        slug, n = base, 2
        while Shop.objects.filter(slug=slug).exclude(pk=self.pk).exists():
            slug = f"{base}-{n}"
            n += 1
        return slug
