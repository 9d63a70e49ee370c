"""
User and Address models.

A user belongs to exactly one shop. Email and phone are unique per shop, not
globally, so USERNAME_FIELD is non-unique and login goes through
accounts.backends.ShopEmailBackend with an explicit shop.
"""
from django.conf import settings
from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.core.validators import RegexValidator
from django.db import models
from django.db.models import Q
from django.utils.translation import gettext_lazy as _

from common.models import SoftDeleteModel, TimeStampedModel
from common.utils import PHONE_RE
from core.querysets import ShopScopedQuerySet
from .choices import Role

phone_validator = RegexValidator(PHONE_RE, _("Enter a valid 10-digit phone number."))

STAFF_PERMISSION_FIELDS = (
    "can_manage_products",
    "can_manage_orders",
    "can_manage_customers",
    "can_view_reports",
)


class UserManager(BaseUserManager.from_queryset(ShopScopedQuerySet)):
    """Email-based manager; shop-scoped reads go through for_shop()."""

    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError("Users must have an email address")
        email = self.normalize_email(email).lower()
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)
        if extra_fields.get("is_staff") is not True:
            raise ValueError("Superuser must have is_staff=True.")
        if extra_fields.get("is_superuser") is not True:
            raise ValueError("Superuser must have is_superuser=True.")
        return self.create_user(email, password, **extra_fields)


class User(AbstractUser, TimeStampedModel, SoftDeleteModel):
    """
    Shop member. role decides what they may do; the can_* flags only matter
    for STAFF. `is_staff` is Django admin access and unrelated to role.
    """

    username = None
    first_name = None
    last_name = None

    shop = models.ForeignKey(
        "shops.Shop",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="users",
        verbose_name=_("shop"),
        help_text=_("Shop this account belongs to. Empty only for platform administrators."),
    )
    email = models.EmailField(verbose_name=_("email"))
    name = models.CharField(max_length=255, blank=True, default="", verbose_name=_("name"))
    phone = models.CharField(
        max_length=10,
        null=True,
        blank=True,
        validators=[phone_validator],
        verbose_name=_("phone"),
    )
    role = models.CharField(
        max_length=10,
        choices=Role.choices,
        default=Role.CUSTOMER,
        db_index=True,
        verbose_name=_("role"),
    )
    can_manage_products = models.BooleanField(default=False)
    can_manage_orders = models.BooleanField(default=False)
    can_manage_customers = models.BooleanField(default=False)
    can_view_reports = models.BooleanField(default=False)

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        verbose_name = _("user")
        verbose_name_plural = _("users")
        constraints = [
            models.UniqueConstraint(fields=["shop", "email"], name="unique_shop_email"),
            models.UniqueConstraint(fields=["shop", "phone"], name="unique_shop_phone"),
            models.UniqueConstraint(
                fields=["shop"],
                condition=Q(role=Role.OWNER),
                name="one_owner_per_shop",
            ),
        ]

    def __str__(self):
        return self.email

    def get_full_name(self):
        return self.name or self.email

    def get_short_name(self):
        return self.name.split(" ")[0] if self.name else self.email

    @property
    def is_owner(self):
        return self.role == Role.OWNER

    def staff_permissions(self):
        """Permission flags as a dict; empty for anyone but STAFF."""
        if self.role != Role.STAFF:
            return {}
        return {name: getattr(self, name) for name in STAFF_PERMISSION_FIELDS}


class Address(TimeStampedModel):
    """Saved shipping address. At most one is_default per user."""

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="addresses",
        verbose_name=_("user"),
    )
    full_name = models.CharField(max_length=255)
    phone = models.CharField(max_length=10, validators=[phone_validator])
    address_line1 = models.CharField(max_length=255)
    address_line2 = models.CharField(max_length=255, blank=True, default="")
    city = models.CharField(max_length=100)
    state = models.CharField(max_length=100)
    pincode = models.CharField(max_length=10)
    country = models.CharField(max_length=100, default="India")
    is_default = models.BooleanField(default=False)

    class Meta:
        verbose_name = _("address")
        verbose_name_plural = _("addresses")
        ordering = ["-is_default", "-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["user"],
                condition=Q(is_default=True),
                name="one_default_address_per_user",
            )
        ]

    def __str__(self):
        return f"{self.full_name}, {self.city}"

    def as_snapshot(self):
        """Plain dict copied onto an order."""
        return {
            "full_name": self.full_name,
            "phone": self.phone,
            "address_line1": self.address_line1,
            "address_line2": self.address_line2,
            "city": self.city,
            "state": self.state,
            "pincode": self.pincode,
            "country": self.country,
        }
