"""
Audit trail of privileged mutations. Rows are written once and never edited.
"""
from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _

from core.querysets import ShopScopedQuerySet


class AuditAction(models.TextChoices):
    CREATE_PRODUCT = "CREATE_PRODUCT"
    UPDATE_PRODUCT = "UPDATE_PRODUCT"
    DELETE_PRODUCT = "DELETE_PRODUCT"
    ACTIVATE_PRODUCT = "ACTIVATE_PRODUCT"
    DEACTIVATE_PRODUCT = "DEACTIVATE_PRODUCT"
    UPDATE_ORDER_STATUS = "UPDATE_ORDER_STATUS"
    CREATE_USER = "CREATE_USER"
    UPDATE_USER = "UPDATE_USER"
    DELETE_USER = "DELETE_USER"
    BLOCK_USER = "BLOCK_USER"
    UNBLOCK_USER = "UNBLOCK_USER"
    CREATE_CUSTOMER = "CREATE_CUSTOMER"
    UPDATE_CUSTOMER = "UPDATE_CUSTOMER"
    DELETE_CUSTOMER = "DELETE_CUSTOMER"
    UPDATE_SHOP = "UPDATE_SHOP"
    OTHER = "OTHER"


class AuditEntity(models.TextChoices):
    USER = "USER"
    PRODUCT = "PRODUCT"
    ORDER = "ORDER"
    CUSTOMER = "CUSTOMER"
    SHOP = "SHOP"
    SYSTEM = "SYSTEM"


class AuditLog(models.Model):
    """One privileged mutation: who, what, on which row, from where."""

    shop = models.ForeignKey(
        "shops.Shop",
        on_delete=models.CASCADE,
        related_name="audit_logs",
        verbose_name=_("shop"),
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name="audit_logs",
        verbose_name=_("user"),
        help_text=_("Acting user."),
    )
    action = models.CharField(max_length=32, choices=AuditAction.choices, verbose_name=_("action"))
    entity = models.CharField(max_length=16, choices=AuditEntity.choices, verbose_name=_("entity"))
    entity_id = models.CharField(
        max_length=64,
        blank=True,
        default="",
        verbose_name=_("entity id"),
        help_text=_("Primary key of the affected row, when there is one."),
    )
    details = models.JSONField(default=dict, blank=True, verbose_name=_("details"))
    ip_address = models.GenericIPAddressField(null=True, blank=True, verbose_name=_("IP address"))
    user_agent = models.CharField(max_length=512, blank=True, default="", verbose_name=_("user agent"))
    created_at = models.DateTimeField(auto_now_add=True, db_index=True, verbose_name=_("created at"))

    objects = ShopScopedQuerySet.as_manager()

    class Meta:
        verbose_name = _("audit log")
        verbose_name_plural = _("audit logs")
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["shop", "user", "-created_at"], name="audit_shop_user_idx"),
            models.Index(fields=["shop", "entity", "entity_id"], name="audit_shop_entity_idx"),
        ]

    def __str__(self):
        return f"{self.action} {self.entity}:{self.entity_id}"

    def save(self, *args, **kwargs):
        if self.pk is not None:
            raise ValueError("Audit log entries are write-once.")
        super().save(*args, **kwargs)
