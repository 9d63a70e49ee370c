from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class TimeStampedModel(models.Model):
    """Abstract base model with created_at and updated_at timestamps."""

    created_at = models.DateTimeField(
        auto_now_add=True,
        verbose_name=_("created at"),
        help_text=_("Timestamp when the record was created."),
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        verbose_name=_("updated at"),
        help_text=_("Timestamp when the record was last updated."),
    )

    class Meta:
        abstract = True


class SoftDeleteModel(models.Model):
    """
    Abstract base for rows that are flagged, never physically removed.
    ShopScopedQuerySet.for_shop() hides flagged rows unless include_deleted=True.
    """

    is_deleted = models.BooleanField(
        default=False,
        db_index=True,
        verbose_name=_("is deleted"),
        help_text=_("Soft-delete flag. Deleted rows are hidden from shop queries."),
    )
    deleted_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name=_("deleted at"),
        help_text=_("When the row was soft-deleted."),
    )

    class Meta:
        abstract = True

    def soft_delete(self, *extra_fields):
        """Flag as deleted and persist only the touched fields."""
        self.is_deleted = True
        self.deleted_at = timezone.now()
        update_fields = ["is_deleted", "deleted_at", *extra_fields]
        if any(f.name == "updated_at" for f in self._meta.concrete_fields):
            update_fields.append("updated_at")
        self.save(update_fields=update_fields)
