"""
ShopScope: the single entry point for reading and writing shop-owned rows.

A scope cannot be built without a shop identity, and every query it hands out
already carries the shop filter and the soft-delete predicate. A lookup by pk
that does not match the scope's shop is reported exactly like a missing row.
"""
from django.core.exceptions import ValidationError
from django.db.models import F

from common.exceptions import NotFound
from .querysets import shop_pk


class ShopScope:
    """Shop-bound query builder for models using ShopScopedQuerySet."""

    def __init__(self, shop):
        self.shop_id = shop_pk(shop)

    def __repr__(self):
        return f"<ShopScope shop={self.shop_id}>"

    def query(self, model, include_deleted=False):
        """All rows of `model` visible in this shop."""
        return model.objects.for_shop(self.shop_id, include_deleted=include_deleted)

    def get(self, model, pk, *, queryset=None, not_found=None, **filters):
        """
        Fetch one row by pk within this shop.
        Raises `not_found` (default: NotFound) when the row is absent or
        belongs to another shop; callers cannot tell the two apart.
        """
        qs = queryset if queryset is not None else self.query(model)
        try:
            obj = qs.filter(shop_id=self.shop_id, pk=pk, **filters).first() if pk else None
        except (ValueError, TypeError, ValidationError):
            obj = None
        if obj is None:
            error = not_found or NotFound
            raise error(f"{model._meta.verbose_name.capitalize()} not found.")
        return obj

    def lock(self, model, pk, *, not_found=None):
        """get() with SELECT ... FOR UPDATE. Call inside transaction.atomic()."""
        return self.get(
            model, pk, queryset=self.query(model).select_for_update(), not_found=not_found
        )

    def create(self, model, **fields):
        """Create a row owned by this shop; a conflicting shop argument is refused."""
        fields.pop("shop", None)
        fields["shop_id"] = self.shop_id
        return model.objects.create(**fields)

    def adjust(self, model, pk, field, delta, floor=None):
        """
        Atomic `field = field + delta` on one row of this shop.
        With `floor`, the update only applies if the result stays >= floor.
        Returns True when a row was updated.
        """
        qs = self.query(model, include_deleted=True).filter(pk=pk)
        if floor is not None and delta < 0:
            qs = qs.filter(**{f"{field}__gte": floor - delta})
        return qs.update(**{field: F(field) + delta}) == 1
