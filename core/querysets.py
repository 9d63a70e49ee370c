"""
Reusable querysets filtered by shop.

Every shop-owned model (Product, Customer, Cart, Order, AuditLog, User) uses
ShopScopedQuerySet as its manager. Views and services reach those rows only
through for_shop() (usually via core.scoping.ShopScope), which refuses to run
without a shop and applies the soft-delete visibility predicate.
"""
from django.core.exceptions import FieldDoesNotExist
from django.db import models

from common.exceptions import TenantScopeError


def shop_pk(shop):
    """Resolve a Shop instance or raw pk to a pk. Missing shop is fatal."""
    pk = getattr(shop, "pk", shop)
    if pk is None or pk == "" or isinstance(pk, bool):
        raise TenantScopeError("Shop-scoped query built without a shop identity.")
    return pk


class ShopScopedQuerySet(models.QuerySet):
    """
    Queryset for models with a shop FK.
    """

    def for_shop(self, shop, include_deleted=False):
        """Filter to rows belonging to the given shop (pk or instance)."""
        qs = self.filter(shop_id=shop_pk(shop))
        if not include_deleted and self._is_soft_deletable():
            qs = qs.filter(is_deleted=False)
        return qs

    def visible(self):
        """Explicit visibility predicate: hide soft-deleted rows."""
        if self._is_soft_deletable():
            return self.filter(is_deleted=False)
        return self

    def _is_soft_deletable(self):
        try:
            self.model._meta.get_field("is_deleted")
        except FieldDoesNotExist:
            return False
        return True
