"""
Product management within one shop. Callers have passed MANAGE_PRODUCTS.
"""
import logging

from django.db import transaction
from django.utils.text import slugify

from common.exceptions import ProductNotFound
from common.utils import unique_slug
from shops.services import get_storefront_shop
from .choices import Category
from .models import Product

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    "name",
    "description",
    "price",
    "discount",
    "stock",
    "category",
    "images",
    "brand",
    "specifications",
    "is_active",
)


def get_product(ctx, product_id):
    return ctx.scope.get(Product, product_id, not_found=ProductNotFound)


def create_product(ctx, **data) -> Product:
    fields = {k: v for k, v in data.items() if k in EDITABLE_FIELDS}
    product = ctx.scope.create(
        Product,
        created_by_id=ctx.user_id,
        updated_by_id=ctx.user_id,
        **fields,
    )
    logger.info("Product %s created in shop %s", product.pk, ctx.shop_id)
    return product


def update_product(ctx, product_id, **data) -> Product:
    """
    Edit in place, writing only the edited columns. An explicit stock value
    is written under the row lock checkout uses. A rename keeps the slug
    unless the slugified name changes; final price follows price/discount.
    """
    changed = [name for name in EDITABLE_FIELDS if name in data]
    with transaction.atomic():
        if "stock" in data:
            product = ctx.scope.lock(Product, product_id, not_found=ProductNotFound)
        else:
            product = get_product(ctx, product_id)
        old_name = product.name
        for name in changed:
            setattr(product, name, data[name])
        if "name" in data and slugify(product.name) != slugify(old_name):
            product.slug = unique_slug(product.name)
            changed.append("slug")
        product.updated_by_id = ctx.user_id
        product.save(update_fields=[*changed, "updated_by", "updated_at"])
    return product


def delete_product(ctx, product_id):
    product = get_product(ctx, product_id)
    product.is_active = False
    product.updated_by_id = ctx.user_id
    product.soft_delete("is_active", "updated_by")
    return product


def toggle_product(ctx, product_id) -> Product:
    product = get_product(ctx, product_id)
    product.is_active = not product.is_active
    product.updated_by_id = ctx.user_id
    product.save(update_fields=["is_active", "updated_by", "updated_at"])
    return product


def list_categories(shop=None):
    """Closed category list, or the categories a shop actually uses."""
    if shop is None:
        return [value for value, _ in Category.choices]
    used = (
        Product.objects.for_shop(shop)
        .filter(is_active=True)
        .values_list("category", flat=True)
        .distinct()
    )
    return sorted(set(used))


def storefront_products(slug):
    """Active, non-deleted products of an active shop, for anonymous browsing."""
    shop = get_storefront_shop(slug)
    return shop, Product.objects.for_shop(shop).filter(is_active=True)


def storefront_product(slug, product_slug):
    _, qs = storefront_products(slug)
    product = qs.filter(slug=product_slug).first()
    if product is None:
        raise ProductNotFound()
    return product
