from django.db import transaction

from common.exceptions import NotFound
from .models import Shop

SHOP_DETAIL_FIELDS = (
    "name",
    "email",
    "phone",
    "street",
    "city",
    "state",
    "pincode",
    "country",
    "gst_number",
    "is_gst_registered",
)
MODULE_FLAGS = ("inventory_enabled", "orders_enabled", "customers_enabled")


def get_my_shop(ctx):
    # The resolver already refused inactive shops.
    return Shop.objects.select_related("owner").get(pk=ctx.shop_id)


@transaction.atomic
def update_shop(ctx, **fields):
    shop = Shop.objects.select_for_update().get(pk=ctx.shop_id)
    changed = [name for name in SHOP_DETAIL_FIELDS if name in fields]
    for name in changed:
        setattr(shop, name, fields[name])
    if changed:
        shop.save(update_fields=[*changed, "updated_at"])
    return shop


@transaction.atomic
def update_shop_settings(ctx, **flags):
    shop = Shop.objects.select_for_update().get(pk=ctx.shop_id)
    changed = [name for name in MODULE_FLAGS if name in flags]
    for name in changed:
        setattr(shop, name, bool(flags[name]))
    if changed:
        shop.save(update_fields=[*changed, "updated_at"])
    return shop


def get_public_shop(slug):
    """Read-only lookup by slug. Suspended shops are returned with is_active=False."""
    shop = Shop.objects.filter(slug=slug).first()
    if shop is None:
        raise NotFound("Shop not found.")
    return shop


def get_storefront_shop(slug):
    """Shop whose catalog is publicly browsable: must exist and be active."""
    shop = get_public_shop(slug)
    if not shop.is_active:
        raise NotFound("Shop not found or inactive.")
    return shop
