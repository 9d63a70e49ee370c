"""
Cart mutations for the calling user. Every change ends with recalculate().
"""
from django.db import transaction

from catalog.models import Product
from common.exceptions import (
    InsufficientStock,
    NotFound,
    ProductNotFound,
    ProductUnavailable,
    ValidationFailed,
)
from .models import Cart, CartItem


def get_or_create_cart(ctx) -> Cart:
    cart, _ = ctx.scope.query(Cart).get_or_create(shop_id=ctx.shop_id, user_id=ctx.user_id)
    return cart


def _locked_cart(ctx) -> Cart:
    cart = get_or_create_cart(ctx)
    return ctx.scope.lock(Cart, cart.pk)


def _available_product(ctx, product_id, quantity) -> Product:
    product = ctx.scope.get(Product, product_id, not_found=ProductNotFound)
    if not product.is_active:
        raise ProductUnavailable(f"{product.name} is not available.", product=product.name)
    if product.stock < quantity:
        raise InsufficientStock(
            f"Insufficient stock for {product.name}. Available: {product.stock}",
            product=product.name,
            available=product.stock,
        )
    return product


def _cart_item(cart, product_id) -> CartItem:
    item = cart.items.filter(product_id=product_id).first()
    if item is None:
        raise NotFound("Item not found in cart.")
    return item


@transaction.atomic
def add_item(ctx, product_id, quantity=1) -> Cart:
    if quantity < 1:
        raise ValidationFailed("Quantity must be at least 1.", field="quantity")
    cart = _locked_cart(ctx)
    existing = cart.items.filter(product_id=product_id).first()
    wanted = quantity + (existing.quantity if existing else 0)
    product = _available_product(ctx, product_id, wanted)
    if existing:
        existing.quantity = wanted
        existing.save(update_fields=["quantity"])
    else:
        CartItem.objects.create(
            cart=cart,
            product=product,
            quantity=quantity,
            price=product.price,
            discount=product.discount,
            final_price=product.final_price,
        )
    return cart.recalculate()


@transaction.atomic
def update_item(ctx, product_id, quantity) -> Cart:
    if quantity < 1:
        raise ValidationFailed("Quantity must be at least 1.", field="quantity")
    cart = _locked_cart(ctx)
    item = _cart_item(cart, product_id)
    _available_product(ctx, product_id, quantity)
    item.quantity = quantity
    item.save(update_fields=["quantity"])
    return cart.recalculate()


@transaction.atomic
def remove_item(ctx, product_id) -> Cart:
    cart = _locked_cart(ctx)
    _cart_item(cart, product_id).delete()
    return cart.recalculate()


@transaction.atomic
def clear_cart(ctx) -> Cart:
    cart = _locked_cart(ctx)
    cart.items.all().delete()
    return cart.recalculate()
