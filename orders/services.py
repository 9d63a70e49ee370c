"""
Order lifecycle: checkout, status changes, cancellation and invoices.

Checkout runs as one transaction: the cart and every product row are locked,
re-validated, snapshotted into the order and decremented with conditional
updates. Stock is never read-modify-written. Notifications are scheduled to
run after commit and cannot affect the outcome.
"""
import logging
from decimal import ROUND_HALF_UP, Decimal
from urllib.parse import urlparse

from django.conf import settings
from django.core.files.storage import default_storage
from django.db import transaction
from django.db.models import F
from django.utils import timezone
from django.utils.module_loading import import_string

from cart.models import Cart
from catalog.models import Product
from common.exceptions import (
    EmptyCart,
    InsufficientStock,
    InvalidStatus,
    InvalidTransition,
    NotAuthorized,
    OrderNotFound,
    ProductNotFound,
    ProductUnavailable,
)
from core.permissions import is_management_role
from customers.models import Customer

from . import notifications
from .choices import CANCELLABLE_STATUSES, OrderStatus, can_transition
from .models import Order, OrderItem, OrderSequence

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------


def shipping_for(subtotal):
    if subtotal > settings.ORDER_FREE_SHIPPING_THRESHOLD:
        return Decimal("0.00")
    return Decimal(settings.ORDER_SHIPPING_FEE).quantize(CENT)


def tax_for(subtotal):
    return (subtotal * Decimal(settings.ORDER_TAX_RATE)).quantize(CENT, rounding=ROUND_HALF_UP)


def next_order_number(shop_id, day=None):
    """
    Allocate the next number of the shop's daily sequence.
    Must run inside the checkout transaction; the counter row stays locked
    until commit so concurrent checkouts are serialized per shop and day.
    """
    day = day or timezone.localdate()
    sequence, _ = OrderSequence.objects.select_for_update().get_or_create(shop_id=shop_id, day=day)
    OrderSequence.objects.filter(pk=sequence.pk).update(last_value=F("last_value") + 1)
    sequence.refresh_from_db(fields=["last_value"])
    return f"{settings.ORDER_NUMBER_PREFIX}{day:%y%m%d}{sequence.last_value:04d}"


def _locked_products(ctx, product_ids):
    qs = (
        ctx.scope.query(Product, include_deleted=True)
        .select_for_update()
        .filter(pk__in=product_ids)
        .order_by("pk")
    )
    return {product.pk: product for product in qs}


def _check_line(product, quantity):
    if product is None or product.is_deleted:
        raise ProductNotFound()
    if not product.is_active:
        raise ProductUnavailable(f"{product.name} is not available.", product=product.name)
    if product.stock < quantity:
        raise InsufficientStock(
            f"Insufficient stock for {product.name}. Available: {product.stock}",
            product=product.name,
            available=product.stock,
        )


def _bump_customer(ctx, customer_id, orders, amount, placed_at=None):
    changes = {"total_orders": F("total_orders") + orders, "total_spent": F("total_spent") + amount}
    if placed_at is not None:
        changes["last_order_at"] = placed_at
    ctx.scope.query(Customer, include_deleted=True).filter(pk=customer_id).update(**changes)


def place_order(ctx, shipping_address, customer_id=None, notes="") -> Order:
    """
    Turn the caller's cart into a PLACED order.

    Raises EmptyCart, ProductNotFound, ProductUnavailable or InsufficientStock
    (with the product name and available quantity). Nothing is written unless
    every line passes.
    """
    with transaction.atomic():
        cart = ctx.scope.query(Cart).select_for_update().filter(user_id=ctx.user_id).first()
        lines = list(cart.items.order_by("product_id")) if cart else []
        if not lines:
            raise EmptyCart()

        customer = None
        if customer_id:
            if not is_management_role(ctx):
                raise NotAuthorized("Only shop staff can link an order to a customer record.")
            customer = ctx.scope.get(Customer, customer_id)

        products = _locked_products(ctx, [line.product_id for line in lines])
        snapshot = []
        subtotal = Decimal("0.00")
        total_items = 0
        for line in lines:
            product = products.get(line.product_id)
            _check_line(product, line.quantity)
            line_subtotal = product.final_price * line.quantity
            subtotal += line_subtotal
            total_items += line.quantity
            snapshot.append(
                OrderItem(
                    product=product,
                    name=product.name,
                    image=product.primary_image,
                    quantity=line.quantity,
                    price=product.price,
                    discount=product.discount,
                    final_price=product.final_price,
                    subtotal=line_subtotal,
                )
            )

        shipping = shipping_for(subtotal)
        tax = tax_for(subtotal)
        order = ctx.scope.create(
            Order,
            order_number=next_order_number(ctx.shop_id),
            user_id=ctx.user_id,
            customer=customer,
            shipping_address=shipping_address,
            total_items=total_items,
            subtotal=subtotal,
            discount=cart.discount,
            shipping_charges=shipping,
            tax=tax,
            total_amount=subtotal + shipping + tax,
            notes=notes or "",
            status=OrderStatus.PLACED,
        )
        for item in snapshot:
            item.order = order
        OrderItem.objects.bulk_create(snapshot)
        order.status_history.create(status=OrderStatus.PLACED, note="Order placed")

        for item in snapshot:
            if not ctx.scope.adjust(Product, item.product_id, "stock", -item.quantity, floor=0):
                # Row lock makes this unreachable unless stock changed outside checkout.
                raise InsufficientStock(f"Insufficient stock for {item.name}.", product=item.name)

        if customer is not None:
            _bump_customer(ctx, customer.pk, 1, order.total_amount, placed_at=order.created_at)

        cart.items.all().delete()
        cart.recalculate()

        notifications.order_placed(order)

    logger.info(
        "Order %s placed in shop %s by user %s (%s items, total %s)",
        order.order_number,
        ctx.shop_id,
        ctx.user_id,
        total_items,
        order.total_amount,
    )
    return order


# ---------------------------------------------------------------------------
# Status changes
# ---------------------------------------------------------------------------


def _restore_stock(ctx, order):
    for item in order.items.all():
        if item.product_id:
            ctx.scope.adjust(Product, item.product_id, "stock", item.quantity)


def _locked_order(ctx, order_id) -> Order:
    return ctx.scope.lock(Order, order_id, not_found=OrderNotFound)


def update_order_status(ctx, order_id, status, note="") -> Order:
    """
    Management status change. Moves are forward only; CANCELLED is reachable
    from PLACED or CONFIRMED and puts the stock back.
    """
    if status not in OrderStatus.values:
        raise InvalidStatus(f"Invalid status. Valid: {', '.join(OrderStatus.values)}", status=status)

    with transaction.atomic():
        order = _locked_order(ctx, order_id)
        previous = order.status
        if not can_transition(previous, status):
            raise InvalidTransition(
                f"Cannot change status from {previous} to {status}.",
                current=previous,
                target=status,
            )
        if status == OrderStatus.CANCELLED:
            _restore_stock(ctx, order)
            if order.customer_id:
                _bump_customer(ctx, order.customer_id, -1, -order.total_amount)
        order.set_status(status, note=note)
        notifications.status_changed(order)

    logger.info("Order %s: %s -> %s by user %s", order.order_number, previous, status, ctx.user_id)
    return order


def cancel_order(ctx, order_id, reason) -> Order:
    """Buyer cancellation. Only the user who placed the order, only before packing."""
    with transaction.atomic():
        order = _locked_order(ctx, order_id)
        if order.user_id != ctx.user_id:
            raise NotAuthorized("Not authorized to cancel this order.")
        if order.status not in CANCELLABLE_STATUSES:
            raise InvalidTransition(
                f"Order cannot be cancelled. Current status: {order.status}",
                current=order.status,
                target=OrderStatus.CANCELLED,
            )
        _restore_stock(ctx, order)
        order.cancel_reason = reason
        order.save(update_fields=["cancel_reason", "updated_at"])
        order.set_status(OrderStatus.CANCELLED, note=f"Cancelled by customer: {reason}")
        if order.customer_id:
            _bump_customer(ctx, order.customer_id, -1, -order.total_amount)
        notifications.order_cancelled(order)

    logger.info("Order %s cancelled by user %s", order.order_number, ctx.user_id)
    return order


# ---------------------------------------------------------------------------
# Invoices
# ---------------------------------------------------------------------------


def _invoice_missing(order):
    if not order.invoice_url:
        return True
    media = settings.MEDIA_URL.strip("/") + "/"
    path = urlparse(order.invoice_url).path.lstrip("/")
    if path.startswith(media):
        path = path[len(media):]
    return not default_storage.exists(path)


def get_invoice(ctx, order_id) -> Order:
    """
    Return the order with a stored invoice, rendering a new one when none
    exists or the stored file is gone. A regenerated invoice gets a new number.
    """
    order = get_order(ctx, order_id)
    if not _invoice_missing(order):
        return order

    renderer = import_string(settings.ORDER_INVOICE_RENDERER)
    shop = order.shop
    url, number = renderer(order, order.user, shop, shop.owner)
    with transaction.atomic():
        ctx.scope.query(Order).filter(pk=order.pk).update(
            invoice_url=url, invoice_number=number, updated_at=timezone.now()
        )
        order.invoice_url, order.invoice_number = url, number
        notifications.invoice_ready(order)
    logger.info("Invoice %s generated for order %s", number, order.order_number)
    return order


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


def _with_lines(qs):
    return qs.select_related("user", "customer").prefetch_related("items", "status_history")


def my_orders(ctx, status=None):
    qs = ctx.scope.query(Order).filter(user_id=ctx.user_id)
    if status:
        qs = qs.filter(status=status)
    return qs


def get_order(ctx, order_id) -> Order:
    """Single order for its buyer, or for OWNER/STAFF of the shop."""
    order = ctx.scope.get(
        Order,
        order_id,
        queryset=_with_lines(ctx.scope.query(Order)).select_related("shop", "shop__owner"),
        not_found=OrderNotFound,
    )
    if order.user_id != ctx.user_id and not is_management_role(ctx):
        raise NotAuthorized("Not authorized to view this order.")
    return order


def manage_orders(ctx, status=None):
    qs = ctx.scope.query(Order).select_related("user", "customer")
    if status:
        qs = qs.filter(status=status)
    return qs


def get_managed_order(ctx, order_id) -> Order:
    return ctx.scope.get(
        Order, order_id, queryset=_with_lines(ctx.scope.query(Order)), not_found=OrderNotFound
    )
