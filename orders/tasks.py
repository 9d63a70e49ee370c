"""
E-mail notifications for order events. Queued by orders.notifications after
the triggering transaction commits; a task that cannot deliver retries and is
then dropped.
"""
import logging
import smtplib

from celery import shared_task
from django.conf import settings
from django.core.mail import send_mail

from .models import Order

logger = logging.getLogger(__name__)

RETRY_ON = (smtplib.SMTPException, OSError)


def _load(shop_id, order_id):
    order = (
        Order.objects.for_shop(shop_id)
        .select_related("user", "shop", "shop__owner")
        .filter(pk=order_id)
        .first()
    )
    if order is None:
        logger.warning("Order %s of shop %s vanished before notification", order_id, shop_id)
    return order


def _deliver(task, subject, message, recipients):
    recipients = [address for address in recipients if address]
    if not recipients:
        return 0
    try:
        return send_mail(subject, message, settings.DEFAULT_FROM_EMAIL, recipients)
    except RETRY_ON as exc:
        raise task.retry(exc=exc)


@shared_task(bind=True, max_retries=3, default_retry_delay=60)
def send_order_placed_email(self, shop_id, order_id):
    order = _load(shop_id, order_id)
    if order is None:
        return 0
    message = (
        f"Hi {order.user.name},\n\n"
        f"Thank you for your order {order.order_number} at {order.shop.name}.\n"
        f"Items: {order.total_items}\n"
        f"Total: {order.total_amount}\n\n"
        "We will let you know when it ships."
    )
    return _deliver(self, f"Order {order.order_number} placed", message, [order.user.email])


@shared_task(bind=True, max_retries=3, default_retry_delay=60)
def send_status_update_email(self, shop_id, order_id):
    order = _load(shop_id, order_id)
    if order is None:
        return 0
    message = (
        f"Hi {order.user.name},\n\n"
        f"Your order {order.order_number} is now {order.get_status_display()}."
    )
    return _deliver(self, f"Order {order.order_number}: {order.get_status_display()}", message, [order.user.email])


@shared_task(bind=True, max_retries=3, default_retry_delay=60)
def send_order_cancelled_email(self, shop_id, order_id):
    order = _load(shop_id, order_id)
    if order is None:
        return 0
    message = (
        f"Hi {order.user.name},\n\n"
        f"Your order {order.order_number} has been cancelled.\n"
        f"Reason: {order.cancel_reason or '-'}"
    )
    return _deliver(self, f"Order {order.order_number} cancelled", message, [order.user.email])


@shared_task(bind=True, max_retries=3, default_retry_delay=60)
def send_invoice_email(self, shop_id, order_id):
    order = _load(shop_id, order_id)
    if order is None or not order.invoice_url:
        return 0
    link = order.invoice_url
    if not link.startswith(("http://", "https://")):
        link = f"{settings.FRONTEND_URL.rstrip('/')}/{link.lstrip('/')}"
    message = (
        f"Hi {order.user.name},\n\n"
        f"Invoice {order.invoice_number} for order {order.order_number} is ready:\n{link}"
    )
    return _deliver(self, f"Invoice for order {order.order_number}", message, [order.user.email])


@shared_task(bind=True, max_retries=3, default_retry_delay=60)
def send_admin_order_alert(self, shop_id, order_id):
    order = _load(shop_id, order_id)
    if order is None:
        return 0
    owner = order.shop.owner
    message = (
        f"New order {order.order_number} in {order.shop.name}\n"
        f"Customer: {order.user.name} <{order.user.email}>\n"
        f"Items: {order.total_items}\n"
        f"Total: {order.total_amount}"
    )
    recipients = {owner.email if owner else "", settings.ADMIN_ALERT_EMAIL}
    return _deliver(self, f"New order {order.order_number}", message, sorted(recipients))
