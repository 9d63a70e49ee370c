"""
HTML invoice renderer.

Called as renderer(order, user, shop, owner) and returns (url, invoice_number).
Swap it through the ORDER_INVOICE_RENDERER setting.
"""
from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from django.template.loader import render_to_string
from django.utils import timezone


def invoice_number_for(order, now=None):
    now = now or timezone.now()
    return f"INV-{order.order_number}-{int(now.timestamp() * 1000)}"


def render_invoice(order, user, shop, owner):
    number = invoice_number_for(order)
    html = render_to_string(
        "orders/invoice.html",
        {
            "order": order,
            "items": order.items.all(),
            "buyer": user,
            "shop": shop,
            "owner": owner,
            "invoice_number": number,
            "issued_at": timezone.now(),
        },
    )
    name = default_storage.save(f"invoices/{number}.html", ContentFile(html.encode("utf-8")))
    return default_storage.url(name), number
