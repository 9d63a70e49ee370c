"""Shop dashboard figures. Callers have passed VIEW_REPORTS."""
from datetime import date, datetime, time, timedelta
from decimal import Decimal

from django.conf import settings
from django.db.models import Count, Sum
from django.db.models.functions import TruncDate, TruncMonth
from django.utils import timezone

from accounts.choices import Role
from accounts.models import User
from catalog.models import Product
from customers.models import Customer

from .choices import OrderStatus
from .models import Order

ZERO = Decimal("0.00")


def _months_back(today, months):
    year, month = today.year, today.month - months
    while month <= 0:
        month += 12
        year -= 1
    return date(year, month, 1)


def _start_of(day):
    return timezone.make_aware(datetime.combine(day, time.min))


def _series(qs, trunc, since):
    rows = (
        qs.filter(created_at__gte=_start_of(since))
        .annotate(period=trunc("created_at"))
        .values("period")
        .annotate(revenue=Sum("total_amount"), orders=Count("id"))
        .order_by("period")
    )
    return [
        {
            "period": row["period"].date() if isinstance(row["period"], datetime) else row["period"],
            "revenue": row["revenue"] or ZERO,
            "orders": row["orders"],
        }
        for row in rows
    ]


def dashboard(ctx, recent=5):
    orders = ctx.scope.query(Order)
    billable = orders.exclude(status=OrderStatus.CANCELLED)
    by_status = {row["status"]: row["n"] for row in orders.order_by().values("status").annotate(n=Count("id"))}
    today = timezone.localdate()
    products = ctx.scope.query(Product)
    low_stock = products.filter(is_active=True, stock__lt=settings.LOW_STOCK_THRESHOLD).order_by("stock", "name")

    return {
        "orders": {
            "total": orders.count(),
            "by_status": {status: by_status.get(status, 0) for status in OrderStatus.values},
            "today": orders.filter(created_at__gte=_start_of(today)).count(),
        },
        "revenue": {
            "total": billable.aggregate(total=Sum("total_amount"))["total"] or ZERO,
            "daily": _series(billable, TruncDate, today - timedelta(days=6)),
            "monthly": _series(billable, TruncMonth, _months_back(today, 5)),
        },
        "products": {
            "total": products.count(),
            "active": products.filter(is_active=True).count(),
            "low_stock_threshold": settings.LOW_STOCK_THRESHOLD,
            "low_stock": list(low_stock.values("id", "name", "slug", "stock")[:10]),
        },
        "customers": {
            "records": ctx.scope.query(Customer).count(),
            "accounts": User.objects.for_shop(ctx.shop_id).filter(role=Role.CUSTOMER).count(),
        },
        "recent_orders": orders.select_related("user")[:recent],
    }
