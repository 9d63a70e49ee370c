import django_filters
from django.db.models import Q

from .choices import OrderStatus
from .models import Order


class OrderFilter(django_filters.FilterSet):
    """?status=&date_from=&date_to="""

    status = django_filters.ChoiceFilter(choices=OrderStatus.choices)
    date_from = django_filters.DateFilter(field_name="created_at", lookup_expr="date__gte")
    date_to = django_filters.DateFilter(field_name="created_at", lookup_expr="date__lte")

    class Meta:
        model = Order
        fields = ["status", "payment_status"]


class ManageOrderFilter(OrderFilter):
    """Adds ?search= over order number and buyer."""

    search = django_filters.CharFilter(method="search_filter")

    def search_filter(self, queryset, name, value):
        return queryset.filter(
            Q(order_number__icontains=value)
            | Q(user__name__icontains=value)
            | Q(user__email__icontains=value)
        )
