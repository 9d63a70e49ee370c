import django_filters
from django.db.models import Q

from .choices import Category
from .models import Product


class ProductFilter(django_filters.FilterSet):
    """?category=&min_price=&max_price=&search=&is_active=&ordering="""

    category = django_filters.ChoiceFilter(choices=Category.choices)
    min_price = django_filters.NumberFilter(field_name="final_price", lookup_expr="gte")
    max_price = django_filters.NumberFilter(field_name="final_price", lookup_expr="lte")
    search = django_filters.CharFilter(method="search_filter")
    in_stock = django_filters.BooleanFilter(method="in_stock_filter")
    ordering = django_filters.OrderingFilter(
        fields=(
            ("created_at", "created_at"),
            ("final_price", "price"),
            ("name", "name"),
            ("stock", "stock"),
        )
    )

    class Meta:
        model = Product
        fields = ["category", "is_active", "brand"]

    def search_filter(self, queryset, name, value):
        return queryset.filter(
            Q(name__icontains=value) | Q(description__icontains=value) | Q(brand__icontains=value)
        )

    def in_stock_filter(self, queryset, name, value):
        if value:
            return queryset.filter(stock__gt=0)
        return queryset.filter(stock=0)


class StorefrontProductFilter(ProductFilter):
    class Meta:
        model = Product
        fields = ["category", "brand"]
