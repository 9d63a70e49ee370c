from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class StandardPagination(PageNumberPagination):
    """1-based ?page=&limit= pagination returning items plus total and page count."""

    page_size = 20
    page_size_query_param = "limit"
    max_page_size = 100

    def get_paginated_response(self, data):
        return Response(
            {
                "results": data,
                "pagination": {
                    "page": self.page.number,
                    "limit": self.page.paginator.per_page,
                    "total": self.page.paginator.count,
                    "pages": self.page.paginator.num_pages,
                },
            }
        )


def paginate_queryset(view, queryset, serializer_class):
    """Paginate a queryset inside a custom viewset action."""
    page = view.paginate_queryset(queryset)
    if page is not None:
        return view.get_paginated_response(serializer_class(page, many=True).data)
    return Response({"results": serializer_class(queryset, many=True).data})
