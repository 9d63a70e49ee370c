from django.urls import include, path
from rest_framework.routers import SimpleRouter

from . import views

router = SimpleRouter()
router.register(r"products", views.ProductViewSet, basename="product")

urlpatterns = [
    path("", include(router.urls)),
    path(
        "public/shops/<slug:slug>/products/",
        views.StorefrontProductListView.as_view(),
        name="storefront-products",
    ),
    path(
        "public/shops/<slug:slug>/products/<slug:product_slug>/",
        views.StorefrontProductDetailView.as_view(),
        name="storefront-product-detail",
    ),
    path(
        "public/shops/<slug:slug>/categories/",
        views.StorefrontCategoryView.as_view(),
        name="storefront-categories",
    ),
]
