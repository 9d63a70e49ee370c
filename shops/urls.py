from django.urls import path

from . import views

urlpatterns = [
    path("shops/my-shop/", views.MyShopView.as_view(), name="my-shop"),
    path("shops/settings/", views.ShopSettingsView.as_view(), name="shop-settings"),
    path("public/shops/<slug:slug>/", views.PublicShopView.as_view(), name="public-shop"),
]
