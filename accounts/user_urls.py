from django.urls import include, path
from rest_framework.routers import SimpleRouter

from . import views

router = SimpleRouter()
router.register(r"users", views.UserViewSet, basename="user")
router.register(r"me/addresses", views.AddressViewSet, basename="address")

urlpatterns = [
    path("", include(router.urls)),
]
