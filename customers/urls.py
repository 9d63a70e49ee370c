from django.urls import include, path
from rest_framework.routers import SimpleRouter

from . import views

router = SimpleRouter()
router.register(r"customers", views.CustomerViewSet, basename="customer")

urlpatterns = [
    path("", include(router.urls)),
]
