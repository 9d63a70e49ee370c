from django.urls import path
from rest_framework.routers import SimpleRouter

from .views import DashboardView, ManageOrderViewSet, OrderViewSet

router = SimpleRouter()
router.register(r"orders", OrderViewSet, basename="order")
router.register(r"manage/orders", ManageOrderViewSet, basename="manage-order")

urlpatterns = [
    path("reports/dashboard/", DashboardView.as_view(), name="reports-dashboard"),
    *router.urls,
]
