from django.urls import path

from . import views

urlpatterns = [
    path("register-owner/", views.RegisterOwnerView.as_view(), name="register-owner"),
    path("register-customer/", views.RegisterCustomerView.as_view(), name="register-customer"),
    path("login/", views.LoginView.as_view(), name="login"),
    path("refresh/", views.RefreshView.as_view(), name="token-refresh"),
    path("logout/", views.LogoutView.as_view(), name="logout"),
    path("me/", views.MeView.as_view(), name="me"),
    path("password/", views.PasswordChangeView.as_view(), name="password-change"),
    path("invite-staff/", views.InviteStaffView.as_view(), name="invite-staff"),
]
