from django.contrib.auth.backends import ModelBackend

from .models import User


class ShopEmailBackend(ModelBackend):
    """
    Email + password authentication within one shop.

    Callers pass `shop` (instance or pk). Without a shop only platform
    administrators (users with no shop) can authenticate, which is what the
    Django admin login does.
    """

    def authenticate(self, request, username=None, password=None, shop=None, **kwargs):
        email = kwargs.get("email", username)
        if not email or password is None:
            return None
        email = User.objects.normalize_email(email).lower()
        if shop is None:
            qs = User.objects.filter(shop__isnull=True, is_deleted=False)
        else:
            qs = User.objects.for_shop(shop)
        user = qs.filter(email=email).first()
        if user is None:
            # Run the hasher anyway to even out timing.
            User().set_password(password)
            return None
        if user.check_password(password) and self.user_can_authenticate(user):
            return user
        return None

    def get_user(self, user_id):
        user = User.objects.filter(pk=user_id, is_deleted=False).first()
        return user if user and self.user_can_authenticate(user) else None
