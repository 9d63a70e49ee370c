"""Builders shared by the app test modules."""
from decimal import Decimal

from rest_framework.test import APIClient

from accounts.choices import Role
from accounts.models import User
from accounts.tokens import issue_pair
from catalog.models import Product
from core.authentication import TenantContext
from shops.models import Shop

PASSWORD = "s3cret-pass"


def make_shop(slug="acme", **fields):
    fields.setdefault("name", slug.title())
    return Shop.objects.create(slug=slug, **fields)


def make_user(shop, role=Role.CUSTOMER, email=None, **fields):
    email = email or f"{role.lower()}@{shop.slug}.test"
    fields.setdefault("name", role.title())
    user = User.objects.create_user(email=email, password=PASSWORD, shop=shop, role=role, **fields)
    if role == Role.OWNER and shop.owner_id is None:
        shop.owner = user
        shop.save(update_fields=["owner"])
    return user


def make_product(shop, name="Widget", price="100", discount="0", stock=10, **fields):
    return Product.objects.create(
        shop=shop,
        name=name,
        price=Decimal(price),
        discount=Decimal(discount),
        stock=stock,
        **fields,
    )


def ctx_for(user):
    return TenantContext.for_user(user)


def client_for(user):
    """APIClient carrying a freshly issued access token for `user`."""
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {issue_pair(user)['access']}")
    return client


def shipping_address():
    return {
        "full_name": "Asha Rao",
        "phone": "9876543210",
        "address_line1": "12 Market Road",
        "city": "Pune",
        "state": "MH",
        "pincode": "411001",
    }
