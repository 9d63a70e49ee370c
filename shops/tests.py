"""Tests for shop details, settings and the public shop lookup."""
from django.test import TestCase
from rest_framework.test import APIClient

from accounts.choices import Role
from audit.models import AuditAction, AuditLog
from common.testing import client_for, make_shop, make_user
from shops.models import Shop


class MyShopTests(TestCase):
    def setUp(self):
        self.shop = make_shop("acme", city="Pune")
        self.owner = make_user(self.shop, Role.OWNER)
        self.staff = make_user(self.shop, Role.STAFF, can_manage_products=True)

    def test_any_member_can_read(self):
        for user in (self.owner, self.staff):
            response = client_for(user).get("/api/shops/my-shop/")
            self.assertEqual(response.status_code, 200)
            self.assertEqual(response.json()["slug"], "acme")
        self.assertEqual(response.json()["owner_email"], self.owner.email)

    def test_owner_updates_details(self):
        with self.captureOnCommitCallbacks(execute=True):
            response = client_for(self.owner).patch(
                "/api/shops/my-shop/", {"name": "Acme Mart", "city": "Mumbai"}, format="json"
            )
        self.assertEqual(response.status_code, 200, response.content)
        self.shop.refresh_from_db()
        self.assertEqual(self.shop.name, "Acme Mart")
        self.assertEqual(self.shop.city, "Mumbai")
        self.assertEqual(self.shop.slug, "acme")
        log = AuditLog.objects.get()
        self.assertEqual(log.action, AuditAction.UPDATE_SHOP)

    def test_staff_cannot_update(self):
        response = client_for(self.staff).patch("/api/shops/my-shop/", {"name": "Hijacked"}, format="json")
        self.assertEqual(response.status_code, 403)
        self.shop.refresh_from_db()
        self.assertEqual(self.shop.name, "Acme")


class ShopSettingsTests(TestCase):
    def setUp(self):
        self.shop = make_shop("acme")
        self.owner = make_user(self.shop, Role.OWNER)

    def test_toggle_modules(self):
        client = client_for(self.owner)
        response = client.patch("/api/shops/settings/", {"customers_enabled": False}, format="json")
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()["customers_enabled"])
        self.assertEqual(client.get("/api/customers/").status_code, 403)

    def test_is_active_is_read_only(self):
        client_for(self.owner).patch("/api/shops/settings/", {"is_active": False}, format="json")
        self.shop.refresh_from_db()
        self.assertTrue(self.shop.is_active)

    def test_customer_cannot_change_settings(self):
        customer = make_user(self.shop, Role.CUSTOMER)
        response = client_for(customer).patch("/api/shops/settings/", {"orders_enabled": False}, format="json")
        self.assertEqual(response.status_code, 403)


class PublicShopTests(TestCase):
    def test_lookup_by_slug(self):
        make_shop("acme")
        response = APIClient().get("/api/public/shops/acme/")
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["is_active"])

    def test_suspended_shop_is_still_described(self):
        shop = make_shop("acme")
        shop.suspend("review")
        response = APIClient().get("/api/public/shops/acme/")
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()["is_active"])

    def test_unknown_slug(self):
        self.assertEqual(APIClient().get("/api/public/shops/ghost/").status_code, 404)


class ShopModelTests(TestCase):
    def test_slug_is_unique(self):
        first = Shop.objects.create(name="Corner Store")
        second = Shop.objects.create(name="Corner Store")
        self.assertEqual(first.slug, "corner-store")
        self.assertEqual(second.slug, "corner-store-2")

    def test_suspend(self):
        shop = make_shop("acme")
        shop.suspend("chargebacks")
        shop.refresh_from_db()
        self.assertFalse(shop.is_active)
        self.assertIsNotNone(shop.suspended_at)
        self.assertEqual(shop.suspension_reason, "chargebacks")
