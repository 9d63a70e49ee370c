"""Tests for the shopping cart."""
from decimal import Decimal

from django.test import TestCase

from accounts.choices import Role
from cart.models import Cart
from common.testing import client_for, make_product, make_shop, make_user


class CartTests(TestCase):
    def setUp(self):
        self.shop = make_shop("acme")
        self.user = make_user(self.shop, Role.CUSTOMER)
        self.client = client_for(self.user)
        self.belt = make_product(self.shop, name="Belt", price="100", discount="10", stock=5)
        self.bag = make_product(self.shop, name="Bag", price="250", stock=2)

    def add(self, product, quantity=1):
        return self.client.post("/api/cart/items/", {"product_id": product.pk, "quantity": quantity}, format="json")

    def test_cart_is_created_on_first_access(self):
        response = self.client.get("/api/cart/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["total_items"], 0)
        self.assertEqual(Cart.objects.filter(user=self.user).count(), 1)

    def test_totals(self):
        self.add(self.belt, 2)
        data = self.add(self.bag, 1).json()
        self.assertEqual(data["total_items"], 3)
        self.assertEqual(Decimal(data["total_amount"]), Decimal("450.00"))
        self.assertEqual(Decimal(data["final_amount"]), Decimal("430.00"))
        self.assertEqual(Decimal(data["discount"]), Decimal("20.00"))

    def test_adding_again_merges_lines(self):
        self.add(self.belt, 2)
        data = self.add(self.belt, 1).json()
        self.assertEqual(len(data["items"]), 1)
        self.assertEqual(data["items"][0]["quantity"], 3)

    def test_cannot_exceed_stock(self):
        self.add(self.bag, 2)
        response = self.add(self.bag, 1)
        self.assertEqual(response.status_code, 409)
        error = response.json()["error"]
        self.assertEqual(error["code"], "insufficient_stock")
        self.assertEqual(error["details"], {"product": "Bag", "available": 2})

    def test_inactive_product(self):
        self.belt.is_active = False
        self.belt.save()
        self.assertEqual(self.add(self.belt).json()["error"]["code"], "product_unavailable")

    def test_unknown_product(self):
        response = self.client.post("/api/cart/items/", {"product_id": 999999}, format="json")
        self.assertEqual(response.status_code, 404)

    def test_quantity_must_be_positive(self):
        self.assertEqual(self.add(self.belt, 0).status_code, 400)

    def test_update_quantity(self):
        self.add(self.belt)
        response = self.client.patch(f"/api/cart/items/{self.belt.pk}/", {"quantity": 4}, format="json")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["total_items"], 4)

    def test_update_missing_line(self):
        response = self.client.patch(f"/api/cart/items/{self.belt.pk}/", {"quantity": 1}, format="json")
        self.assertEqual(response.status_code, 404)

    def test_remove_and_clear(self):
        self.add(self.belt)
        self.add(self.bag)
        data = self.client.delete(f"/api/cart/items/{self.belt.pk}/").json()
        self.assertEqual([item["product_name"] for item in data["items"]], ["Bag"])
        data = self.client.delete("/api/cart/").json()
        self.assertEqual(data["items"], [])
        self.assertEqual(Decimal(data["final_amount"]), Decimal("0.00"))

    def test_other_shop_products_cannot_be_added(self):
        beta = make_shop("beta")
        foreign = make_product(beta, name="Foreign")
        self.assertEqual(self.add(foreign).status_code, 404)

    def test_carts_are_per_user(self):
        self.add(self.belt)
        other = client_for(make_user(self.shop, Role.CUSTOMER, email="other@acme.test"))
        self.assertEqual(other.get("/api/cart/").json()["total_items"], 0)

    def test_staff_may_shop_too(self):
        staff = make_user(self.shop, Role.STAFF)
        self.assertEqual(client_for(staff).get("/api/cart/").status_code, 200)
