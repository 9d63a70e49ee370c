"""Tests for shop customer records."""
from unittest import mock

from django.test import TestCase

from accounts.choices import Role
from common.exceptions import DuplicateKey
from cart import services as cart_services
from common.testing import client_for, ctx_for, make_product, make_shop, make_user, shipping_address
from customers import services
from customers.models import Customer
from orders import services as order_services


class CustomerAPITests(TestCase):
    def setUp(self):
        self.acme = make_shop("acme")
        self.owner = make_user(self.acme, Role.OWNER)
        self.client = client_for(self.owner)

    def create(self, client=None, **overrides):
        payload = {"name": "Walk-in", "phone": "9999999999", "city": "Pune", **overrides}
        return (client or self.client).post("/api/customers/", payload, format="json")

    def test_phone_is_unique_per_shop(self):
        beta = make_shop("beta")
        beta_client = client_for(make_user(beta, Role.OWNER))

        self.assertEqual(self.create().status_code, 201)
        self.assertEqual(self.create(client=beta_client).status_code, 201)

        response = self.create(name="Someone else")
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["error"]["kind"], "Conflict")
        self.assertEqual(response.json()["error"]["code"], "duplicate_key")
        self.assertEqual(Customer.objects.filter(shop=self.acme).count(), 1)

    def test_phone_must_be_ten_digits(self):
        self.assertEqual(self.create(phone="12345").status_code, 400)

    def test_update_to_taken_phone(self):
        self.create()
        other_id = self.create(phone="8888888888").json()["id"]
        response = self.client.patch(f"/api/customers/{other_id}/", {"phone": "9999999999"}, format="json")
        self.assertEqual(response.status_code, 409)

    def test_update(self):
        customer_id = self.create().json()["id"]
        response = self.client.patch(f"/api/customers/{customer_id}/", {"notes": "prefers cash"}, format="json")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["notes"], "prefers cash")

    def test_totals_are_read_only(self):
        customer_id = self.create().json()["id"]
        self.client.patch(f"/api/customers/{customer_id}/", {"total_orders": 50}, format="json")
        self.assertEqual(Customer.objects.get(pk=customer_id).total_orders, 0)

    def test_deleted_phone_can_be_reused(self):
        customer_id = self.create().json()["id"]
        self.assertEqual(self.client.delete(f"/api/customers/{customer_id}/").status_code, 204)
        self.assertEqual(self.client.get(f"/api/customers/{customer_id}/").status_code, 404)
        self.assertEqual(self.create().status_code, 201)

    def test_search(self):
        self.create(name="Anita Desai")
        self.create(name="Vikram", phone="8888888888")
        data = self.client.get("/api/customers/", {"search": "anita"}).json()
        self.assertEqual([row["name"] for row in data["results"]], ["Anita Desai"])

    def test_order_history_of_empty_record(self):
        customer_id = self.create().json()["id"]
        data = self.client.get(f"/api/customers/{customer_id}/orders/").json()
        self.assertEqual(data["results"], [])

    def test_module_flag(self):
        self.acme.customers_enabled = False
        self.acme.save()
        self.assertEqual(self.create().status_code, 403)

    def test_staff_needs_flag(self):
        staff = make_user(self.acme, Role.STAFF, can_manage_orders=True)
        self.assertEqual(self.create(client=client_for(staff)).status_code, 403)
        helper = make_user(self.acme, Role.STAFF, email="c@acme.test", can_manage_customers=True)
        self.assertEqual(self.create(client=client_for(helper)).status_code, 201)


class CustomerServiceTests(TestCase):
    def test_duplicate_in_same_shop(self):
        shop = make_shop("acme")
        ctx = ctx_for(make_user(shop, Role.OWNER))
        services.create_customer(ctx, name="A", phone="9999999999")
        with self.assertRaises(DuplicateKey) as caught:
            services.create_customer(ctx, name="B", phone="9999999999")
        self.assertEqual(caught.exception.details, {"field": "phone"})


class CustomerEditTotalsTests(TestCase):
    """Editing a record never rewrites the order totals checkout maintains."""

    def setUp(self):
        self.shop = make_shop("acme")
        self.owner = make_user(self.shop, Role.OWNER)
        self.ctx = ctx_for(self.owner)
        self.product = make_product(self.shop, price="100", stock=10)
        self.customer = services.create_customer(self.ctx, name="Ravi", phone="9876543210")

    def place_linked_order(self):
        cart_services.add_item(self.ctx, self.product.pk, 2)
        return order_services.place_order(self.ctx, shipping_address(), customer_id=self.customer.pk)

    def test_edit_with_row_read_before_checkout(self):
        stale = Customer.objects.get(pk=self.customer.pk)
        order = self.place_linked_order()

        with mock.patch("customers.services.get_customer", return_value=stale):
            services.update_customer(self.ctx, self.customer.pk, notes="vip")

        self.customer.refresh_from_db()
        self.assertEqual(self.customer.notes, "vip")
        self.assertEqual(self.customer.total_orders, 1)
        self.assertEqual(self.customer.total_spent, order.total_amount)
        self.assertIsNotNone(self.customer.last_order_at)

    def test_api_edit_keeps_totals(self):
        order = self.place_linked_order()

        response = client_for(self.owner).patch(
            f"/api/customers/{self.customer.pk}/", {"city": "Mumbai"}, format="json"
        )

        self.assertEqual(response.status_code, 200, response.content)
        self.customer.refresh_from_db()
        self.assertEqual(self.customer.city, "Mumbai")
        self.assertEqual(self.customer.total_orders, 1)
        self.assertEqual(self.customer.total_spent, order.total_amount)
