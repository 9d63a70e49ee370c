"""Cross-shop isolation: rows of another shop behave exactly like missing rows."""
from decimal import Decimal

from django.test import RequestFactory, TestCase

from accounts.choices import Role
from catalog.models import Product
from common.exceptions import NotFound, TenantScopeError, exception_handler
from common.testing import client_for, ctx_for, make_product, make_shop, make_user, shipping_address
from core.scoping import ShopScope
from customers.models import Customer
from orders.models import Order


class CrossShopLookupTests(TestCase):
    def setUp(self):
        self.acme = make_shop("acme")
        self.beta = make_shop("beta")
        self.acme_owner = make_user(self.acme, Role.OWNER)
        self.beta_owner = make_user(self.beta, Role.OWNER)
        self.beta_buyer = make_user(self.beta, Role.CUSTOMER)
        self.beta_product = make_product(self.beta, name="Beta bag")
        self.beta_customer = Customer.objects.create(shop=self.beta, name="Ravi", phone="9876543210")
        self.beta_order = ctx_for(self.beta_buyer).scope.create(
            Order,
            order_number="ORD2501010001",
            user=self.beta_buyer,
            shipping_address=shipping_address(),
            subtotal=Decimal("100.00"),
            total_amount=Decimal("100.00"),
        )
        self.client = client_for(self.acme_owner)

    def assert_not_found(self, url):
        response = self.client.get(url)
        self.assertEqual(response.status_code, 404, url)
        self.assertEqual(response.json()["error"]["kind"], "NotFound")

    def test_product(self):
        self.assert_not_found(f"/api/products/{self.beta_product.pk}/")

    def test_customer(self):
        self.assert_not_found(f"/api/customers/{self.beta_customer.pk}/")

    def test_order(self):
        self.assert_not_found(f"/api/manage/orders/{self.beta_order.pk}/")
        self.assert_not_found(f"/api/orders/{self.beta_order.pk}/")

    def test_user(self):
        self.assert_not_found(f"/api/users/{self.beta_buyer.pk}/")

    def test_missing_and_foreign_rows_look_alike(self):
        foreign = self.client.get(f"/api/products/{self.beta_product.pk}/").json()
        missing = self.client.get("/api/products/999999/").json()
        self.assertEqual(foreign, missing)

    def test_write_to_foreign_row_is_refused(self):
        response = self.client.patch(f"/api/products/{self.beta_product.pk}/", {"price": "1"}, format="json")
        self.assertEqual(response.status_code, 404)
        self.beta_product.refresh_from_db()
        self.assertEqual(self.beta_product.price, Decimal("100.00"))

    def test_lists_never_include_foreign_rows(self):
        make_product(self.acme, name="Acme belt")
        names = [p["name"] for p in self.client.get("/api/products/").json()["results"]]
        self.assertEqual(names, ["Acme belt"])
        self.assertEqual(self.client.get("/api/customers/").json()["pagination"]["total"], 0)
        self.assertEqual(self.client.get("/api/manage/orders/").json()["pagination"]["total"], 0)

    def test_scope_get_raises_not_found(self):
        with self.assertRaises(NotFound):
            ShopScope(self.acme).get(Product, self.beta_product.pk)

    def test_scope_create_ignores_foreign_shop_argument(self):
        product = ShopScope(self.acme).create(Product, shop=self.beta, name="Pinned", price=Decimal("5"), stock=1)
        self.assertEqual(product.shop_id, self.acme.pk)


class MissingShopIdentityTests(TestCase):
    def test_scope_without_shop(self):
        with self.assertRaises(TenantScopeError):
            ShopScope(None)
        with self.assertRaises(TenantScopeError):
            ShopScope("")

    def test_for_shop_without_shop(self):
        with self.assertRaises(TenantScopeError):
            Product.objects.for_shop(None)

    def test_handler_renders_generic_500(self):
        request = RequestFactory().get("/")
        with self.assertLogs("common.exceptions", level="CRITICAL"):
            response = exception_handler(TenantScopeError("no shop"), {"request": request, "view": None})
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.data["error"]["message"], "Internal server error.")
        self.assertNotIn("no shop", str(response.data))
