"""Tests for catalog app."""
from decimal import Decimal
from unittest import mock

from django.test import TestCase
from rest_framework.test import APIClient

from accounts.choices import Role
from audit.models import AuditAction, AuditLog
from cart import services as cart_services
from catalog import services
from catalog.choices import Category
from catalog.models import Product, compute_final_price
from common.testing import client_for, ctx_for, make_product, make_shop, make_user, shipping_address
from orders import services as order_services


class FinalPriceTests(TestCase):
    """final_price is always price x (1 - discount/100)."""

    def setUp(self):
        self.shop = make_shop("acme")

    def test_compute_final_price(self):
        self.assertEqual(compute_final_price("100", "10"), Decimal("90.00"))
        self.assertEqual(compute_final_price("100", "0"), Decimal("100.00"))
        self.assertEqual(compute_final_price("100", "100"), Decimal("0.00"))
        self.assertEqual(compute_final_price("19.99", "15"), Decimal("16.99"))
        self.assertEqual(compute_final_price("0.05", "50"), Decimal("0.03"))

    def test_final_price_follows_every_save(self):
        product = make_product(self.shop, price="100", discount="10")
        self.assertEqual(product.final_price, Decimal("90.00"))

        product.price = Decimal("250")
        product.save(update_fields=["price"])
        product.refresh_from_db()
        self.assertEqual(product.final_price, Decimal("225.00"))

        product.discount = Decimal("20")
        product.save(update_fields=["discount"])
        product.refresh_from_db()
        self.assertEqual(product.final_price, Decimal("200.00"))

    def test_slug_is_generated(self):
        product = make_product(self.shop, name="Leather Belt")
        self.assertTrue(product.slug.startswith("leather-belt-"))


class ProductAPITests(TestCase):
    def setUp(self):
        self.shop = make_shop("acme")
        self.owner = make_user(self.shop, Role.OWNER)
        self.client = client_for(self.owner)

    def create(self, **overrides):
        payload = {
            "name": "Leather Belt",
            "price": "100.00",
            "discount": "10",
            "stock": 5,
            "category": Category.BELTS,
            **overrides,
        }
        return self.client.post("/api/products/", payload, format="json")

    def test_create_product(self):
        with self.captureOnCommitCallbacks(execute=True):
            response = self.create()
        self.assertEqual(response.status_code, 201, response.content)
        data = response.json()
        self.assertEqual(Decimal(data["final_price"]), Decimal("90.00"))
        product = Product.objects.get(pk=data["id"])
        self.assertEqual(product.shop, self.shop)
        self.assertEqual(product.created_by, self.owner)
        log = AuditLog.objects.get()
        self.assertEqual(log.action, AuditAction.CREATE_PRODUCT)
        self.assertEqual(log.entity_id, str(product.pk))

    def test_final_price_is_not_writable(self):
        data = self.create(final_price="1.00").json()
        self.assertEqual(Decimal(data["final_price"]), Decimal("90.00"))

    def test_update_reflects_new_final_price(self):
        product_id = self.create().json()["id"]

        response = self.client.patch(f"/api/products/{product_id}/", {"discount": "50"}, format="json")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(Decimal(response.json()["final_price"]), Decimal("50.00"))
        fetched = self.client.get(f"/api/products/{product_id}/").json()
        self.assertEqual(Decimal(fetched["final_price"]), Decimal("50.00"))

    def test_rename_changes_slug(self):
        created = self.create().json()
        renamed = self.client.patch(f"/api/products/{created['id']}/", {"name": "Canvas Belt"}, format="json").json()
        self.assertTrue(renamed["slug"].startswith("canvas-belt-"))

    def test_discount_range(self):
        self.assertEqual(self.create(discount="120").status_code, 400)
        self.assertEqual(self.create(price="-1").status_code, 400)

    def test_negative_stock_refused(self):
        self.assertEqual(self.create(stock=-1).status_code, 400)

    def test_put_is_not_allowed(self):
        product_id = self.create().json()["id"]
        response = self.client.put(f"/api/products/{product_id}/", {"name": "x"}, format="json")
        self.assertEqual(response.status_code, 405)

    def test_delete_is_soft(self):
        product_id = self.create().json()["id"]
        self.assertEqual(self.client.delete(f"/api/products/{product_id}/").status_code, 204)
        self.assertEqual(self.client.get(f"/api/products/{product_id}/").status_code, 404)
        product = Product.objects.get(pk=product_id)
        self.assertTrue(product.is_deleted)
        self.assertFalse(product.is_active)

    def test_toggle_active(self):
        product_id = self.create().json()["id"]
        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.patch(f"/api/products/{product_id}/toggle-active/")
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()["is_active"])
        self.assertEqual(AuditLog.objects.get().action, AuditAction.DEACTIVATE_PRODUCT)

    def test_list_filters(self):
        make_product(self.shop, name="Wallet", price="500", category=Category.WALLETS)
        make_product(self.shop, name="Cheap Belt", price="50", category=Category.BELTS, stock=0)

        by_category = self.client.get("/api/products/", {"category": Category.WALLETS}).json()
        self.assertEqual([p["name"] for p in by_category["results"]], ["Wallet"])

        by_price = self.client.get("/api/products/", {"max_price": "100"}).json()
        self.assertEqual([p["name"] for p in by_price["results"]], ["Cheap Belt"])

        in_stock = self.client.get("/api/products/", {"in_stock": "true"}).json()
        self.assertEqual([p["name"] for p in in_stock["results"]], ["Wallet"])

        search = self.client.get("/api/products/", {"search": "wal"}).json()
        self.assertEqual(search["pagination"]["total"], 1)

    def test_categories(self):
        response = self.client.get("/api/products/categories/")
        self.assertIn(Category.HOME_KITCHEN, response.json()["categories"])

    def test_inventory_module_disabled(self):
        self.shop.inventory_enabled = False
        self.shop.save()
        self.assertEqual(self.client.get("/api/products/").status_code, 403)

    def test_pagination_shape(self):
        for n in range(3):
            make_product(self.shop, name=f"Item {n}")
        data = self.client.get("/api/products/", {"limit": 2, "page": 2}).json()
        self.assertEqual(data["pagination"], {"page": 2, "limit": 2, "total": 3, "pages": 2})
        self.assertEqual(len(data["results"]), 1)


class ProductPermissionTests(TestCase):
    def setUp(self):
        self.shop = make_shop("acme")
        self.product = make_product(self.shop)

    def test_staff_flag_controls_access(self):
        denied = make_user(self.shop, Role.STAFF, can_manage_orders=True)
        allowed = make_user(self.shop, Role.STAFF, email="p@acme.test", can_manage_products=True)
        self.assertEqual(client_for(denied).get("/api/products/").status_code, 403)
        self.assertEqual(client_for(allowed).get("/api/products/").status_code, 200)

    def test_customer_is_denied(self):
        customer = make_user(self.shop, Role.CUSTOMER)
        response = client_for(customer).patch(f"/api/products/{self.product.pk}/", {"price": "1"}, format="json")
        self.assertEqual(response.status_code, 403)
        self.product.refresh_from_db()
        self.assertEqual(self.product.price, Decimal("100.00"))


class StorefrontTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.shop = make_shop("acme")
        self.visible = make_product(self.shop, name="Visible", category=Category.BAGS)
        self.hidden = make_product(self.shop, name="Hidden", is_active=False)
        self.gone = make_product(self.shop, name="Gone")
        self.gone.soft_delete()

    def test_lists_active_products_only(self):
        response = self.client.get("/api/public/shops/acme/products/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual([p["name"] for p in response.json()["results"]], ["Visible"])

    def test_product_detail_by_slug(self):
        response = self.client.get(f"/api/public/shops/acme/products/{self.visible.slug}/")
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["in_stock"])
        self.assertEqual(self.client.get(f"/api/public/shops/acme/products/{self.hidden.slug}/").status_code, 404)

    def test_categories_in_use(self):
        data = self.client.get("/api/public/shops/acme/categories/").json()
        self.assertEqual(data["categories"], [Category.BAGS])

    def test_suspended_shop_catalog_is_hidden(self):
        self.shop.suspend()
        self.assertEqual(self.client.get("/api/public/shops/acme/products/").status_code, 404)

    def test_other_shop_products_are_not_listed(self):
        beta = make_shop("beta")
        make_product(beta, name="Beta only")
        names = [p["name"] for p in self.client.get("/api/public/shops/acme/products/").json()["results"]]
        self.assertNotIn("Beta only", names)


class ProductEditStockTests(TestCase):
    """Product edits never write back a stock value read before a checkout."""

    def setUp(self):
        self.shop = make_shop("acme")
        self.owner = make_user(self.shop, Role.OWNER)
        self.buyer = make_user(self.shop, Role.CUSTOMER)
        self.product = make_product(self.shop, name="Widget", price="100", discount="10", stock=10)

    def checkout(self, quantity=3):
        ctx = ctx_for(self.buyer)
        cart_services.add_item(ctx, self.product.pk, quantity)
        return order_services.place_order(ctx, shipping_address())

    def edit_with_stale_row(self, **data):
        stale = Product.objects.get(pk=self.product.pk)
        self.checkout()
        with mock.patch("catalog.services.get_product", return_value=stale):
            services.update_product(ctx_for(self.owner), self.product.pk, **data)
        self.product.refresh_from_db()

    def test_rename_keeps_checkout_decrement(self):
        self.edit_with_stale_row(name="Widget renamed")
        self.assertEqual(self.product.name, "Widget renamed")
        self.assertEqual(self.product.stock, 7)

    def test_price_edit_keeps_checkout_decrement(self):
        self.edit_with_stale_row(price=Decimal("200"))
        self.assertEqual(self.product.final_price, Decimal("180.00"))
        self.assertEqual(self.product.stock, 7)

    def test_cancel_after_edit_restores_stock(self):
        order = self.checkout()
        services.update_product(ctx_for(self.owner), self.product.pk, description="Leather")
        order_services.cancel_order(ctx_for(self.buyer), order.pk, "changed mind")
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 10)

    def test_explicit_stock_value_is_written(self):
        self.checkout()
        services.update_product(ctx_for(self.owner), self.product.pk, stock=25)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 25)

    def test_api_rename_keeps_stock(self):
        self.checkout()
        response = client_for(self.owner).patch(
            f"/api/products/{self.product.pk}/", {"name": "Widget two"}, format="json"
        )
        self.assertEqual(response.status_code, 200, response.content)
        self.assertEqual(response.json()["stock"], 7)


class ProductSlugTests(TestCase):
    def setUp(self):
        self.shop = make_shop("acme")
        self.ctx = ctx_for(make_user(self.shop, Role.OWNER))
        self.product = make_product(self.shop, name="Leather Belt")

    def test_rename_with_same_slugified_name_keeps_slug(self):
        slug = self.product.slug
        services.update_product(self.ctx, self.product.pk, name="leather  BELT")
        self.product.refresh_from_db()
        self.assertEqual(self.product.name, "leather  BELT")
        self.assertEqual(self.product.slug, slug)
        response = APIClient().get(f"/api/public/shops/acme/products/{slug}/")
        self.assertEqual(response.status_code, 200)

    def test_real_rename_changes_slug(self):
        old = self.product.slug
        services.update_product(self.ctx, self.product.pk, name="Canvas Belt")
        self.product.refresh_from_db()
        self.assertNotEqual(self.product.slug, old)
        self.assertTrue(self.product.slug.startswith("canvas-belt-"))
