"""Tests for the order lifecycle."""
import re
from decimal import Decimal
from unittest import mock

from django.core import mail
from django.core.files.storage import default_storage
from django.test import TestCase
from rest_framework.test import APIClient

from accounts.choices import Role
from accounts.models import Address
from cart import services as cart_services
from catalog.models import Product
from common.exceptions import InvalidTransition, NotAuthorized
from common.testing import (
    client_for,
    ctx_for,
    make_product,
    make_shop,
    make_user,
    shipping_address,
)
from customers.models import Customer
from orders import invoices, services
from orders.choices import OrderStatus, PaymentStatus, can_transition
from orders.models import Order


class OrderTestCase(TestCase):
    def setUp(self):
        self.shop = make_shop("acme")
        self.owner = make_user(self.shop, Role.OWNER)
        self.buyer = make_user(self.shop, Role.CUSTOMER)
        self.product = make_product(self.shop, name="Product X", price="100", discount="10", stock=10)
        self.buyer_client = client_for(self.buyer)
        self.owner_client = client_for(self.owner)

    def add_to_cart(self, client, product, quantity):
        response = client.post("/api/cart/items/", {"product_id": product.pk, "quantity": quantity}, format="json")
        self.assertEqual(response.status_code, 200, response.content)
        return response

    def checkout(self, client=None, **extra):
        payload = {"shipping_address": shipping_address(), **extra}
        return (client or self.buyer_client).post("/api/orders/", payload, format="json")

    def place(self, quantity=3):
        self.add_to_cart(self.buyer_client, self.product, quantity)
        response = self.checkout()
        self.assertEqual(response.status_code, 201, response.content)
        return Order.objects.get(pk=response.json()["id"])

    def set_status(self, order, status, client=None, note=""):
        return (client or self.owner_client).patch(
            f"/api/manage/orders/{order.pk}/status/", {"status": status, "note": note}, format="json"
        )


class PlaceOrderTests(OrderTestCase):
    def test_checkout_snapshots_cart_and_decrements_stock(self):
        self.add_to_cart(self.buyer_client, self.product, 3)

        response = self.checkout()

        self.assertEqual(response.status_code, 201, response.content)
        data = response.json()
        self.assertEqual(data["status"], OrderStatus.PLACED)
        self.assertEqual(Decimal(data["subtotal"]), Decimal("270.00"))
        self.assertEqual(Decimal(data["discount"]), Decimal("30.00"))
        self.assertEqual(Decimal(data["shipping_charges"]), Decimal("50.00"))
        self.assertEqual(Decimal(data["tax"]), Decimal("0.00"))
        self.assertEqual(Decimal(data["total_amount"]), Decimal("320.00"))
        self.assertEqual(data["total_items"], 3)
        self.assertEqual(len(data["items"]), 1)
        self.assertEqual(data["items"][0]["name"], "Product X")
        self.assertEqual(Decimal(data["items"][0]["final_price"]), Decimal("90.00"))
        self.assertEqual([h["status"] for h in data["status_history"]], [OrderStatus.PLACED])

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 7)
        cart = self.buyer_client.get("/api/cart/").json()
        self.assertEqual(cart["total_items"], 0)
        self.assertEqual(cart["items"], [])

    def test_snapshot_survives_product_edits(self):
        order = self.place(1)
        self.product.name = "Renamed"
        self.product.price = Decimal("500")
        self.product.save()

        item = order.items.get()
        self.assertEqual(item.name, "Product X")
        self.assertEqual(item.price, Decimal("100.00"))

    def test_free_shipping_above_threshold(self):
        self.add_to_cart(self.buyer_client, self.product, 6)  # 540
        data = self.checkout().json()
        self.assertEqual(Decimal(data["shipping_charges"]), Decimal("0.00"))
        self.assertEqual(Decimal(data["total_amount"]), Decimal("540.00"))

    def test_tax_rate_is_applied(self):
        self.add_to_cart(self.buyer_client, self.product, 1)
        with self.settings(ORDER_TAX_RATE=Decimal("0.18")):
            data = self.checkout().json()
        self.assertEqual(Decimal(data["tax"]), Decimal("16.20"))
        self.assertEqual(Decimal(data["total_amount"]), Decimal("156.20"))

    def test_empty_cart(self):
        response = self.checkout()
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["error"]["code"], "empty_cart")
        self.assertFalse(Order.objects.exists())

    def test_stock_is_revalidated_at_checkout(self):
        self.add_to_cart(self.buyer_client, self.product, 3)
        Product.objects.filter(pk=self.product.pk).update(stock=2)

        response = self.checkout()

        self.assertEqual(response.status_code, 409)
        error = response.json()["error"]
        self.assertEqual(error["code"], "insufficient_stock")
        self.assertEqual(error["details"], {"product": "Product X", "available": 2})
        self.assertFalse(Order.objects.exists())
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 2)

    def test_inactive_product_blocks_checkout(self):
        other = make_product(self.shop, name="Other", stock=5)
        self.add_to_cart(self.buyer_client, other, 1)
        self.add_to_cart(self.buyer_client, self.product, 2)
        Product.objects.filter(pk=self.product.pk).update(is_active=False)

        response = self.checkout()

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["error"]["code"], "product_unavailable")
        other.refresh_from_db()
        self.assertEqual(other.stock, 5)

    def test_deleted_product_is_not_found(self):
        self.add_to_cart(self.buyer_client, self.product, 1)
        self.product.soft_delete()

        response = self.checkout()

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"]["code"], "product_not_found")

    def test_order_numbers_follow_daily_sequence(self):
        first = self.place(1)
        second = self.place(1)
        self.assertRegex(first.order_number, r"^ORD\d{6}0001$")
        self.assertEqual(second.order_number[:-4], first.order_number[:-4])
        self.assertTrue(second.order_number.endswith("0002"))

    def test_sequences_are_per_shop(self):
        self.place(1)
        beta = make_shop("beta")
        beta_buyer = make_user(beta, Role.CUSTOMER)
        client = client_for(beta_buyer)
        self.add_to_cart(client, make_product(beta, name="Beta item"), 1)
        data = self.checkout(client).json()
        self.assertTrue(data["order_number"].endswith("0001"))

    def test_checkout_with_saved_address(self):
        address = Address.objects.create(user=self.buyer, is_default=True, **shipping_address())
        self.add_to_cart(self.buyer_client, self.product, 1)

        response = self.buyer_client.post("/api/orders/", {"address_id": address.pk}, format="json")

        self.assertEqual(response.status_code, 201, response.content)
        self.assertEqual(response.json()["shipping_address"]["city"], "Pune")

    def test_address_is_required(self):
        self.add_to_cart(self.buyer_client, self.product, 1)
        response = self.buyer_client.post("/api/orders/", {}, format="json")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"]["kind"], "ValidationFailed")

    def test_orders_module_disabled(self):
        self.shop.orders_enabled = False
        self.shop.save()
        self.add_to_cart(self.buyer_client, self.product, 1)
        response = self.checkout()
        self.assertEqual(response.status_code, 403)
        self.assertFalse(Order.objects.exists())

    def test_anonymous_checkout_is_rejected(self):
        response = self.checkout(client=APIClient())
        self.assertEqual(response.status_code, 401)


class CustomerRecordTotalsTests(OrderTestCase):
    def setUp(self):
        super().setUp()
        self.customer = Customer.objects.create(shop=self.shop, name="Walk-in", phone="9999999999")
        self.ctx = ctx_for(self.owner)

    def test_totals_follow_place_and_cancel(self):
        cart_services.add_item(self.ctx, self.product.pk, 2)
        order = services.place_order(self.ctx, shipping_address(), customer_id=self.customer.pk)

        self.customer.refresh_from_db()
        self.assertEqual(self.customer.total_orders, 1)
        self.assertEqual(self.customer.total_spent, order.total_amount)
        self.assertIsNotNone(self.customer.last_order_at)

        services.cancel_order(self.ctx, order.pk, "duplicate")
        self.customer.refresh_from_db()
        self.assertEqual(self.customer.total_orders, 0)
        self.assertEqual(self.customer.total_spent, Decimal("0.00"))

    def test_customers_cannot_link_records(self):
        cart_services.add_item(ctx_for(self.buyer), self.product.pk, 1)
        with self.assertRaises(NotAuthorized):
            services.place_order(ctx_for(self.buyer), shipping_address(), customer_id=self.customer.pk)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 10)


class CancelOrderTests(OrderTestCase):
    def test_cancel_restores_stock_and_appends_history(self):
        order = self.place(3)

        response = self.buyer_client.post(f"/api/orders/{order.pk}/cancel/", {"reason": "changed mind"}, format="json")

        self.assertEqual(response.status_code, 200, response.content)
        data = response.json()
        self.assertEqual(data["status"], OrderStatus.CANCELLED)
        self.assertEqual(data["cancel_reason"], "changed mind")
        self.assertEqual(
            [h["status"] for h in data["status_history"]],
            [OrderStatus.PLACED, OrderStatus.CANCELLED],
        )
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 10)

    def test_only_the_buyer_can_cancel(self):
        order = self.place(1)
        other = make_user(self.shop, Role.CUSTOMER, email="other@acme.test")

        response = client_for(other).post(f"/api/orders/{order.pk}/cancel/", {"reason": "x"}, format="json")

        self.assertEqual(response.status_code, 403)
        order.refresh_from_db()
        self.assertEqual(order.status, OrderStatus.PLACED)

    def test_cannot_cancel_after_packing(self):
        order = self.place(1)
        self.assertEqual(self.set_status(order, OrderStatus.PACKED).status_code, 200)

        response = self.buyer_client.post(f"/api/orders/{order.pk}/cancel/", {"reason": "late"}, format="json")

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["error"]["code"], "invalid_transition")
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 9)

    def test_reason_is_required(self):
        order = self.place(1)
        response = self.buyer_client.post(f"/api/orders/{order.pk}/cancel/", {}, format="json")
        self.assertEqual(response.status_code, 400)

    def test_stock_is_conserved_across_many_orders(self):
        second = make_product(self.shop, name="Product Y", price="40", stock=4)
        self.add_to_cart(self.buyer_client, self.product, 2)
        self.add_to_cart(self.buyer_client, second, 4)
        first_order = Order.objects.get(pk=self.checkout().json()["id"])
        self.add_to_cart(self.buyer_client, self.product, 5)
        second_order = Order.objects.get(pk=self.checkout().json()["id"])

        for order in (second_order, first_order):
            services.cancel_order(ctx_for(self.buyer), order.pk, "test")

        self.product.refresh_from_db()
        second.refresh_from_db()
        self.assertEqual(self.product.stock, 10)
        self.assertEqual(second.stock, 4)


class StatusUpdateTests(OrderTestCase):
    def test_forward_path_appends_one_entry_per_transition(self):
        order = self.place(1)
        path = [OrderStatus.CONFIRMED, OrderStatus.PACKED, OrderStatus.SHIPPED, OrderStatus.DELIVERED]

        for status in path:
            response = self.set_status(order, status)
            self.assertEqual(response.status_code, 200, response.content)

        history = list(order.status_history.all())
        self.assertEqual(len(history), len(path) + 1)
        self.assertEqual([h.status for h in history], [OrderStatus.PLACED, *path])
        stamps = [h.timestamp for h in history]
        self.assertEqual(stamps, sorted(stamps))

        order.refresh_from_db()
        self.assertIsNotNone(order.delivered_at)
        self.assertEqual(order.payment_status, PaymentStatus.COMPLETED)

    def test_note_annotates_history_entry(self):
        order = self.place(1)
        self.set_status(order, OrderStatus.CONFIRMED, note="Called the buyer")
        self.assertEqual(order.status_history.last().note, "Called the buyer")

    def test_skipping_ahead_is_allowed(self):
        order = self.place(1)
        response = self.set_status(order, OrderStatus.SHIPPED)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], OrderStatus.SHIPPED)

    def test_backward_and_repeated_moves_are_refused(self):
        order = self.place(1)
        self.set_status(order, OrderStatus.PACKED)

        for status in (OrderStatus.CONFIRMED, OrderStatus.PACKED, OrderStatus.CANCELLED):
            response = self.set_status(order, status)
            self.assertEqual(response.status_code, 409, status)
            self.assertEqual(response.json()["error"]["code"], "invalid_transition")
        self.assertEqual(order.status_history.count(), 2)

    def test_terminal_states_are_final(self):
        order = self.place(1)
        self.set_status(order, OrderStatus.DELIVERED)
        response = self.set_status(order, OrderStatus.CANCELLED)
        self.assertEqual(response.status_code, 409)

    def test_management_cancel_restores_stock(self):
        order = self.place(4)
        self.set_status(order, OrderStatus.CONFIRMED)

        response = self.set_status(order, OrderStatus.CANCELLED, note="out of area")

        self.assertEqual(response.status_code, 200)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 10)

    def test_invalid_status(self):
        order = self.place(1)
        response = self.set_status(order, "LOST")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"]["code"], "invalid_status")

    def test_lowercase_status_is_accepted(self):
        order = self.place(1)
        self.assertEqual(self.set_status(order, "confirmed").status_code, 200)

    def test_staff_without_order_permission_is_forbidden(self):
        order = self.place(1)
        staff = make_user(self.shop, Role.STAFF, can_manage_orders=False, can_manage_products=True)

        response = self.set_status(order, OrderStatus.CONFIRMED, client=client_for(staff))

        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["error"]["kind"], "Forbidden")
        order.refresh_from_db()
        self.assertEqual(order.status, OrderStatus.PLACED)
        self.assertEqual(order.status_history.count(), 1)

    def test_staff_with_order_permission(self):
        order = self.place(1)
        staff = make_user(self.shop, Role.STAFF, can_manage_orders=True)
        response = self.set_status(order, OrderStatus.CONFIRMED, client=client_for(staff))
        self.assertEqual(response.status_code, 200)

    def test_order_from_another_shop_is_not_found(self):
        order = self.place(1)
        beta = make_shop("beta")
        beta_owner = make_user(beta, Role.OWNER)

        response = self.set_status(order, OrderStatus.CONFIRMED, client=client_for(beta_owner))

        self.assertEqual(response.status_code, 404)
        order.refresh_from_db()
        self.assertEqual(order.status, OrderStatus.PLACED)

    def test_service_refuses_invalid_transition(self):
        order = self.place(1)
        services.update_order_status(ctx_for(self.owner), order.pk, OrderStatus.DELIVERED)
        with self.assertRaises(InvalidTransition):
            services.update_order_status(ctx_for(self.owner), order.pk, OrderStatus.SHIPPED)


class TransitionRuleTests(TestCase):
    def test_table(self):
        self.assertTrue(can_transition(OrderStatus.PLACED, OrderStatus.CONFIRMED))
        self.assertTrue(can_transition(OrderStatus.PLACED, OrderStatus.DELIVERED))
        self.assertTrue(can_transition(OrderStatus.CONFIRMED, OrderStatus.CANCELLED))
        self.assertFalse(can_transition(OrderStatus.PACKED, OrderStatus.CANCELLED))
        self.assertFalse(can_transition(OrderStatus.SHIPPED, OrderStatus.CONFIRMED))
        self.assertFalse(can_transition(OrderStatus.PLACED, OrderStatus.PLACED))
        self.assertFalse(can_transition(OrderStatus.CANCELLED, OrderStatus.PLACED))
        self.assertFalse(can_transition(OrderStatus.DELIVERED, OrderStatus.CANCELLED))


class OrderReadTests(OrderTestCase):
    def test_buyer_lists_only_own_orders(self):
        mine = self.place(1)
        other = make_user(self.shop, Role.CUSTOMER, email="other@acme.test")
        other_client = client_for(other)
        self.add_to_cart(other_client, self.product, 1)
        self.checkout(other_client)

        data = self.buyer_client.get("/api/orders/").json()

        self.assertEqual(data["pagination"]["total"], 1)
        self.assertEqual(data["results"][0]["order_number"], mine.order_number)

    def test_buyer_cannot_read_someone_elses_order(self):
        order = self.place(1)
        other = make_user(self.shop, Role.CUSTOMER, email="other@acme.test")
        response = client_for(other).get(f"/api/orders/{order.pk}/")
        self.assertEqual(response.status_code, 403)

    def test_management_list_filters(self):
        first = self.place(1)
        self.place(1)
        self.set_status(first, OrderStatus.CONFIRMED)

        data = self.owner_client.get("/api/manage/orders/", {"status": OrderStatus.CONFIRMED}).json()
        self.assertEqual([row["id"] for row in data["results"]], [first.pk])

        data = self.owner_client.get("/api/manage/orders/", {"search": first.order_number}).json()
        self.assertEqual(data["pagination"]["total"], 1)

    def test_customer_cannot_use_management_list(self):
        self.assertEqual(self.buyer_client.get("/api/manage/orders/").status_code, 403)


class InvoiceTests(OrderTestCase):
    def test_invoice_is_generated_once_and_reused(self):
        order = self.place(2)

        first = self.buyer_client.get(f"/api/orders/{order.pk}/invoice/")
        second = self.buyer_client.get(f"/api/orders/{order.pk}/invoice/")

        self.assertEqual(first.status_code, 200, first.content)
        number = first.json()["invoice_number"]
        self.assertTrue(number.startswith(f"INV-{order.order_number}-"))
        self.assertEqual(second.json()["invoice_number"], number)
        order.refresh_from_db()
        self.assertEqual(order.invoice_number, number)
        path = re.sub(r"^.*?/media/", "", order.invoice_url)
        self.assertTrue(default_storage.exists(path))
        with default_storage.open(path) as handle:
            self.assertIn(order.order_number.encode(), handle.read())

    def test_missing_artifact_is_regenerated(self):
        order = self.place(1)
        self.buyer_client.get(f"/api/orders/{order.pk}/invoice/")
        order.refresh_from_db()
        default_storage.delete(re.sub(r"^.*?/media/", "", order.invoice_url))

        with mock.patch("orders.invoices.render_invoice", wraps=invoices.render_invoice) as renderer:
            response = self.buyer_client.get(f"/api/orders/{order.pk}/invoice/")

        self.assertEqual(response.status_code, 200)
        renderer.assert_called_once()
        order.refresh_from_db()
        self.assertTrue(default_storage.exists(re.sub(r"^.*?/media/", "", order.invoice_url)))

    def test_shop_owner_can_fetch_buyer_invoice(self):
        order = self.place(1)
        response = self.owner_client.get(f"/api/orders/{order.pk}/invoice/")
        self.assertEqual(response.status_code, 200)

    def test_other_customer_cannot_fetch_invoice(self):
        order = self.place(1)
        other = make_user(self.shop, Role.CUSTOMER, email="other@acme.test")
        response = client_for(other).get(f"/api/orders/{order.pk}/invoice/")
        self.assertEqual(response.status_code, 403)
        order.refresh_from_db()
        self.assertEqual(order.invoice_url, "")


class NotificationTests(OrderTestCase):
    def test_order_placed_notifies_buyer_and_owner(self):
        self.add_to_cart(self.buyer_client, self.product, 1)

        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            response = self.checkout()

        self.assertEqual(response.status_code, 201)
        self.assertEqual(len(callbacks), 2)
        recipients = sorted(message.to[0] for message in mail.outbox)
        self.assertEqual(recipients, sorted([self.buyer.email, self.owner.email]))

    def test_status_change_and_cancel_notify_buyer(self):
        order = self.place(1)
        with self.captureOnCommitCallbacks(execute=True):
            self.set_status(order, OrderStatus.CONFIRMED)
        with self.captureOnCommitCallbacks(execute=True):
            self.buyer_client.post(f"/api/orders/{order.pk}/cancel/", {"reason": "no"}, format="json")

        subjects = [message.subject for message in mail.outbox]
        self.assertIn(f"Order {order.order_number}: Confirmed", subjects)
        self.assertIn(f"Order {order.order_number} cancelled", subjects)

    def test_invoice_ready_notification(self):
        order = self.place(1)
        with self.captureOnCommitCallbacks(execute=True):
            self.buyer_client.get(f"/api/orders/{order.pk}/invoice/")
        self.assertEqual(mail.outbox[-1].subject, f"Invoice for order {order.order_number}")

    def test_queue_failure_does_not_fail_checkout(self):
        self.add_to_cart(self.buyer_client, self.product, 1)

        with mock.patch("orders.tasks.send_order_placed_email") as task:
            task.delay.side_effect = ConnectionError("broker down")
            with self.captureOnCommitCallbacks(execute=True):
                response = self.checkout()

        self.assertEqual(response.status_code, 201)
        self.assertEqual(Order.objects.count(), 1)
        self.assertEqual([m.to[0] for m in mail.outbox], [self.owner.email])

    def test_nothing_is_sent_when_checkout_fails(self):
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            self.checkout()
        self.assertEqual(callbacks, [])
        self.assertEqual(mail.outbox, [])


class DashboardTests(OrderTestCase):
    def test_revenue_excludes_cancelled_orders(self):
        kept = self.place(1)
        cancelled = self.place(2)
        services.cancel_order(ctx_for(self.buyer), cancelled.pk, "test")

        response = self.owner_client.get("/api/reports/dashboard/")

        self.assertEqual(response.status_code, 200, response.content)
        data = response.json()
        self.assertEqual(data["orders"]["total"], 2)
        self.assertEqual(data["orders"]["by_status"][OrderStatus.CANCELLED], 1)
        self.assertEqual(Decimal(str(data["revenue"]["total"])), kept.total_amount)
        self.assertEqual(len(data["recent_orders"]), 2)
        self.assertEqual(sum(row["orders"] for row in data["revenue"]["daily"]), 1)

    def test_low_stock_products(self):
        make_product(self.shop, name="Nearly gone", stock=2)
        data = self.owner_client.get("/api/reports/dashboard/").json()
        self.assertEqual([row["name"] for row in data["products"]["low_stock"]], ["Nearly gone"])

    def test_reports_need_capability(self):
        staff = make_user(self.shop, Role.STAFF, can_view_reports=False)
        self.assertEqual(client_for(staff).get("/api/reports/dashboard/").status_code, 403)
        self.assertEqual(self.buyer_client.get("/api/reports/dashboard/").status_code, 403)
        allowed = make_user(self.shop, Role.STAFF, email="reports@acme.test", can_view_reports=True)
        self.assertEqual(client_for(allowed).get("/api/reports/dashboard/").status_code, 200)
