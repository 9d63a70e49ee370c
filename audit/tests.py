"""Tests for the audit trail."""
from unittest import mock

from django.test import TestCase

from accounts.choices import Role
from audit.models import AuditAction, AuditEntity, AuditLog
from audit.services import record_action
from common.testing import client_for, ctx_for, make_product, make_shop, make_user


class RecordActionTests(TestCase):
    def setUp(self):
        self.shop = make_shop("acme")
        self.owner = make_user(self.shop, Role.OWNER)
        self.ctx = ctx_for(self.owner)

    def test_written_after_commit(self):
        with self.captureOnCommitCallbacks(execute=False) as callbacks:
            record_action(self.ctx, AuditAction.OTHER, AuditEntity.SYSTEM, details={"k": "v"})
            self.assertFalse(AuditLog.objects.exists())
        callbacks[0]()
        log = AuditLog.objects.get()
        self.assertEqual(log.shop, self.shop)
        self.assertEqual(log.user, self.owner)
        self.assertEqual(log.details, {"k": "v"})

    def test_secrets_are_redacted(self):
        with self.captureOnCommitCallbacks(execute=True):
            record_action(
                self.ctx,
                AuditAction.CREATE_USER,
                AuditEntity.USER,
                details={"body": {"email": "a@b.c", "password": "hunter22"}},
            )
        body = AuditLog.objects.get().details["body"]
        self.assertEqual(body, {"email": "a@b.c", "password": "***"})

    def test_write_failure_is_swallowed(self):
        with mock.patch.object(AuditLog.objects, "create", side_effect=RuntimeError("db gone")):
            with self.captureOnCommitCallbacks(execute=True):
                record_action(self.ctx, AuditAction.OTHER, AuditEntity.SYSTEM)
        self.assertFalse(AuditLog.objects.exists())

    def test_rows_are_write_once(self):
        with self.captureOnCommitCallbacks(execute=True):
            record_action(self.ctx, AuditAction.OTHER, AuditEntity.SYSTEM)
        log = AuditLog.objects.get()
        log.action = AuditAction.DELETE_USER
        with self.assertRaises(ValueError):
            log.save()


class AuditedEndpointTests(TestCase):
    def setUp(self):
        self.shop = make_shop("acme")
        self.owner = make_user(self.shop, Role.OWNER)
        self.client = client_for(self.owner)

    def test_success_is_recorded_with_caller_metadata(self):
        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post(
                "/api/customers/",
                {"name": "Walk-in", "phone": "9999999999"},
                format="json",
                HTTP_USER_AGENT="pytest-agent",
                REMOTE_ADDR="10.1.2.3",
            )
        self.assertEqual(response.status_code, 201)
        log = AuditLog.objects.get()
        self.assertEqual(log.action, AuditAction.CREATE_CUSTOMER)
        self.assertEqual(log.entity, AuditEntity.CUSTOMER)
        self.assertEqual(log.entity_id, str(response.json()["id"]))
        self.assertEqual(log.user_agent, "pytest-agent")
        self.assertEqual(log.ip_address, "10.1.2.3")
        self.assertEqual(log.details["body"]["phone"], "9999999999")

    def test_failures_are_not_recorded(self):
        make_product(self.shop)
        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.patch("/api/products/999999/", {"price": "5"}, format="json")
        self.assertEqual(response.status_code, 404)
        self.assertFalse(AuditLog.objects.exists())

    def test_denied_calls_are_not_recorded(self):
        customer = make_user(self.shop, Role.CUSTOMER)
        with self.captureOnCommitCallbacks(execute=True):
            response = client_for(customer).post("/api/customers/", {"name": "x", "phone": "9999999999"}, format="json")
        self.assertEqual(response.status_code, 403)
        self.assertFalse(AuditLog.objects.exists())


class AuditLogListTests(TestCase):
    def setUp(self):
        self.shop = make_shop("acme")
        self.owner = make_user(self.shop, Role.OWNER)
        ctx = ctx_for(self.owner)
        with self.captureOnCommitCallbacks(execute=True):
            record_action(ctx, AuditAction.CREATE_PRODUCT, AuditEntity.PRODUCT, entity_id=1)
            record_action(ctx, AuditAction.UPDATE_PRODUCT, AuditEntity.PRODUCT, entity_id=1)
            record_action(ctx, AuditAction.BLOCK_USER, AuditEntity.USER, entity_id=7)
        beta = make_shop("beta")
        with self.captureOnCommitCallbacks(execute=True):
            record_action(ctx_for(make_user(beta, Role.OWNER)), AuditAction.UPDATE_SHOP, AuditEntity.SHOP)

    def test_lists_own_shop_newest_first(self):
        data = client_for(self.owner).get("/api/audit-logs/").json()
        self.assertEqual(data["pagination"]["total"], 3)
        self.assertEqual(data["results"][0]["action"], AuditAction.BLOCK_USER)

    def test_filters(self):
        client = client_for(self.owner)
        by_entity = client.get("/api/audit-logs/", {"entity": AuditEntity.PRODUCT}).json()
        self.assertEqual(by_entity["pagination"]["total"], 2)
        by_action = client.get("/api/audit-logs/", {"action": AuditAction.BLOCK_USER}).json()
        self.assertEqual([row["entity_id"] for row in by_action["results"]], ["7"])

    def test_requires_report_capability(self):
        staff = make_user(self.shop, Role.STAFF, can_manage_products=True)
        self.assertEqual(client_for(staff).get("/api/audit-logs/").status_code, 403)
        reporter = make_user(self.shop, Role.STAFF, email="r@acme.test", can_view_reports=True)
        self.assertEqual(client_for(reporter).get("/api/audit-logs/").status_code, 200)
