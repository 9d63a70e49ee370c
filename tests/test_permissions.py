"""Tests for the capability gate."""
from django.test import RequestFactory, TestCase

from accounts.choices import Role
from accounts.models import STAFF_PERMISSION_FIELDS
from common.exceptions import Forbidden
from common.testing import ctx_for, make_shop, make_user
from core.authentication import TenantContext
from core.permissions import (
    SELF_CAPABILITIES,
    STAFF_FLAGS,
    Capability,
    HasCapability,
    is_management_role,
    permitted,
    require,
)


def context(role, **flags):
    permissions = {name: flags.get(name, False) for name in STAFF_PERMISSION_FIELDS} if role == Role.STAFF else {}
    return TenantContext(user=None, shop=None, role=role, permissions=permissions)


class PermittedTests(TestCase):
    def test_owner_holds_every_capability(self):
        owner = context(Role.OWNER)
        for capability in Capability:
            self.assertTrue(permitted(owner, capability), capability)

    def test_staff_flag_false_is_denied_where_owner_is_allowed(self):
        owner = context(Role.OWNER)
        for capability, flag in STAFF_FLAGS.items():
            every_other_flag = {name: True for name in STAFF_PERMISSION_FIELDS if name != flag}
            staff = context(Role.STAFF, **every_other_flag)
            self.assertTrue(permitted(owner, capability), capability)
            self.assertFalse(permitted(staff, capability), capability)
            self.assertTrue(permitted(context(Role.STAFF, **{flag: True}), capability), capability)

    def test_staff_flag_only_grants_its_own_capability(self):
        for capability, flag in STAFF_FLAGS.items():
            staff = context(Role.STAFF, **{flag: True})
            for other in STAFF_FLAGS:
                self.assertEqual(permitted(staff, other), other == capability, (flag, other))

    def test_staff_never_manages_staff_or_shop(self):
        staff = context(Role.STAFF, **{name: True for name in STAFF_PERMISSION_FIELDS})
        self.assertFalse(permitted(staff, Capability.MANAGE_STAFF))
        self.assertFalse(permitted(staff, Capability.MANAGE_SHOP))

    def test_customer_holds_only_self_service(self):
        customer = context(Role.CUSTOMER)
        for capability in Capability:
            self.assertEqual(permitted(customer, capability), capability in SELF_CAPABILITIES, capability)

    def test_staff_has_self_service(self):
        staff = context(Role.STAFF)
        for capability in SELF_CAPABILITIES:
            self.assertTrue(permitted(staff, capability))

    def test_missing_flag_is_a_denial(self):
        staff = TenantContext(user=None, shop=None, role=Role.STAFF, permissions={})
        self.assertFalse(permitted(staff, Capability.MANAGE_ORDERS))

    def test_unknown_role_and_no_context(self):
        self.assertFalse(permitted(context("ADMIN"), Capability.OWN_CART))
        self.assertFalse(permitted(None, Capability.OWN_CART))

    def test_require_raises_forbidden(self):
        with self.assertRaises(Forbidden) as caught:
            require(context(Role.CUSTOMER), Capability.MANAGE_PRODUCTS)
        self.assertEqual(caught.exception.details, {"capability": "manage_products"})

    def test_is_management_role(self):
        self.assertTrue(is_management_role(context(Role.OWNER)))
        self.assertTrue(is_management_role(context(Role.STAFF)))
        self.assertFalse(is_management_role(context(Role.CUSTOMER)))


class HasCapabilityTests(TestCase):
    def setUp(self):
        self.factory = RequestFactory()
        self.shop = make_shop("acme")
        self.staff = make_user(self.shop, Role.STAFF, can_manage_products=True)
        self.perm = HasCapability()

    def request(self, method="get", user=None):
        request = getattr(self.factory, method)("/")
        request.user = user
        request.auth = ctx_for(user) if user is not None else None
        return request

    def test_unauthenticated(self):
        class View:
            required_capability = Capability.OWN_CART

        self.assertFalse(self.perm.has_permission(self.request(), View()))

    def test_action_map(self):
        class View:
            action = "destroy"
            required_capabilities = {"list": Capability.OWN_PROFILE, "*": Capability.MANAGE_SHOP}

        with self.assertRaises(Forbidden):
            self.perm.has_permission(self.request(user=self.staff), View())
        View.action = "list"
        self.assertTrue(self.perm.has_permission(self.request(user=self.staff), View()))

    def test_method_map_on_plain_views(self):
        class View:
            required_capabilities = {"patch": Capability.MANAGE_SHOP}

        self.assertTrue(self.perm.has_permission(self.request("get", self.staff), View()))
        with self.assertRaises(Forbidden):
            self.perm.has_permission(self.request("patch", self.staff), View())

    def test_module_flag(self):
        self.shop.inventory_enabled = False
        self.shop.save()
        staff = type(self.staff).objects.get(pk=self.staff.pk)

        class View:
            required_capability = Capability.MANAGE_PRODUCTS
            required_module = "inventory_enabled"

        with self.assertRaises(Forbidden):
            self.perm.has_permission(self.request(user=staff), View())
