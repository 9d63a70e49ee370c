"""Tests for registration, login, sessions and staff management."""
from unittest import mock

from django.db import IntegrityError
from django.test import TestCase
from rest_framework.test import APIClient

from accounts import services
from accounts.choices import Role
from accounts.models import Address, User
from common.exceptions import DuplicateKey, ValidationFailed
from common.testing import PASSWORD, client_for, ctx_for, make_shop, make_user, shipping_address
from shops.models import Shop


def owner_payload(**overrides):
    payload = {
        "shop_name": "Acme Stores",
        "shop_slug": "acme",
        "owner_name": "Ravi",
        "owner_email": "Ravi@Acme.test",
        "owner_password": "long-enough-1",
        "owner_phone": "9876543210",
        "gst_number": "27ABCDE1234F1Z5",
        "terms_accepted": True,
        "privacy_accepted": True,
        "seller_agreement_accepted": True,
    }
    payload.update(overrides)
    return payload


class RegisterOwnerTests(TestCase):
    def setUp(self):
        self.client = APIClient()

    def test_creates_shop_and_owner_together(self):
        response = self.client.post("/api/auth/register-owner/", owner_payload(), format="json")

        self.assertEqual(response.status_code, 201, response.content)
        data = response.json()
        self.assertEqual(data["user"]["role"], Role.OWNER)
        self.assertEqual(data["user"]["email"], "ravi@acme.test")
        self.assertEqual(data["shop"]["slug"], "acme")
        self.assertIn("access", data)
        self.assertIn("refresh", data)

        shop = Shop.objects.get(slug="acme")
        self.assertEqual(shop.owner.email, "ravi@acme.test")
        self.assertTrue(shop.is_gst_registered)
        self.assertIsNotNone(shop.agreed_at)

    def test_session_is_usable_immediately(self):
        access = self.client.post("/api/auth/register-owner/", owner_payload(), format="json").json()["access"]
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {access}")
        response = self.client.get("/api/auth/me/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["shop"]["slug"], "acme")

    def test_agreements_are_required(self):
        response = self.client.post(
            "/api/auth/register-owner/", owner_payload(privacy_accepted=False), format="json"
        )
        self.assertEqual(response.status_code, 400)
        self.assertFalse(Shop.objects.exists())

    def test_taken_slug_is_a_conflict(self):
        make_shop("acme")
        response = self.client.post("/api/auth/register-owner/", owner_payload(), format="json")
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["error"]["code"], "duplicate_key")
        self.assertEqual(Shop.objects.count(), 1)

    def test_failed_owner_insert_leaves_no_shop(self):
        with mock.patch.object(User.objects, "create_user", side_effect=IntegrityError("boom")):
            with self.assertRaises(DuplicateKey):
                services.register_owner(**owner_payload())
        self.assertFalse(Shop.objects.filter(slug="acme").exists())

    def test_slug_is_generated_from_name(self):
        make_shop("acme-stores")
        shop, _ = services.register_owner(**owner_payload(shop_slug=""))
        self.assertEqual(shop.slug, "acme-stores-2")

    def test_service_refuses_missing_agreements(self):
        with self.assertRaises(ValidationFailed):
            services.register_owner(**owner_payload(terms_accepted=False))


class RegisterCustomerTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.shop = make_shop("acme")

    def register(self, **overrides):
        payload = {
            "shop_slug": "acme",
            "name": "Meera",
            "email": "meera@example.com",
            "password": "long-enough-1",
            **overrides,
        }
        return self.client.post("/api/auth/register-customer/", payload, format="json")

    def test_register_customer(self):
        response = self.register()
        self.assertEqual(response.status_code, 201, response.content)
        self.assertEqual(response.json()["user"]["role"], Role.CUSTOMER)

    def test_email_is_unique_per_shop_only(self):
        self.register()
        make_shop("beta")
        self.assertEqual(self.register(shop_slug="beta").status_code, 201)
        response = self.register()
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["error"]["details"], {"field": "email"})

    def test_suspended_shop(self):
        self.shop.suspend("unpaid")
        response = self.register()
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["error"]["code"], "shop_suspended")

    def test_unknown_shop(self):
        self.assertEqual(self.register(shop_slug="nowhere").status_code, 404)


class LoginTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.shop = make_shop("acme")
        self.user = make_user(self.shop, Role.CUSTOMER, email="meera@example.com")

    def login(self, slug="acme", email="meera@example.com", password=PASSWORD):
        return self.client.post(
            "/api/auth/login/", {"shop_slug": slug, "email": email, "password": password}, format="json"
        )

    def test_login(self):
        response = self.login(email="MEERA@example.com")
        self.assertEqual(response.status_code, 200, response.content)
        self.assertEqual(response.json()["user"]["id"], self.user.pk)

    def test_wrong_password(self):
        response = self.login(password="nope")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["error"]["kind"], "Unauthenticated")

    def test_same_email_in_other_shop_is_a_different_account(self):
        beta = make_shop("beta")
        user = make_user(beta, Role.CUSTOMER, email="meera@example.com")
        user.set_password("other-password")
        user.save()

        self.assertEqual(self.login(slug="beta").status_code, 401)
        self.assertEqual(self.login(slug="beta", password="other-password").json()["user"]["id"], user.pk)

    def test_deactivated_account(self):
        self.user.is_active = False
        self.user.save()
        response = self.login()
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["error"]["code"], "account_deactivated")

    def test_deactivated_account_with_wrong_password_is_not_revealed(self):
        self.user.is_active = False
        self.user.save()
        self.assertEqual(self.login(password="nope").status_code, 401)

    def test_suspended_shop(self):
        self.shop.suspend()
        response = self.login()
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["error"]["code"], "shop_suspended")


class SessionTests(TestCase):
    def setUp(self):
        self.shop = make_shop("acme")
        self.user = make_user(self.shop, Role.CUSTOMER)
        self.client = APIClient()
        self.pair = self.client.post(
            "/api/auth/login/",
            {"shop_slug": "acme", "email": self.user.email, "password": PASSWORD},
            format="json",
        ).json()

    def authorize(self, access):
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {access}")

    def test_missing_token(self):
        response = APIClient().get("/api/auth/me/")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["error"]["kind"], "Unauthenticated")

    def test_garbage_token(self):
        self.authorize("not-a-token")
        response = self.client.get("/api/auth/me/")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["error"]["code"], "invalid_credential")

    def test_suspension_applies_to_live_tokens(self):
        self.authorize(self.pair["access"])
        self.shop.suspend("fraud")
        response = self.client.get("/api/auth/me/")
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["error"]["code"], "shop_suspended")

    def test_deactivation_applies_to_live_tokens(self):
        self.authorize(self.pair["access"])
        User.objects.filter(pk=self.user.pk).update(is_active=False)
        response = self.client.get("/api/auth/me/")
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["error"]["code"], "account_deactivated")

    def test_role_change_retires_tokens(self):
        self.authorize(self.pair["access"])
        User.objects.filter(pk=self.user.pk).update(role=Role.STAFF)
        self.assertEqual(self.client.get("/api/auth/me/").status_code, 401)

    def test_refresh_rotates_and_blacklists(self):
        response = self.client.post("/api/auth/refresh/", {"refresh": self.pair["refresh"]}, format="json")
        self.assertEqual(response.status_code, 200)
        self.assertNotEqual(response.json()["refresh"], self.pair["refresh"])

        again = self.client.post("/api/auth/refresh/", {"refresh": self.pair["refresh"]}, format="json")
        self.assertEqual(again.status_code, 401)

    def test_refresh_refused_for_suspended_shop(self):
        self.shop.suspend()
        response = self.client.post("/api/auth/refresh/", {"refresh": self.pair["refresh"]}, format="json")
        self.assertEqual(response.status_code, 403)

    def test_logout_revokes_refresh_token(self):
        self.authorize(self.pair["access"])
        response = self.client.post("/api/auth/logout/", {"refresh": self.pair["refresh"]}, format="json")
        self.assertEqual(response.status_code, 200)
        again = self.client.post("/api/auth/refresh/", {"refresh": self.pair["refresh"]}, format="json")
        self.assertEqual(again.status_code, 401)

    def test_cannot_logout_someone_else(self):
        other = make_user(self.shop, Role.CUSTOMER, email="other@acme.test")
        response = client_for(other).post("/api/auth/logout/", {"refresh": self.pair["refresh"]}, format="json")
        self.assertEqual(response.status_code, 403)

    def test_password_change_invalidates_older_tokens(self):
        self.authorize(self.pair["access"])
        response = self.client.post(
            "/api/auth/password/",
            {"old_password": PASSWORD, "new_password": "brand-new-pass"},
            format="json",
        )
        self.assertEqual(response.status_code, 200, response.content)
        fresh = response.json()

        self.assertEqual(self.client.get("/api/auth/me/").status_code, 401)
        refresh = self.client.post("/api/auth/refresh/", {"refresh": self.pair["refresh"]}, format="json")
        self.assertEqual(refresh.status_code, 401)

        self.authorize(fresh["access"])
        self.assertEqual(self.client.get("/api/auth/me/").status_code, 200)

    def test_password_change_checks_old_password(self):
        self.authorize(self.pair["access"])
        response = self.client.post(
            "/api/auth/password/", {"old_password": "wrong", "new_password": "brand-new-pass"}, format="json"
        )
        self.assertEqual(response.status_code, 400)

    def test_update_profile(self):
        self.authorize(self.pair["access"])
        response = self.client.patch("/api/auth/me/", {"name": "New Name", "phone": "9123456780"}, format="json")
        self.assertEqual(response.status_code, 200)
        self.user.refresh_from_db()
        self.assertEqual(self.user.name, "New Name")
        self.assertEqual(self.user.phone, "9123456780")


class StaffManagementTests(TestCase):
    def setUp(self):
        self.shop = make_shop("acme")
        self.owner = make_user(self.shop, Role.OWNER)
        self.owner_client = client_for(self.owner)

    def invite(self, **overrides):
        payload = {
            "name": "Sam",
            "email": "sam@acme.test",
            "password": "long-enough-1",
            "permissions": {"can_manage_products": True},
            **overrides,
        }
        return self.owner_client.post("/api/auth/invite-staff/", payload, format="json")

    def test_invite_staff(self):
        response = self.invite()
        self.assertEqual(response.status_code, 201, response.content)
        data = response.json()
        self.assertEqual(data["role"], Role.STAFF)
        self.assertEqual(
            data["permissions"],
            {
                "can_manage_products": True,
                "can_manage_orders": False,
                "can_manage_customers": False,
                "can_view_reports": False,
            },
        )

    def test_duplicate_invite(self):
        self.invite()
        self.assertEqual(self.invite().status_code, 409)

    def test_staff_cannot_invite(self):
        staff = make_user(self.shop, Role.STAFF, can_manage_products=True, can_manage_orders=True)
        response = client_for(staff).post(
            "/api/auth/invite-staff/", {"name": "x", "email": "x@acme.test", "password": "long-enough-1"}, format="json"
        )
        self.assertEqual(response.status_code, 403)

    def test_update_permissions(self):
        staff_id = self.invite().json()["id"]
        response = self.owner_client.patch(
            f"/api/users/{staff_id}/permissions/", {"can_manage_orders": True}, format="json"
        )
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["permissions"]["can_manage_orders"])
        self.assertTrue(response.json()["permissions"]["can_manage_products"])

    def test_permissions_take_effect_on_next_request(self):
        staff = make_user(self.shop, Role.STAFF)
        staff_client = client_for(staff)
        self.assertEqual(staff_client.get("/api/products/").status_code, 403)
        self.owner_client.patch(f"/api/users/{staff.pk}/permissions/", {"can_manage_products": True}, format="json")
        self.assertEqual(staff_client.get("/api/products/").status_code, 200)

    def test_owner_accounts_cannot_be_targeted(self):
        for path, method, body in (
            (f"/api/users/{self.owner.pk}/permissions/", "patch", {"can_manage_orders": True}),
            (f"/api/users/{self.owner.pk}/block/", "post", {"blocked": True}),
            (f"/api/users/{self.owner.pk}/", "delete", None),
        ):
            response = getattr(self.owner_client, method)(path, body, format="json")
            self.assertEqual(response.status_code, 403, path)
        self.owner.refresh_from_db()
        self.assertTrue(self.owner.is_active)
        self.assertFalse(self.owner.is_deleted)

    def test_permissions_only_apply_to_staff(self):
        customer = make_user(self.shop, Role.CUSTOMER)
        response = self.owner_client.patch(
            f"/api/users/{customer.pk}/permissions/", {"can_manage_orders": True}, format="json"
        )
        self.assertEqual(response.status_code, 400)

    def test_block_and_unblock(self):
        customer = make_user(self.shop, Role.CUSTOMER)
        customer_client = client_for(customer)

        response = self.owner_client.post(f"/api/users/{customer.pk}/block/", {"blocked": True}, format="json")
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()["is_active"])
        self.assertEqual(customer_client.get("/api/auth/me/").status_code, 403)

        self.owner_client.post(f"/api/users/{customer.pk}/block/", {"blocked": False}, format="json")
        self.assertEqual(customer_client.get("/api/auth/me/").status_code, 200)

    def test_delete_user_is_soft(self):
        customer = make_user(self.shop, Role.CUSTOMER)
        response = self.owner_client.delete(f"/api/users/{customer.pk}/")
        self.assertEqual(response.status_code, 204)
        customer.refresh_from_db()
        self.assertTrue(customer.is_deleted)
        self.assertEqual(client_for(customer).get("/api/auth/me/").status_code, 401)
        self.assertEqual(self.owner_client.get(f"/api/users/{customer.pk}/").status_code, 404)

    def test_list_users_filters(self):
        make_user(self.shop, Role.STAFF)
        make_user(self.shop, Role.CUSTOMER)
        data = self.owner_client.get("/api/users/", {"role": Role.STAFF}).json()
        self.assertEqual([row["role"] for row in data["results"]], [Role.STAFF])

    def test_users_of_other_shops_are_invisible(self):
        beta = make_shop("beta")
        stranger = make_user(beta, Role.STAFF)
        response = self.owner_client.post(f"/api/users/{stranger.pk}/block/", {"blocked": True}, format="json")
        self.assertEqual(response.status_code, 404)
        stranger.refresh_from_db()
        self.assertTrue(stranger.is_active)


class AddressTests(TestCase):
    def setUp(self):
        self.shop = make_shop("acme")
        self.user = make_user(self.shop, Role.CUSTOMER)
        self.client = client_for(self.user)

    def test_first_address_becomes_default(self):
        response = self.client.post("/api/me/addresses/", shipping_address(), format="json")
        self.assertEqual(response.status_code, 201, response.content)
        self.assertTrue(response.json()["is_default"])

    def test_single_default(self):
        first = self.client.post("/api/me/addresses/", shipping_address(), format="json").json()
        second = self.client.post(
            "/api/me/addresses/", {**shipping_address(), "is_default": True}, format="json"
        ).json()
        self.assertTrue(second["is_default"])
        self.assertFalse(Address.objects.get(pk=first["id"]).is_default)

    def test_deleting_default_promotes_another(self):
        first = self.client.post("/api/me/addresses/", shipping_address(), format="json").json()
        second = self.client.post("/api/me/addresses/", shipping_address(), format="json").json()
        self.client.delete(f"/api/me/addresses/{first['id']}/")
        self.assertTrue(Address.objects.get(pk=second["id"]).is_default)

    def test_addresses_are_private(self):
        address = services.add_address(ctx_for(self.user), **shipping_address())
        other = make_user(self.shop, Role.CUSTOMER, email="other@acme.test")
        response = client_for(other).delete(f"/api/me/addresses/{address.pk}/")
        self.assertEqual(response.status_code, 404)


class DuplicateGuardTests(TestCase):
    def test_invite_rejects_phone_in_use(self):
        shop = make_shop("acme")
        owner = make_user(shop, Role.OWNER, phone="9000000000")
        with self.assertRaises(DuplicateKey):
            services.invite_staff(
                ctx_for(owner), name="x", email="x@acme.test", password="long-enough-1", phone="9000000000"
            )
