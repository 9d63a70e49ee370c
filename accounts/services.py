"""
Identity and credential store: registration, login, staff management and
addresses. Every lookup is made within one shop.
"""
import logging

from django.contrib.auth import authenticate
from django.db import IntegrityError, transaction
from django.db.models import Q

from common.exceptions import (
    AccountDeactivated,
    DuplicateKey,
    Forbidden,
    InvalidCredential,
    NotFound,
    ShopSuspended,
    ValidationFailed,
)
from shops.models import Shop
from .choices import Role
from .models import STAFF_PERMISSION_FIELDS, Address, User
from .tokens import revoke_all

logger = logging.getLogger(__name__)


def _active_shop_by_slug(slug):
    shop = Shop.objects.filter(slug=(slug or "").strip().lower()).first()
    if shop is None:
        raise NotFound("Shop not found.")
    if not shop.is_active:
        raise ShopSuspended("This shop is suspended. Please contact support.")
    return shop


def _ensure_unique_in_shop(shop, email=None, phone=None, exclude_pk=None):
    qs = User.objects.for_shop(shop, include_deleted=True)
    if exclude_pk is not None:
        qs = qs.exclude(pk=exclude_pk)
    if email and qs.filter(email=email.lower()).exists():
        raise DuplicateKey("Email already registered in this shop.", field="email")
    if phone and qs.filter(phone=phone).exists():
        raise DuplicateKey("Phone number already registered in this shop.", field="phone")


# ---------------------------------------------------------------------------
# Registration and login
# ---------------------------------------------------------------------------


def register_owner(
    *,
    shop_name,
    owner_name,
    owner_email,
    owner_password,
    owner_phone=None,
    shop_slug="",
    terms_accepted=False,
    privacy_accepted=False,
    seller_agreement_accepted=False,
    **shop_fields,
):
    """
    Create a shop and its OWNER together.

    The shop row is created first without an owner, the owner references it,
    then the shop is pointed back at the owner. All three writes share one
    transaction so a failed owner insert leaves no shop behind.
    """
    if not (terms_accepted and privacy_accepted and seller_agreement_accepted):
        raise ValidationFailed("You must agree to all terms and conditions.", field="agreements")

    slug = (shop_slug or "").strip().lower()
    if slug and Shop.objects.filter(slug=slug).exists():
        raise DuplicateKey("Shop URL already taken. Please choose another.", field="shop_slug")

    try:
        with transaction.atomic():
            shop = Shop.objects.create(
                name=shop_name,
                slug=slug,
                terms_accepted=True,
                privacy_accepted=True,
                seller_agreement_accepted=True,
                **shop_fields,
            )
            owner = User.objects.create_user(
                email=owner_email,
                password=owner_password,
                shop=shop,
                name=owner_name,
                phone=owner_phone or None,
                role=Role.OWNER,
            )
            shop.owner = owner
            shop.save(update_fields=["owner", "updated_at"])
    except IntegrityError:
        raise DuplicateKey("Shop URL already taken. Please choose another.", field="shop_slug")

    logger.info("Registered shop %s (%s) with owner %s", shop.slug, shop.pk, owner.pk)
    return shop, owner


def register_customer(*, shop_slug, name, email, password, phone=None):
    shop = _active_shop_by_slug(shop_slug)
    _ensure_unique_in_shop(shop, email=email, phone=phone)
    try:
        with transaction.atomic():
            user = User.objects.create_user(
                email=email,
                password=password,
                shop=shop,
                name=name,
                phone=phone or None,
                role=Role.CUSTOMER,
            )
    except IntegrityError:
        raise DuplicateKey("Email or phone already registered in this shop.")
    return user


def authenticate_in_shop(request, *, shop_slug, email, password):
    """Email + password login inside the shop named by slug."""
    shop = _active_shop_by_slug(shop_slug)
    user = authenticate(request, email=email, password=password, shop=shop)
    if user is None:
        inactive = (
            User.objects.for_shop(shop)
            .filter(email=(email or "").lower(), is_active=False)
            .first()
        )
        if inactive is not None and inactive.check_password(password):
            raise AccountDeactivated()
        raise InvalidCredential("Invalid email or password.")
    return user


def change_password(ctx, old_password, new_password):
    """Rotate the password; every refresh token issued before is revoked."""
    user = ctx.user
    if not user.check_password(old_password):
        raise ValidationFailed("Current password is incorrect.", field="old_password")
    user.set_password(new_password)
    user.save(update_fields=["password", "updated_at"])
    revoke_all(user)
    return user


def update_profile(ctx, **fields):
    user = ctx.user
    phone = fields.get("phone")
    if phone:
        _ensure_unique_in_shop(ctx.shop_id, phone=phone, exclude_pk=user.pk)
    for name in ("name", "phone"):
        if name in fields:
            setattr(user, name, fields[name] or (None if name == "phone" else ""))
    user.save(update_fields=["name", "phone", "updated_at"])
    return user


# ---------------------------------------------------------------------------
# Staff and user management (MANAGE_STAFF)
# ---------------------------------------------------------------------------


def list_users(ctx, role=None, search=None):
    qs = ctx.scope.query(User).order_by("-created_at")
    if role:
        qs = qs.filter(role=role)
    if search:
        qs = qs.filter(Q(name__icontains=search) | Q(email__icontains=search) | Q(phone__icontains=search))
    return qs


def invite_staff(ctx, *, name, email, password, phone=None, permissions=None):
    _ensure_unique_in_shop(ctx.shop_id, email=email, phone=phone)
    flags = {k: bool(v) for k, v in (permissions or {}).items() if k in STAFF_PERMISSION_FIELDS}
    try:
        with transaction.atomic():
            user = User.objects.create_user(
                email=email,
                password=password,
                shop_id=ctx.shop_id,
                name=name,
                phone=phone or None,
                role=Role.STAFF,
                **flags,
            )
    except IntegrityError:
        raise DuplicateKey("Email or phone already registered in this shop.")
    logger.info("Staff %s invited to shop %s by %s", user.pk, ctx.shop_id, ctx.user_id)
    return user


def _managed_user(ctx, user_id):
    """A user of the caller's shop that management actions may touch."""
    target = ctx.scope.get(User, user_id)
    if target.role == Role.OWNER:
        raise Forbidden("Owner accounts cannot be modified.")
    if target.pk == ctx.user_id:
        raise Forbidden("You cannot modify your own account here.")
    return target


def update_staff_permissions(ctx, user_id, permissions):
    target = _managed_user(ctx, user_id)
    if target.role != Role.STAFF:
        raise ValidationFailed("Permissions apply to staff accounts only.", field="role")
    changed = []
    for name in STAFF_PERMISSION_FIELDS:
        if name in permissions:
            setattr(target, name, bool(permissions[name]))
            changed.append(name)
    if changed:
        target.save(update_fields=[*changed, "updated_at"])
    return target


def set_user_blocked(ctx, user_id, blocked):
    target = _managed_user(ctx, user_id)
    target.is_active = not blocked
    target.save(update_fields=["is_active", "updated_at"])
    if blocked:
        revoke_all(target)
    return target


def delete_user(ctx, user_id):
    target = _managed_user(ctx, user_id)
    target.is_active = False
    target.soft_delete("is_active")
    revoke_all(target)
    return target


# ---------------------------------------------------------------------------
# Addresses (OWN_PROFILE)
# ---------------------------------------------------------------------------


def list_addresses(ctx):
    return Address.objects.filter(user_id=ctx.user_id)


def get_address(ctx, address_id):
    address = Address.objects.filter(user_id=ctx.user_id, pk=address_id).first()
    if address is None:
        raise NotFound("Address not found.")
    return address


@transaction.atomic
def add_address(ctx, **data):
    has_any = Address.objects.filter(user_id=ctx.user_id).exists()
    make_default = data.pop("is_default", False) or not has_any
    if make_default:
        Address.objects.filter(user_id=ctx.user_id, is_default=True).update(is_default=False)
    return Address.objects.create(user_id=ctx.user_id, is_default=make_default, **data)


@transaction.atomic
def update_address(ctx, address_id, **data):
    address = get_address(ctx, address_id)
    if data.get("is_default"):
        Address.objects.filter(user_id=ctx.user_id, is_default=True).exclude(
            pk=address.pk
        ).update(is_default=False)
    for key, value in data.items():
        setattr(address, key, value)
    address.save()
    return address


@transaction.atomic
def delete_address(ctx, address_id):
    address = get_address(ctx, address_id)
    was_default = address.is_default
    address.delete()
    if was_default:
        replacement = Address.objects.filter(user_id=ctx.user_id).order_by("-created_at").first()
        if replacement is not None:
            replacement.is_default = True
            replacement.save(update_fields=["is_default", "updated_at"])
