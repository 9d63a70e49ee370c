"""
Customer records of one shop. Callers have passed MANAGE_CUSTOMERS.
"""
from django.db import IntegrityError, transaction
from django.db.models import Q

from common.exceptions import DuplicateKey
from .models import Customer

EDITABLE_FIELDS = (
    "name",
    "phone",
    "email",
    "address_line1",
    "address_line2",
    "city",
    "state",
    "pincode",
    "country",
    "notes",
    "is_active",
)


def _duplicate_phone():
    return DuplicateKey("A customer with this phone number already exists.", field="phone")


def list_customers(ctx, search=None):
    qs = ctx.scope.query(Customer)
    if search:
        qs = qs.filter(
            Q(name__icontains=search) | Q(phone__icontains=search) | Q(email__icontains=search)
        )
    return qs


def get_customer(ctx, customer_id):
    return ctx.scope.get(Customer, customer_id)


def create_customer(ctx, **data):
    fields = {k: v for k, v in data.items() if k in EDITABLE_FIELDS}
    if ctx.scope.query(Customer).filter(phone=fields.get("phone")).exists():
        raise _duplicate_phone()
    try:
        with transaction.atomic():
            return ctx.scope.create(Customer, **fields)
    except IntegrityError:
        raise _duplicate_phone()


def update_customer(ctx, customer_id, **data):
    customer = get_customer(ctx, customer_id)
    phone = data.get("phone")
    if phone and ctx.scope.query(Customer).filter(phone=phone).exclude(pk=customer.pk).exists():
        raise _duplicate_phone()
    changed = [name for name in EDITABLE_FIELDS if name in data]
    for name in changed:
        setattr(customer, name, data[name])
    try:
        with transaction.atomic():
            # Order totals are maintained by checkout with F() updates.
            customer.save(update_fields=[*changed, "updated_at"])
    except IntegrityError:
        raise _duplicate_phone()
    return customer


def delete_customer(ctx, customer_id):
    customer = get_customer(ctx, customer_id)
    customer.soft_delete()
    return customer


def customer_orders(ctx, customer_id):
    """Orders placed against a customer record, newest first."""
    from orders.models import Order

    customer = get_customer(ctx, customer_id)
    return ctx.scope.query(Order).filter(customer=customer).order_by("-created_at")
