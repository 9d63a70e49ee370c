from rest_framework import serializers

from common.utils import PHONE_RE
from .choices import Role
from .models import Address, User


def _phone(value):
    if value and not PHONE_RE.match(value):
        raise serializers.ValidationError("Enter a valid 10-digit phone number.")
    return value


class UserSerializer(serializers.ModelSerializer):
    """User profile. The password hash is never serialized."""

    permissions = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ["id", "name", "email", "phone", "role", "permissions", "is_active", "last_login", "created_at"]
        read_only_fields = fields

    def get_permissions(self, obj):
        return obj.staff_permissions()


class ProfileUpdateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255, required=False)
    phone = serializers.CharField(max_length=10, required=False, allow_blank=True, validators=[_phone])


class ShopSummarySerializer(serializers.Serializer):
    id = serializers.IntegerField()
    name = serializers.CharField()
    slug = serializers.CharField()
    plan = serializers.CharField()
    inventory_enabled = serializers.BooleanField()
    orders_enabled = serializers.BooleanField()
    customers_enabled = serializers.BooleanField()


class RegisterOwnerSerializer(serializers.Serializer):
    shop_name = serializers.CharField(max_length=255)
    shop_slug = serializers.SlugField(max_length=100, required=False, allow_blank=True)
    shop_email = serializers.EmailField(required=False, allow_blank=True)
    shop_phone = serializers.CharField(max_length=15, required=False, allow_blank=True)
    street = serializers.CharField(max_length=255, required=False, allow_blank=True)
    city = serializers.CharField(max_length=100, required=False, allow_blank=True)
    state = serializers.CharField(max_length=100, required=False, allow_blank=True)
    pincode = serializers.CharField(max_length=10, required=False, allow_blank=True)
    gst_number = serializers.CharField(max_length=20, required=False, allow_blank=True)
    owner_name = serializers.CharField(max_length=255)
    owner_email = serializers.EmailField()
    owner_phone = serializers.CharField(max_length=10, required=False, allow_blank=True, validators=[_phone])
    owner_password = serializers.CharField(write_only=True, min_length=8)
    terms_accepted = serializers.BooleanField(default=False)
    privacy_accepted = serializers.BooleanField(default=False)
    seller_agreement_accepted = serializers.BooleanField(default=False)

    def to_service_kwargs(self):
        data = dict(self.validated_data)
        if "shop_email" in data:
            data["email"] = data.pop("shop_email")
        if "shop_phone" in data:
            data["phone"] = data.pop("shop_phone")
        if data.get("gst_number"):
            data["is_gst_registered"] = True
        return data


class RegisterCustomerSerializer(serializers.Serializer):
    shop_slug = serializers.SlugField(max_length=100)
    name = serializers.CharField(max_length=255)
    email = serializers.EmailField()
    phone = serializers.CharField(max_length=10, required=False, allow_blank=True, validators=[_phone])
    password = serializers.CharField(write_only=True, min_length=8)


class LoginSerializer(serializers.Serializer):
    shop_slug = serializers.SlugField(max_length=100)
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)


class RefreshSerializer(serializers.Serializer):
    refresh = serializers.CharField()


class PasswordChangeSerializer(serializers.Serializer):
    old_password = serializers.CharField(write_only=True)
    new_password = serializers.CharField(write_only=True, min_length=8)


class StaffPermissionsSerializer(serializers.Serializer):
    can_manage_products = serializers.BooleanField(required=False)
    can_manage_orders = serializers.BooleanField(required=False)
    can_manage_customers = serializers.BooleanField(required=False)
    can_view_reports = serializers.BooleanField(required=False)


class InviteStaffSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    email = serializers.EmailField()
    phone = serializers.CharField(max_length=10, required=False, allow_blank=True, validators=[_phone])
    password = serializers.CharField(write_only=True, min_length=8)
    permissions = StaffPermissionsSerializer(required=False)


class BlockSerializer(serializers.Serializer):
    blocked = serializers.BooleanField()


class UserFilterSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=Role.choices, required=False)
    search = serializers.CharField(required=False, allow_blank=True)


class AddressSerializer(serializers.ModelSerializer):
    phone = serializers.CharField(max_length=10, validators=[_phone])

    class Meta:
        model = Address
        fields = [
            "id",
            "full_name",
            "phone",
            "address_line1",
            "address_line2",
            "city",
            "state",
            "pincode",
            "country",
            "is_default",
        ]
        read_only_fields = ["id"]

