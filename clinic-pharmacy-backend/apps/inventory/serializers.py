import re
from decimal import Decimal

from rest_framework import serializers

from apps.pricing.dosage import normalize_dosage_form

from .models import StockMovement

STRENGTH_UNITS = ("mg", "g", "ml", "l", "mcg", "IU", "units", "%")
PLAIN_NUMBER_RE = re.compile(r"^\d+(?:\.\d{1,3})?$")


def _positive_plain_number(value: str, message: str) -> str:
    text = (value or "").strip()
    if not text:
        return ""
    if not PLAIN_NUMBER_RE.match(text) or Decimal(text) <= 0:
        raise serializers.ValidationError(message)
    return text


class InventoryItemInputSerializer(serializers.Serializer):
    drug_name = serializers.CharField(max_length=200)
    brand_name = serializers.CharField(max_length=200, required=False, allow_blank=True, default="")
    generic_name = serializers.CharField(max_length=200, required=False, allow_blank=True, default="")
    dosage_form = serializers.CharField(max_length=64, required=False, allow_blank=True, default="")
    strength = serializers.CharField(max_length=32, required=False, allow_blank=True, default="")
    strength_unit = serializers.CharField(max_length=16, required=False, allow_blank=True, default="")
    unit = serializers.CharField(max_length=32, required=False, allow_blank=True, default="")
    container_size = serializers.CharField(max_length=32, required=False, allow_blank=True, default="")
    container_unit = serializers.CharField(max_length=16, required=False, allow_blank=True, default="")
    pack_size = serializers.CharField(max_length=32, required=False, allow_blank=True, default="")
    pack_unit = serializers.CharField(max_length=16, required=False, allow_blank=True, default="")
    initial_stock = serializers.DecimalField(max_digits=14, decimal_places=3, min_value=0)
    minimum_stock = serializers.DecimalField(max_digits=14, decimal_places=3, min_value=0, required=False, default=10)
    cost_price = serializers.DecimalField(max_digits=12, decimal_places=4, min_value=0, required=False, allow_null=True)
    selling_price = serializers.DecimalField(max_digits=12, decimal_places=4, min_value=0)
    expiry_date = serializers.DateField(required=False, allow_null=True, default=None)
    batch_number = serializers.CharField(max_length=64, required=False, allow_blank=True, default="")
    supplier = serializers.CharField(max_length=200, required=False, allow_blank=True, default="")

    def validate_dosage_form(self, value):
        return normalize_dosage_form(value)

    def validate_strength(self, value):
        return _positive_plain_number(value, "Strength must be a valid positive number")

    def validate_container_size(self, value):
        return _positive_plain_number(value, "Total volume must be a valid positive number")

    def validate_strength_unit(self, value):
        if not value:
            return value
        by_key = {u.lower(): u for u in STRENGTH_UNITS}
        unit = by_key.get(value.strip().lower())
        if unit is None:
            raise serializers.ValidationError(f"Strength unit must be one of: {', '.join(STRENGTH_UNITS)}")
        return unit


class BatchInputSerializer(serializers.Serializer):
    batch_number = serializers.CharField(max_length=64)
    quantity = serializers.DecimalField(max_digits=14, decimal_places=3)
    expiry_date = serializers.DateField(required=False, allow_null=True, default=None)
    cost_price = serializers.DecimalField(max_digits=12, decimal_places=4, min_value=0, required=False, allow_null=True)
    selling_price = serializers.DecimalField(
        max_digits=12, decimal_places=4, min_value=0, required=False, allow_null=True
    )
    supplier = serializers.CharField(max_length=200, required=False, allow_blank=True, default="")

    def validate_quantity(self, value):
        if value <= 0:
            raise serializers.ValidationError("Quantity must be greater than 0.")
        return value


class StockMovementSerializer(serializers.ModelSerializer):
    class Meta:
        model = StockMovement
        fields = "__all__"
        read_only_fields = [f.name for f in StockMovement._meta.fields]
