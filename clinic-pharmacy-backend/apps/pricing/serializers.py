"""Ingestion of raw prescription, inventory and doctor documents.

Documents arrive with the camelCase keys the clinic apps store. Each serializer
validates one document shape and the ``ingest_*`` helpers turn validated data
into the immutable engine types.

Older documents are accepted too: prescriptions carrying ``discount`` and
medications nested under ``prescriptions[].medications``, and doctor
profiles keeping the procedure price list in ``templateSettings``.
"""
from collections.abc import Mapping
from decimal import Decimal

from django.conf import settings
from rest_framework import serializers

from .dosage import PACKET, normalize_dosage_form
from .types import (
    BatchedRecord,
    BatchFields,
    DiscountScope,
    DoctorFeeProfile,
    InventoryFields,
    InventoryMatch,
    MedicationLine,
    Prescription,
    QuoteOptions,
    RoundingPreference,
    SimpleRecord,
)
from .units import extract_numeric_magnitude, to_canonical_quantity


class LooseTextField(serializers.Field):
    """Free-text value that may have been stored as a number; null becomes ''."""

    default_error_messages = {"invalid": "Expected text or a number."}

    def __init__(self, **kwargs):
        kwargs.setdefault("required", False)
        kwargs.setdefault("allow_null", True)
        kwargs.setdefault("default", "")
        super().__init__(**kwargs)

    def run_validation(self, data=serializers.empty):
        value = super().run_validation(data)
        return "" if value is None else value

    def to_internal_value(self, data):
        if isinstance(data, bool):
            self.fail("invalid")
        if isinstance(data, (int, float, Decimal)):
            return str(data)
        if isinstance(data, str):
            return data.strip()
        self.fail("invalid")

    def to_representation(self, value):
        return value


class RawIdField(serializers.Field):
    """Record identifiers are kept exactly as the store hands them out."""

    def to_internal_value(self, data):
        if isinstance(data, (dict, list)):
            raise serializers.ValidationError("Identifier must be a scalar.")
        return data

    def to_representation(self, value):
        return value


class InventoryMatchSerializer(serializers.Serializer):
    inventoryItemId = RawIdField(source="inventory_item_id")
    batchId = RawIdField(source="batch_id", required=False, allow_null=True, default=None)


class MedicationLineSerializer(serializers.Serializer):
    id = LooseTextField()
    name = LooseTextField()
    genericName = LooseTextField(source="generic_name")
    dosageForm = LooseTextField(source="dosage_form")
    strength = LooseTextField()
    strengthUnit = LooseTextField(source="strength_unit")
    qts = LooseTextField()
    amount = LooseTextField()
    dosage = LooseTextField()
    frequency = LooseTextField()
    duration = LooseTextField()
    totalVolume = LooseTextField(source="total_volume")
    volumeUnit = LooseTextField(source="volume_unit")
    isDispensed = serializers.BooleanField(source="is_dispensed", required=False, default=False)
    sendToExternalPharmacy = serializers.BooleanField(
        source="send_to_external_pharmacy", required=False, default=False
    )
    inventoryMatches = InventoryMatchSerializer(source="inventory_matches", many=True, required=False)


def _present(value) -> bool:
    return value is not None and value != ""


def _flatten_prescription(data: Mapping) -> dict:
    data = dict(data)
    if not _present(data.get("discountPercentage")) and _present(data.get("discount")):
        data["discountPercentage"] = data["discount"]
    nested = data.get("prescriptions")
    if isinstance(nested, (list, tuple)):
        medications = list(data.get("medications") or ())
        for entry in nested:
            if isinstance(entry, Mapping):
                medications.extend(entry.get("medications") or ())
        data["medications"] = medications
    return data


class PrescriptionSerializer(serializers.Serializer):
    id = LooseTextField()
    doctorId = LooseTextField(source="doctor_id")
    medications = MedicationLineSerializer(many=True, required=False)
    procedures = serializers.ListField(child=serializers.CharField(), required=False)
    otherProcedurePrice = serializers.DecimalField(
        source="other_procedure_price", max_digits=12, decimal_places=2, min_value=0,
        required=False, allow_null=True, default=None,
    )
    discountPercentage = serializers.DecimalField(
        source="discount_percentage", max_digits=5, decimal_places=2, min_value=0, max_value=100,
        required=False, allow_null=True, default=Decimal("0"),
    )
    discountScope = serializers.ChoiceField(
        source="discount_scope", choices=DiscountScope.choices, required=False, allow_blank=True,
        default=DiscountScope.CONSULTATION,
    )
    excludeConsultationCharge = serializers.BooleanField(
        source="exclude_consultation_charge", required=False, default=False
    )

    def to_internal_value(self, data):
        if isinstance(data, Mapping):
            data = _flatten_prescription(data)
        return super().to_internal_value(data)


class InventoryBatchSerializer(serializers.Serializer):
    id = RawIdField()
    batchNumber = LooseTextField(source="batch_number")
    quantity = LooseTextField()
    expiryDate = serializers.DateField(source="expiry_date", required=False, allow_null=True, default=None)
    sellingPrice = LooseTextField(source="selling_price")
    status = LooseTextField(default="active")


class InventoryItemSerializer(serializers.Serializer):
    id = RawIdField()
    drugName = LooseTextField(source="drug_name")
    brandName = LooseTextField(source="brand_name")
    genericName = LooseTextField(source="generic_name")
    dosageForm = LooseTextField(source="dosage_form")
    strength = LooseTextField()
    strengthUnit = LooseTextField(source="strength_unit")
    unit = LooseTextField()
    containerSize = LooseTextField(source="container_size")
    containerUnit = LooseTextField(source="container_unit")
    packSize = LooseTextField(source="pack_size")
    packUnit = LooseTextField(source="pack_unit")
    currentStock = LooseTextField(source="current_stock")
    sellingPrice = LooseTextField(source="selling_price")
    expiryDate = serializers.DateField(source="expiry_date", required=False, allow_null=True, default=None)
    isActive = serializers.BooleanField(source="is_active", required=False, default=True)
    batches = InventoryBatchSerializer(many=True, required=False)


class ProcedurePriceSerializer(serializers.Serializer):
    name = serializers.CharField()
    price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)


class DoctorProfileSerializer(serializers.Serializer):
    id = LooseTextField()
    consultationCharge = serializers.DecimalField(
        source="consultation_charge", max_digits=12, decimal_places=2, min_value=0, required=False, default=Decimal("0")
    )
    hospitalCharge = serializers.DecimalField(
        source="hospital_charge", max_digits=12, decimal_places=2, min_value=0, required=False, default=Decimal("0")
    )
    procedurePricing = ProcedurePriceSerializer(source="procedure_pricing", many=True, required=False)
    roundingPreference = serializers.ChoiceField(
        source="rounding_preference", choices=RoundingPreference.choices, required=False,
        default=RoundingPreference.NONE,
    )
    currency = LooseTextField()

    def to_internal_value(self, data):
        if isinstance(data, Mapping):
            template = data.get("templateSettings")
            if isinstance(template, Mapping):
                data = dict(data)
                for key in ("procedurePricing", "roundingPreference"):
                    if not _present(data.get(key)) and _present(template.get(key)):
                        data[key] = template[key]
        return super().to_internal_value(data)


class QuoteOptionsSerializer(serializers.Serializer):
    ignoreAvailability = serializers.BooleanField(source="ignore_availability", required=False, default=False)
    assumeDispensedForAvailable = serializers.BooleanField(
        source="assume_dispensed_for_available", required=False, default=False
    )
    currency = LooseTextField()


def _validated(serializer_class, data) -> dict:
    serializer = serializer_class(data=data)
    serializer.is_valid(raise_exception=True)
    return serializer.validated_data


def build_medication_line(data: dict) -> MedicationLine:
    data = dict(data)
    data["inventory_matches"] = tuple(
        InventoryMatch(m["inventory_item_id"], m.get("batch_id")) for m in data.get("inventory_matches") or ()
    )
    form = normalize_dosage_form(data.get("dosage_form"))
    # Older packet entries stored the pack volume in the strength field.
    if form == PACKET and not data.get("total_volume") and data.get("strength"):
        canonical = to_canonical_quantity(data["strength"], data.get("strength_unit"))
        if canonical and canonical[1] == "ml":
            data["total_volume"] = data["strength"]
            data["volume_unit"] = data.get("strength_unit") or ""
            data["strength"] = ""
            data["strength_unit"] = ""
    data["dosage_form"] = form
    return MedicationLine(**data)


def ingest_medication_line(data) -> MedicationLine:
    if isinstance(data, MedicationLine):
        return data
    return build_medication_line(_validated(MedicationLineSerializer, data))


def ingest_prescription(data) -> Prescription:
    if isinstance(data, Prescription):
        return data
    validated = dict(_validated(PrescriptionSerializer, data))
    validated["medications"] = tuple(build_medication_line(m) for m in validated.get("medications") or ())
    validated["procedures"] = tuple(validated.get("procedures") or ())
    validated["discount_percentage"] = validated.get("discount_percentage") or Decimal("0")
    validated["discount_scope"] = validated.get("discount_scope") or DiscountScope.CONSULTATION
    return Prescription(**validated)


def build_inventory_record(data: dict):
    data = dict(data)
    batches = data.pop("batches", None)
    data["current_stock"] = extract_numeric_magnitude(data.get("current_stock")) or Decimal("0")
    fields = InventoryFields(**data)
    if not batches:
        return SimpleRecord(fields)
    return BatchedRecord(
        fields,
        tuple(
            BatchFields(
                id=b["id"],
                batch_number=b.get("batch_number", ""),
                quantity=extract_numeric_magnitude(b.get("quantity")) or Decimal("0"),
                expiry_date=b.get("expiry_date"),
                selling_price=b.get("selling_price"),
                status=(b.get("status") or "active").lower(),
            )
            for b in batches
        ),
    )


def ingest_inventory_snapshot(rows) -> tuple:
    """Resolve raw inventory rows once into ``SimpleRecord`` / ``BatchedRecord`` values.

    Inactive rows are dropped here so the pricing path never sees them.
    """
    records = []
    for row in rows or ():
        if isinstance(row, (SimpleRecord, BatchedRecord)):
            records.append(row)
            continue
        records.append(build_inventory_record(_validated(InventoryItemSerializer, row)))
    return tuple(r for r in records if r.fields.is_active)


def ingest_doctor_profile(data) -> DoctorFeeProfile:
    if isinstance(data, DoctorFeeProfile):
        return data
    validated = _validated(DoctorProfileSerializer, data)
    return DoctorFeeProfile(
        doctor_id=validated.get("id", ""),
        consultation_charge=validated.get("consultation_charge") or Decimal("0"),
        hospital_charge=validated.get("hospital_charge") or Decimal("0"),
        procedure_pricing={p["name"]: p["price"] for p in validated.get("procedure_pricing") or ()},
        rounding_preference=validated.get("rounding_preference") or RoundingPreference.NONE,
        currency=validated.get("currency") or settings.PRICING_CURRENCY,
    )


def ingest_quote_options(data) -> QuoteOptions:
    if data is None:
        return QuoteOptions()
    if isinstance(data, QuoteOptions):
        return data
    return QuoteOptions(**_validated(QuoteOptionsSerializer, data))
