from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date
from decimal import Decimal

from django.db import models

from .dosage import DosageFormCategory, categorize, normalize_dosage_form

ZERO = Decimal("0")


class PricingIssue(models.TextChoices):
    NO_QUANTITY = "no_quantity", "No quantity specified"
    NOT_AVAILABLE = "not_available", "Not available in inventory"
    MISSING_PRICE = "missing_price", "Price missing in inventory"


class QuantityBasis(models.TextChoices):
    COUNT = "count", "Count"
    ML = "ml", "Millilitres"


class RoundingPreference(models.TextChoices):
    NONE = "none", "No rounding"
    NEAREST_50 = "nearest50", "Nearest 50"
    NEAREST_100 = "nearest100", "Nearest 100"


class DiscountScope(models.TextChoices):
    CONSULTATION = "consultation", "Consultation only"
    CONSULTATION_HOSPITAL = "consultation_hospital", "Consultation + hospital"


@dataclass(frozen=True)
class InventoryMatch:
    inventory_item_id: object
    batch_id: object = None


@dataclass(frozen=True)
class MedicationLine:
    id: str = ""
    name: str = ""
    generic_name: str = ""
    dosage_form: str = ""
    strength: str = ""
    strength_unit: str = ""
    qts: str = ""
    amount: str = ""
    dosage: str = ""
    frequency: str = ""
    duration: str = ""
    total_volume: str = ""
    volume_unit: str = ""
    is_dispensed: bool = False
    send_to_external_pharmacy: bool = False
    inventory_matches: tuple[InventoryMatch, ...] = ()
    category: DosageFormCategory | None = None

    def __post_init__(self):
        form = normalize_dosage_form(self.dosage_form)
        object.__setattr__(self, "dosage_form", form)
        if self.category is None:
            object.__setattr__(self, "category", categorize(form))


@dataclass(frozen=True)
class Prescription:
    id: str = ""
    doctor_id: str = ""
    medications: tuple[MedicationLine, ...] = ()
    procedures: tuple[str, ...] = ()
    other_procedure_price: Decimal | None = None
    discount_percentage: Decimal = ZERO
    discount_scope: str = DiscountScope.CONSULTATION
    exclude_consultation_charge: bool = False


@dataclass(frozen=True)
class InventoryFields:
    id: object
    drug_name: str = ""
    brand_name: str = ""
    generic_name: str = ""
    dosage_form: str = ""
    strength: str = ""
    strength_unit: str = ""
    unit: str = ""
    container_size: str = ""
    container_unit: str = ""
    pack_size: str = ""
    pack_unit: str = ""
    current_stock: Decimal = ZERO
    selling_price: object = None
    expiry_date: date | None = None
    is_active: bool = True

    def __post_init__(self):
        object.__setattr__(self, "dosage_form", normalize_dosage_form(self.dosage_form))

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(n for n in (self.brand_name, self.drug_name) if n)


@dataclass(frozen=True)
class BatchFields:
    id: object
    batch_number: str = ""
    quantity: Decimal = ZERO
    expiry_date: date | None = None
    selling_price: object = None
    status: str = "active"

    @property
    def is_active(self) -> bool:
        return self.status == "active"


@dataclass(frozen=True)
class SimpleRecord:
    fields: InventoryFields


@dataclass(frozen=True)
class BatchedRecord:
    fields: InventoryFields
    batches: tuple[BatchFields, ...] = ()


InventoryRecord = SimpleRecord | BatchedRecord


@dataclass(frozen=True)
class InventorySource:
    inventory_item_id: object
    batch_id: object
    available_quantity: Decimal
    unit_cost: Decimal
    expiry_date: date | None = None
    brand_name: str = ""
    generic_name: str = ""
    container_size: Decimal | None = None
    container_unit: str = ""
    per_ml: bool = False
    # requested units per stock unit (ml per bottle for converted rows)
    stock_factor: Decimal = Decimal("1")


@dataclass(frozen=True)
class AllocationEntry:
    inventory_item_id: object
    batch_id: object
    quantity: Decimal
    unit_cost: Decimal
    line_cost: Decimal
    stock_quantity: Decimal


@dataclass(frozen=True)
class AllocationResult:
    requested_quantity: Decimal
    priced_quantity: Decimal
    remaining_quantity: Decimal
    average_unit_cost: Decimal
    total_cost: Decimal
    entries: tuple[AllocationEntry, ...] = ()

    @property
    def fully_allocated(self) -> bool:
        return self.remaining_quantity <= 0


@dataclass(frozen=True)
class DoctorFeeProfile:
    doctor_id: str = ""
    consultation_charge: Decimal = ZERO
    hospital_charge: Decimal = ZERO
    procedure_pricing: dict = field(default_factory=dict)
    rounding_preference: str = RoundingPreference.NONE
    currency: str = ""


@dataclass(frozen=True)
class QuoteOptions:
    ignore_availability: bool = False
    assume_dispensed_for_available: bool = False
    currency: str = ""


@dataclass(frozen=True)
class ProcedureCharge:
    name: str
    price: Decimal


@dataclass(frozen=True)
class ProcedureCharges:
    items: tuple[ProcedureCharge, ...] = ()
    total: Decimal = ZERO


@dataclass(frozen=True)
class DoctorCharges:
    consultation_charge: Decimal
    hospital_charge: Decimal
    procedure_charges: ProcedureCharges
    total_before_discount: Decimal
    discount_percentage: Decimal
    discount_scope: str
    discount_amount: Decimal
    total_after_discount: Decimal


@dataclass(frozen=True)
class MedicationCharge:
    line_id: str
    name: str
    dosage_form: str
    found: bool
    note: str
    requested_quantity: Decimal
    quantity_basis: str
    issue: str | None = None
    allocation: AllocationResult | None = None
    partial: bool = False

    @property
    def total_cost(self) -> Decimal:
        return self.allocation.total_cost if self.allocation else ZERO

    @property
    def priced_quantity(self) -> Decimal:
        return self.allocation.priced_quantity if self.allocation else ZERO

    @property
    def average_unit_cost(self) -> Decimal:
        return self.allocation.average_unit_cost if self.allocation else ZERO


@dataclass(frozen=True)
class DrugCharges:
    total_cost: Decimal
    total_medications: int
    medication_breakdown: tuple[MedicationCharge, ...] = ()


@dataclass(frozen=True)
class ChargeBreakdown:
    doctor_charges: DoctorCharges
    drug_charges: DrugCharges
    total_before_rounding: Decimal
    rounding_preference: str
    rounding_adjustment: Decimal
    total_charge: Decimal
    currency: str = ""

    def as_dict(self) -> dict:
        return asdict(self)
