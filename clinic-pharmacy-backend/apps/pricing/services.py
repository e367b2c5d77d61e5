import logging
from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings

from apps.inventory.services import StockLedger

from .allocation import allocate, price_at_first_source
from .quantity import QuantityResolver
from .serializers import ingest_doctor_profile, ingest_inventory_snapshot, ingest_prescription, ingest_quote_options
from .sources import PricingSourceBuilder
from .types import (
    ChargeBreakdown,
    DiscountScope,
    DoctorCharges,
    DoctorFeeProfile,
    DrugCharges,
    MedicationCharge,
    MedicationLine,
    PricingIssue,
    Prescription,
    ProcedureCharge,
    ProcedureCharges,
    QuantityBasis,
    QuoteOptions,
    RoundingPreference,
)

logger = logging.getLogger(__name__)

AMOUNT_QUANT = Decimal("0.0001")
CURRENCY_QUANT = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")
OTHER_PROCEDURE = "other"

ROUNDING_STEPS = {
    RoundingPreference.NEAREST_50: Decimal("50"),
    RoundingPreference.NEAREST_100: Decimal("100"),
}


def _fmt(value: Decimal) -> str:
    return format(value.normalize(), "f")


def round_total_charge(amount, preference) -> Decimal:
    amount = Decimal(amount)
    step = ROUNDING_STEPS.get(preference)
    if step is None:
        return amount
    return (amount / step).quantize(Decimal("1"), rounding=ROUND_HALF_UP) * step


class ChargeCalculator:
    """Prices a prescription: doctor fees, procedures, discount and drug cost.

    Collaborators are injected so callers (and tests) can swap the quantity
    policy or the source matching without touching module state.
    """

    def __init__(self, resolver: QuantityResolver | None = None, source_builder: PricingSourceBuilder | None = None):
        self.resolver = resolver or QuantityResolver()
        self.source_builder = source_builder or PricingSourceBuilder()

    # ------------------------------------------------------------------
    # Doctor side
    # ------------------------------------------------------------------
    def calculate_doctor_charges(self, prescription: Prescription, profile: DoctorFeeProfile) -> DoctorCharges:
        consultation = ZERO if prescription.exclude_consultation_charge else Decimal(profile.consultation_charge)
        hospital = Decimal(profile.hospital_charge)
        procedures = self.calculate_procedure_charges(prescription, profile)

        percentage = min(max(Decimal(prescription.discount_percentage or 0), ZERO), HUNDRED)
        scope = prescription.discount_scope
        if scope not in DiscountScope.values:
            scope = DiscountScope.CONSULTATION
        discountable = consultation + hospital if scope == DiscountScope.CONSULTATION_HOSPITAL else consultation
        discount_amount = (discountable * percentage / HUNDRED).quantize(CURRENCY_QUANT, rounding=ROUND_HALF_UP)

        total_before = consultation + hospital + procedures.total
        return DoctorCharges(
            consultation_charge=consultation,
            hospital_charge=hospital,
            procedure_charges=procedures,
            total_before_discount=total_before,
            discount_percentage=percentage,
            discount_scope=scope,
            discount_amount=discount_amount,
            total_after_discount=total_before - discount_amount,
        )

    def calculate_procedure_charges(self, prescription: Prescription, profile: DoctorFeeProfile) -> ProcedureCharges:
        price_list = {str(name).strip().lower(): Decimal(price) for name, price in profile.procedure_pricing.items()}
        items = []
        for name in prescription.procedures:
            key = str(name).strip().lower()
            if key == OTHER_PROCEDURE and prescription.other_procedure_price is not None:
                price = Decimal(prescription.other_procedure_price)
            else:
                price = price_list.get(key, ZERO)
            items.append(ProcedureCharge(name=name, price=price))
        return ProcedureCharges(items=tuple(items), total=sum((i.price for i in items), ZERO))

    # ------------------------------------------------------------------
    # Drug side
    # ------------------------------------------------------------------
    def price_line(self, line: MedicationLine, snapshot, *, ignore_availability: bool = False) -> MedicationCharge:
        requested, basis = self.resolver.resolve_detail(line)
        base = dict(
            line_id=line.id,
            name=line.name,
            dosage_form=line.dosage_form,
            requested_quantity=requested,
            quantity_basis=basis,
        )
        if requested <= 0:
            return MedicationCharge(found=False, note=PricingIssue.NO_QUANTITY.label, issue=PricingIssue.NO_QUANTITY, **base)

        lookup = self.source_builder.build_sources(
            line, snapshot, per_ml=basis == QuantityBasis.ML, include_unavailable=ignore_availability
        )
        if not lookup.sources:
            issue = PricingIssue(lookup.issue or PricingIssue.NOT_AVAILABLE)
            return MedicationCharge(found=False, note=issue.label, issue=issue, **base)

        if ignore_availability:
            allocation = price_at_first_source(requested, lookup.sources)
        else:
            allocation = allocate(requested, lookup.sources)

        partial = not allocation.fully_allocated
        note = ""
        if partial:
            note = f"Partially available: {_fmt(allocation.priced_quantity)} of {_fmt(requested)}"
        logger.debug(
            f"Priced {line.name!r}: {allocation.priced_quantity}/{requested} {basis} "
            f"across {len(allocation.entries)} source(s) = {allocation.total_cost}"
        )
        return MedicationCharge(found=True, note=note, allocation=allocation, partial=partial, **base)

    def _drug_charges(self, lines, snapshot, *, ignore_availability=False, skip_missing_price=False) -> DrugCharges:
        rows = []
        for line in lines:
            row = self.price_line(line, snapshot, ignore_availability=ignore_availability)
            if skip_missing_price and row.issue == PricingIssue.MISSING_PRICE:
                continue
            rows.append(row)
        total = sum((r.total_cost for r in rows), ZERO).quantize(AMOUNT_QUANT, rounding=ROUND_HALF_UP)
        return DrugCharges(
            total_cost=total,
            total_medications=sum(1 for r in rows if r.found),
            medication_breakdown=tuple(rows),
        )

    def calculate_drug_charges(self, prescription: Prescription, snapshot) -> DrugCharges:
        """Bill the lines the pharmacy actually dispensed."""
        lines = [m for m in prescription.medications if m.is_dispensed and not m.send_to_external_pharmacy]
        return self._drug_charges(lines, snapshot)

    def calculate_expected_drug_charges_from_inventory(
        self, prescription: Prescription, snapshot, options: QuoteOptions | None = None
    ) -> DrugCharges:
        options = options or QuoteOptions()
        lines = [m for m in prescription.medications if not m.send_to_external_pharmacy]
        return self._drug_charges(
            lines,
            snapshot,
            ignore_availability=options.ignore_availability,
            skip_missing_price=options.assume_dispensed_for_available,
        )

    # ------------------------------------------------------------------
    # Totals
    # ------------------------------------------------------------------
    def _breakdown(self, doctor: DoctorCharges, drugs: DrugCharges, profile: DoctorFeeProfile, currency: str):
        total_before = doctor.total_after_discount + drugs.total_cost
        preference = profile.rounding_preference or RoundingPreference.NONE
        total = round_total_charge(total_before, preference)
        return ChargeBreakdown(
            doctor_charges=doctor,
            drug_charges=drugs,
            total_before_rounding=total_before,
            rounding_preference=preference,
            rounding_adjustment=total - total_before,
            total_charge=total,
            currency=currency or profile.currency or settings.PRICING_CURRENCY,
        )

    def calculate_total_charge(self, prescription: Prescription, profile: DoctorFeeProfile, snapshot) -> ChargeBreakdown:
        doctor = self.calculate_doctor_charges(prescription, profile)
        drugs = self.calculate_drug_charges(prescription, snapshot)
        return self._breakdown(doctor, drugs, profile, "")

    def calculate_expected_charge_from_stock(
        self, prescription: Prescription, profile: DoctorFeeProfile, snapshot, options: QuoteOptions | None = None
    ) -> ChargeBreakdown:
        options = options or QuoteOptions()
        doctor = self.calculate_doctor_charges(prescription, profile)
        drugs = self.calculate_expected_drug_charges_from_inventory(prescription, snapshot, options)
        return self._breakdown(doctor, drugs, profile, options.currency)


def quote_prescription_charge(prescription, doctor_profile, inventory_snapshot, options=None,
                              calculator: ChargeCalculator | None = None) -> ChargeBreakdown:
    """Estimate the bill for a prescription without touching stock."""
    calculator = calculator or ChargeCalculator()
    return calculator.calculate_expected_charge_from_stock(
        ingest_prescription(prescription),
        ingest_doctor_profile(doctor_profile),
        ingest_inventory_snapshot(inventory_snapshot),
        ingest_quote_options(options),
    )


class PrescriptionBillingService:
    """Dispenses a prescription against a pharmacy's stock and returns the bill.

    ``store`` provides the inventory snapshot and the transaction boundary,
    ``doctor_profiles`` resolves the prescribing doctor's fee profile and
    ``ledger`` applies each allocation entry as a ``dispatch`` movement.
    """

    def __init__(self, store, doctor_profiles, ledger=None, calculator: ChargeCalculator | None = None):
        self.store = store
        self.doctor_profiles = doctor_profiles
        self.ledger = ledger or StockLedger(store)
        self.calculator = calculator or ChargeCalculator()

    def dispense_and_charge(self, prescription, pharmacy_id) -> ChargeBreakdown:
        prescription = ingest_prescription(prescription)
        profile = self.doctor_profiles.get(prescription.doctor_id)
        try:
            with self.store.atomic():
                snapshot = self.store.inventory_snapshot(pharmacy_id)
                breakdown = self.calculator.calculate_total_charge(prescription, profile, snapshot)
                for row in breakdown.drug_charges.medication_breakdown:
                    if row.allocation is None or not row.allocation.entries:
                        continue
                    self.ledger.apply_allocation(
                        row.allocation,
                        reference="prescription",
                        reference_id=prescription.id,
                        notes=row.name,
                    )
        except Exception:
            logger.exception(f"Dispensing prescription {prescription.id} at pharmacy {pharmacy_id} failed")
            raise
        logger.info(
            f"Dispensed prescription {prescription.id} at pharmacy {pharmacy_id}: "
            f"total={breakdown.total_charge} {breakdown.currency}"
        )
        return breakdown
