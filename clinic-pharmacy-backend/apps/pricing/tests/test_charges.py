import copy
from decimal import Decimal

from django.test import SimpleTestCase
from rest_framework.exceptions import ValidationError

from apps.pricing.serializers import ingest_doctor_profile, ingest_inventory_snapshot, ingest_prescription
from apps.pricing.services import ChargeCalculator, quote_prescription_charge, round_total_charge


def doctor(**overrides):
    data = {"id": "doc-1", "consultationCharge": 1000, "hospitalCharge": 500, "roundingPreference": "none"}
    data.update(overrides)
    return data


MIXED_INVENTORY = [
    {"id": "tab", "drugName": "Paracet", "dosageForm": "Tablet", "currentStock": 100, "sellingPrice": 5},
    {"id": "bottle", "drugName": "Coughex", "dosageForm": "Liquid (bottles)", "currentStock": 10, "sellingPrice": 120},
    {"id": "cream-10", "drugName": "Dermacream", "dosageForm": "Cream", "containerSize": "10", "containerUnit": "g",
     "currentStock": 5, "sellingPrice": 171},
    {"id": "cream-15", "drugName": "Dermacream", "dosageForm": "Cream", "containerSize": "15", "containerUnit": "g",
     "currentStock": 5, "sellingPrice": 420},
    {"id": "packet", "drugName": "ORS", "dosageForm": "Packet", "currentStock": 20, "sellingPrice": 50},
    {"id": "measured", "drugName": "Antipa", "dosageForm": "Liquid (measured)", "currentStock": 500, "sellingPrice": 2},
]

MIXED_MEDICATIONS = [
    {"id": "1", "name": "Paracet", "dosageForm": "Tablet", "amount": "10", "isDispensed": True},
    {"id": "2", "name": "Coughex", "dosageForm": "Liquid (bottles)", "amount": "2", "isDispensed": True},
    {"id": "3", "name": "Dermacream", "dosageForm": "Cream", "qts": "2", "totalVolume": "15", "volumeUnit": "g",
     "isDispensed": True},
    {"id": "4", "name": "ORS", "dosageForm": "Packet", "qts": "1", "isDispensed": True},
    {"id": "5", "name": "Antipa", "dosageForm": "Liquid (measured)", "strength": "5", "strengthUnit": "ml",
     "frequency": "Twice daily", "duration": "2 days", "isDispensed": True},
]


class RoundingTests(SimpleTestCase):
    def test_round_total_charge(self):
        self.assertEqual(round_total_charge(1234, "none"), Decimal("1234"))
        self.assertEqual(round_total_charge(1234, "nearest50"), Decimal("1250"))
        self.assertEqual(round_total_charge(1224, "nearest50"), Decimal("1200"))
        self.assertEqual(round_total_charge(1225, "nearest50"), Decimal("1250"))
        self.assertEqual(round_total_charge(1234, "nearest100"), Decimal("1200"))
        self.assertEqual(round_total_charge(1270, "nearest100"), Decimal("1300"))

    def test_rounding_stays_within_granularity(self):
        for amount in (Decimal("0"), Decimal("24.99"), Decimal("1234.56"), Decimal("9999.99")):
            for pref, step in (("nearest50", 50), ("nearest100", 100)):
                self.assertLessEqual(abs(round_total_charge(amount, pref) - amount), step)


class DoctorChargeTests(SimpleTestCase):
    def setUp(self):
        self.calculator = ChargeCalculator()

    def charges(self, prescription, profile=None):
        return self.calculator.calculate_doctor_charges(
            ingest_prescription(prescription), ingest_doctor_profile(profile or doctor())
        )

    def test_discount_on_consultation_only(self):
        result = self.charges({"discountPercentage": 10, "discountScope": "consultation"})
        self.assertEqual(result.total_before_discount, Decimal("1500"))
        self.assertEqual(result.discount_amount, Decimal("100"))
        self.assertEqual(result.total_after_discount, Decimal("1400"))

    def test_discount_on_consultation_and_hospital(self):
        result = self.charges({"discountPercentage": 10, "discountScope": "consultation_hospital"})
        self.assertEqual(result.discount_amount, Decimal("150"))
        self.assertEqual(result.total_after_discount, Decimal("1350"))

    def test_scope_defaults_to_consultation(self):
        self.assertEqual(self.charges({"discountPercentage": 10}).discount_amount, Decimal("100"))

    def test_exclude_consultation_charge(self):
        result = self.charges({"excludeConsultationCharge": True, "discountPercentage": 10})
        self.assertEqual(result.consultation_charge, Decimal("0"))
        self.assertEqual(result.total_before_discount, Decimal("500"))
        self.assertEqual(result.discount_amount, Decimal("0"))

    def test_procedures_priced_from_profile(self):
        profile = doctor(procedurePricing=[{"name": "ECG", "price": 300}, {"name": "X-Ray", "price": 500}])
        result = self.charges({"procedures": ["ECG", "X-Ray"], "discountPercentage": 10}, profile)
        self.assertEqual(result.procedure_charges.total, Decimal("800"))
        self.assertEqual(result.total_before_discount, Decimal("2300"))
        self.assertEqual(result.total_after_discount, Decimal("2200"))

    def test_other_procedure_uses_prescription_price(self):
        profile = doctor(procedurePricing=[{"name": "Other", "price": 100}])
        result = self.charges({"procedures": ["Other", "Unknown"], "otherProcedurePrice": 250}, profile)
        self.assertEqual([i.price for i in result.procedure_charges.items], [Decimal("250"), Decimal("0")])

    def test_discount_alias_is_accepted(self):
        result = self.charges({"discount": 10, "discountScope": "consultation"})
        self.assertEqual(result.discount_amount, Decimal("100"))
        self.assertEqual(result.total_after_discount, Decimal("1400"))

    def test_procedure_pricing_from_template_settings(self):
        profile = doctor(templateSettings={"procedurePricing": [{"name": "ECG", "price": 300}, {"name": "X-Ray", "price": 500}]})
        result = self.charges({"procedures": ["ECG", "X-Ray"]}, profile)
        self.assertEqual(result.procedure_charges.total, Decimal("800"))
        self.assertEqual(result.total_before_discount, Decimal("2300"))

    def test_invalid_discount_is_rejected_at_ingestion(self):
        with self.assertRaises(ValidationError):
            ingest_prescription({"discountPercentage": 120})


class DrugChargeTests(SimpleTestCase):
    def setUp(self):
        self.calculator = ChargeCalculator()

    def bill(self, medications, inventory):
        return self.calculator.calculate_drug_charges(
            ingest_prescription({"medications": medications}), ingest_inventory_snapshot(inventory)
        )

    def test_medications_nested_under_prescriptions(self):
        prescription = ingest_prescription({
            "prescriptions": [
                {"medications": [{"name": "Amoxicillin", "dosageForm": "Capsule", "amount": "10", "isDispensed": True}]},
            ],
        })
        drugs = self.calculator.calculate_drug_charges(
            prescription,
            ingest_inventory_snapshot([
                {"id": "amx", "drugName": "Amoxicillin", "dosageForm": "Capsule", "currentStock": 50, "sellingPrice": 2},
            ]),
        )
        self.assertEqual(len(drugs.medication_breakdown), 1)
        self.assertEqual(drugs.total_cost, Decimal("20"))

    def test_measured_liquid_priced_per_ml(self):
        drugs = self.bill(
            [{"name": "Antipa", "dosageForm": "Liquid (measured)", "strength": "5", "strengthUnit": "ml",
              "frequency": "Four times daily (QDS)", "duration": "1 days", "isDispensed": True}],
            [{"id": "a", "drugName": "Antipa", "dosageForm": "Liquid (measured)", "currentStock": 100,
              "sellingPrice": 20}],
        )
        row = drugs.medication_breakdown[0]
        self.assertEqual(row.requested_quantity, Decimal("20"))
        self.assertEqual(drugs.total_cost, Decimal("400"))

    def test_bottle_amount_is_not_volume_derived(self):
        drugs = self.bill(
            [{"name": "Corex", "dosageForm": "Liquid (bottles)", "amount": "2", "strength": "100",
              "strengthUnit": "ml", "frequency": "Twice daily", "duration": "5 days", "isDispensed": True}],
            [{"id": "c", "drugName": "Corex", "dosageForm": "Liquid (bottles)", "currentStock": 10, "sellingPrice": 20}],
        )
        self.assertEqual(drugs.medication_breakdown[0].requested_quantity, Decimal("2"))
        self.assertEqual(drugs.total_cost, Decimal("40"))

    def test_cream_container_size_selects_row(self):
        drugs = self.bill([MIXED_MEDICATIONS[2]], MIXED_INVENTORY)
        row = drugs.medication_breakdown[0]
        self.assertEqual(row.allocation.entries[0].inventory_item_id, "cream-15")
        self.assertEqual(drugs.total_cost, Decimal("840"))

    def test_unpriced_lines_keep_distinct_reasons(self):
        drugs = self.bill(
            [
                {"name": "Paracet", "dosageForm": "Tablet", "isDispensed": True},
                {"name": "Ghostmed", "amount": "5", "isDispensed": True},
                {"name": "Nopricemed", "amount": "5", "isDispensed": True},
            ],
            [{"id": "np", "drugName": "Nopricemed", "currentStock": 10, "sellingPrice": ""}],
        )
        self.assertEqual(
            [(r.found, r.note) for r in drugs.medication_breakdown],
            [
                (False, "No quantity specified"),
                (False, "Not available in inventory"),
                (False, "Price missing in inventory"),
            ],
        )
        self.assertEqual(drugs.total_cost, Decimal("0"))
        self.assertEqual(drugs.total_medications, 0)

    def test_partial_allocation_is_annotated(self):
        drugs = self.bill(
            [{"name": "TopiCream", "dosageForm": "Cream", "qts": "5", "isDispensed": True}],
            [{"id": "t", "drugName": "TopiCream", "dosageForm": "Cream", "sellingPrice": 15, "batches": [
                {"id": "b1", "quantity": 2, "sellingPrice": 10, "expiryDate": "2026-06-01"},
                {"id": "b2", "quantity": 2, "sellingPrice": 20, "expiryDate": "2026-07-01"},
            ]}],
        )
        row = drugs.medication_breakdown[0]
        self.assertTrue(row.found)
        self.assertTrue(row.partial)
        self.assertEqual(row.note, "Partially available: 4 of 5")
        self.assertEqual(row.allocation.remaining_quantity, Decimal("1"))
        self.assertEqual(drugs.total_cost, Decimal("60"))

    def test_only_dispensed_lines_are_billed(self):
        drugs = self.bill(
            [dict(MIXED_MEDICATIONS[0]), dict(MIXED_MEDICATIONS[3], isDispensed=False)], MIXED_INVENTORY
        )
        self.assertEqual([r.name for r in drugs.medication_breakdown], ["Paracet"])
        self.assertEqual(drugs.total_cost, Decimal("50"))


class QuoteTests(SimpleTestCase):
    def test_mixed_forms_quote_matches_bill(self):
        prescription = {"id": "rx-1", "medications": MIXED_MEDICATIONS}
        profile = doctor(consultationCharge=600, hospitalCharge=150)

        quote = quote_prescription_charge(prescription, profile, MIXED_INVENTORY)
        self.assertEqual(quote.drug_charges.total_cost, Decimal("1220"))
        self.assertEqual(quote.total_charge, Decimal("1970"))
        self.assertEqual(quote.drug_charges.total_medications, 5)

        calculator = ChargeCalculator()
        bill = calculator.calculate_total_charge(
            ingest_prescription(prescription), ingest_doctor_profile(profile), ingest_inventory_snapshot(MIXED_INVENTORY)
        )
        self.assertEqual(bill.total_charge, quote.total_charge)

    def test_rounding_adjustment_is_kept(self):
        prescription = {"medications": [{"name": "Paracet", "dosageForm": "Tablet", "amount": "46.8"}]}
        quote = quote_prescription_charge(
            prescription, doctor(consultationCharge=1000, hospitalCharge=0, roundingPreference="nearest50"),
            MIXED_INVENTORY,
        )
        self.assertEqual(quote.total_before_rounding, Decimal("1234"))
        self.assertEqual(quote.total_charge, Decimal("1250"))
        self.assertEqual(quote.rounding_adjustment, Decimal("16"))

    def test_quote_is_idempotent_and_leaves_inputs_alone(self):
        prescription = {"medications": MIXED_MEDICATIONS, "discountPercentage": 5}
        inventory = copy.deepcopy(MIXED_INVENTORY)
        first = quote_prescription_charge(prescription, doctor(), inventory)
        second = quote_prescription_charge(prescription, doctor(), inventory)
        self.assertEqual(first, second)
        self.assertEqual(inventory, MIXED_INVENTORY)

    def test_ignore_availability_prices_full_request(self):
        inventory = [{"id": "t", "drugName": "Paracet", "dosageForm": "Tablet", "currentStock": 3, "sellingPrice": 5}]
        prescription = {"medications": [{"name": "Paracet", "dosageForm": "Tablet", "amount": "10"}]}
        profile = doctor(consultationCharge=0, hospitalCharge=0)

        normal = quote_prescription_charge(prescription, profile, inventory)
        self.assertEqual(normal.drug_charges.total_cost, Decimal("15"))
        self.assertTrue(normal.drug_charges.medication_breakdown[0].partial)

        estimate = quote_prescription_charge(prescription, profile, inventory, {"ignoreAvailability": True})
        self.assertEqual(estimate.drug_charges.total_cost, Decimal("50"))

    def test_ignore_availability_prices_out_of_stock_rows(self):
        inventory = [{"id": "t", "drugName": "Paracet", "dosageForm": "Tablet", "currentStock": 0, "sellingPrice": 5}]
        prescription = {"medications": [{"name": "Paracet", "dosageForm": "Tablet", "amount": "4"}]}
        estimate = quote_prescription_charge(prescription, doctor(), inventory, {"ignoreAvailability": True})
        self.assertEqual(estimate.drug_charges.total_cost, Decimal("20"))

    def test_assume_dispensed_drops_missing_price_lines(self):
        inventory = MIXED_INVENTORY + [{"id": "np", "drugName": "Nopricemed", "currentStock": 5, "sellingPrice": ""}]
        prescription = {"medications": [MIXED_MEDICATIONS[0], {"name": "Nopricemed", "amount": "1"}]}

        flagged = quote_prescription_charge(prescription, doctor(), inventory)
        self.assertEqual(len(flagged.drug_charges.medication_breakdown), 2)

        quiet = quote_prescription_charge(prescription, doctor(), inventory, {"assumeDispensedForAvailable": True})
        self.assertEqual([r.name for r in quiet.drug_charges.medication_breakdown], ["Paracet"])
        self.assertEqual(quiet.drug_charges.total_cost, Decimal("50"))

    def test_external_pharmacy_lines_are_not_quoted(self):
        prescription = {"medications": [
            MIXED_MEDICATIONS[0], dict(MIXED_MEDICATIONS[3], sendToExternalPharmacy=True),
        ]}
        quote = quote_prescription_charge(prescription, doctor(), MIXED_INVENTORY)
        self.assertEqual([r.name for r in quote.drug_charges.medication_breakdown], ["Paracet"])

    def test_quote_tracks_final_bill_for_formless_inventory(self):
        inventory = [{"id": "p", "drugName": "Paracet", "currentStock": 50, "sellingPrice": "12.5"}]
        medication = {"name": "Paracet", "dosageForm": "Tablet", "amount": 10, "dosage": "500mg"}
        profile = doctor()
        quote = quote_prescription_charge(
            {"medications": [medication]}, profile, inventory, {"assumeDispensedForAvailable": True}
        )
        bill = ChargeCalculator().calculate_total_charge(
            ingest_prescription({"medications": [dict(medication, isDispensed=True)]}),
            ingest_doctor_profile(profile),
            ingest_inventory_snapshot(inventory),
        )
        self.assertLessEqual(abs(quote.total_charge - bill.total_charge), 1)
        self.assertEqual(bill.drug_charges.total_cost, Decimal("125"))

    def test_currency_comes_from_profile_or_options(self):
        quote = quote_prescription_charge({}, doctor(currency="LKR"), [])
        self.assertEqual(quote.currency, "LKR")
        quote = quote_prescription_charge({}, doctor(currency="LKR"), [], {"currency": "EUR"})
        self.assertEqual(quote.currency, "EUR")
