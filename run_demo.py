# Usage: python clinic-pharmacy-backend/manage.py shell < run_demo.py
from datetime import timedelta
from decimal import Decimal

from django.utils import timezone

from apps.doctors.models import DoctorProfile
from apps.doctors.services import OrmDoctorProfileProvider
from apps.inventory.services import add_batch, create_inventory_item, stock_movement_history
from apps.inventory.store import OrmRecordStore
from apps.pricing.services import PrescriptionBillingService, quote_prescription_charge

suffix = timezone.now().strftime("%Y%m%d%H%M%S")
pharmacy_id = f"PH-DEMO-{suffix}"
doctor_id = f"DOC-DEMO-{suffix}"
today = timezone.localdate()

paracet = create_inventory_item(
    pharmacy_id,
    {
        "drug_name": "Paracet",
        "generic_name": "Paracetamol",
        "dosage_form": "Tablet",
        "strength": "500",
        "strength_unit": "mg",
        "initial_stock": "100",
        "cost_price": "2.00",
        "selling_price": "5.00",
    },
)
cream = create_inventory_item(
    pharmacy_id,
    {
        "drug_name": "TopiCream",
        "dosage_form": "Cream",
        "container_size": "15",
        "container_unit": "g",
        "initial_stock": "0",
        "selling_price": "15.00",
    },
)
add_batch(cream.pk, {"batch_number": f"TC-{suffix}-1", "quantity": "2", "selling_price": "10",
                     "expiry_date": (today + timedelta(days=60)).isoformat()})
add_batch(cream.pk, {"batch_number": f"TC-{suffix}-2", "quantity": "2", "selling_price": "20",
                     "expiry_date": (today + timedelta(days=90)).isoformat()})
syrup = create_inventory_item(
    pharmacy_id,
    {
        "drug_name": "Antipa",
        "dosage_form": "syrup",
        "initial_stock": "500",
        "selling_price": "2.00",
    },
)

DoctorProfile.objects.create(
    doctor_id=doctor_id,
    name="Demo Doctor",
    consultation_charge=Decimal("600.00"),
    hospital_charge=Decimal("150.00"),
    rounding_preference="nearest50",
    procedure_pricing=[{"name": "ECG", "price": "300.00"}],
)

prescription = {
    "id": f"RX-DEMO-{suffix}",
    "doctorId": doctor_id,
    "procedures": ["ECG"],
    "discountPercentage": 10,
    "discountScope": "consultation",
    "medications": [
        {"name": "Paracet", "dosageForm": "Tablet", "amount": 10, "isDispensed": True},
        {"name": "TopiCream", "dosageForm": "Cream", "qts": 3, "isDispensed": True},
        {"name": "Antipa", "dosageForm": "Liquid (measured)", "strength": "5", "strengthUnit": "ml",
         "frequency": "Twice daily", "duration": "3 days", "isDispensed": True},
        {"name": "Rarecillin", "dosageForm": "Capsule", "amount": 6, "sendToExternalPharmacy": True},
    ],
}

store = OrmRecordStore()
profiles = OrmDoctorProfileProvider()
quote = quote_prescription_charge(prescription, profiles.get(doctor_id), store.inventory_snapshot(pharmacy_id))
bill = PrescriptionBillingService(store, profiles).dispense_and_charge(prescription, pharmacy_id)

for item in (paracet, cream, syrup):
    item.refresh_from_db()

print(
    {
        "pharmacy_id": pharmacy_id,
        "quote": quote.as_dict(),
        "bill": bill.as_dict(),
        "stock_after": {item.drug_name: str(item.current_stock) for item in (paracet, cream, syrup)},
        "cream_movements": stock_movement_history(cream.pk),
    }
)
