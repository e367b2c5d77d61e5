from datetime import date
from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.test import TestCase

from apps.inventory.alerts import AlertType, StockStatus, low_stock, stock_alerts, stock_status
from apps.inventory.models import InventoryBatch, InventoryItem
from apps.inventory.services import StockLedger, create_inventory_item
from apps.settingsx.services import set_setting

TODAY = date(2026, 5, 1)


class StockStatusTests(TestCase):
    def item(self, **fields):
        data = {"pharmacy_id": "ph-1", "drug_name": "Paracet", "current_stock": 50, "minimum_stock": 10}
        data.update(fields)
        return InventoryItem.objects.create(**data)

    def test_status_order(self):
        self.assertEqual(stock_status(self.item(current_stock=0), TODAY), StockStatus.OUT_OF_STOCK)
        self.assertEqual(stock_status(self.item(expiry_date=date(2026, 4, 1)), TODAY), StockStatus.EXPIRED)
        self.assertEqual(stock_status(self.item(expiry_date=date(2026, 5, 20)), TODAY), StockStatus.EXPIRING_SOON)
        self.assertEqual(stock_status(self.item(current_stock=10), TODAY), StockStatus.LOW_STOCK)
        self.assertEqual(stock_status(self.item(expiry_date=date(2027, 1, 1)), TODAY), StockStatus.IN_STOCK)

    def test_nearest_active_batch_decides_expiry(self):
        item = self.item(expiry_date=date(2020, 1, 1))
        InventoryBatch.objects.create(item=item, batch_number="OLD", expiry_date=date(2026, 4, 1), status="expired")
        InventoryBatch.objects.create(item=item, batch_number="B1", quantity=50, expiry_date=date(2026, 9, 1))
        self.assertEqual(stock_status(item, TODAY), StockStatus.IN_STOCK)

    def test_expiry_window_comes_from_settings(self):
        item = self.item(expiry_date=date(2026, 7, 1))
        self.assertEqual(stock_status(item, TODAY), StockStatus.IN_STOCK)
        set_setting("ALERT_EXPIRY_WARNING_DAYS", 90)
        self.assertEqual(stock_status(item, TODAY), StockStatus.EXPIRING_SOON)


class StockAlertTests(TestCase):
    def setUp(self):
        self.item = InventoryItem.objects.create(
            pharmacy_id="ph-1", drug_name="Amoxil", current_stock=8, minimum_stock=10
        )

    def test_low_stock_and_expiring_batches(self):
        soon = InventoryBatch.objects.create(
            item=self.item, batch_number="B1", quantity=3, expiry_date=date(2026, 5, 15)
        )
        InventoryBatch.objects.create(item=self.item, batch_number="B2", quantity=5, expiry_date=date(2027, 1, 1))

        alerts = stock_alerts(self.item, TODAY)

        self.assertEqual([a["type"] for a in alerts], [AlertType.LOW_STOCK, AlertType.EXPIRING])
        self.assertIn("Amoxil is running low. Current stock: 8", alerts[0]["message"])
        self.assertEqual(alerts[1]["message"], "Amoxil has batches expiring within 30 days")
        self.assertEqual(alerts[1]["batch_ids"], [soon.pk])

    def test_well_stocked_item_has_no_alerts(self):
        self.item.current_stock = Decimal("40")
        self.item.save()
        self.assertEqual(stock_alerts(self.item, TODAY), [])

    def test_ledger_logs_alerts_after_a_movement(self):
        with self.assertLogs("apps.inventory.services", level="WARNING") as logs:
            StockLedger().apply_movement(self.item.pk, 2, "dispatch")
        self.assertIn("Stock alert low_stock: Amoxil is running low", logs.output[0])


class LowStockScanTests(TestCase):
    def setUp(self):
        InventoryItem.objects.create(pharmacy_id="ph-1", drug_name="Zinc", current_stock=2, minimum_stock=5)
        InventoryItem.objects.create(pharmacy_id="ph-1", drug_name="Amoxil", current_stock=0, minimum_stock=5)
        InventoryItem.objects.create(pharmacy_id="ph-1", drug_name="Plenty", current_stock=100, minimum_stock=5)
        InventoryItem.objects.create(pharmacy_id="ph-2", drug_name="Iron", current_stock=5, minimum_stock=5)
        InventoryItem.objects.create(
            pharmacy_id="ph-1", drug_name="Retired", current_stock=0, minimum_stock=5, is_active=False
        )

    def test_low_stock_lists_active_items_at_or_below_minimum(self):
        rows = low_stock()
        self.assertEqual([r["drug_name"] for r in rows], ["Amoxil", "Zinc", "Iron"])
        self.assertEqual(rows[0]["status"], StockStatus.OUT_OF_STOCK)
        self.assertEqual(rows[1]["status"], StockStatus.LOW_STOCK)
        self.assertEqual([r["drug_name"] for r in low_stock("ph-2")], ["Iron"])

    def test_low_stock_scan_command(self):
        out = StringIO()
        call_command("low_stock_scan", "--pharmacy", "ph-1", stdout=out)
        self.assertIn("ph-1 Zinc", out.getvalue())
        self.assertIn("Low stock scan done: 2 items", out.getvalue())

    def test_minimum_stock_defaults_to_ten(self):
        item = create_inventory_item("ph-3", {"drug_name": "Cetirizine", "initial_stock": "12", "selling_price": "1"})
        self.assertEqual(item.minimum_stock, Decimal("10"))
        self.assertEqual(low_stock("ph-3"), [])
