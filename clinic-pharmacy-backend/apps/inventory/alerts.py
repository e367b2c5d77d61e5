"""Stock status and alert checks for inventory items."""
from datetime import date as _date, timedelta

from django.db import models
from django.db.models import F
from django.utils import timezone

from apps.settingsx.services import get_setting

from .models import InventoryBatch, InventoryItem

DEFAULT_EXPIRY_ALERT_DAYS = 30


class StockStatus(models.TextChoices):
    IN_STOCK = "in_stock", "In stock"
    LOW_STOCK = "low_stock", "Low stock"
    OUT_OF_STOCK = "out_of_stock", "Out of stock"
    EXPIRED = "expired", "Expired"
    EXPIRING_SOON = "expiring_soon", "Expiring soon"


class AlertType(models.TextChoices):
    LOW_STOCK = "low_stock", "Low stock"
    EXPIRING = "expiring", "Expiring"


def expiry_alert_days() -> int:
    value = get_setting("ALERT_EXPIRY_WARNING_DAYS")
    if value is None or not value.strip():
        return DEFAULT_EXPIRY_ALERT_DAYS
    return int(value)


def _active_batches(item: InventoryItem):
    return [b for b in item.batches.all() if b.status == InventoryBatch.Status.ACTIVE]


def days_to_expiry(item: InventoryItem, on_date: _date | None = None) -> int | None:
    """Days until the nearest active batch expires; the item's own date when it has no batches."""
    on_date = on_date or timezone.localdate()
    batches = list(item.batches.all())
    if batches:
        dates = [
            b.expiry_date for b in batches if b.status == InventoryBatch.Status.ACTIVE and b.expiry_date
        ]
    else:
        dates = [item.expiry_date] if item.expiry_date else []
    if not dates:
        return None
    return (min(dates) - on_date).days


def stock_status(item: InventoryItem, on_date: _date | None = None) -> str:
    if item.current_stock <= 0:
        return StockStatus.OUT_OF_STOCK
    days = days_to_expiry(item, on_date)
    if days is not None and days <= 0:
        return StockStatus.EXPIRED
    if days is not None and days <= expiry_alert_days():
        return StockStatus.EXPIRING_SOON
    if item.current_stock <= item.minimum_stock:
        return StockStatus.LOW_STOCK
    return StockStatus.IN_STOCK


def stock_alerts(item: InventoryItem, on_date: _date | None = None) -> list[dict]:
    on_date = on_date or timezone.localdate()
    alerts = []
    if item.current_stock <= item.minimum_stock:
        alerts.append({
            "type": AlertType.LOW_STOCK,
            "item_id": item.pk,
            "pharmacy_id": item.pharmacy_id,
            "message": f"{item.drug_name} is running low. Current stock: {item.current_stock}",
        })
    window = expiry_alert_days()
    cutoff = on_date + timedelta(days=window)
    expiring = [b for b in _active_batches(item) if b.expiry_date and b.expiry_date <= cutoff]
    if expiring:
        alerts.append({
            "type": AlertType.EXPIRING,
            "item_id": item.pk,
            "pharmacy_id": item.pharmacy_id,
            "message": f"{item.drug_name} has batches expiring within {window} days",
            "batch_ids": [b.pk for b in expiring],
        })
    return alerts


def low_stock(pharmacy_id: str | None = None) -> list[dict]:
    items = InventoryItem.objects.filter(is_active=True, current_stock__lte=F("minimum_stock"))
    if pharmacy_id is not None:
        items = items.filter(pharmacy_id=pharmacy_id)
    return [
        {
            "item_id": item.pk,
            "pharmacy_id": item.pharmacy_id,
            "drug_name": item.drug_name,
            "current_stock": item.current_stock,
            "minimum_stock": item.minimum_stock,
            "status": stock_status(item),
        }
        for item in items.prefetch_related("batches").order_by("pharmacy_id", "drug_name", "id")
    ]
