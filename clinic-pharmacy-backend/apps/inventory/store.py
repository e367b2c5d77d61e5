"""Record-store collaborator used by the pricing engine and the stock ledger.

``RecordStore`` is the contract; ``OrmRecordStore`` keeps inventory in the
Django database. Tests can hand the engine any object with the same methods.
"""
import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from apps.pricing.types import BatchedRecord, BatchFields, InventoryFields, SimpleRecord
from apps.settingsx.services import get_bool_setting

from .alerts import stock_alerts
from .exceptions import InsufficientStock, InventoryItemNotFound
from .models import InventoryBatch, InventoryItem, StockMovement

logger = logging.getLogger(__name__)


class RecordStore:
    def inventory_snapshot(self, pharmacy_id):
        raise NotImplementedError

    def increment_stock(self, item_id, delta: Decimal, batch_id=None) -> None:
        raise NotImplementedError

    def append_movement(self, **fields):
        raise NotImplementedError

    def atomic(self):
        raise NotImplementedError

    def stock_alerts(self, item_id) -> list:
        return []


def _record_from_item(item: InventoryItem):
    fields = InventoryFields(
        id=item.pk,
        drug_name=item.drug_name,
        brand_name=item.brand_name,
        generic_name=item.generic_name,
        dosage_form=item.dosage_form,
        strength=item.strength,
        strength_unit=item.strength_unit,
        unit=item.unit,
        container_size=item.container_size,
        container_unit=item.container_unit,
        pack_size=item.pack_size,
        pack_unit=item.pack_unit,
        current_stock=item.current_stock,
        selling_price=item.selling_price,
        expiry_date=item.expiry_date,
        is_active=item.is_active,
    )
    batches = list(item.batches.all())
    if not batches:
        return SimpleRecord(fields)
    return BatchedRecord(
        fields,
        tuple(
            BatchFields(
                id=b.pk,
                batch_number=b.batch_number,
                quantity=b.quantity,
                expiry_date=b.expiry_date,
                selling_price=b.selling_price,
                status=b.status,
            )
            for b in batches
        ),
    )


class OrmRecordStore(RecordStore):
    def inventory_snapshot(self, pharmacy_id):
        items = (
            InventoryItem.objects.filter(pharmacy_id=pharmacy_id, is_active=True)
            .prefetch_related("batches")
            .order_by("id")
        )
        return tuple(_record_from_item(item) for item in items)

    def _conditional_add(self, queryset, field: str, delta: Decimal, allow_negative: bool) -> int:
        if delta < 0 and not allow_negative:
            queryset = queryset.filter(**{f"{field}__gte": -delta})
        return queryset.update(**{field: F(field) + delta, "updated_at": timezone.now()})

    def increment_stock(self, item_id, delta: Decimal, batch_id=None) -> None:
        """Add ``delta`` in a single UPDATE; never reads the stored counter first."""
        delta = Decimal(delta)
        allow_negative = get_bool_setting("ALLOW_NEGATIVE_STOCK", False)

        updated = self._conditional_add(
            InventoryItem.objects.filter(pk=item_id), "current_stock", delta, allow_negative
        )
        if not updated:
            if not InventoryItem.objects.filter(pk=item_id).exists():
                raise InventoryItemNotFound({"item": f"Inventory item {item_id} not found."})
            raise InsufficientStock()

        if batch_id is None:
            return
        updated = self._conditional_add(
            InventoryBatch.objects.filter(pk=batch_id, item_id=item_id), "quantity", delta, allow_negative
        )
        if not updated:
            if not InventoryBatch.objects.filter(pk=batch_id, item_id=item_id).exists():
                raise InventoryItemNotFound({"batch": f"Batch {batch_id} not found for item {item_id}."})
            raise InsufficientStock({"quantity": f"Insufficient stock in batch {batch_id}; negative stock not allowed."})

    def append_movement(self, *, item_id, **fields) -> StockMovement:
        pharmacy_id = InventoryItem.objects.filter(pk=item_id).values_list("pharmacy_id", flat=True).first()
        if pharmacy_id is None:
            raise InventoryItemNotFound({"item": f"Inventory item {item_id} not found."})
        return StockMovement.objects.create(item_id=item_id, pharmacy_id=pharmacy_id, **fields)

    def atomic(self):
        return transaction.atomic()

    def stock_alerts(self, item_id) -> list:
        item = InventoryItem.objects.prefetch_related("batches").filter(pk=item_id).first()
        if item is None:
            return []
        return stock_alerts(item)
