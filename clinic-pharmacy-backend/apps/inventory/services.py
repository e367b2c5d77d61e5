import logging
from datetime import date as _date
from decimal import Decimal, ROUND_HALF_UP

from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from .models import InventoryBatch, InventoryItem, StockMovement
from .serializers import BatchInputSerializer, InventoryItemInputSerializer, StockMovementSerializer
from .store import OrmRecordStore

logger = logging.getLogger(__name__)

AMOUNT_QUANT = Decimal("0.0001")
MovementType = StockMovement.MovementType

# Movement types that always take stock out, whatever sign the caller used.
OUTBOUND_TYPES = frozenset({MovementType.DISPATCH, MovementType.SALE, MovementType.EXPIRED, MovementType.DAMAGED})


def signed_delta(quantity, movement_type) -> Decimal:
    quantity = Decimal(quantity)
    if movement_type in OUTBOUND_TYPES:
        return -abs(quantity)
    return quantity


class StockLedger:
    """Applies stock movements: one atomic counter add plus one audit row each."""

    def __init__(self, store=None):
        self.store = store or OrmRecordStore()

    def apply_movement(
        self,
        item_id,
        quantity,
        movement_type,
        *,
        batch_id=None,
        unit_cost=None,
        total_cost=None,
        reference: str = "",
        reference_id="",
        notes: str = "",
    ):
        if movement_type not in MovementType.values:
            raise ValidationError({"movement_type": f"Unknown movement type '{movement_type}'."})
        quantity = Decimal(quantity)
        if quantity == 0:
            raise ValidationError({"quantity": "Quantity must not be zero."})
        delta = signed_delta(quantity, movement_type)
        if total_cost is None and unit_cost is not None:
            total_cost = (abs(quantity) * Decimal(unit_cost)).quantize(AMOUNT_QUANT, rounding=ROUND_HALF_UP)

        with self.store.atomic():
            self.store.increment_stock(item_id, delta, batch_id=batch_id)
            movement = self.store.append_movement(
                item_id=item_id,
                batch_id=batch_id,
                movement_type=movement_type,
                quantity=quantity,
                qty_change=delta,
                unit_cost=unit_cost,
                total_cost=total_cost,
                reference=reference,
                reference_id=str(reference_id or ""),
                notes=notes[:255],
            )
        logger.info(
            f"Stock movement {movement_type}: item={item_id} batch={batch_id} delta={delta} "
            f"ref={reference}:{reference_id}"
        )
        for alert in self.store.stock_alerts(item_id):
            logger.warning(f"Stock alert {alert['type']}: {alert['message']}")
        return movement

    def apply_allocation(self, allocation, *, movement_type=MovementType.DISPATCH, reference="", reference_id="", notes=""):
        """Replay every allocation entry as a stock movement, all or nothing."""
        movements = []
        with self.store.atomic():
            for entry in allocation.entries:
                if not entry.stock_quantity:
                    continue
                unit_cost = (entry.line_cost / entry.stock_quantity).quantize(AMOUNT_QUANT, rounding=ROUND_HALF_UP)
                movements.append(
                    self.apply_movement(
                        entry.inventory_item_id,
                        entry.stock_quantity,
                        movement_type,
                        batch_id=entry.batch_id,
                        unit_cost=unit_cost,
                        total_cost=entry.line_cost,
                        reference=reference,
                        reference_id=reference_id,
                        notes=notes,
                    )
                )
        return movements


@transaction.atomic
def create_inventory_item(pharmacy_id: str, data: dict, *, ledger: StockLedger | None = None) -> InventoryItem:
    """Create an item and book its opening stock as a purchase movement."""
    serializer = InventoryItemInputSerializer(data=data)
    serializer.is_valid(raise_exception=True)
    validated = dict(serializer.validated_data)
    ledger = ledger or StockLedger()

    initial_stock = validated.pop("initial_stock")
    batch_number = validated.pop("batch_number")
    supplier = validated.pop("supplier")
    item = InventoryItem.objects.create(pharmacy_id=pharmacy_id, current_stock=0, **validated)

    batch = None
    if batch_number:
        batch = InventoryBatch.objects.create(
            item=item,
            batch_number=batch_number,
            expiry_date=item.expiry_date,
            cost_price=item.cost_price,
            selling_price=item.selling_price,
            supplier=supplier,
        )
    if initial_stock > 0:
        ledger.apply_movement(
            item.pk,
            initial_stock,
            MovementType.PURCHASE,
            batch_id=batch.pk if batch else None,
            unit_cost=item.cost_price,
            reference="initial_stock",
            reference_id=item.pk,
            notes="Initial stock",
        )
    item.refresh_from_db()
    logger.info(f"Created inventory item {item.pk} '{item.drug_name}' for pharmacy {pharmacy_id}")
    return item


@transaction.atomic
def add_batch(item_id, data: dict, *, ledger: StockLedger | None = None) -> InventoryBatch:
    serializer = BatchInputSerializer(data=data)
    serializer.is_valid(raise_exception=True)
    validated = dict(serializer.validated_data)
    ledger = ledger or StockLedger()

    item = InventoryItem.objects.filter(pk=item_id).first()
    if item is None:
        raise ValidationError({"item": f"Inventory item {item_id} not found."})

    quantity = validated.pop("quantity")
    batch = InventoryBatch.objects.create(item=item, quantity=0, **validated)
    ledger.apply_movement(
        item.pk,
        quantity,
        MovementType.PURCHASE,
        batch_id=batch.pk,
        unit_cost=batch.cost_price,
        reference="batch",
        reference_id=batch.pk,
        notes=f"Batch {batch.batch_number}",
    )
    batch.refresh_from_db()
    return batch


def expire_batches(on_date: _date | None = None, pharmacy_id: str | None = None, *, ledger: StockLedger | None = None) -> dict:
    """Mark active batches past their expiry date as expired and write off their stock."""
    on_date = on_date or timezone.localdate()
    ledger = ledger or StockLedger()
    batches = InventoryBatch.objects.select_related("item").filter(
        status=InventoryBatch.Status.ACTIVE, expiry_date__lt=on_date
    )
    if pharmacy_id is not None:
        batches = batches.filter(item__pharmacy_id=pharmacy_id)

    expired = 0
    written_off = Decimal("0")
    for batch in batches.order_by("expiry_date", "id"):
        with transaction.atomic():
            if batch.quantity > 0:
                ledger.apply_movement(
                    batch.item_id,
                    batch.quantity,
                    MovementType.EXPIRED,
                    batch_id=batch.pk,
                    unit_cost=batch.cost_price,
                    reference="expiry",
                    reference_id=batch.pk,
                    notes=f"Batch {batch.batch_number} expired on {batch.expiry_date}",
                )
                written_off += batch.quantity
            InventoryBatch.objects.filter(pk=batch.pk).update(
                status=InventoryBatch.Status.EXPIRED, updated_at=timezone.now()
            )
        expired += 1
    logger.info(f"Expired {expired} batch(es) as of {on_date}, wrote off {written_off}")
    return {"expired_batches": expired, "written_off_quantity": written_off, "as_of": on_date}


def stock_movement_history(item_id) -> list:
    movements = StockMovement.objects.filter(item_id=item_id).order_by("created_at", "id")
    return StockMovementSerializer(movements, many=True).data
