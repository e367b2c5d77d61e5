from django.db import models

from .exceptions import ImmutableMovementError


class InventoryItem(models.Model):
    pharmacy_id = models.CharField(max_length=64)
    drug_name = models.CharField(max_length=200)
    brand_name = models.CharField(max_length=200, blank=True)
    generic_name = models.CharField(max_length=200, blank=True)
    dosage_form = models.CharField(max_length=64, blank=True)
    strength = models.CharField(max_length=32, blank=True)
    strength_unit = models.CharField(max_length=16, blank=True)
    unit = models.CharField(max_length=32, blank=True)
    container_size = models.CharField(max_length=32, blank=True)
    container_unit = models.CharField(max_length=16, blank=True)
    pack_size = models.CharField(max_length=32, blank=True)
    pack_unit = models.CharField(max_length=16, blank=True)
    current_stock = models.DecimalField(max_digits=14, decimal_places=3, default=0)
    minimum_stock = models.DecimalField(max_digits=14, decimal_places=3, default=10)
    cost_price = models.DecimalField(max_digits=12, decimal_places=4, null=True, blank=True)
    selling_price = models.DecimalField(max_digits=12, decimal_places=4, null=True, blank=True)
    expiry_date = models.DateField(null=True, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=["pharmacy_id", "drug_name"], name="idx_item_pharmacy_name"),
            models.Index(fields=["pharmacy_id", "is_active"], name="idx_item_pharmacy_active"),
        ]

    def __str__(self) -> str:
        return f"{self.drug_name} ({self.pharmacy_id}): {self.current_stock}"


class InventoryBatch(models.Model):
    class Status(models.TextChoices):
        ACTIVE = "active", "Active"
        EXPIRED = "expired", "Expired"
        RETURNED = "returned", "Returned"
        BLOCKED = "blocked", "Blocked"

    item = models.ForeignKey(InventoryItem, on_delete=models.CASCADE, related_name="batches")
    batch_number = models.CharField(max_length=64)
    quantity = models.DecimalField(max_digits=14, decimal_places=3, default=0)
    expiry_date = models.DateField(null=True, blank=True)
    cost_price = models.DecimalField(max_digits=12, decimal_places=4, null=True, blank=True)
    selling_price = models.DecimalField(max_digits=12, decimal_places=4, null=True, blank=True)
    supplier = models.CharField(max_length=200, blank=True)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.ACTIVE)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=["item", "status", "expiry_date"], name="idx_batch_item_status_exp"),
        ]

    def __str__(self) -> str:
        return f"{self.item.drug_name} - {self.batch_number}: {self.quantity}"


class StockMovementQuerySet(models.QuerySet):
    def update(self, **kwargs):
        raise ImmutableMovementError()

    def delete(self):
        raise ImmutableMovementError()


class StockMovement(models.Model):
    """Audit row for one signed change to an item's stock. Rows are never edited."""

    class MovementType(models.TextChoices):
        PURCHASE = "purchase", "Purchase"
        SALE = "sale", "Sale"
        DISPATCH = "dispatch", "Dispatch"
        ADJUSTMENT = "adjustment", "Adjustment"
        TRANSFER = "transfer", "Transfer"
        EXPIRED = "expired", "Expired"
        DAMAGED = "damaged", "Damaged"
        RETURN = "return", "Return"

    pharmacy_id = models.CharField(max_length=64)
    item = models.ForeignKey(InventoryItem, on_delete=models.PROTECT, related_name="movements")
    batch = models.ForeignKey(
        InventoryBatch, on_delete=models.PROTECT, null=True, blank=True, related_name="movements"
    )
    movement_type = models.CharField(max_length=16, choices=MovementType.choices)
    quantity = models.DecimalField(max_digits=14, decimal_places=3)
    qty_change = models.DecimalField(max_digits=14, decimal_places=3)
    unit_cost = models.DecimalField(max_digits=12, decimal_places=4, null=True, blank=True)
    total_cost = models.DecimalField(max_digits=14, decimal_places=4, null=True, blank=True)
    reference = models.CharField(max_length=32, blank=True)
    reference_id = models.CharField(max_length=64, blank=True)
    notes = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = StockMovementQuerySet.as_manager()

    class Meta:
        indexes = [
            models.Index(fields=["pharmacy_id", "item", "created_at"], name="idx_move_pharm_item_dt"),
            models.Index(fields=["reference", "reference_id"], name="idx_move_reference"),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ImmutableMovementError()
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ImmutableMovementError()

    def __str__(self) -> str:
        return f"{self.movement_type} {self.qty_change} of item {self.item_id}"
