from django.contrib import admin

from .models import InventoryBatch, InventoryItem, StockMovement


class InventoryBatchInline(admin.TabularInline):
    model = InventoryBatch
    extra = 0


@admin.register(InventoryItem)
class InventoryItemAdmin(admin.ModelAdmin):
    list_display = (
        "id", "pharmacy_id", "drug_name", "dosage_form", "current_stock", "minimum_stock", "selling_price", "is_active",
    )
    list_filter = ("pharmacy_id", "dosage_form", "is_active")
    search_fields = ("drug_name", "brand_name", "generic_name")
    readonly_fields = ("current_stock",)
    inlines = [InventoryBatchInline]


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    list_display = ("id", "pharmacy_id", "item", "batch", "movement_type", "qty_change", "reference", "created_at")
    list_filter = ("movement_type", "pharmacy_id")

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
