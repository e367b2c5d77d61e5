from decimal import Decimal, ROUND_HALF_UP

from .types import AllocationEntry, AllocationResult, InventorySource

AMOUNT_QUANT = Decimal("0.0001")
STOCK_QUANT = Decimal("0.001")
ZERO = Decimal("0")


def _entry(source: InventorySource, quantity: Decimal) -> AllocationEntry:
    return AllocationEntry(
        inventory_item_id=source.inventory_item_id,
        batch_id=source.batch_id,
        quantity=quantity,
        unit_cost=source.unit_cost,
        line_cost=(quantity * source.unit_cost).quantize(AMOUNT_QUANT, rounding=ROUND_HALF_UP),
        stock_quantity=(quantity / source.stock_factor).quantize(STOCK_QUANT, rounding=ROUND_HALF_UP),
    )


def _result(requested: Decimal, entries: list[AllocationEntry]) -> AllocationResult:
    priced = sum((e.quantity for e in entries), ZERO)
    total = sum((e.line_cost for e in entries), ZERO)
    average = (total / priced).quantize(AMOUNT_QUANT, rounding=ROUND_HALF_UP) if priced else ZERO
    return AllocationResult(
        requested_quantity=requested,
        priced_quantity=priced,
        remaining_quantity=requested - priced,
        average_unit_cost=average,
        total_cost=total,
        entries=tuple(entries),
    )


def allocate(requested_quantity, sources) -> AllocationResult:
    """Greedy FIFO split of a request over expiry-sorted sources.

    Each source gives ``min(remaining, available)``; the loop stops once the
    request is covered or sources run out, leaving the shortfall in
    ``remaining_quantity``.
    """
    requested = Decimal(requested_quantity)
    remaining = requested
    entries = []
    for source in sources:
        if remaining <= 0:
            break
        take = min(remaining, source.available_quantity)
        if take <= 0:
            continue
        entries.append(_entry(source, take))
        remaining -= take
    return _result(requested, entries)


def price_at_first_source(requested_quantity, sources) -> AllocationResult:
    """Price the whole request at the first source's unit cost, ignoring its stock."""
    requested = Decimal(requested_quantity)
    sources = tuple(sources)
    if not sources or requested <= 0:
        return _result(requested, [])
    return _result(requested, [_entry(sources[0], requested)])
