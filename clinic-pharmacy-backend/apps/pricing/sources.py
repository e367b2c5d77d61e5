import logging
import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from .dosage import DosageFormCategory, is_liquid, is_measured_liquid
from .types import (
    BatchedRecord,
    InventoryFields,
    InventoryMatch,
    InventoryRecord,
    InventorySource,
    MedicationLine,
    PricingIssue,
    SimpleRecord,
)
from .units import parse_price, to_canonical_quantity, to_canonical_volume_ml

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")


@dataclass(frozen=True)
class SourceLookup:
    sources: tuple[InventorySource, ...] = ()
    matched: int = 0
    issue: str | None = None


@dataclass(frozen=True)
class _Candidate:
    record: InventoryRecord
    batch_ids: tuple | None = None


def normalize_name(value) -> str:
    return _NON_ALNUM.sub(" ", str(value or "").lower()).strip()


def expiry_sort_key(source: InventorySource):
    return (source.expiry_date is None, source.expiry_date or date.max)


def _same_id(left, right) -> bool:
    return left is not None and right is not None and str(left) == str(right)


def _form_compatible(line: MedicationLine, fields: InventoryFields, per_ml: bool) -> bool:
    row_form = fields.dosage_form
    if is_measured_liquid(row_form):
        return per_ml
    if per_ml:
        return not row_form or is_liquid(row_form)
    if not row_form or not line.dosage_form:
        return True
    return row_form == line.dosage_form


def _target_capacity(line: MedicationLine):
    if line.category != DosageFormCategory.EXPLICIT_COUNT:
        return None
    if str(line.total_volume or "").strip():
        return to_canonical_quantity(line.total_volume, line.volume_unit)
    if str(line.strength or "").strip():
        return to_canonical_quantity(line.strength, line.strength_unit)
    return None


def _capacity_matches(target, fields: InventoryFields) -> bool:
    if target is None or not str(fields.container_size or "").strip():
        return True
    declared = to_canonical_quantity(fields.container_size, fields.container_unit)
    if declared is None:
        return True
    target_amount, target_unit = target
    amount, unit = declared
    if target_unit and unit and target_unit != unit:
        # different dimensions (e.g. 1 % strength vs a 15 g tube) cannot be compared
        return True
    return amount == target_amount


def _container_volume_ml(fields: InventoryFields) -> Decimal | None:
    if str(fields.container_size or "").strip():
        volume = to_canonical_volume_ml(fields.container_size, fields.container_unit)
        if volume is not None and volume > 0:
            return volume
    # strength and pack size only count when they are explicitly a volume
    for value, unit in ((fields.strength, fields.strength_unit), (fields.pack_size, fields.pack_unit)):
        if not str(value or "").strip():
            continue
        canonical = to_canonical_quantity(value, unit)
        if canonical and canonical[1] == "ml" and canonical[0] > 0:
            return canonical[0]
    return None


class PricingSourceBuilder:
    """Turns an inventory snapshot into expiry-ordered pricing sources for one line."""

    def build_sources(
        self,
        line: MedicationLine,
        snapshot,
        prior_match_hint=None,
        *,
        per_ml: bool = False,
        include_unavailable: bool = False,
    ) -> SourceLookup:
        records = tuple(snapshot or ())
        hint = tuple(prior_match_hint) if prior_match_hint is not None else line.inventory_matches
        candidates = self._from_hint(records, hint) if hint else []
        if not candidates:
            candidates = [_Candidate(record) for record in self._match_by_name(line, records, per_ml)]
        else:
            candidates = [c for c in candidates if _form_compatible(line, c.record.fields, per_ml)]

        target = _target_capacity(line)
        candidates = [c for c in candidates if _capacity_matches(target, c.record.fields)]
        if per_ml:
            candidates = [
                c for c in candidates
                if is_measured_liquid(c.record.fields.dosage_form) or _container_volume_ml(c.record.fields)
            ]
        if not candidates:
            logger.debug(f"No inventory match for {line.name!r}")
            return SourceLookup(issue=PricingIssue.NOT_AVAILABLE)

        sources = []
        active_rows = 0
        priced = False
        for candidate in candidates:
            for source, has_price in self._expand(candidate, per_ml):
                active_rows += 1
                priced = priced or has_price
                if not has_price:
                    continue
                if source.available_quantity <= 0 and not include_unavailable:
                    continue
                sources.append(source)

        sources.sort(key=expiry_sort_key)
        if sources:
            return SourceLookup(sources=tuple(sources), matched=len(candidates))
        # missing price only when active rows exist and none carries a price
        if active_rows and not priced:
            issue = PricingIssue.MISSING_PRICE
        else:
            issue = PricingIssue.NOT_AVAILABLE
        logger.debug(f"{line.name!r} matched {len(candidates)} rows but none is usable: {issue}")
        return SourceLookup(matched=len(candidates), issue=issue)

    def _from_hint(self, records, hint) -> list[_Candidate]:
        grouped = {}
        for match in hint:
            if not isinstance(match, InventoryMatch):
                match = InventoryMatch(*match)
            record = next((r for r in records if _same_id(r.fields.id, match.inventory_item_id)), None)
            if record is None or not record.fields.is_active:
                continue
            grouped.setdefault(id(record), (record, []))[1].append(match.batch_id)
        candidates = []
        for record, batch_ids in grouped.values():
            if None in batch_ids or isinstance(record, SimpleRecord):
                candidates.append(_Candidate(record))
            else:
                candidates.append(_Candidate(record, tuple(batch_ids)))
        return candidates

    def _match_by_name(self, line: MedicationLine, records, per_ml: bool) -> list[InventoryRecord]:
        name = normalize_name(line.name)
        generic = normalize_name(line.generic_name)
        active = [r for r in records if r.fields.is_active and _form_compatible(line, r.fields, per_ml)]

        def row_names(record):
            return {normalize_name(n) for n in record.fields.names} - {""}

        exact = [r for r in active if name and name in row_names(r)]
        if exact:
            return exact
        if generic:
            by_generic = [
                r for r in active
                if normalize_name(r.fields.generic_name) == generic or generic in row_names(r)
            ]
            if by_generic:
                return by_generic
        return [r for r in active if self._fuzzy_match(name, generic, r)]

    def _fuzzy_match(self, name: str, generic: str, record: InventoryRecord) -> bool:
        row_generic = normalize_name(record.fields.generic_name)
        if generic and row_generic and generic not in row_generic and row_generic not in generic:
            return False
        if not name:
            return False
        for row_name in record.fields.names:
            row_name = normalize_name(row_name)
            if row_name and (name in row_name or row_name in name):
                return True
        return False

    def _expand(self, candidate: _Candidate, per_ml: bool):
        record = candidate.record
        fields = record.fields
        factor = Decimal("1")
        if per_ml and not is_measured_liquid(fields.dosage_form):
            volume = _container_volume_ml(fields)
            if volume is None:
                return
            factor = volume
        container = to_canonical_quantity(fields.container_size, fields.container_unit) if fields.container_size else None

        if isinstance(record, BatchedRecord):
            rows = [
                (b.id, b.quantity, b.expiry_date, parse_price(b.selling_price) or parse_price(fields.selling_price))
                for b in record.batches
                if b.is_active and (candidate.batch_ids is None or any(_same_id(b.id, i) for i in candidate.batch_ids))
            ]
            # stock booked on the item but not on any batch; no expiry, so it goes last
            loose = fields.current_stock - sum((b.quantity for b in record.batches), ZERO)
            if candidate.batch_ids is None and loose > 0:
                rows.append((None, loose, None, parse_price(fields.selling_price)))
        else:
            rows = [(None, fields.current_stock, fields.expiry_date, parse_price(fields.selling_price))]

        for batch_id, quantity, expiry, price in rows:
            if price is None:
                yield None, False
                continue
            yield InventorySource(
                inventory_item_id=fields.id,
                batch_id=batch_id,
                available_quantity=max(Decimal(quantity or 0), ZERO) * factor,
                unit_cost=price / factor,
                expiry_date=expiry,
                brand_name=fields.brand_name or fields.drug_name,
                generic_name=fields.generic_name,
                container_size=container[0] if container else None,
                container_unit=container[1] if container else "",
                per_ml=per_ml,
                stock_factor=factor,
            ), True
