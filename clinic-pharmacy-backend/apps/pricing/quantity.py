import logging
import math
import re
from decimal import Decimal, ROUND_HALF_UP
from fractions import Fraction

from .dosage import DosageFormCategory, is_bottled_liquid
from .types import MedicationLine, QuantityBasis
from .units import extract_numeric_magnitude, parse_medication_quantity, to_canonical_volume_ml

logger = logging.getLogger(__name__)

QUANTITY_QUANT = Decimal("0.0001")
ZERO = Decimal("0")


def _every_hours(hours: int):
    return re.compile(rf"\b(?:every\s*{hours}\s*h(?:ours?|rs?)?|q\s*{hours}\s*h)\b")


# Order matters: interval and weekly/monthly phrases must win over a bare "once"/"daily".
FREQUENCY_RULES = (
    (re.compile(r"\b(?:every\s+other\s+day|alternate\s+days?|eod|qod)\b"), Fraction(1, 2)),
    (_every_hours(4), Fraction(6)),
    (_every_hours(6), Fraction(4)),
    (_every_hours(8), Fraction(3)),
    (_every_hours(12), Fraction(2)),
    (re.compile(r"\b(?:three\s+times|thrice|3\s*times)\s+(?:a\s+|per\s+)?week(?:ly)?\b"), Fraction(3, 7)),
    (re.compile(r"\b(?:twice|two\s+times|2\s*times)\s+(?:a\s+|per\s+)?week(?:ly)?\b"), Fraction(2, 7)),
    (re.compile(r"\b(?:weekly|once\s+a\s+week|once\s+per\s+week)\b"), Fraction(1, 7)),
    (re.compile(r"\b(?:monthly|once\s+a\s+month|once\s+per\s+month)\b"), Fraction(1, 30)),
    (re.compile(r"\b(?:four\s+times|4\s*times|qds|qid)\b"), Fraction(4)),
    (re.compile(r"\b(?:three\s+times|thrice|3\s*times|tds|tid)\b"), Fraction(3)),
    (re.compile(r"\b(?:twice|two\s+times|2\s*times|bd|bid)\b"), Fraction(2)),
    (re.compile(r"\bstat\b"), Fraction(1)),
    (re.compile(r"\b(?:once|od|qd|daily|nocte|mane)\b"), Fraction(1)),
)

_DAYS_RE = re.compile(r"(?<![\d.])(\d+)\s*days?\b", re.IGNORECASE)


def doses_per_day(frequency) -> Fraction:
    text = str(frequency or "").strip().lower()
    if not text:
        return Fraction(0)
    for pattern, doses in FREQUENCY_RULES:
        if pattern.search(text):
            return doses
    return Fraction(0)


def duration_days(duration) -> int:
    """Leading day count of ``"5 days"``; weeks, months and bare numbers are not converted."""
    match = _DAYS_RE.search(str(duration or ""))
    if not match:
        return 0
    return int(match.group(1))


def _to_decimal(value: Fraction) -> Decimal:
    if value.denominator == 1:
        return Decimal(value.numerator)
    return (Decimal(value.numerator) / Decimal(value.denominator)).quantize(QUANTITY_QUANT, rounding=ROUND_HALF_UP)


def measured_volume_ml(line: MedicationLine) -> Decimal:
    per_dose = to_canonical_volume_ml(line.strength, line.strength_unit)
    if per_dose is None or per_dose <= 0:
        return ZERO
    total = Fraction(per_dose) * doses_per_day(line.frequency) * duration_days(line.duration)
    if total <= 0:
        return ZERO
    return _to_decimal(total)


class QuantityResolver:
    """Decides how much of a medication line has to be priced.

    ``resolve_detail`` returns ``(quantity, basis)`` where basis says whether the
    quantity counts dispensing units or millilitres. A zero quantity means the
    line cannot be priced.
    """

    def resolve(self, line: MedicationLine) -> Decimal:
        return self.resolve_detail(line)[0]

    def resolve_detail(self, line: MedicationLine) -> tuple[Decimal, str]:
        if line.category == DosageFormCategory.MEASURED:
            return measured_volume_ml(line), QuantityBasis.ML
        if line.category == DosageFormCategory.EXPLICIT_COUNT:
            return self._explicit_count(line.qts), QuantityBasis.COUNT
        return self._dosed(line)

    def _explicit_count(self, value) -> Decimal:
        count = extract_numeric_magnitude(value)
        if count is None or count <= 0:
            return ZERO
        return Decimal(math.floor(count))

    def _dosed(self, line: MedicationLine) -> tuple[Decimal, str]:
        amount = parse_medication_quantity(line.amount)
        if amount is not None:
            return amount, QuantityBasis.COUNT
        if is_bottled_liquid(line.dosage_form):
            volume = measured_volume_ml(line)
            if volume > 0:
                return volume, QuantityBasis.ML
        qts = parse_medication_quantity(line.qts)
        if qts is not None:
            return qts, QuantityBasis.COUNT
        logger.debug(f"No quantity for {line.name} ({line.dosage_form or 'no form'})")
        return ZERO, QuantityBasis.COUNT
