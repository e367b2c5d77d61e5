import re
from decimal import Decimal, InvalidOperation

# First signed decimal token; exponent notation is deliberately not recognised.
_NUMBER_RE = re.compile(r"[-+]?(?:\d+(?:\.\d*)?|\.\d+)")
_NUMBER_WITH_UNIT_RE = re.compile(r"[-+]?(?:\d+(?:\.\d*)?|\.\d+)\s*([a-zA-Z%µ]+)?")

VOLUME_FACTORS = {
    "ml": Decimal("1"),
    "mls": Decimal("1"),
    "milliliter": Decimal("1"),
    "milliliters": Decimal("1"),
    "millilitre": Decimal("1"),
    "millilitres": Decimal("1"),
    "cc": Decimal("1"),
    "l": Decimal("1000"),
    "ltr": Decimal("1000"),
    "liter": Decimal("1000"),
    "liters": Decimal("1000"),
    "litre": Decimal("1000"),
    "litres": Decimal("1000"),
}

MASS_FACTORS = {
    "mcg": Decimal("0.000001"),
    "µg": Decimal("0.000001"),
    "ug": Decimal("0.000001"),
    "mg": Decimal("0.001"),
    "g": Decimal("1"),
    "gm": Decimal("1"),
    "gms": Decimal("1"),
    "gram": Decimal("1"),
    "grams": Decimal("1"),
    "kg": Decimal("1000"),
}


def extract_numeric_magnitude(raw) -> Decimal | None:
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, Decimal):
        return raw if raw.is_finite() else None
    if isinstance(raw, (int, float)):
        try:
            value = Decimal(str(raw))
        except InvalidOperation:
            return None
        return value if value.is_finite() else None
    match = _NUMBER_RE.search(str(raw).replace(",", ""))
    if not match:
        return None
    try:
        return Decimal(match.group(0))
    except InvalidOperation:
        return None


def _magnitude_and_unit(text, unit_hint) -> tuple[Decimal | None, str]:
    magnitude = extract_numeric_magnitude(text)
    if magnitude is None:
        return None, ""
    embedded = ""
    if isinstance(text, str):
        match = _NUMBER_WITH_UNIT_RE.search(text.replace(",", ""))
        if match and match.group(1):
            embedded = match.group(1)
    unit = (embedded or str(unit_hint or "")).strip().lower()
    return magnitude, unit


def to_canonical_volume_ml(text, unit_hint=None) -> Decimal | None:
    """Read ``"100 ml"``, ``"1 l"`` or a bare number plus ``unit_hint`` as millilitres.

    A bare number with no unit anywhere is taken to already be in ml. Returns
    ``None`` when there is no number or the unit is not a volume unit.
    """
    magnitude, unit = _magnitude_and_unit(text, unit_hint)
    if magnitude is None:
        return None
    if not unit:
        return magnitude
    factor = VOLUME_FACTORS.get(unit)
    if factor is None:
        return None
    return magnitude * factor


def to_canonical_quantity(text, unit_hint=None) -> tuple[Decimal, str] | None:
    """Normalise a capacity to (magnitude, unit): volumes to ml, masses to g.

    Units outside those two families (IU, %, units) are returned lowercased as-is.
    """
    magnitude, unit = _magnitude_and_unit(text, unit_hint)
    if magnitude is None:
        return None
    if unit in VOLUME_FACTORS:
        return magnitude * VOLUME_FACTORS[unit], "ml"
    if unit in MASS_FACTORS:
        return magnitude * MASS_FACTORS[unit], "g"
    return magnitude, unit


def parse_medication_quantity(value) -> Decimal | None:
    magnitude = extract_numeric_magnitude(value)
    if magnitude is None or magnitude <= 0:
        return None
    return magnitude


def parse_price(value) -> Decimal | None:
    """Unit price from stored text or number; missing, zero and negative prices are unusable."""
    if isinstance(value, str) and not value.strip():
        return None
    magnitude = extract_numeric_magnitude(value)
    if magnitude is None or magnitude <= 0:
        return None
    return magnitude
