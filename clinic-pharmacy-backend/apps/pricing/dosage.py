"""Dosage-form taxonomy.

Every medication line carries a canonical dosage-form label and one of three
quantity policies. Raw form text is normalised here once, when a line is
ingested, so the pricing path only ever compares canonical labels.
"""
import re

from django.db import models


class DosageFormCategory(models.TextChoices):
    MEASURED = "measured", "Measured liquid"
    EXPLICIT_COUNT = "explicit_count", "Explicit count"
    DOSED = "dosed", "Dosed / administered"


TABLET = "Tablet"
CAPSULE = "Capsule"
LIQUID_BOTTLES = "Liquid (bottles)"
LIQUID_MEASURED = "Liquid (measured)"
PACKET = "Packet"

DOSAGE_FORM_LABELS = (
    TABLET,
    CAPSULE,
    LIQUID_BOTTLES,
    LIQUID_MEASURED,
    "Injection",
    "Cream",
    "Ointment",
    "Gel",
    "Suppository",
    "Inhaler",
    "Spray",
    "Shampoo",
    PACKET,
    "Roll",
)

DOSAGE_FORM_ALIASES = {
    "liquid": LIQUID_BOTTLES,
    "liquids": LIQUID_BOTTLES,
    "bottle": LIQUID_BOTTLES,
    "bottles": LIQUID_BOTTLES,
    "liquid (bottle)": LIQUID_BOTTLES,
    "syrup": LIQUID_MEASURED,
    "liquid (measure)": LIQUID_MEASURED,
    "tab": TABLET,
    "tabs": TABLET,
    "tablets": TABLET,
    "cap": CAPSULE,
    "caps": CAPSULE,
    "capsules": CAPSULE,
    "packets": PACKET,
    "sachet": PACKET,
}

FORM_CATEGORIES = {
    TABLET: DosageFormCategory.DOSED,
    CAPSULE: DosageFormCategory.DOSED,
    LIQUID_BOTTLES: DosageFormCategory.DOSED,
    LIQUID_MEASURED: DosageFormCategory.MEASURED,
}
for _label in DOSAGE_FORM_LABELS:
    FORM_CATEGORIES.setdefault(_label, DosageFormCategory.EXPLICIT_COUNT)

_LABELS_BY_KEY = {label.lower(): label for label in DOSAGE_FORM_LABELS}
_SPACES = re.compile(r"\s+")
_DOSED_HINT = re.compile(r"\b(tab|cap)", re.IGNORECASE)


def normalize_dosage_form(raw) -> str:
    """Map free-text dosage form onto a canonical label (unknown text is kept as typed)."""
    text = _SPACES.sub(" ", str(raw or "")).strip()
    if not text:
        return ""
    key = text.lower()
    return _LABELS_BY_KEY.get(key) or DOSAGE_FORM_ALIASES.get(key) or text


def categorize(dosage_form: str) -> DosageFormCategory:
    if not dosage_form:
        return DosageFormCategory.DOSED
    category = FORM_CATEGORIES.get(dosage_form)
    if category is not None:
        return category
    if _DOSED_HINT.search(dosage_form):
        return DosageFormCategory.DOSED
    return DosageFormCategory.EXPLICIT_COUNT


def is_measured_liquid(dosage_form: str) -> bool:
    return dosage_form == LIQUID_MEASURED


def is_bottled_liquid(dosage_form: str) -> bool:
    return dosage_form == LIQUID_BOTTLES


def is_liquid(dosage_form: str) -> bool:
    return dosage_form in (LIQUID_BOTTLES, LIQUID_MEASURED)
