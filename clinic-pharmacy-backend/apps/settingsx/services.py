from __future__ import annotations

from django.db import transaction

from .models import SettingKV

TRUE_VALUES = {"1", "true", "yes", "on"}


def get_setting(key: str, default: str | None = None) -> str | None:
    row = SettingKV.objects.filter(pk=key).values_list("value", flat=True).first()
    if row is None:
        return default
    return row


def get_bool_setting(key: str, default: bool = False) -> bool:
    value = get_setting(key)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in TRUE_VALUES


@transaction.atomic
def set_setting(key: str, value, description: str | None = None) -> SettingKV:
    defaults = {"value": str(value).lower() if isinstance(value, bool) else str(value)}
    if description is not None:
        defaults["description"] = description
    row, _ = SettingKV.objects.update_or_create(key=key, defaults=defaults)
    return row
