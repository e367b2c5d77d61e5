from django.db import models


class SettingKV(models.Model):
    """Runtime switch read by the services, e.g. ``ALLOW_NEGATIVE_STOCK=true``."""

    key = models.CharField(primary_key=True, max_length=120)
    value = models.CharField(max_length=500)
    description = models.CharField(max_length=255, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.key}={self.value}"
