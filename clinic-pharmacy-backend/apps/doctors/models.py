from django.db import models

from apps.pricing.types import RoundingPreference


class DoctorProfile(models.Model):
    doctor_id = models.CharField(max_length=64, unique=True)
    name = models.CharField(max_length=200, blank=True)
    consultation_charge = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    hospital_charge = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    rounding_preference = models.CharField(max_length=16, choices=RoundingPreference.choices, blank=True)
    # [{"name": "ECG", "price": "300.00"}, ...]
    procedure_pricing = models.JSONField(default=list, blank=True)
    currency = models.CharField(max_length=8, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return self.name or self.doctor_id

    def save(self, *args, **kwargs):
        if self.consultation_charge is not None and self.consultation_charge < 0:
            raise ValueError("consultation_charge must be >= 0")
        if self.hospital_charge is not None and self.hospital_charge < 0:
            raise ValueError("hospital_charge must be >= 0")
        super().save(*args, **kwargs)
