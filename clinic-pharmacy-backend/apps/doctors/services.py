from decimal import Decimal

from django.conf import settings

from apps.pricing.types import DoctorFeeProfile, RoundingPreference
from apps.settingsx.services import get_setting

from .exceptions import DoctorProfileNotFound
from .models import DoctorProfile


class DoctorProfileProvider:
    def get(self, doctor_id) -> DoctorFeeProfile:
        raise NotImplementedError


class OrmDoctorProfileProvider(DoctorProfileProvider):
    """Reads fee schedules from ``DoctorProfile`` rows.

    A blank rounding preference falls back to the ``DEFAULT_ROUNDING_PREFERENCE``
    setting, a blank currency to ``settings.PRICING_CURRENCY``.
    """

    def get(self, doctor_id) -> DoctorFeeProfile:
        profile = DoctorProfile.objects.filter(doctor_id=doctor_id).first()
        if profile is None:
            raise DoctorProfileNotFound(f"No fee profile for doctor '{doctor_id}'.")
        rounding = profile.rounding_preference or get_setting("DEFAULT_ROUNDING_PREFERENCE", RoundingPreference.NONE)
        if rounding not in RoundingPreference.values:
            rounding = RoundingPreference.NONE
        return DoctorFeeProfile(
            doctor_id=profile.doctor_id,
            consultation_charge=profile.consultation_charge,
            hospital_charge=profile.hospital_charge,
            procedure_pricing={
                p["name"]: Decimal(str(p.get("price") or 0))
                for p in profile.procedure_pricing or []
                if p.get("name")
            },
            rounding_preference=rounding,
            currency=profile.currency or settings.PRICING_CURRENCY,
        )
