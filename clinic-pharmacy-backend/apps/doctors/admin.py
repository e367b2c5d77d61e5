from django.contrib import admin

from .models import DoctorProfile


@admin.register(DoctorProfile)
class DoctorProfileAdmin(admin.ModelAdmin):
    list_display = ("doctor_id", "name", "consultation_charge", "hospital_charge", "rounding_preference", "currency")
    search_fields = ("doctor_id", "name")
