from rest_framework.exceptions import NotFound


class DoctorProfileNotFound(NotFound):
    default_detail = "Doctor profile not found."
