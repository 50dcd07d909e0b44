"""Database models."""

from app.models.base import metadata
from app.models.bookings import bookings
from app.models.clinics import SurgeryType, clinics
from app.models.doctors import doctors
from app.models.patients import patients

__all__ = [
    "SurgeryType",
    "bookings",
    "clinics",
    "doctors",
    "metadata",
    "patients",
]
