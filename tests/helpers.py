"""Shared test data."""

from datetime import datetime, timedelta

from app.schemas.bookings import AddBookingRequest

DOCTOR_ID = 1
OTHER_DOCTOR_ID = 5
PATIENT_ID = 2
PATIENT_WITHOUT_CLINIC_ID = 3
CLINIC_ID = 1


def make_request(
    now: datetime,
    start_hours: float,
    end_hours: float,
    doctor_id: int = DOCTOR_ID,
    patient_id: int = PATIENT_ID,
) -> AddBookingRequest:
    """Booking request for an interval given in hours from ``now``."""
    return AddBookingRequest(
        doctor_id=doctor_id,
        patient_id=patient_id,
        start_time=now + timedelta(hours=start_hours),
        end_time=now + timedelta(hours=end_hours),
    )
