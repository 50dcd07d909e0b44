"""Validation rules for new bookings."""

from datetime import datetime

from sqlalchemy import and_, exists, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from app.core.clock import Clock, utc_now
from app.models.bookings import bookings
from app.models.doctors import doctors
from app.models.patients import patients
from app.schemas.bookings import AddBookingRequest, ValidationResult, ValidationRule

START_IN_PAST_ERROR = "Appointment should start in the future"
START_AFTER_END_ERROR = "Start time should be prior to end time"
DOCTOR_NOT_FOUND_ERROR = "The doctor not found"
PATIENT_NOT_FOUND_ERROR = "The patient not found"
DOCTOR_BUSY_ERROR = "The doctor is busy"


def intervals_overlap(
    start: datetime,
    end: datetime,
    other_start: datetime,
    other_end: datetime,
) -> bool:
    """
    Check whether ``[start, end)`` overlaps ``[other_start, other_end)``.

    Either endpoint falling strictly inside the other interval, or the
    interval containing the other one, is an overlap. Touching endpoints
    are not.
    """
    return (
        other_start < start < other_end
        or other_start < end < other_end
        or (start <= other_start and end >= other_end)
    )


def overlap_condition(start: datetime, end: datetime) -> ColumnElement[bool]:
    """SQL form of :func:`intervals_overlap` against the bookings table."""
    return or_(
        and_(bookings.c.start_time < start, bookings.c.end_time > start),
        and_(bookings.c.start_time < end, bookings.c.end_time > end),
        and_(bookings.c.start_time >= start, bookings.c.end_time <= end),
    )


class BookingValidator:
    """Validates booking requests against the record store.

    Rule groups run in a fixed order and the first failing group ends
    validation:

    1. field validity (may report both of its errors at once)
    2. doctor existence
    3. patient existence
    4. doctor availability
    """

    def __init__(self, db: AsyncSession, clock: Clock = utc_now):
        """Initialize validator with database session and clock."""
        self.db = db
        self.clock = clock

    async def validate_request(self, request: AddBookingRequest) -> ValidationResult:
        """
        Validate a booking request.

        Args:
            request: Proposed booking

        Returns:
            Validation result with the errors of the first failing rule group
        """
        errors = self.invalid_fields(request)
        if errors:
            return ValidationResult.failed(ValidationRule.INVALID_FIELDS, errors)

        checks = (
            (ValidationRule.DOCTOR_NOT_FOUND, self.doctor_not_found),
            (ValidationRule.PATIENT_NOT_FOUND, self.patient_not_found),
            (ValidationRule.DOCTOR_BUSY, self.doctor_is_busy),
        )
        for rule, check in checks:
            error = await check(request)
            if error:
                return ValidationResult.failed(rule, [error])

        return ValidationResult()

    def invalid_fields(self, request: AddBookingRequest) -> list[str]:
        """Return every field-level error of the request."""
        errors = []

        if request.start_time <= self.clock():
            errors.append(START_IN_PAST_ERROR)

        if request.start_time >= request.end_time:
            errors.append(START_AFTER_END_ERROR)

        return errors

    async def doctor_not_found(self, request: AddBookingRequest) -> str | None:
        """Return an error if the doctor does not exist."""
        stmt = select(exists().where(doctors.c.id == request.doctor_id))
        if not (await self.db.execute(stmt)).scalar():
            return DOCTOR_NOT_FOUND_ERROR
        return None

    async def patient_not_found(self, request: AddBookingRequest) -> str | None:
        """Return an error if the patient does not exist."""
        stmt = select(exists().where(patients.c.id == request.patient_id))
        if not (await self.db.execute(stmt)).scalar():
            return PATIENT_NOT_FOUND_ERROR
        return None

    async def doctor_is_busy(self, request: AddBookingRequest) -> str | None:
        """Return an error if the interval overlaps an active booking of the doctor."""
        stmt = select(
            exists().where(
                bookings.c.doctor_id == request.doctor_id,
                bookings.c.is_cancelled.is_(False),
                overlap_condition(request.start_time, request.end_time),
            )
        )
        if (await self.db.execute(stmt)).scalar():
            return DOCTOR_BUSY_ERROR
        return None
