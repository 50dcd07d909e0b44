"""Booking service for business logic."""

from typing import Any
from uuid import UUID, uuid4

import structlog
from sqlalchemy import insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.expression import Executable

from app.core.clock import Clock, utc_now
from app.core.exceptions import (
    BookingNotFoundException,
    BookingValidationException,
    DoctorBusyException,
    MalformedBookingException,
    NotFoundException,
    ReferenceNotFoundException,
    StoreFailureException,
)
from app.core.locks import DoctorLockManager, get_lock_manager
from app.models.bookings import bookings
from app.models.clinics import SurgeryType, clinics
from app.models.patients import patients
from app.schemas.bookings import (
    AddBookingRequest,
    BookingResponse,
    NextBookingResponse,
    ValidationRule,
)
from app.services.booking_validator import BookingValidator

logger = structlog.get_logger()

# Name of the PostgreSQL exclusion constraint rejecting overlapping bookings
OVERLAP_CONSTRAINT_NAME = "bookings_doctor_no_overlap"

VALIDATION_EXCEPTIONS: dict[ValidationRule, type[BookingValidationException]] = {
    ValidationRule.INVALID_FIELDS: MalformedBookingException,
    ValidationRule.DOCTOR_NOT_FOUND: ReferenceNotFoundException,
    ValidationRule.PATIENT_NOT_FOUND: ReferenceNotFoundException,
    ValidationRule.DOCTOR_BUSY: DoctorBusyException,
}


def _active_only(include_cancelled: bool) -> list[Any]:
    """Conditions hiding cancelled bookings unless asked for."""
    return [] if include_cancelled else [bookings.c.is_cancelled.is_(False)]


class BookingService:
    """Service for managing bookings."""

    def __init__(
        self,
        db: AsyncSession,
        validator: BookingValidator | None = None,
        lock_manager: DoctorLockManager | None = None,
        clock: Clock = utc_now,
    ):
        """Initialize service with database session and collaborators."""
        self.db = db
        self.clock = clock
        self.validator = validator or BookingValidator(db, clock)
        self.lock_manager = lock_manager or get_lock_manager()

    async def add_booking(self, request: AddBookingRequest) -> BookingResponse:
        """
        Validate and store a new booking.

        The doctor's lock is held from validation until the booking is
        committed, so concurrent requests cannot both pass the overlap check.

        Args:
            request: Proposed booking

        Returns:
            Created booking

        Raises:
            BookingValidationException: With the first validation error
            StoreFailureException: If the booking could not be persisted
        """
        async with self.lock_manager.hold(request.doctor_id):
            result = await self.validator.validate_request(request)

            if not result.passed_validation:
                logger.info(
                    "booking_validation_failed",
                    doctor_id=request.doctor_id,
                    patient_id=request.patient_id,
                    rule=result.failed_rule.value if result.failed_rule else None,
                    errors=result.errors,
                )
                exception_class = VALIDATION_EXCEPTIONS.get(
                    result.failed_rule, BookingValidationException
                )
                raise exception_class(result.errors[0])

            surgery_type = await self.get_patient_surgery_type(request.patient_id)

            stmt = (
                insert(bookings)
                .values(
                    id=uuid4(),
                    doctor_id=request.doctor_id,
                    patient_id=request.patient_id,
                    start_time=request.start_time,
                    end_time=request.end_time,
                    surgery_type=int(surgery_type),
                    is_cancelled=False,
                )
                .returning(bookings)
            )
            row = await self._write(stmt, doctor_id=request.doctor_id)

        booking = BookingResponse.model_validate(dict(row._mapping))
        logger.info(
            "booking_created",
            booking_id=str(booking.id),
            doctor_id=booking.doctor_id,
            patient_id=booking.patient_id,
            surgery_type=booking.surgery_type,
        )
        return booking

    async def cancel_booking(self, booking_id: UUID) -> None:
        """
        Cancel an active booking.

        Cancelling is one-way: a booking that is already cancelled is
        reported exactly like a missing one.

        Args:
            booking_id: Booking ID

        Raises:
            BookingNotFoundException: If no active booking has this ID
            StoreFailureException: If the change could not be persisted
        """
        stmt = (
            update(bookings)
            .where(bookings.c.id == booking_id, *_active_only(include_cancelled=False))
            .values(is_cancelled=True, cancelled_at=self.clock())
            .returning(bookings.c.id)
        )
        row = await self._write(stmt, booking_id=str(booking_id))

        if row is None:
            logger.info("booking_cancel_rejected", booking_id=str(booking_id))
            raise BookingNotFoundException()

        logger.info("booking_cancelled", booking_id=str(booking_id))

    async def get_next_booking(self, patient_id: int) -> NextBookingResponse | None:
        """
        Get the patient's earliest upcoming booking.

        Args:
            patient_id: Patient ID

        Returns:
            Next active booking starting after now, or None
        """
        stmt = (
            select(
                bookings.c.id,
                bookings.c.doctor_id,
                bookings.c.start_time,
                bookings.c.end_time,
            )
            .where(
                bookings.c.patient_id == patient_id,
                bookings.c.start_time > self.clock(),
                *_active_only(include_cancelled=False),
            )
            .order_by(bookings.c.start_time)
            .limit(1)
        )

        row = (await self.db.execute(stmt)).first()
        if row is None:
            return None

        return NextBookingResponse.model_validate(dict(row._mapping))

    async def get_booking(
        self,
        booking_id: UUID,
        include_cancelled: bool = False,
    ) -> BookingResponse:
        """
        Get booking by ID.

        Raises:
            NotFoundException: If booking not found
        """
        stmt = select(bookings).where(
            bookings.c.id == booking_id,
            *_active_only(include_cancelled),
        )

        row = (await self.db.execute(stmt)).first()
        if row is None:
            raise NotFoundException("Booking not found")

        return BookingResponse.model_validate(dict(row._mapping))

    async def list_doctor_bookings(
        self,
        doctor_id: int,
        include_cancelled: bool = False,
    ) -> list[BookingResponse]:
        """List a doctor's bookings ordered by start time."""
        stmt = (
            select(bookings)
            .where(bookings.c.doctor_id == doctor_id, *_active_only(include_cancelled))
            .order_by(bookings.c.start_time)
        )

        rows = (await self.db.execute(stmt)).fetchall()
        return [BookingResponse.model_validate(dict(row._mapping)) for row in rows]

    async def get_patient_surgery_type(self, patient_id: int) -> SurgeryType:
        """
        Get the surgery type of the patient's clinic.

        A patient without a clinic gets ``SurgeryType.NO_SURGERY``.
        """
        stmt = (
            select(clinics.c.surgery_type)
            .select_from(patients.join(clinics, patients.c.clinic_id == clinics.c.id))
            .where(patients.c.id == patient_id)
        )

        value = (await self.db.execute(stmt)).scalar()
        if value is None:
            return SurgeryType.NO_SURGERY
        return SurgeryType(value)

    async def _write(self, stmt: Executable, **context: Any) -> Any:
        """Execute a write statement and commit it.

        Returns:
            First returned row, or None

        Raises:
            DoctorBusyException: If the store rejected an overlapping booking
            StoreFailureException: On any other database error
        """
        try:
            result = await self.db.execute(stmt)
            row = result.first()
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            if OVERLAP_CONSTRAINT_NAME in str(e.orig):
                logger.warning("booking_conflict_detected_by_store", **context)
                raise DoctorBusyException() from e
            logger.error("booking_store_failure", error=str(e), **context)
            raise StoreFailureException() from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("booking_store_failure", error=str(e), **context)
            raise StoreFailureException() from e

        return row
