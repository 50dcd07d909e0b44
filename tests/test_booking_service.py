"""Tests for the booking service."""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, OperationalError

from app.core.exceptions import (
    BookingNotFoundException,
    DoctorBusyException,
    MalformedBookingException,
    NotFoundException,
    ReferenceNotFoundException,
    StoreFailureException,
)
from app.models import SurgeryType, bookings, clinics
from app.schemas.bookings import ValidationResult, ValidationRule
from app.services.booking_service import BookingService
from tests.helpers import (
    CLINIC_ID,
    DOCTOR_ID,
    OTHER_DOCTOR_ID,
    PATIENT_ID,
    PATIENT_WITHOUT_CLINIC_ID,
    make_request,
)


class StubValidator:
    """Validator returning a canned result."""

    def __init__(self, result: ValidationResult):
        self.result = result

    async def validate_request(self, request):
        return self.result


async def fetch_booking(db_session, booking_id):
    result = await db_session.execute(select(bookings).where(bookings.c.id == booking_id))
    return result.fetchone()


@pytest.mark.asyncio
async def test_booking_scenario(booking_service, db_session, seeded, now):
    """Add, reject overlap, allow adjacent, cancel once."""
    first = await booking_service.add_booking(make_request(now, 10, 15))

    row = await fetch_booking(db_session, first.id)
    assert row.surgery_type == SurgeryType.SYSTEM_THREE
    assert row.is_cancelled is False
    assert row.doctor_id == DOCTOR_ID
    assert row.patient_id == PATIENT_ID

    with pytest.raises(DoctorBusyException) as exc_info:
        await booking_service.add_booking(make_request(now, 12, 13))
    assert exc_info.value.message == "The doctor is busy"
    assert exc_info.value.status_code == 400

    adjacent = await booking_service.add_booking(make_request(now, 15, 20))
    assert adjacent.start_time == now + timedelta(hours=15)

    await booking_service.cancel_booking(first.id)

    with pytest.raises(BookingNotFoundException) as exc_info:
        await booking_service.cancel_booking(first.id)
    assert exc_info.value.message == "Booking does not exist"


@pytest.mark.asyncio
async def test_add_booking_returns_created_booking(booking_service, seeded, now):
    booking = await booking_service.add_booking(make_request(now, 1, 2))

    assert booking.id is not None
    assert booking.start_time == now + timedelta(hours=1)
    assert booking.end_time == now + timedelta(hours=2)
    assert booking.surgery_type == SurgeryType.SYSTEM_THREE
    assert booking.is_cancelled is False


@pytest.mark.asyncio
async def test_patient_without_clinic_gets_default_surgery_type(booking_service, seeded, now):
    booking = await booking_service.add_booking(
        make_request(now, 1, 2, patient_id=PATIENT_WITHOUT_CLINIC_ID)
    )

    assert booking.surgery_type == SurgeryType.NO_SURGERY


@pytest.mark.asyncio
async def test_surgery_type_is_a_snapshot(booking_service, db_session, seeded, now):
    booking = await booking_service.add_booking(make_request(now, 1, 2))

    await db_session.execute(
        update(clinics)
        .where(clinics.c.id == CLINIC_ID)
        .values(surgery_type=int(SurgeryType.SYSTEM_ONE))
    )
    await db_session.commit()

    row = await fetch_booking(db_session, booking.id)
    assert row.surgery_type == SurgeryType.SYSTEM_THREE


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("request_args", "exception_class", "message"),
    [
        (
            {"start_hours": -1, "end_hours": 1},
            MalformedBookingException,
            "Appointment should start in the future",
        ),
        (
            {"start_hours": 2, "end_hours": 1},
            MalformedBookingException,
            "Start time should be prior to end time",
        ),
        (
            {"start_hours": 1, "end_hours": 2, "doctor_id": 99},
            ReferenceNotFoundException,
            "The doctor not found",
        ),
        (
            {"start_hours": 1, "end_hours": 2, "patient_id": 99},
            ReferenceNotFoundException,
            "The patient not found",
        ),
    ],
)
async def test_validation_failures_raise_matching_exception(
    booking_service, db_session, seeded, now, request_args, exception_class, message
):
    with pytest.raises(exception_class) as exc_info:
        await booking_service.add_booking(make_request(now, **request_args))

    assert exc_info.value.message == message
    assert exc_info.value.status_code == 400
    assert (await db_session.execute(select(bookings))).fetchall() == []


@pytest.mark.asyncio
async def test_only_first_validation_error_is_surfaced(db_session, lock_manager, clock, now):
    validator = StubValidator(
        ValidationResult.failed(
            ValidationRule.INVALID_FIELDS,
            ["Appointment should start in the future", "Start time should be prior to end time"],
        )
    )
    service = BookingService(db_session, validator=validator, lock_manager=lock_manager, clock=clock)

    with pytest.raises(MalformedBookingException) as exc_info:
        await service.add_booking(make_request(now, -2, -3))

    assert exc_info.value.message == "Appointment should start in the future"


@pytest.mark.asyncio
async def test_cancel_sets_flag_and_timestamp(
    booking_service, db_session, seeded, make_booking, now
):
    booking_id = await make_booking(10, 15)

    await booking_service.cancel_booking(booking_id)

    row = await fetch_booking(db_session, booking_id)
    assert row.is_cancelled is True
    assert row.cancelled_at == now


@pytest.mark.asyncio
async def test_cancel_already_cancelled_booking(booking_service, seeded, make_booking):
    booking_id = await make_booking(10, 15, is_cancelled=True)

    with pytest.raises(BookingNotFoundException, match="Booking does not exist"):
        await booking_service.cancel_booking(booking_id)


@pytest.mark.asyncio
async def test_cancel_missing_booking(booking_service, seeded):
    with pytest.raises(BookingNotFoundException, match="Booking does not exist"):
        await booking_service.cancel_booking(uuid4())


@pytest.mark.asyncio
async def test_cancelled_slot_can_be_booked_again(booking_service, seeded, now):
    booking = await booking_service.add_booking(make_request(now, 10, 15))
    await booking_service.cancel_booking(booking.id)

    rebooked = await booking_service.add_booking(make_request(now, 11, 12))

    assert rebooked.id != booking.id


@pytest.mark.asyncio
async def test_next_booking_is_earliest_upcoming(booking_service, seeded, make_booking, now):
    await make_booking(30, 31)
    earliest = await make_booking(5, 6, doctor_id=OTHER_DOCTOR_ID)
    await make_booking(10, 11)

    next_booking = await booking_service.get_next_booking(PATIENT_ID)

    assert next_booking is not None
    assert next_booking.id == earliest
    assert next_booking.doctor_id == OTHER_DOCTOR_ID
    assert next_booking.start_time == now + timedelta(hours=5)
    assert next_booking.end_time == now + timedelta(hours=6)


@pytest.mark.asyncio
async def test_next_booking_skips_cancelled_and_past(booking_service, seeded, make_booking):
    await make_booking(-5, -4)
    await make_booking(0, 1)
    await make_booking(2, 3, is_cancelled=True)
    expected = await make_booking(4, 5)

    next_booking = await booking_service.get_next_booking(PATIENT_ID)

    assert next_booking.id == expected


@pytest.mark.asyncio
async def test_next_booking_none(booking_service, seeded, make_booking):
    await make_booking(-5, -4)
    await make_booking(2, 3, is_cancelled=True)
    await make_booking(4, 5, patient_id=PATIENT_WITHOUT_CLINIC_ID)

    assert await booking_service.get_next_booking(PATIENT_ID) is None


@pytest.mark.asyncio
async def test_get_booking_hides_cancelled_by_default(booking_service, seeded, make_booking):
    booking_id = await make_booking(2, 3, is_cancelled=True)

    with pytest.raises(NotFoundException):
        await booking_service.get_booking(booking_id)

    booking = await booking_service.get_booking(booking_id, include_cancelled=True)
    assert booking.is_cancelled is True


@pytest.mark.asyncio
async def test_list_doctor_bookings(booking_service, seeded, make_booking):
    later = await make_booking(8, 9)
    earlier = await make_booking(2, 3)
    cancelled = await make_booking(4, 5, is_cancelled=True)
    await make_booking(1, 2, doctor_id=OTHER_DOCTOR_ID)

    active = await booking_service.list_doctor_bookings(DOCTOR_ID)
    assert [b.id for b in active] == [earlier, later]

    everything = await booking_service.list_doctor_bookings(DOCTOR_ID, include_cancelled=True)
    assert [b.id for b in everything] == [earlier, cancelled, later]


@pytest.mark.asyncio
async def test_commit_failure_raises_store_failure(
    booking_service, db_session, seeded, now, monkeypatch
):
    error = OperationalError("COMMIT", {}, Exception("disk I/O error"))
    monkeypatch.setattr(db_session, "commit", AsyncMock(side_effect=error))

    with pytest.raises(StoreFailureException) as exc_info:
        await booking_service.add_booking(make_request(now, 1, 2))

    assert exc_info.value.status_code == 500
    assert exc_info.value.__cause__ is error


@pytest.mark.asyncio
async def test_store_overlap_violation_maps_to_doctor_busy(
    booking_service, db_session, seeded, now, monkeypatch
):
    error = IntegrityError(
        "INSERT",
        {},
        Exception('conflicting key value violates exclusion constraint "bookings_doctor_no_overlap"'),
    )
    monkeypatch.setattr(db_session, "commit", AsyncMock(side_effect=error))

    with pytest.raises(DoctorBusyException, match="The doctor is busy"):
        await booking_service.add_booking(make_request(now, 1, 2))


@pytest.mark.asyncio
async def test_other_integrity_errors_are_store_failures(
    booking_service, db_session, seeded, now, monkeypatch
):
    error = IntegrityError("INSERT", {}, Exception("FOREIGN KEY constraint failed"))
    monkeypatch.setattr(db_session, "commit", AsyncMock(side_effect=error))

    with pytest.raises(StoreFailureException):
        await booking_service.add_booking(make_request(now, 1, 2))


@pytest.mark.asyncio
async def test_concurrent_overlapping_adds_book_once(
    session_factory, seeded, lock_manager, clock, now
):
    async def attempt(start_hours, end_hours):
        async with session_factory() as session:
            service = BookingService(session, lock_manager=lock_manager, clock=clock)
            return await service.add_booking(make_request(now, start_hours, end_hours))

    results = await asyncio.gather(
        attempt(10, 15),
        attempt(12, 13),
        attempt(11, 14),
        return_exceptions=True,
    )

    created = [r for r in results if not isinstance(r, Exception)]
    rejected = [r for r in results if isinstance(r, Exception)]
    assert len(created) == 1
    assert len(rejected) == 2
    assert all(isinstance(e, DoctorBusyException) for e in rejected)
    assert len(lock_manager) == 0
