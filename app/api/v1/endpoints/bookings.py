"""Booking endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from app.dependencies import BookingServiceDep
from app.schemas.bookings import AddBookingRequest, BookingResponse, NextBookingResponse

router = APIRouter()


@router.post(
    "/",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Bookings"],
    summary="Create new booking",
)
async def add_booking(
    data: AddBookingRequest,
    service: BookingServiceDep,
) -> BookingResponse:
    """
    Book a doctor for a patient over a time interval.

    Args:
        data: Booking request
        service: Booking service

    Returns:
        Created booking
    """
    return await service.add_booking(data)


@router.post(
    "/{booking_id}/cancel",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Bookings"],
    summary="Cancel booking",
)
async def cancel_booking(
    booking_id: UUID,
    service: BookingServiceDep,
) -> None:
    """
    Cancel an active booking.

    Args:
        booking_id: Booking ID
        service: Booking service
    """
    await service.cancel_booking(booking_id)


@router.get(
    "/patient/{patient_id}/next",
    response_model=NextBookingResponse | None,
    status_code=status.HTTP_200_OK,
    tags=["Bookings"],
    summary="Get patient's next booking",
)
async def get_next_booking(
    patient_id: int,
    service: BookingServiceDep,
) -> NextBookingResponse | None:
    """
    Get the patient's earliest upcoming booking.

    Returns:
        Next booking, or null when the patient has none
    """
    return await service.get_next_booking(patient_id)


@router.get(
    "/doctor/{doctor_id}",
    response_model=list[BookingResponse],
    status_code=status.HTTP_200_OK,
    tags=["Bookings"],
    summary="List doctor's bookings",
)
async def list_doctor_bookings(
    doctor_id: int,
    service: BookingServiceDep,
    include_cancelled: bool = Query(False),
) -> list[BookingResponse]:
    """List a doctor's bookings ordered by start time."""
    return await service.list_doctor_bookings(doctor_id, include_cancelled)


@router.get(
    "/{booking_id}",
    response_model=BookingResponse,
    status_code=status.HTTP_200_OK,
    tags=["Bookings"],
    summary="Get booking by ID",
)
async def get_booking(
    booking_id: UUID,
    service: BookingServiceDep,
    include_cancelled: bool = Query(False),
) -> BookingResponse:
    """
    Get a specific booking by ID.

    Raises:
        HTTPException: If booking not found
    """
    return await service.get_booking(booking_id, include_cancelled)
