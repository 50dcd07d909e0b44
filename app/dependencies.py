"""FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.locks import DoctorLockManager, get_lock_manager
from app.database import get_db
from app.services.booking_service import BookingService


def get_booking_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    lock_manager: Annotated[DoctorLockManager, Depends(get_lock_manager)],
) -> BookingService:
    """
    Build a booking service bound to the request's session.

    Args:
        db: Database session
        lock_manager: Process-wide doctor lock manager

    Returns:
        Booking service
    """
    return BookingService(db, lock_manager=lock_manager)


# Type aliases for dependency injection
BookingServiceDep = Annotated[BookingService, Depends(get_booking_service)]
