import os
from collections.abc import AsyncGenerator, Callable
from datetime import datetime, timedelta
from pathlib import Path
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from dotenv import load_dotenv
from httpx import ASGITransport, AsyncClient
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

# Load environment variables from .env file
load_dotenv()

# Tests always run against a throwaway SQLite file, never DATABASE_URL
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./patient_booking_test.db")
os.environ.setdefault("LOG_FORMAT", "console")

from app.core.clock import utc_now
from app.core.locks import InMemoryDoctorLockManager, get_lock_manager
from app.database import create_engine_for_url, get_db
from app.main import app
from app.models import SurgeryType, bookings, clinics, doctors, metadata, patients
from app.services.booking_service import BookingService
from tests.helpers import (
    CLINIC_ID,
    DOCTOR_ID,
    OTHER_DOCTOR_ID,
    PATIENT_ID,
    PATIENT_WITHOUT_CLINIC_ID,
)


@pytest_asyncio.fixture
async def test_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """Create a fresh SQLite database for one test."""
    engine = create_engine_for_url(
        f"sqlite+aiosqlite:///{tmp_path / 'bookings.db'}",
        poolclass=NullPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test database."""
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def now() -> datetime:
    """A frozen current instant, truncated to whole seconds."""
    return utc_now().replace(microsecond=0)


@pytest.fixture
def clock(now: datetime) -> Callable[[], datetime]:
    """Clock that always returns ``now``."""
    return lambda: now


@pytest.fixture
def lock_manager() -> InMemoryDoctorLockManager:
    """Fresh in-process doctor locks."""
    return InMemoryDoctorLockManager()


@pytest.fixture
def booking_service(
    db_session: AsyncSession,
    lock_manager: InMemoryDoctorLockManager,
    clock: Callable[[], datetime],
) -> BookingService:
    """Booking service on the test session with a frozen clock."""
    return BookingService(db_session, lock_manager=lock_manager, clock=clock)


@pytest_asyncio.fixture
async def seeded(db_session: AsyncSession) -> None:
    """Doctors 1 and 5, patient 2 in a SYSTEM_THREE clinic, patient 3 without clinic."""
    await db_session.execute(
        insert(clinics).values(
            id=CLINIC_ID,
            name="Riverside Surgery",
            surgery_type=int(SurgeryType.SYSTEM_THREE),
        )
    )
    await db_session.execute(
        insert(doctors),
        [
            {"id": DOCTOR_ID, "first_name": "Gregory", "last_name": "House"},
            {"id": OTHER_DOCTOR_ID, "first_name": "Lisa", "last_name": "Cuddy"},
        ],
    )
    await db_session.execute(
        insert(patients),
        [
            {
                "id": PATIENT_ID,
                "first_name": "Alex",
                "last_name": "Morgan",
                "clinic_id": CLINIC_ID,
            },
            {
                "id": PATIENT_WITHOUT_CLINIC_ID,
                "first_name": "Sam",
                "last_name": "Taylor",
                "clinic_id": None,
            },
        ],
    )
    await db_session.commit()


@pytest.fixture
def make_booking(db_session: AsyncSession, now: datetime):
    """Insert a booking directly, bypassing validation."""

    async def _make_booking(
        start_hours: float,
        end_hours: float,
        doctor_id: int = DOCTOR_ID,
        patient_id: int = PATIENT_ID,
        is_cancelled: bool = False,
    ) -> UUID:
        booking_id = uuid4()
        await db_session.execute(
            insert(bookings).values(
                id=booking_id,
                doctor_id=doctor_id,
                patient_id=patient_id,
                start_time=now + timedelta(hours=start_hours),
                end_time=now + timedelta(hours=end_hours),
                surgery_type=int(SurgeryType.SYSTEM_THREE),
                is_cancelled=is_cancelled,
            )
        )
        await db_session.commit()
        return booking_id

    return _make_booking


@pytest_asyncio.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
    lock_manager: InMemoryDoctorLockManager,
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_lock_manager] = lambda: lock_manager

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
