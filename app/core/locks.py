"""Per-doctor locks serializing booking writes.

Validating a booking and inserting it is a check-then-act sequence. Two
requests for the same doctor must not interleave between the overlap check
and the commit, so the whole sequence runs while holding the doctor's lock.
"""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from functools import lru_cache

import structlog
from redis import asyncio as aioredis
from redis.exceptions import LockError

from app.config import settings
from app.core.exceptions import ServiceUnavailableException

logger = structlog.get_logger()


class DoctorLockManager(ABC):
    """Hands out a mutual-exclusion scope per doctor."""

    @abstractmethod
    def hold(self, doctor_id: int) -> AbstractAsyncContextManager[None]:
        """Return a context manager holding the lock of ``doctor_id``."""


class InMemoryDoctorLockManager(DoctorLockManager):
    """Process-local locks, one ``asyncio.Lock`` per doctor.

    Locks are created on first use and dropped once nobody holds or waits
    for them, so the registry only grows with concurrent activity.
    """

    def __init__(self) -> None:
        """Initialize an empty lock registry."""
        self._locks: dict[int, asyncio.Lock] = {}
        self._users: dict[int, int] = {}

    @asynccontextmanager
    async def hold(self, doctor_id: int) -> AsyncIterator[None]:
        """Hold the doctor's lock for the duration of the block."""
        lock = self._locks.setdefault(doctor_id, asyncio.Lock())
        self._users[doctor_id] = self._users.get(doctor_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[doctor_id] -= 1
            if not self._users[doctor_id]:
                del self._users[doctor_id]
                del self._locks[doctor_id]

    def __len__(self) -> int:
        return len(self._locks)


class RedisDoctorLockManager(DoctorLockManager):
    """Distributed locks shared by every worker process through Redis."""

    KEY_TEMPLATE = "booking:doctor:{doctor_id}:lock"

    def __init__(
        self,
        redis_client: aioredis.Redis,
        timeout: float,
        blocking_timeout: float,
    ):
        """
        Initialize lock manager.

        Args:
            redis_client: Async Redis client
            timeout: Lock TTL in seconds
            blocking_timeout: Maximum time to wait for the lock in seconds
        """
        self.redis = redis_client
        self.timeout = timeout
        self.blocking_timeout = blocking_timeout

    @asynccontextmanager
    async def hold(self, doctor_id: int) -> AsyncIterator[None]:
        """Hold the doctor's lock for the duration of the block.

        Raises:
            ServiceUnavailableException: If the lock is not acquired in time
        """
        lock = self.redis.lock(
            self.KEY_TEMPLATE.format(doctor_id=doctor_id),
            timeout=self.timeout,
            blocking_timeout=self.blocking_timeout,
        )

        if not await lock.acquire():
            logger.warning("doctor_lock_timeout", doctor_id=doctor_id)
            raise ServiceUnavailableException(
                "The doctor's schedule is being updated, please retry"
            )

        try:
            yield
        finally:
            try:
                await lock.release()
            except LockError as e:
                # Lock expired before release; the TTL already freed it
                logger.warning("doctor_lock_release_failed", doctor_id=doctor_id, error=str(e))


@lru_cache
def get_lock_manager() -> DoctorLockManager:
    """Get the process-wide lock manager for the configured backend."""
    backend = settings.booking_lock_backend.lower()

    if backend == "redis":
        from app.core.redis_client import get_redis_client

        return RedisDoctorLockManager(
            get_redis_client(),
            timeout=settings.booking_lock_timeout_seconds,
            blocking_timeout=settings.booking_lock_blocking_timeout_seconds,
        )

    if backend != "memory":
        raise ValueError(f"Unknown booking lock backend: {settings.booking_lock_backend}")

    return InMemoryDoctorLockManager()
