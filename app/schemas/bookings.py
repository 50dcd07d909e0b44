"""Booking schemas for request/response validation."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from app.core.clock import to_naive_utc


class ValidationRule(str, Enum):
    """Booking validation rule groups, in evaluation order."""

    INVALID_FIELDS = "invalid_fields"
    DOCTOR_NOT_FOUND = "doctor_not_found"
    PATIENT_NOT_FOUND = "patient_not_found"
    DOCTOR_BUSY = "doctor_busy"


class ValidationResult(BaseModel):
    """Outcome of validating a booking request."""

    passed_validation: bool = True
    errors: list[str] = Field(default_factory=list)
    failed_rule: ValidationRule | None = None

    @classmethod
    def failed(cls, rule: ValidationRule, errors: list[str]) -> "ValidationResult":
        """Build a result failed by the given rule group."""
        return cls(passed_validation=False, errors=errors, failed_rule=rule)


class AddBookingRequest(BaseModel):
    """Schema for proposing a new booking.

    Field-level checks (future start, start before end) are left to the
    booking validator so that they surface with the same messages as the
    other booking rules.
    """

    doctor_id: int
    patient_id: int
    start_time: datetime
    end_time: datetime

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_timezone(cls, v: datetime) -> datetime:
        """Store every timestamp as naive UTC."""
        return to_naive_utc(v)


class BookingResponse(BaseModel):
    """Schema for booking response."""

    id: UUID
    doctor_id: int
    patient_id: int
    start_time: datetime
    end_time: datetime
    surgery_type: int
    is_cancelled: bool
    created_at: datetime | None = None
    cancelled_at: datetime | None = None

    model_config = {"from_attributes": True}


class NextBookingResponse(BaseModel):
    """Schema for a patient's next upcoming booking."""

    id: UUID
    doctor_id: int
    start_time: datetime
    end_time: datetime

    model_config = {"from_attributes": True}
