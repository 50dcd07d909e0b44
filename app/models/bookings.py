"""Bookings table model using SQLAlchemy Core."""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Table,
    Uuid,
    func,
    false,
)

from app.models.base import metadata

# All timestamps are naive UTC
bookings = Table(
    "bookings",
    metadata,
    Column("id", Uuid, primary_key=True),
    # References
    Column(
        "doctor_id",
        Integer,
        ForeignKey("doctors.id", ondelete="RESTRICT"),
        nullable=False,
    ),
    Column(
        "patient_id",
        Integer,
        ForeignKey("patients.id", ondelete="RESTRICT"),
        nullable=False,
    ),
    # Interval
    Column("start_time", DateTime, nullable=False),
    Column("end_time", DateTime, nullable=False),
    # Snapshot of the patient's clinic at creation time, never recomputed
    Column("surgery_type", Integer, nullable=False),
    # Soft cancellation
    Column("is_cancelled", Boolean, nullable=False, server_default=false()),
    # Audit fields
    Column("created_at", DateTime, nullable=False, server_default=func.now()),
    Column("cancelled_at", DateTime, nullable=True),
    # Constraints
    CheckConstraint("start_time < end_time", name="bookings_interval_check"),
)

# Indexes for performance
Index("idx_bookings_doctor_id_start_time", bookings.c.doctor_id, bookings.c.start_time)
Index("idx_bookings_patient_id_start_time", bookings.c.patient_id, bookings.c.start_time)
