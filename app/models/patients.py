"""Patient model definition using SQLAlchemy Core."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Table, func

from app.models.base import metadata

patients = Table(
    "patients",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("first_name", String(100), nullable=False),
    Column("last_name", String(100), nullable=False),
    Column("email", String(255), unique=True),
    # Determines the surgery type of new bookings
    Column(
        "clinic_id",
        Integer,
        ForeignKey("clinics.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    ),
    # Metadata
    Column("created_at", DateTime, nullable=False, server_default=func.now()),
)
