"""Clinic model definition using SQLAlchemy Core."""

from enum import IntEnum

from sqlalchemy import (
    CheckConstraint,
    Column,
    Integer,
    String,
    Table,
    text,
)

from app.models.base import metadata


class SurgeryType(IntEnum):
    """Surgery classification of a clinic, copied onto its bookings."""

    NO_SURGERY = 0
    SYSTEM_ONE = 1
    SYSTEM_TWO = 2
    SYSTEM_THREE = 3


clinics = Table(
    "clinics",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False, index=True),
    Column(
        "surgery_type",
        Integer,
        nullable=False,
        server_default=text(str(int(SurgeryType.NO_SURGERY))),
    ),
    CheckConstraint("surgery_type BETWEEN 0 AND 3", name="clinics_surgery_type_check"),
)
