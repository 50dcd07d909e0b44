"""Create clinics, doctors, patients and bookings tables.

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade database schema."""
    op.create_table(
        "clinics",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("surgery_type", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.CheckConstraint("surgery_type BETWEEN 0 AND 3", name="clinics_surgery_type_check"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_clinics_name", "clinics", ["name"])

    op.create_table(
        "doctors",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )

    op.create_table(
        "patients",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("clinic_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["clinic_id"], ["clinics.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_index("ix_patients_clinic_id", "patients", ["clinic_id"])

    op.create_table(
        "bookings",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("doctor_id", sa.Integer(), nullable=False),
        sa.Column("patient_id", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.DateTime(), nullable=False),
        sa.Column("end_time", sa.DateTime(), nullable=False),
        sa.Column("surgery_type", sa.Integer(), nullable=False),
        sa.Column("is_cancelled", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column("cancelled_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint("start_time < end_time", name="bookings_interval_check"),
        sa.ForeignKeyConstraint(["doctor_id"], ["doctors.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["patient_id"], ["patients.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )

    # Create indexes
    op.create_index(
        "idx_bookings_doctor_id_start_time", "bookings", ["doctor_id", "start_time"]
    )
    op.create_index(
        "idx_bookings_patient_id_start_time", "bookings", ["patient_id", "start_time"]
    )

    # Reject overlapping active bookings of one doctor at the store level.
    # Half-open ranges let adjacent bookings touch.
    op.execute('CREATE EXTENSION IF NOT EXISTS "btree_gist"')
    op.execute(
        """
        ALTER TABLE bookings
        ADD CONSTRAINT bookings_doctor_no_overlap
        EXCLUDE USING gist (
            doctor_id WITH =,
            tsrange(start_time, end_time, '[)') WITH &&
        )
        WHERE (NOT is_cancelled)
        """
    )


def downgrade() -> None:
    """Downgrade database schema."""
    op.execute("ALTER TABLE bookings DROP CONSTRAINT IF EXISTS bookings_doctor_no_overlap")

    # Drop indexes
    op.drop_index("idx_bookings_patient_id_start_time", table_name="bookings")
    op.drop_index("idx_bookings_doctor_id_start_time", table_name="bookings")
    op.drop_table("bookings")

    op.drop_index("ix_patients_clinic_id", table_name="patients")
    op.drop_table("patients")
    op.drop_table("doctors")

    op.drop_index("ix_clinics_name", table_name="clinics")
    op.drop_table("clinics")
