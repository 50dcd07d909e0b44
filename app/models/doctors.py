"""Doctor model definition using SQLAlchemy Core."""

from sqlalchemy import Column, DateTime, Integer, String, Table, func

from app.models.base import metadata

doctors = Table(
    "doctors",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("first_name", String(100), nullable=False),
    Column("last_name", String(100), nullable=False),
    Column("email", String(255), unique=True),
    # Metadata
    Column("created_at", DateTime, nullable=False, server_default=func.now()),
)
