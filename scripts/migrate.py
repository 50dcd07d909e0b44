"""Script to manage the booking database schema with Alembic.

Usage:
    python scripts/migrate.py                     upgrade to the latest revision
    python scripts/migrate.py down <revision>     downgrade to a revision
    python scripts/migrate.py sql                 print the upgrade SQL
    python scripts/migrate.py create <message>    autogenerate a new revision
"""

import sys
from pathlib import Path

from alembic import command
from alembic.config import Config

ALEMBIC_INI = Path(__file__).resolve().parent.parent / "alembic.ini"


def _config() -> Config:
    """Load the project's Alembic configuration."""
    return Config(str(ALEMBIC_INI))


def _run(description: str, action, *args, **kwargs) -> None:
    """Run an Alembic command, exiting with status 1 on failure."""
    try:
        print(f"{description}...")
        action(_config(), *args, **kwargs)
        print(f"✓ {description} completed successfully!")
    except Exception as e:
        print(f"✗ {description} failed: {e}", file=sys.stderr)
        sys.exit(1)


def main(argv: list[str]) -> None:
    """Dispatch the requested migration command."""
    if not argv:
        _run("Running database migrations", command.upgrade, "head")
    elif argv[0] == "down" and len(argv) == 2:
        _run(f"Downgrading to {argv[1]}", command.downgrade, argv[1])
    elif argv[0] == "sql":
        command.upgrade(_config(), "head", sql=True)
    elif argv[0] == "create" and len(argv) > 1:
        message = " ".join(argv[1:])
        _run(f"Creating migration: {message}", command.revision, message=message, autogenerate=True)
    else:
        print(__doc__)
        sys.exit(2)


if __name__ == "__main__":
    main(sys.argv[1:])
