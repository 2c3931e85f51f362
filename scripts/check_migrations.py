"""Upgrade DATABASE_URL to head and verify the ATS tables against the models.

Usage:
    python scripts/check_migrations.py              # upgrade + verify
    python scripts/check_migrations.py --roundtrip  # also downgrade to base and back
"""

import argparse
import sys

from dotenv import load_dotenv

load_dotenv()

from alembic import command  # noqa: E402
from alembic.config import Config  # noqa: E402
from sqlalchemy import inspect  # noqa: E402

from ats.db import Base  # noqa: E402
from ats.db.base import get_engine  # noqa: E402


def missing_tables() -> list[str]:
    existing = set(inspect(get_engine()).get_table_names())
    return sorted(name for name in Base.metadata.tables if name not in existing)


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--roundtrip", action="store_true", help="downgrade to base, then upgrade again")
    args = parser.parse_args()

    alembic_cfg = Config("alembic.ini")

    print("=== Upgrading to head ===")
    command.upgrade(alembic_cfg, "head")
    command.current(alembic_cfg)

    if args.roundtrip:
        print("\n=== Downgrade to base, upgrade to head ===")
        command.downgrade(alembic_cfg, "base")
        command.upgrade(alembic_cfg, "head")

    missing = missing_tables()
    if missing:
        print(f"Missing tables after upgrade: {', '.join(missing)}")
        return 1
    print(f"All {len(Base.metadata.tables)} tables present")

    print("\n=== Checking models against migrations ===")
    command.check(alembic_cfg)
    print("No schema drift detected")
    return 0


if __name__ == "__main__":
    sys.exit(main())
