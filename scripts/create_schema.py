#!/usr/bin/env python3
"""Create the `codes` table and its indexes on DATABASE_URL (idempotent)."""
import sys

from sqlalchemy.exc import SQLAlchemyError

from contestbot.ledger.db import create_schema, get_engine
from contestbot.settings import settings


def main() -> int:
    try:
        create_schema(get_engine())
    except SQLAlchemyError as e:
        print(f"Schema creation FAILED: {e}")
        return 1
    print(f"Schema ready on {settings.DATABASE_URL.split('@')[-1]}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
