"""
Backfill Business records for legacy business users
- Finds users with role 'business' and no businessId
- Creates a Business for each (name falls back to email, then 'Unnamed Business')
- Links the user to it; per-user failures are logged and skipped

Usage:
  python -m migration.migrate_users_to_businesses --db sqlite:///path/to/leadmarket.db
"""
import argparse
import logging
import os
import sys

from leadmarket.db import EntityStore
from leadmarket.runners import MigrationReport, migrate_users_to_businesses

logger = logging.getLogger(__name__)


def migrate(db_url: str) -> MigrationReport:
    with EntityStore(db_url) as store, store.session() as db:
        return migrate_users_to_businesses(db)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument("--db", default=os.getenv("DATABASE_URL"), help="SQLAlchemy database URL")
    args = parser.parse_args(argv)
    if not args.db:
        parser.error("--db or DATABASE_URL is required")
    logging.basicConfig(level=logging.INFO)
    report = migrate(args.db)
    logger.info("Migration complete: %d candidates, %d created, %d failed",
                report.candidates, len(report.created), len(report.failed))
    return 0


if __name__ == "__main__":
    sys.exit(main())
