"""
Unset business-only fields (category, location, description) on every user

Usage:
  python -m migration.cleanup_users --db sqlite:///path/to/leadmarket.db
"""
import argparse
import logging
import os
import sys

from leadmarket.db import EntityStore
from leadmarket.runners import CleanupReport, cleanup_user_business_fields

logger = logging.getLogger(__name__)


def cleanup(db_url: str) -> CleanupReport:
    with EntityStore(db_url) as store, store.session() as db:
        return cleanup_user_business_fields(db)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument("--db", default=os.getenv("DATABASE_URL"), help="SQLAlchemy database URL")
    args = parser.parse_args(argv)
    if not args.db:
        parser.error("--db or DATABASE_URL is required")
    logging.basicConfig(level=logging.INFO)
    report = cleanup(args.db)
    logger.info("Matched: %d Modified: %d", report.matched, report.modified)
    return 0


if __name__ == "__main__":
    sys.exit(main())
