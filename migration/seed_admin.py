"""
Create an admin user unless the email is already registered

Usage:
  SEED_ADMIN_EMAIL=... SEED_ADMIN_PASS=... python -m migration.seed_admin --db URL
  python -m migration.seed_admin --db URL <email> <password> [name]
"""
import argparse
import logging
import os
import sys
from typing import Optional

from leadmarket import crud
from leadmarket.db import EntityStore

logger = logging.getLogger(__name__)


def seed(db_url: str, email: str, password: str, name: str = "Admin") -> Optional[str]:
    """Return the new admin's id, or None if the email already exists."""
    with EntityStore(db_url) as store, store.session() as db:
        if crud.get_user_by_email(db, email):
            logger.info("User already exists: %s", email)
            return None
        return crud.seed_admin(db, email, password, name).id


def main(argv=None) -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument("--db", default=os.getenv("DATABASE_URL"), help="SQLAlchemy database URL")
    parser.add_argument("email", nargs="?")
    parser.add_argument("password", nargs="?")
    parser.add_argument("name", nargs="?")
    args = parser.parse_args(argv)

    email = os.getenv("SEED_ADMIN_EMAIL") or args.email
    password = os.getenv("SEED_ADMIN_PASS") or args.password
    name = os.getenv("SEED_ADMIN_NAME") or args.name or "Admin"
    if not args.db:
        parser.error("--db or DATABASE_URL is required")
    if not email or not password:
        parser.error("set SEED_ADMIN_EMAIL and SEED_ADMIN_PASS, or pass <email> <password> [name]")

    logging.basicConfig(level=logging.INFO)
    admin_id = seed(args.db, email, password, name)
    if admin_id:
        logger.info("Created admin: %s (%s)", admin_id, email)
    return 0


if __name__ == "__main__":
    sys.exit(main())
