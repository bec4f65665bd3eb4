"""Offline batch jobs that repair user/business linkage.

Both runners are meant to be run by hand (see ``migration/``) or by an admin
through the batch endpoints, one instance at a time.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Tuple

from sqlalchemy import or_, update
from sqlalchemy.orm import Session

from . import linkage, models

logger = logging.getLogger(__name__)


@dataclass
class MigrationReport:
    candidates: int = 0
    created: List[Tuple[str, str]] = field(default_factory=list)
    failed: List[Tuple[str, str]] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "candidates": self.candidates,
            "created": [{"userId": u, "businessId": b} for u, b in self.created],
            "failed": [{"userId": u, "error": e} for u, e in self.failed],
        }


@dataclass
class CleanupReport:
    matched: int = 0
    modified: int = 0

    def as_dict(self) -> dict:
        return {"matched": self.matched, "modified": self.modified}


def migrate_users_to_businesses(db: Session) -> MigrationReport:
    """Create and link a Business for every business user that lacks one.

    Candidates are re-queried on every run, so running again after a partial
    failure only touches users that are still unlinked. A user whose Business
    was created but whose link failed gets a second Business on the next run.
    """
    candidates = linkage.unlinked_business_users(db)
    report = MigrationReport(candidates=len(candidates))
    logger.info("found %d business users without business records", len(candidates))

    for user in candidates:
        user_id, email = user.id, user.email
        try:
            business = linkage.link(db, user, linkage.synthesize_business(user))
        except Exception as e:
            db.rollback()
            logger.error("failed for user %s: %s", email, e)
            report.failed.append((user_id, str(e)))
            continue
        logger.info("created business for user %s -> %s", email, business.id)
        report.created.append((user_id, business.id))

    logger.info("migration complete: %d created, %d failed", len(report.created), len(report.failed))
    return report


def cleanup_user_business_fields(db: Session) -> CleanupReport:
    """Unset the Business-only fields on every user row in one bulk update."""
    stmt = (
        update(models.User)
        .where(or_(*(getattr(models.User, f).is_not(None) for f in models.LEGACY_BUSINESS_FIELDS)))
        .values({f: None for f in models.LEGACY_BUSINESS_FIELDS})
        .execution_options(synchronize_session=False)
    )
    result = db.execute(stmt)
    db.commit()
    db.expire_all()
    # every matched row has at least one non-null field, so every match is a modification
    report = CleanupReport(matched=result.rowcount, modified=result.rowcount)
    logger.info("cleanup matched %d, modified %d", report.matched, report.modified)
    return report
