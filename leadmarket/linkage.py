"""User <-> Business linkage rules.

A business user is linked when ``user.business_id`` names a Business whose
``owner`` is that user. Links are written in two steps (create the Business,
then point the user at it) with a commit after each, so a failure between the
steps leaves an orphan Business and an unlinked user. That state is tolerated
here and repaired by ``runners.migrate_users_to_businesses``.

Non-business users must never carry the Business-only attributes listed in
``models.LEGACY_BUSINESS_FIELDS``; ``scrub_business_fields`` clears them.
"""
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from . import models
from .db import normalize_id
from .errors import LinkageError

logger = logging.getLogger(__name__)

UNNAMED_BUSINESS = "Unnamed Business"


def unlinked_business_users_query(db: Session):
    return (
        db.query(models.User)
        .filter(models.User.role == models.BUSINESS, models.User.business_id.is_(None))
        .order_by(models.User.created_at.desc())
    )


def unlinked_business_users(db: Session) -> List[models.User]:
    return unlinked_business_users_query(db).all()


def synthesize_business(user: models.User) -> models.Business:
    """Build (without saving) the fallback Business for a legacy user."""
    return models.Business(
        name=user.name or user.email or UNNAMED_BUSINESS,
        owner=user.id,
        category=user.category or "",
        location=user.location or "",
        description=user.description or "",
    )


def link(db: Session, user: models.User, business: models.Business) -> models.Business:
    """Persist ``business`` and then point ``user`` at it, one commit each."""
    db.add(business)
    db.commit()
    try:
        user.business_id = normalize_id(business.id)
        db.add(user)
        db.commit()
    except Exception:
        db.rollback()
        logger.error("business %s created but user %s was not linked", business.id, user.id)
        raise
    return business


def register_business(db: Session, user: models.User, name: Optional[str] = None,
                      category: Optional[str] = None, location: Optional[str] = None,
                      description: Optional[str] = None) -> models.Business:
    """Create the Business owned by ``user`` and link it.

    Not safe to call twice for the same user: every call creates a new
    Business, so callers check ``user.business_id`` first. The check below
    only guards the obvious misuse within a single request.
    """
    if user.role != models.BUSINESS:
        raise LinkageError(f"user {user.id} has role {user.role!r}, not business")
    if user.business_id:
        raise LinkageError(f"user {user.id} is already linked to {user.business_id}")

    business = models.Business(
        name=name or user.name or user.email,
        owner=user.id,
        category=category or "",
        location=location or "",
        description=description or "",
    )
    link(db, user, business)
    logger.info("registered business %s for user %s", business.id, user.id)
    return business


def scrub_business_fields(db: Session, user: models.User) -> bool:
    """Clear Business-only attributes from a user row. Returns True if any were set."""
    dirty = user.legacy_business_fields()
    if not dirty:
        return False
    for field in models.LEGACY_BUSINESS_FIELDS:
        setattr(user, field, None)
    db.add(user)
    db.commit()
    logger.info("scrubbed %s from user %s", ", ".join(sorted(dirty)), user.id)
    return True


def unlink_business(db: Session, business_id: str) -> int:
    """Clear ``business_id`` on every user pointing at ``business_id``."""
    bid = normalize_id(business_id)
    count = (
        db.query(models.User)
        .filter(models.User.business_id == bid)
        .update({models.User.business_id: None}, synchronize_session=False)
    )
    db.commit()
    db.expire_all()
    return count
