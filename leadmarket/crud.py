import logging
import math
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import linkage, models, schemas
from .access import ensure_can_manage
from .auth import hash_password, verify_password
from .db import normalize_id
from .errors import AuthError, NotFound, ValidationFailed
from .utils import clean_text

logger = logging.getLogger(__name__)

PUBLIC_ROLES = (models.BUSINESS, models.CUSTOMER)


# -------------------- Users --------------------

def get_user_by_email(db: Session, email: str) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.email == email).first()


def register_user(db: Session, req: schemas.RegisterRequest) -> Tuple[models.User, Optional[models.Business]]:
    """Create a user, plus a linked Business when registering as a business.

    The public endpoint never creates admins; unknown roles fall back to business.
    """
    role = req.role or models.BUSINESS
    if role not in PUBLIC_ROLES:
        role = models.BUSINESS
    if get_user_by_email(db, req.email):
        raise ValidationFailed("Email already exists", {"email": "Email already exists"})

    # business-only fields from the request go to the Business, never to the user
    user = models.User(name=clean_text(req.name), email=req.email,
                       password_hash=hash_password(req.password), role=role)
    db.add(user)
    db.commit()

    if role == models.BUSINESS:
        business = linkage.register_business(
            db, user,
            name=clean_text(req.name),
            category=clean_text(req.category),
            location=clean_text(req.location),
            description=clean_text(req.description),
        )
        return user, business

    try:
        linkage.scrub_business_fields(db, user)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("failed to clean up business fields on user %s", user.id)
    return user, None


def authenticate(db: Session, email: str, password: str) -> models.User:
    user = get_user_by_email(db, email)
    if not user:
        raise AuthError("User not found")
    if not verify_password(password, user.password_hash):
        raise AuthError("Wrong password")
    return user


def update_profile(db: Session, user: models.User, updates: schemas.ProfileUpdate) -> models.User:
    # only keys present in the request body are applied
    for key in updates.model_fields_set & {"name", "phone", "address", "bio"}:
        setattr(user, key, clean_text(getattr(updates, key)))
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def seed_admin(db: Session, email: str, password: str, name: Optional[str] = None) -> models.User:
    if not email or not password:
        raise ValidationFailed("email and password required")
    if get_user_by_email(db, email):
        raise ValidationFailed("User already exists")
    admin = models.User(name=name or "Admin", email=email,
                        password_hash=hash_password(password), role=models.ADMIN)
    db.add(admin)
    db.commit()
    logger.info("created admin %s (%s)", admin.id, admin.email)
    return admin


# -------------------- Businesses --------------------

def list_businesses(db: Session) -> List[models.Business]:
    return db.query(models.Business).order_by(models.Business.created_at.desc()).all()


def get_business(db: Session, business_id: str) -> models.Business:
    business = db.get(models.Business, normalize_id(business_id) or "")
    if not business:
        raise NotFound("Not found")
    return business


def update_business(db: Session, business_id: str, updates: schemas.BusinessUpdate) -> models.Business:
    business = get_business(db, business_id)
    for key in ("name", "category", "location", "description"):
        value = getattr(updates, key)
        if value is not None:
            setattr(business, key, clean_text(value))
    db.add(business)
    db.commit()
    db.refresh(business)
    return business


def delete_business(db: Session, business_id: str) -> None:
    """Delete a Business and unlink its owning user. Products and leads are kept."""
    business = get_business(db, business_id)
    bid = business.id
    db.delete(business)
    db.commit()
    unlinked = linkage.unlink_business(db, bid)
    logger.info("deleted business %s, unlinked %d user(s)", bid, unlinked)


def business_names(db: Session, business_ids: Iterable[Optional[str]]) -> Dict[str, str]:
    ids = {normalize_id(b) for b in business_ids if b}
    ids.discard(None)
    if not ids:
        return {}
    rows = db.query(models.Business.id, models.Business.name).filter(models.Business.id.in_(ids)).all()
    return {bid: name for bid, name in rows}


# -------------------- Products --------------------

def validate_product(payload: schemas.ProductPayload) -> Tuple[str, float, int]:
    """Check name/price/quantity, collecting every problem into one error."""
    errors: Dict[str, str] = {}
    name = (payload.name or "").strip()
    if not name:
        errors["name"] = "Name is required"

    price = _to_number(payload.price)
    if price is None or price < 0:
        errors["price"] = "Price must be a non-negative number"

    quantity = _to_number(payload.quantity)
    if quantity is None or quantity < 0 or not float(quantity).is_integer():
        errors["quantity"] = "Quantity must be a non-negative integer"

    if errors:
        raise ValidationFailed("Validation failed", errors)
    return name, price, int(quantity)


def _to_number(value: Any) -> Optional[float]:
    # missing/empty means zero; anything else must parse as a finite number
    if value is None or value == "":
        return 0.0
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def create_product(db: Session, caller: models.User, payload: schemas.ProductPayload) -> models.Product:
    name, price, quantity = validate_product(payload)
    # business users always create under their own business
    bid = caller.business_id if caller.role == models.BUSINESS else payload.business_id
    bid = normalize_id(bid)
    if not bid:
        raise ValidationFailed("businessId required", {"businessId": "businessId required"})
    ensure_can_manage(caller, bid)

    product = models.Product(
        name=clean_text(name), sku=payload.sku, price=price, quantity=quantity,
        description=clean_text(payload.description), images=list(payload.images or []),
        business_id=bid,
    )
    db.add(product)
    db.commit()
    db.refresh(product)
    return product


def list_products(db: Session, caller: models.User) -> List[models.Product]:
    query = db.query(models.Product)
    if caller.role != models.ADMIN:
        bid = normalize_id(caller.business_id)
        if not bid:
            return []
        query = query.filter(models.Product.business_id == bid)
    return query.order_by(models.Product.created_at.desc()).all()


def list_business_products(db: Session, business_id: str) -> List[models.Product]:
    return (
        db.query(models.Product)
        .filter(models.Product.business_id == normalize_id(business_id))
        .order_by(models.Product.created_at.desc())
        .all()
    )


def get_product(db: Session, caller: models.User, product_id: str) -> models.Product:
    product = db.get(models.Product, normalize_id(product_id) or "")
    if not product:
        raise NotFound("Not found")
    ensure_can_manage(caller, product.business_id)
    return product


def update_product(db: Session, caller: models.User, product_id: str,
                   payload: schemas.ProductPayload) -> models.Product:
    product = get_product(db, caller, product_id)
    name, price, quantity = validate_product(payload)
    product.name = clean_text(name)
    product.price = price
    product.quantity = quantity
    if payload.sku is not None:
        product.sku = payload.sku
    if payload.description is not None:
        product.description = clean_text(payload.description)
    if payload.images is not None:
        product.images = list(payload.images)
    db.add(product)
    db.commit()
    db.refresh(product)
    return product


def delete_product(db: Session, caller: models.User, product_id: str) -> None:
    product = get_product(db, caller, product_id)
    db.delete(product)
    db.commit()


# -------------------- Leads --------------------

def create_lead(db: Session, caller: Optional[models.User], payload: schemas.LeadCreate) -> models.Lead:
    # email comes from the caller when available
    email = (caller.email if caller else None) or payload.email
    phone = "" if payload.phone is None else str(payload.phone).strip()
    errors = {}
    if not phone:
        errors["phone"] = "phone is required"
    if not email:
        errors["email"] = "email is required"
    if errors:
        raise ValidationFailed("phone and email are required", errors)

    lead = models.Lead(
        name=clean_text(payload.name),
        email=email,
        phone=phone,
        message=clean_text(payload.message),
        business_id=normalize_id(payload.business_id),
        submitted_by=caller.id if caller else None,
    )
    db.add(lead)
    db.commit()
    db.refresh(lead)
    return lead


def list_leads(db: Session, caller: models.User) -> List[models.Lead]:
    """Admins see every lead, business users their business's, customers their own."""
    query = db.query(models.Lead)
    if caller.role == models.BUSINESS:
        bid = normalize_id(caller.business_id)
        if not bid:
            return []
        query = query.filter(models.Lead.business_id == bid)
    elif caller.role != models.ADMIN:
        query = query.filter(models.Lead.submitted_by == caller.id)
    return query.order_by(models.Lead.timestamp.desc()).all()
