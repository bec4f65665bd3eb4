from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Float, Integer, String, Text

from .db import Base, new_id

# Roles for simple RBAC
ADMIN = "admin"
BUSINESS = "business"
CUSTOMER = "customer"
ROLES = (ADMIN, BUSINESS, CUSTOMER)

# Business-only attributes that older registrations left on user rows
LEGACY_BUSINESS_FIELDS = ("category", "location", "description")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=new_id)
    name = Column(String, nullable=True)
    email = Column(String, nullable=False, unique=True, index=True)
    password_hash = Column(String, nullable=True)
    role = Column(String, nullable=False, default=BUSINESS, index=True)
    # Set once the owned Business exists; no FK, linkage is by convention
    business_id = Column(String(32), nullable=True, index=True)
    phone = Column(String, nullable=True)
    address = Column(String, nullable=True)
    bio = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    # Legacy shape only. Kept nullable so the cleanup runner can find and clear them.
    category = Column(String, nullable=True)
    location = Column(String, nullable=True)
    description = Column(Text, nullable=True)

    def legacy_business_fields(self) -> dict:
        return {k: getattr(self, k) for k in LEGACY_BUSINESS_FIELDS if getattr(self, k) is not None}


class Business(Base):
    __tablename__ = "businesses"

    id = Column(String(32), primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    owner = Column(String(32), nullable=True, index=True)
    category = Column(String, nullable=False, default="")
    location = Column(String, nullable=False, default="")
    description = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)


class Product(Base):
    __tablename__ = "products"

    id = Column(String(32), primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    sku = Column(String, nullable=True)
    price = Column(Float, nullable=False, default=0)
    quantity = Column(Integer, nullable=False, default=0)
    description = Column(Text, nullable=True)
    images = Column(JSON, nullable=False, default=list)
    business_id = Column(String, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)


class Lead(Base):
    __tablename__ = "leads"

    id = Column(String(32), primary_key=True, default=new_id)
    name = Column(String, nullable=True)
    email = Column(String, nullable=False)
    phone = Column(String, nullable=False)
    message = Column(Text, nullable=True)
    # Not required to reference an existing Business
    business_id = Column(String, nullable=True, index=True)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    submitted_by = Column(String(32), nullable=True, index=True)
