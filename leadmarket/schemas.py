from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from pydantic.config import ConfigDict


class CamelModel(BaseModel):
    # camelCase on the wire, snake_case accepted too
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# -------------------- Requests --------------------

class RegisterRequest(CamelModel):
    name: Optional[str] = Field(default=None, max_length=200)
    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=1)
    role: Optional[str] = None
    # Business-only; used for the Business record, never stored on the user
    category: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None


class LoginRequest(CamelModel):
    email: str
    password: str


class ProfileUpdate(CamelModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    bio: Optional[str] = None


class SeedAdminRequest(CamelModel):
    key: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LeadCreate(CamelModel):
    name: Optional[str] = None
    email: Optional[str] = None
    # numbers are accepted and stored as text
    phone: Any = None
    message: Optional[str] = None
    business_id: Optional[str] = None


class ProductPayload(CamelModel):
    # price/quantity stay loose so validation can report every bad field at once
    name: Optional[str] = None
    sku: Optional[str] = None
    price: Any = None
    quantity: Any = None
    description: Optional[str] = None
    images: Optional[List[str]] = None
    business_id: Optional[str] = None


class BusinessUpdate(CamelModel):
    name: Optional[str] = None
    category: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None


# -------------------- Responses --------------------

class UserRead(CamelModel):
    id: str
    name: Optional[str] = None
    email: str
    role: str
    business_id: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    bio: Optional[str] = None


class UnlinkedUserRead(CamelModel):
    id: str
    name: Optional[str] = None
    email: str
    created_at: Optional[datetime] = None


class LoginResponse(CamelModel):
    token: str
    user: UserRead


class BusinessPublic(CamelModel):
    id: str
    name: str
    category: str = ""
    location: str = ""
    description: str = ""


class BusinessRead(BusinessPublic):
    owner: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProductPublic(CamelModel):
    id: str
    name: str
    sku: Optional[str] = None
    price: float
    quantity: int
    description: Optional[str] = None
    images: List[str] = []


class ProductRead(ProductPublic):
    business_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class LeadRead(CamelModel):
    id: str
    name: Optional[str] = None
    email: str
    phone: str
    message: Optional[str] = None
    business_id: Optional[str] = None
    timestamp: datetime
    submitted_by: Optional[str] = None
    business_name: Optional[str] = None
