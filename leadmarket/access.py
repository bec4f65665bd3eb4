"""Role-based access control consulted by every protected route."""
from typing import Any, Optional

import jwt
from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from . import models
from .auth import decode_access_token
from .db import get_db, normalize_id
from .errors import AuthError, Forbidden


def user_from_token(db: Session, token: str) -> models.User:
    try:
        payload = decode_access_token(token)
    except jwt.ExpiredSignatureError:
        raise AuthError("Token expired")
    except jwt.PyJWTError:
        raise AuthError("Token invalid")
    user_id = normalize_id(payload.get("sub"))
    user = db.get(models.User, user_id) if user_id else None
    if not user:
        raise AuthError("Token invalid")
    return user


async def get_current_user(authorization: Optional[str] = Header(default=None),
                           db: Session = Depends(get_db)) -> models.User:
    # role and business_id come from the stored user, not from token claims
    token = None
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization.split(None, 1)[1].strip()
    if not token:
        raise HTTPException(status_code=401, detail="Token missing")
    try:
        return user_from_token(db, token)
    except AuthError as e:
        raise HTTPException(status_code=401, detail=str(e))


def require_role(*roles: str):
    async def role_dep(current_user: models.User = Depends(get_current_user)) -> models.User:
        if current_user.role not in roles:
            raise HTTPException(status_code=403, detail="Forbidden")
        return current_user
    return role_dep


def can_manage(caller: models.User, business_id: Any) -> bool:
    """Admins manage everything; business users only their own business's records."""
    if caller.role == models.ADMIN:
        return True
    if caller.role != models.BUSINESS:
        return False
    own = normalize_id(caller.business_id)
    return own is not None and own == normalize_id(business_id)


def ensure_can_manage(caller: models.User, business_id: Any) -> None:
    if not can_manage(caller, business_id):
        raise Forbidden("Forbidden")
