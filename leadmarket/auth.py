import time
from typing import Optional

import jwt
from passlib.context import CryptContext

from . import config

# Use pbkdf2_sha256 as default to avoid bcrypt 72-byte limitation in some envs
pwd_context = CryptContext(schemes=["pbkdf2_sha256", "bcrypt"], deprecated="auto")

ALGORITHM = "HS256"
EXP_SECONDS = 60 * 60 * 24 * 7  # 7 days


def create_access_token(user_id: str, role: str, email: Optional[str] = None,
                        business_id: Optional[str] = None, expires_delta: Optional[int] = None) -> str:
    now = int(time.time())
    exp = now + (expires_delta or EXP_SECONDS)
    payload = {"sub": str(user_id), "role": role, "iat": now, "exp": exp}
    if email:
        payload["email"] = email
    if business_id:
        payload["businessId"] = business_id
    return jwt.encode(payload, config.get_settings().jwt_secret, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    # raises jwt.PyJWTError (ExpiredSignatureError, InvalidTokenError, ...)
    return jwt.decode(token, config.get_settings().jwt_secret, algorithms=[ALGORITHM])


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: Optional[str]) -> bool:
    if not hashed:
        return False
    return pwd_context.verify(plain, hashed)
