import uuid
from datetime import timedelta
from typing import Optional

from jose import jwt
from passlib.context import CryptContext

from animal_sos.core.config import settings
from animal_sos.core.time_utils import get_utc_now

ALGORITHM = settings.ALGORITHM

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def create_access_token(
    subject: uuid.UUID | str, role: str, expires_delta: Optional[timedelta] = None
) -> str:
    """
    Identity tokens carry the user id in `sub` and the role in `role`.
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    now = get_utc_now()
    payload = {
        "sub": str(subject),
        "role": role,
        "iat": now,
        "exp": now + expires_delta,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)
