"""Credential hashing, token issuing and the bearer-token identity dependency."""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from eventhub.config import settings
from eventhub.database import get_db
from eventhub.errors import AuthError
from eventhub.models.user import User

logger = logging.getLogger(__name__)

_pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

# auto_error=False so a missing header is reported with our own 401 body
bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return _pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    try:
        return _pwd_context.verify(password, hashed)
    except ValueError:
        # unrecognised hash format
        return False


def create_access_token(user_id: str, expires_in: Optional[timedelta] = None) -> str:
    """Sign a token whose ``userId`` claim identifies the user."""
    if expires_in is None:
        expires_in = timedelta(hours=settings.JWT_EXPIRE_HOURS)
    now = datetime.now(timezone.utc)
    payload = {"userId": user_id, "iat": now, "exp": now + expires_in}
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> str:
    """Return the user id carried by ``token`` or raise ``AuthError``."""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.PyJWTError as exc:
        logger.warning("Rejected bearer token: %s", exc)
        raise AuthError("Invalid token") from exc

    user_id = payload.get("userId")
    if not user_id:
        raise AuthError("Invalid token")
    return str(user_id)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Resolve ``Authorization: Bearer <token>`` to a stored user."""
    if credentials is None or not credentials.credentials:
        raise AuthError("Access denied", status_code=status.HTTP_401_UNAUTHORIZED)

    user_id = decode_access_token(credentials.credentials)
    user = db.query(User).filter(User.user_id == user_id).first()
    if not user:
        raise AuthError("User not found")
    return user
