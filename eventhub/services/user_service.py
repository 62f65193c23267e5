"""Registration and login; the only writers of the users table."""
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from eventhub.errors import ValidationError
from eventhub.models.user import User
from eventhub.schemas.user import UserLogin, UserRegister
from eventhub.security import hash_password, verify_password

logger = logging.getLogger(__name__)


def register_user(db: Session, payload: UserRegister) -> User:
    existing = db.query(User).filter(User.email == payload.email).first()
    if existing:
        raise ValidationError("Email already registered")

    user = User(
        name=payload.name.strip(),
        email=payload.email,
        password_hash=hash_password(payload.password),
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        # concurrent registration with the same email
        db.rollback()
        raise ValidationError("Email already registered") from exc
    db.refresh(user)
    logger.info("Registered user %s (%s)", user.user_id, user.email)
    return user


def authenticate_user(db: Session, payload: UserLogin) -> User:
    user = db.query(User).filter(User.email == payload.email).first()
    if not user:
        raise ValidationError("User not found")
    if not verify_password(payload.password, user.password_hash):
        logger.warning("Failed login for %s", payload.email)
        raise ValidationError("Invalid password")
    return user
