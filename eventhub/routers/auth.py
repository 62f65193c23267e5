"""Registration and login routes; both answer with a bearer token."""
import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from eventhub.database import get_db
from eventhub.schemas.user import TokenOut, UserLogin, UserRegister, UserSummary
from eventhub.security import create_access_token
from eventhub.services import user_service

logger = logging.getLogger(__name__)
router = APIRouter()


def _token_response(user) -> TokenOut:
    return TokenOut(token=create_access_token(user.user_id), user=UserSummary.model_validate(user))


@router.post("/register", response_model=TokenOut, status_code=status.HTTP_201_CREATED)
def register(payload: UserRegister, db: Session = Depends(get_db)):
    """Create an account and sign the user in."""
    user = user_service.register_user(db, payload)
    return _token_response(user)


@router.post("/login", response_model=TokenOut)
def login(payload: UserLogin, db: Session = Depends(get_db)):
    user = user_service.authenticate_user(db, payload)
    logger.info("User %s logged in", user.user_id)
    return _token_response(user)
