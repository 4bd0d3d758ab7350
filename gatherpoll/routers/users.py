"""User API routes — the identity provider's user records."""
import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from gatherpoll.database import get_db
from gatherpoll.dependencies import get_current_user
from gatherpoll.errors import ConflictError, NotFoundError, ValidationFailedError
from gatherpoll.models.user import User
from gatherpoll.schemas.user import UserCreate, UserOut

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(payload: UserCreate, db: Session = Depends(get_db)):
    """Register a user who can organize events and vote while signed in."""
    display_name = payload.display_name.strip()
    email = payload.email.strip().lower()
    if not display_name or not email:
        raise ValidationFailedError(detail="display_name and email are required")

    user = User(display_name=display_name, email=email)
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError(detail="A user with this email already exists")
    db.refresh(user)
    logger.info("Created user %s (%s)", user.user_id, user.display_name)
    return user


@router.get("/me", response_model=UserOut)
def get_me(user: User = Depends(get_current_user)):
    """The signed-in user."""
    return user


@router.get("/{user_id}", response_model=UserOut)
def get_user(user_id: str, db: Session = Depends(get_db)):
    """Fetch a single user by ID."""
    user = db.query(User).filter(User.user_id == user_id).first()
    if not user:
        raise NotFoundError(detail="User not found", user_id=user_id)
    return user
