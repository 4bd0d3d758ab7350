"""FastAPI dependencies for identity resolution."""
import logging
from typing import Optional

from fastapi import Depends, Header, Request, Response
from sqlalchemy.orm import Session

from gatherpoll.config import settings
from gatherpoll.database import get_db
from gatherpoll.errors import AuthenticationRequiredError
from gatherpoll.models.user import User
from gatherpoll.services.identity_service import (
    CookieIdentityStore,
    LocalIdentityProvider,
    SessionIdentityProvider,
)

logger = logging.getLogger(__name__)


def get_current_user(
    x_user_id: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> User:
    """Signed-in user named by the X-User-Id header."""
    if not x_user_id:
        raise AuthenticationRequiredError()
    user = db.query(User).filter(User.user_id == x_user_id).first()
    if not user:
        logger.warning("Unknown user id in X-User-Id header: %s", x_user_id)
        raise AuthenticationRequiredError(detail="Unknown user")
    return user


def get_session_identity(user: User = Depends(get_current_user)) -> SessionIdentityProvider:
    return SessionIdentityProvider(user)


def get_local_identity(request: Request, response: Response) -> LocalIdentityProvider:
    store = CookieIdentityStore(request, response, max_age=settings.VOTER_COOKIE_MAX_AGE)
    return LocalIdentityProvider(store)
