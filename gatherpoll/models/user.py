"""User ORM model — authenticated identities known to the identity provider."""
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime

from gatherpoll.database import Base


class User(Base):
    __tablename__ = "users"

    user_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    display_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
