"""Database engines and session factories.

Two channels share one schema: the authenticated channel used by organizer
routes and the public channel used by anonymous voters. Each is bound to its
own engine so deployments can point them at different credentials.
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from gatherpoll.config import settings

Base = declarative_base()


def _make_engine(url: str):
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(url, pool_pre_ping=True)


engine = _make_engine(settings.DATABASE_URL)
public_engine = (
    engine
    if settings.public_database_url == settings.DATABASE_URL
    else _make_engine(settings.public_database_url)
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
PublicSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=public_engine)


def get_db():
    """Session on the authenticated channel."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def get_public_db():
    """Session on the public channel."""
    session = PublicSessionLocal()
    try:
        yield session
    finally:
        session.close()
