"""FastAPI application entry point."""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from gatherpoll.config import settings
from gatherpoll.database import Base, engine, public_engine
from gatherpoll.errors import register_exception_handlers

# Import routers
from gatherpoll.routers import users, events, public

# Import all models so Base.metadata knows about them
from gatherpoll.models.user import User                      # noqa: F401
from gatherpoll.models.event import Event, TimeSlot          # noqa: F401
from gatherpoll.models.vote import Vote                      # noqa: F401
from gatherpoll.models.event_mutation import EventMutation   # noqa: F401

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="GatherPoll",
    description="Availability polls: propose time slots, collect votes, confirm the best one",
    version="0.1.0",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Register routers
app.include_router(users.router, prefix="/api/users", tags=["Users"])
app.include_router(events.router, prefix="/api/events", tags=["Events"])
app.include_router(public.router, prefix="/api/public/events", tags=["Public"])


@app.on_event("startup")
def on_startup():
    """Create database tables on startup (for SQLite dev mode)."""
    for bind in {engine, public_engine}:
        if bind.url.get_backend_name() == "sqlite":
            Base.metadata.create_all(bind=bind)
            logger.info("Ensured SQLite schema at %s", bind.url)


@app.get("/api/health")
def health_check():
    return {"status": "ok"}
