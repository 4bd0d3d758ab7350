"""Poll engine errors and their HTTP mapping.

Services raise ``PollError`` subclasses; ``register_exception_handlers`` turns
them (and raw SQLAlchemy failures) into ``ErrorResponse`` bodies.

Usage:
    from gatherpoll.errors import NotFoundError

    if slot is None:
        raise NotFoundError(detail="Slot not found", slot_id=slot_id)
"""
import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class ErrorResponse(BaseModel):
    """Standard error response model."""

    error: str
    detail: str | None = None
    context: dict[str, Any] | None = None


class PollError(Exception):
    """Base class for poll engine errors."""

    status_code: int = 500
    error: str = "internal_error"
    detail: str = "An unexpected error occurred"

    def __init__(self, detail: str | None = None, **context: Any) -> None:
        self.detail = detail or self.__class__.detail
        self.context = context if context else None
        super().__init__(self.detail)

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(error=self.error, detail=self.detail, context=self.context)


class NotFoundError(PollError):
    status_code = 404
    error = "not_found"
    detail = "Resource not found"


class ValidationFailedError(PollError):
    status_code = 422
    error = "validation_failed"
    detail = "Invalid request"


class AuthenticationRequiredError(PollError):
    status_code = 401
    error = "authentication_required"
    detail = "Sign-in required"


class RegistrationRequiredError(PollError):
    """Anonymous voter has not registered a name and email for this event."""

    status_code = 401
    error = "registration_required"
    detail = "Voter registration required"


class UnauthorizedError(PollError):
    """Caller is known but not allowed to perform the action."""

    status_code = 403
    error = "unauthorized"
    detail = "Only the organizer may modify this event"


class PollClosedError(PollError):
    status_code = 409
    error = "poll_closed"
    detail = "This poll is closed"


class ConflictError(PollError):
    status_code = 409
    error = "conflict"
    detail = "Resource already exists"


class PersistenceError(PollError):
    status_code = 503
    error = "persistence_failure"
    detail = "Database operation failed"


class SlotCreationError(PollError):
    """Event row was written but its slots were not.

    ``context["event_id"]`` names the orphaned event so the caller can retry
    the slot batch alone.
    """

    status_code = 502
    error = "slot_creation_failed"
    detail = "Event created but its time slots could not be saved"


async def poll_error_handler(request: Request, exc: PollError) -> JSONResponse:
    logger.warning(
        "Poll error: %s (status=%d, path=%s)",
        exc.detail,
        exc.status_code,
        request.url.path,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response().model_dump(exclude_none=True),
    )


async def persistence_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Persistence failure on %s", request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=PersistenceError.status_code,
        content=PersistenceError().to_response().model_dump(exclude_none=True),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PollError, poll_error_handler)
    app.add_exception_handler(SQLAlchemyError, persistence_error_handler)
