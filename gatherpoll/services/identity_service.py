"""Identity resolver — produces the voter identity every vote attaches to.

Two providers implement the same ``resolve(event_id)`` contract:

- ``SessionIdentityProvider`` wraps a signed-in user; it always resolves.
- ``LocalIdentityProvider`` reads an anonymous profile persisted on the
  voter's device (a cookie in the HTTP layer) under ``voter_<event_id>``.
  When nothing is stored it answers ``NeedsRegistration`` and the caller
  collects a name and email and calls ``register``.

The vote ledger only ever sees a ``VoterIdentity``.
"""
import base64
import binascii
import json
import logging
import re
import uuid
from dataclasses import dataclass, asdict
from typing import Optional, Protocol, Union

from fastapi import Request, Response

from gatherpoll.errors import ValidationFailedError
from gatherpoll.models.user import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VoterIdentity:
    id: str
    name: str
    email: str
    anonymous: bool = False


@dataclass(frozen=True)
class NeedsRegistration:
    event_id: str


Resolution = Union[VoterIdentity, NeedsRegistration]


class IdentityProvider(Protocol):
    def resolve(self, event_id: str) -> Resolution: ...


class IdentityStore(Protocol):
    """Device-local key/value storage for anonymous profiles."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...


def storage_key(event_id: str) -> str:
    return f"voter_{event_id}"


class MemoryIdentityStore:
    """Dict-backed store for non-HTTP callers and tests."""

    def __init__(self, data: Optional[dict[str, str]] = None) -> None:
        self._data = data if data is not None else {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


_COOKIE_SAFE_NAME = re.compile(r"[A-Za-z0-9_-]+")


def cookie_name(key: str) -> str:
    """Cookie name for a storage key.

    Event ids are caller-chosen and may hold characters a cookie name cannot
    (spaces, ``@``, ``,``, parentheses). Such keys are base64url-encoded under
    a ``voterk_`` prefix, which no plain ``voter_<id>`` key can produce.
    """
    if _COOKIE_SAFE_NAME.fullmatch(key):
        return key
    encoded = base64.urlsafe_b64encode(key.encode()).decode().rstrip("=")
    return f"voterk_{encoded}"


class CookieIdentityStore:
    """Reads from the request's cookies and writes to the outgoing response.

    Values are base64url-encoded so serialized JSON survives cookie quoting.
    """

    def __init__(self, request: Request, response: Response, max_age: int) -> None:
        self._request = request
        self._response = response
        self._max_age = max_age

    def get(self, key: str) -> Optional[str]:
        raw = self._request.cookies.get(cookie_name(key))
        if raw is None:
            return None
        try:
            return base64.urlsafe_b64decode(raw.encode()).decode()
        except (binascii.Error, UnicodeDecodeError):
            logger.warning("Ignoring undecodable voter cookie %s", key)
            return None

    def set(self, key: str, value: str) -> None:
        encoded = base64.urlsafe_b64encode(value.encode()).decode()
        self._response.set_cookie(
            cookie_name(key),
            encoded,
            max_age=self._max_age,
            httponly=True,
            samesite="lax",
        )


class SessionIdentityProvider:
    """Identity of a signed-in user; no registration step."""

    def __init__(self, user: User) -> None:
        self._user = user

    def resolve(self, event_id: str) -> Resolution:
        return VoterIdentity(
            id=self._user.user_id,
            name=self._user.display_name,
            email=self._user.email,
        )


class LocalIdentityProvider:
    """Unverified anonymous identity, one per event per device."""

    def __init__(self, store: IdentityStore) -> None:
        self._store = store

    def resolve(self, event_id: str) -> Resolution:
        raw = self._store.get(storage_key(event_id))
        if raw is None:
            return NeedsRegistration(event_id=event_id)
        try:
            data = json.loads(raw)
            return VoterIdentity(id=data["id"], name=data["name"], email=data["email"], anonymous=True)
        except (ValueError, KeyError, TypeError):
            logger.warning("Stored voter profile for event %s is malformed", event_id)
            return NeedsRegistration(event_id=event_id)

    def register(self, event_id: str, name: str, email: str) -> VoterIdentity:
        """Mint and persist a voter for ``event_id``.

        An identity already stored for the event is returned unchanged so a
        voter keeps the same id for the life of the poll.
        """
        existing = self.resolve(event_id)
        if isinstance(existing, VoterIdentity):
            return existing

        name = (name or "").strip()
        email = (email or "").strip()
        if not name or not email:
            raise ValidationFailedError(detail="Name and email are required to vote")

        identity = VoterIdentity(id=f"voter_{uuid.uuid4().hex}", name=name, email=email, anonymous=True)
        payload = {k: v for k, v in asdict(identity).items() if k != "anonymous"}
        self._store.set(storage_key(event_id), json.dumps(payload))
        logger.info("Registered anonymous voter %s for event %s", identity.id, event_id)
        return identity


def resolve_identity(provider: IdentityProvider, event_id: str) -> Resolution:
    return provider.resolve(event_id)
