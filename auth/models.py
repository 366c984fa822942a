"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, almost no logic). Stores, the
strategy, and routes do the work.

Layer rule: no imports from api/ or web/.
"""

from __future__ import annotations

from dataclasses import dataclass

INVALID_CREDENTIALS = "invalid credentials"
INTERNAL_ERROR = "internal error"


@dataclass
class UserRecord:
    """A persisted local account.

    name is the login identifier: unique across records and never changed
    after creation. password_digest and salt are raw bytes from the
    credential hasher; the plaintext password is never stored.
    """

    name: str
    password_digest: bytes
    salt: bytes
    id: int | None = None
    email: str | None = None
    age: int | None = None
    created_at: str | None = None

    def __repr__(self) -> str:
        # Keep credential bytes out of logs and tracebacks.
        return f"UserRecord(id={self.id!r}, name={self.name!r})"


@dataclass(frozen=True)
class SessionPrincipal:
    """Minimal identity kept in the session after a successful login."""

    id: int
    name: str

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}

    @classmethod
    def from_dict(cls, data: dict) -> SessionPrincipal:
        return cls(id=int(data["id"]), name=str(data["name"]))


@dataclass(frozen=True)
class AuthFailure:
    """Why a login attempt was refused.

    reason is INVALID_CREDENTIALS for both "no such user" and "wrong
    password", and INTERNAL_ERROR when the lookup itself failed.
    """

    reason: str

    @property
    def is_internal(self) -> bool:
        return self.reason == INTERNAL_ERROR


@dataclass(frozen=True)
class AuthResult:
    """Tagged outcome of LocalStrategy.authenticate(): principal XOR failure."""

    principal: SessionPrincipal | None = None
    failure: AuthFailure | None = None

    @property
    def ok(self) -> bool:
        return self.principal is not None


@dataclass(frozen=True)
class FieldError:
    """One field-level validation message shown next to a form input."""

    field: str
    message: str

