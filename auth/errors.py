"""
auth/errors.py -- Exception taxonomy for signup and login.

  InvalidInputError -- hasher called with empty or wrongly-typed input.
  ValidationError   -- signup form failed field rules; carries per-field
                       messages and the submitted values for re-display.
  ConflictError     -- signup name already taken.
  InternalError     -- persistence or infrastructure fault. The API layer
                       logs it and answers with a generic 500.

A rejected login is not an exception: LocalStrategy.authenticate() returns an
AuthResult carrying an AuthFailure (see auth/models.py).
"""

from __future__ import annotations

from auth.models import FieldError


class AuthError(Exception):
    """Base class for all errors raised by the auth package."""


class InvalidInputError(AuthError, ValueError):
    pass


class ValidationError(AuthError):
    def __init__(self, errors: list[FieldError], values: dict | None = None) -> None:
        self.errors = errors
        self.values = values or {}
        super().__init__("; ".join(f"{e.field}: {e.message}" for e in errors))

    @property
    def fields(self) -> list[str]:
        return [e.field for e in self.errors]


class ConflictError(AuthError):
    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.message = message
        super().__init__(message)


class InternalError(AuthError):
    pass
