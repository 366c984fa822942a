"""
auth/signup.py -- Signup form validation and account creation.

validate_signup() runs the field rules (pydantic) and converts any failure
into a ValidationError whose messages are written for the form, not for a
developer. register_user() is the single-transaction write: fresh salt,
scrypt digest, one INSERT.

Field rules:
  name      required, at most 255 characters (surrounding whitespace stripped)
  password  required, at most 255 characters (kept verbatim)
  email     optional; when given it must be an email address
  age       optional; when given it must be an integer between 0 and 150

Layer rule: no imports from api/ or web/.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from auth.errors import ValidationError
from auth.hasher import calc_hash, generate_salt
from auth.models import FieldError, UserRecord

if TYPE_CHECKING:
    from auth.store import UserStore

logger = logging.getLogger("userauth.auth")

_FIELD_MESSAGES: dict[str, str] = {
    "name": "NAME is required (at most 255 characters).",
    "password": "PASSWORD is required (at most 255 characters).",
    "email": "EMAIL must be an email address.",
    "age": "AGE must be a whole number from 0 to 150.",
}

# Field order for error display; matches the order of the form inputs.
_FIELD_ORDER = ("name", "password", "email", "age")


class SignupForm(BaseModel):
    """Validated signup input."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    age: Optional[int] = Field(default=None, ge=0, le=150)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value):
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("email", "age", mode="before")
    @classmethod
    def blank_is_missing(cls, value):
        """An empty form input means "not given", not "invalid"."""
        if value is None:
            return None
        if isinstance(value, str) and not value.strip():
            return None
        if isinstance(value, str):
            return value.strip()
        return value


def validate_signup(data: dict) -> SignupForm:
    """Validate submitted signup fields.

    Raises ValidationError listing one message per failing field. The
    submitted values (password excluded) are attached for re-display.
    """
    try:
        return SignupForm.model_validate(data)
    except PydanticValidationError as exc:
        failed = {str(err["loc"][0]) for err in exc.errors() if err.get("loc")}
        errors = [FieldError(field=f, message=_FIELD_MESSAGES[f]) for f in _FIELD_ORDER if f in failed]
        values = {k: "" if data.get(k) is None else str(data.get(k)) for k in ("name", "email", "age")}
        raise ValidationError(errors, values) from exc


def register_user(store: UserStore, form: SignupForm) -> int:
    """Create the account described by form and return its id.

    Raises ConflictError (from the store) if the name is already taken.
    """
    salt = generate_salt()
    record = UserRecord(
        name=form.name,
        password_digest=calc_hash(form.password, salt),
        salt=salt,
        email=str(form.email) if form.email is not None else None,
        age=form.age,
    )
    user_id = store.create_user(record)
    logger.info("Account created: id=%s", user_id)
    return user_id
