"""
API request and response models for the JSON endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.
"""

from typing import Optional

from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    name: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=255)


class SignupRequest(BaseModel):
    """Request body for POST /api/v1/auth/signup.

    Only the transport shape is checked here; field rules and their messages
    live in auth.signup.validate_signup().
    """

    name: Optional[str] = None
    password: Optional[str] = None
    email: Optional[str] = None
    age: Optional[str | int] = None


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class PrincipalResponse(BaseModel):
    """Identity of the logged-in (or newly created) user."""

    id: int
    name: str


class FieldErrorItem(BaseModel):
    field: str
    message: str


class ErrorDetail(BaseModel):
    code: str
    message: str
    detail: Optional[str] = None
    fields: Optional[list[FieldErrorItem]] = None


class ErrorResponse(BaseModel):
    """Uniform error envelope returned by every exception handler."""

    error: ErrorDetail


class HealthResponse(BaseModel):
    status: str = "healthy"
    version: str
    components: dict[str, str]
