"""
Pydantic schemas for authentication endpoints (magic-link request and callback).

Pydantic validates incoming data automatically — if a required field is
missing or the wrong type, FastAPI returns a 422 error before our code
even runs.
"""

from pydantic import BaseModel, EmailStr, Field


class MagicLinkRequest(BaseModel):
    """Request body for POST /auth/magic-link."""
    email: EmailStr                                # Validates email format
    first_name: str | None = Field(default=None, min_length=1, max_length=100)


class MagicLinkResponse(BaseModel):
    """Same response whether or not the email was already registered."""
    message: str = "Check your email for a sign-in link"


class TokenResponse(BaseModel):
    """Response body for a successful callback — contains the session JWT."""
    token: str
    token_type: str = "bearer"
