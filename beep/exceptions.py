"""
Custom exception classes and FastAPI exception handlers.

Services raise domain-specific errors (like ProviderError) without
importing HTTP concepts. The handlers registered here translate them into
consistent JSON responses: {"detail": "...", "error_type": "..."}.

Exception hierarchy:
    BeepAPIError (base)
    ├── AccountNotFoundError      — linked account doesn't exist
    ├── UnauthorizedAccessError   — user trying to touch another user's account
    ├── DuplicateEnrollmentError  — enrollment id already registered
    ├── InvalidMagicLinkError     — bad, expired, or already-used login link
    ├── InvalidCronSecretError    — scheduler called without the shared secret
    ├── ProviderError             — Teller request failed
    └── EmailDeliveryError        — email provider rejected a send
"""

import uuid

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class BeepAPIError(Exception):
    """Base exception for all beep.money domain errors."""

    status_code = 400
    error_type = "error"

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(self.detail)


# ---------------------------------------------------------------------------
# Domain exceptions
# ---------------------------------------------------------------------------

class AccountNotFoundError(BeepAPIError):
    """Raised when a requested linked account does not exist."""

    status_code = 404
    error_type = "account_not_found"

    def __init__(self, account_id: uuid.UUID):
        self.account_id = account_id
        super().__init__(f"Account {account_id} not found")


class UnauthorizedAccessError(BeepAPIError):
    """Raised when a user attempts to access a resource they don't own."""

    status_code = 403
    error_type = "unauthorized_access"

    def __init__(self, detail: str = "You do not have access to this resource"):
        super().__init__(detail)


class DuplicateEnrollmentError(BeepAPIError):
    """Raised when an enrollment id has already been registered."""

    status_code = 409
    error_type = "duplicate_enrollment"

    def __init__(self, enrollment_id: str):
        self.enrollment_id = enrollment_id
        super().__init__(f"Enrollment {enrollment_id} is already connected")


class InvalidMagicLinkError(BeepAPIError):
    """Raised when a magic-link token is malformed, expired, or already used."""

    status_code = 401
    error_type = "invalid_magic_link"

    def __init__(self):
        super().__init__("This sign-in link is invalid or has expired")


class InvalidCronSecretError(BeepAPIError):
    """Raised when a scheduled-job endpoint is called without the right secret."""

    status_code = 401
    error_type = "unauthorized"

    def __init__(self):
        super().__init__("Unauthorized")


class ProviderError(BeepAPIError):
    """
    Raised when the Teller API is unreachable or returns an error.

    Attributes:
        status: HTTP status returned by Teller, or None for transport errors.
    """

    status_code = 502
    error_type = "provider_error"

    def __init__(self, detail: str, status: int | None = None):
        self.status = status
        super().__init__(detail)


class EmailDeliveryError(BeepAPIError):
    """Raised when the email provider refuses or fails to send a message."""

    status_code = 502
    error_type = "email_delivery_failed"


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def register_exception_handlers(app: FastAPI) -> None:
    """
    Register the domain exception handler with the FastAPI application.

    Every BeepAPIError subclass carries its own status code and error type,
    so a single handler covers the whole hierarchy.

    This is called once during app startup in main.py.
    """

    @app.exception_handler(BeepAPIError)
    async def beep_api_error_handler(
        request: Request, exc: BeepAPIError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail, "error_type": exc.error_type},
        )
