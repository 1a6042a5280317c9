"""
Authentication router — magic-link sign-in.

These are the only public (unauthenticated) endpoints in the API besides
/health and the secret-protected /cron endpoints.

Endpoints:
  POST /auth/magic-link  — Email a single-use sign-in link
  GET  /auth/callback    — Exchange the link's token for a session token

Security audit notes:
  - Tokens appear only in the emailed link and in response bodies; they
    are never logged.
  - The magic-link response is identical for new and existing emails.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from beep.database import get_db
from beep.dependencies import get_email_client
from beep.schemas.auth import MagicLinkRequest, MagicLinkResponse, TokenResponse
from beep.services import auth_service

router = APIRouter()


@router.post(
    "/magic-link",
    response_model=MagicLinkResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Email a sign-in link",
)
async def request_magic_link(
    request: MagicLinkRequest,
    db: AsyncSession = Depends(get_db),
    email_client=Depends(get_email_client),
):
    """
    Send a sign-in link to the given email address.

    First-time emails create an account. Requesting a new link invalidates
    any earlier, unused one.

    - **email**: Must be a valid email format
    - **first_name**: Optional; used to greet the user in report emails
    """
    await auth_service.request_magic_link(
        db=db,
        email_client=email_client,
        email=request.email,
        first_name=request.first_name,
    )
    return MagicLinkResponse()


@router.get(
    "/callback",
    response_model=TokenResponse,
    summary="Complete sign-in from a magic link",
)
async def magic_link_callback(
    token: str = Query(..., min_length=1, description="Token from the emailed link"),
    db: AsyncSession = Depends(get_db),
):
    """
    Exchange a magic-link token for a session token.

    The returned token goes in the Authorization header of every
    subsequent request:

        Authorization: Bearer <token>

    Each link works once. Expired, reused, or tampered links return 401.
    """
    user, session_token = await auth_service.complete_magic_link(db=db, token=token)
    return TokenResponse(token=session_token)
