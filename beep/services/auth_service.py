"""
Authentication service — magic-link sign-in.

Request flow:
  1. Look up the user by email, creating them on first sign-in
  2. Store a fresh random nonce on the user (replacing any previous one)
  3. Email a link containing a short-lived JWT with the user id and nonce

Callback flow:
  1. Verify the JWT signature, expiry, and purpose
  2. Check the nonce against the one stored on the user
  3. Clear the nonce (the link is single-use) and issue a session JWT

Security notes:
  - The request endpoint responds the same way whether or not the email
    was already registered, so it cannot be used to enumerate users
  - Every failure mode of the callback raises the same
    InvalidMagicLinkError
  - Tokens are never logged
"""

import hmac
import logging
import uuid
from urllib.parse import urlencode

from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from beep.config import settings
from beep.exceptions import InvalidMagicLinkError
from beep.models.user import User
from beep.security import (
    MAGIC_LINK_PURPOSE,
    create_access_token,
    create_magic_link_token,
    decode_token,
    generate_nonce,
)
from beep.services.email_client import render_magic_link

logger = logging.getLogger(__name__)


def build_magic_link(token: str) -> str:
    return f"{settings.APP_URL.rstrip('/')}/auth/callback?{urlencode({'token': token})}"


async def request_magic_link(
    db: AsyncSession,
    email_client,
    email: str,
    first_name: str | None = None,
) -> User:
    """
    Create the user if needed and email them a sign-in link.

    Args:
        db: Database session.
        email_client: Client used to deliver the link.
        email: Address to sign in (normalized to lowercase).
        first_name: Stored only when the user is created, or has no name yet.

    Returns:
        The (possibly new) User.

    Raises:
        EmailDeliveryError: If the email could not be sent.
    """
    email = email.lower()
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()

    if user is None:
        user = User(email=email, first_name=first_name)
        db.add(user)
        logger.info("Creating user for new sign-in")
    elif first_name and not user.first_name:
        user.first_name = first_name

    nonce = generate_nonce()
    user.login_nonce = nonce
    # Flush to get user.id assigned for the token
    await db.flush()

    token = create_magic_link_token(str(user.id), nonce)
    await email_client.send(
        user.email, "Your Beep Money sign-in link", render_magic_link(build_magic_link(token))
    )
    return user


async def complete_magic_link(db: AsyncSession, token: str) -> tuple[User, str]:
    """
    Exchange a magic-link token for a session token.

    Returns:
        Tuple of (User instance, session JWT).

    Raises:
        InvalidMagicLinkError: If the token is invalid, expired, for another
            purpose, already used, or for an inactive user.
    """
    try:
        payload = decode_token(token)
        user_id = uuid.UUID(payload.get("sub") or "")
    except (JWTError, ValueError):
        raise InvalidMagicLinkError()

    nonce = payload.get("nonce")
    if payload.get("purpose") != MAGIC_LINK_PURPOSE or not nonce:
        raise InvalidMagicLinkError()

    user = await db.get(User, user_id)
    if user is None or not user.is_active or not user.login_nonce:
        raise InvalidMagicLinkError()
    if not hmac.compare_digest(user.login_nonce, nonce):
        raise InvalidMagicLinkError()

    user.login_nonce = None
    await db.flush()

    return user, create_access_token(data={"sub": str(user.id)})
