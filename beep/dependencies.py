"""
FastAPI dependencies for authentication and external clients.

Dependencies are reusable functions that FastAPI injects into route
handlers:

  get_current_user   (JWT -> User)     every member endpoint
  verify_cron_secret (?secret= -> ok)  scheduled-job endpoints
  get_teller_client  -> TellerClient   bank data
  get_email_client   -> EmailClient    outgoing email

The two client dependencies construct a fresh client per request and
close it afterwards. Nothing is created at import time, so tests swap in
fakes with app.dependency_overrides.
"""

import hmac
import uuid

from fastapi import Depends, HTTPException, Query, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from beep.config import settings
from beep.database import get_db
from beep.exceptions import InvalidCronSecretError
from beep.models.user import User
from beep.security import SESSION_PURPOSE, decode_token
from beep.services.email_client import EmailClient
from beep.services.teller_client import TellerClient


# Reads the "Authorization: Bearer <token>" header. The tokenUrl is only
# used by Swagger UI; sessions are obtained through /auth/callback.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/callback")


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Extract and validate the session JWT, then return the corresponding User.

    Magic-link tokens are rejected here even though they are validly
    signed: their "purpose" claim is not "session".

    Raises:
        HTTPException 401: If the token is invalid or the user doesn't exist.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = decode_token(token)
        user_id_str: str | None = payload.get("sub")
        if user_id_str is None or payload.get("purpose") != SESSION_PURPOSE:
            raise credentials_exception
        user_id = uuid.UUID(user_id_str)
    except (JWTError, ValueError):
        raise credentials_exception

    user = await db.get(User, user_id)

    if user is None or not user.is_active:
        raise credentials_exception

    return user


async def verify_cron_secret(
    secret: str = Query(default="", description="Shared scheduler secret"),
) -> None:
    """
    Reject scheduled-job calls that don't carry CRON_SECRET.

    An unset CRON_SECRET rejects everything rather than matching an empty
    query parameter.
    """
    expected = settings.CRON_SECRET
    if not expected or not hmac.compare_digest(secret.encode(), expected.encode()):
        raise InvalidCronSecretError()


async def get_teller_client():
    async with TellerClient.from_settings(settings) as client:
        yield client


async def get_email_client():
    async with EmailClient.from_settings(settings) as client:
        yield client
