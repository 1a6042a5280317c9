"""
Security utilities: JWT tokens and Fernet encryption.

This module centralizes all cryptographic operations so they're easy to
audit and update. Two concerns are handled here:

1. JWT TOKENS (JSON Web Tokens)
   - Session tokens: issued after a magic link is followed; carry the
     user ID in "sub" and expire after ACCESS_TOKEN_EXPIRE_MINUTES
   - Magic-link tokens: emailed to the user; carry "sub", a one-time
     "nonce", and purpose="magic_link", and expire after
     MAGIC_LINK_EXPIRE_MINUTES
   - Both are signed with SECRET_KEY using HS256 (HMAC-SHA256). The
     "purpose" claim keeps one kind from being accepted as the other.

2. FERNET ENCRYPTION (AES-128-CBC + HMAC-SHA256)
   - Used for encrypting Teller access tokens at rest
   - Fernet provides authenticated encryption: data is both encrypted and
     integrity-checked, preventing tampering
   - The encryption key is loaded from environment variables, never hardcoded
"""

import secrets
from datetime import datetime, timedelta, timezone

from cryptography.fernet import Fernet
from jose import jwt

from beep.config import settings


SESSION_PURPOSE = "session"
MAGIC_LINK_PURPOSE = "magic_link"


# ---------------------------------------------------------------------------
# 1. JWT Tokens
# ---------------------------------------------------------------------------


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """
    Create a signed session JWT.

    Args:
        data: Dictionary of claims to encode (must include "sub").
        expires_delta: Optional custom expiration time. Defaults to
                       ACCESS_TOKEN_EXPIRE_MINUTES from settings.

    Returns:
        An encoded JWT string.
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )

    to_encode.update({"exp": expire, "purpose": SESSION_PURPOSE})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_magic_link_token(user_id: str, nonce: str) -> str:
    """Create the short-lived token embedded in a sign-in email."""
    expire = datetime.now(timezone.utc) + timedelta(
        minutes=settings.MAGIC_LINK_EXPIRE_MINUTES
    )
    payload = {
        "sub": user_id,
        "nonce": nonce,
        "purpose": MAGIC_LINK_PURPOSE,
        "exp": expire,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> dict:
    """
    Decode and verify a JWT.

    Raises:
        JWTError: If the token is expired, tampered with, or invalid.

    Returns:
        The decoded payload dictionary (contains "sub", "exp", "purpose", ...).
    """
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])


def generate_nonce() -> str:
    return secrets.token_urlsafe(32)


# ---------------------------------------------------------------------------
# 2. Fernet Encryption (for Teller access tokens at rest)
# ---------------------------------------------------------------------------

# Fernet keys are URL-safe base64-encoded 32-byte keys.
_fernet = Fernet(settings.TOKEN_ENCRYPTION_KEY.encode())


def encrypt_value(plaintext: str) -> bytes:
    """
    Encrypt a string value using Fernet.

    Args:
        plaintext: The sensitive value to encrypt (e.g., a Teller access token).

    Returns:
        Encrypted bytes suitable for storing in a LargeBinary column.
    """
    return _fernet.encrypt(plaintext.encode())


def decrypt_value(ciphertext: bytes) -> str:
    """
    Decrypt a Fernet-encrypted value back to plaintext.

    Raises:
        cryptography.fernet.InvalidToken: If the data is corrupted or
            the encryption key doesn't match.
    """
    return _fernet.decrypt(ciphertext).decode()
