"""
Private-key transport encryption and access tokens.

Clients send their signing key Fernet-encrypted under HTLC_PK_ENCRYPTION_KEY.
Authenticated routes take an HS256 JWT whose "email" claim names the caller.
"""

import logging
import time
from typing import Any, Dict, Optional

import jwt
from cryptography.fernet import Fernet, InvalidToken

from .config import get_settings
from .errors import KeyDecryptionError

log = logging.getLogger(__name__)


class AuthError(Exception):
    """Missing, expired or invalid access token."""


def generate_key() -> str:
    """New Fernet key (base64)."""
    return Fernet.generate_key().decode("utf-8")


def _fernet(key: Optional[str]) -> Fernet:
    key = key or get_settings().pk_encryption_key
    if not key:
        raise KeyDecryptionError("Private key encryption is not configured")
    try:
        return Fernet(key.encode("utf-8") if isinstance(key, str) else key)
    except (ValueError, TypeError):
        raise KeyDecryptionError("Private key encryption key is malformed")


def encrypt_private_key(private_key: str, key: Optional[str] = None) -> str:
    return _fernet(key).encrypt(private_key.encode("utf-8")).decode("utf-8")


def decrypt_private_key(token: str, key: Optional[str] = None) -> str:
    """Decrypt a client-supplied private key field."""
    if not token:
        raise KeyDecryptionError("Encrypted private key is empty")
    try:
        return _fernet(key).decrypt(token.encode("utf-8")).decode("utf-8")
    except InvalidToken:
        log.warning("Rejected private key that failed to decrypt")
        raise KeyDecryptionError("Private key could not be decrypted")


def issue_token(email: str, expires_in: int = 3600, secret: Optional[str] = None) -> str:
    """Sign an access token for email."""
    settings = get_settings()
    now = int(time.time())
    claims = {"email": email, "iat": now, "exp": now + expires_in}
    return jwt.encode(claims, secret or settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str, secret: Optional[str] = None) -> Dict[str, Any]:
    """
    Validate an access token.

    Raises:
        AuthError: token missing, expired, badly signed or without email
    """
    settings = get_settings()
    secret = secret or settings.jwt_secret_key
    if not secret:
        raise AuthError("Authentication is not configured")
    try:
        claims = jwt.decode(
            token,
            secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["exp", "email"]},
            leeway=30,
        )
    except jwt.ExpiredSignatureError:
        raise AuthError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise AuthError(f"Invalid token: {e}")
    return claims
