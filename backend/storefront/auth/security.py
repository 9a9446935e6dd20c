"""Password hashing and JWT access tokens."""
import base64
import logging
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from cryptography.exceptions import InvalidKey
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from storefront.config.settings import settings

logger = logging.getLogger(__name__)

HASH_SCHEME = "pbkdf2_sha256"
SALT_BYTES = 16
KEY_LENGTH = 32


def _kdf(salt: bytes, iterations: int) -> PBKDF2HMAC:
    return PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=iterations,
    )


def hash_password(password: str, iterations: Optional[int] = None) -> str:
    """
    Hash a password with PBKDF2-HMAC-SHA256 and a random salt.

    Returns:
        Encoded hash ``pbkdf2_sha256$<iterations>$<salt_b64>$<hash_b64>``
    """
    iterations = iterations or settings.password_hash_iterations
    salt = os.urandom(SALT_BYTES)
    derived = _kdf(salt, iterations).derive(password.encode("utf-8"))
    return "$".join([
        HASH_SCHEME,
        str(iterations),
        base64.b64encode(salt).decode("ascii"),
        base64.b64encode(derived).decode("ascii"),
    ])


def verify_password(password: str, encoded: str) -> bool:
    """Check ``password`` against an encoded hash in constant time."""
    try:
        scheme, iterations, salt_b64, hash_b64 = encoded.split("$")
    except (AttributeError, ValueError):
        return False
    if scheme != HASH_SCHEME:
        return False

    try:
        salt = base64.b64decode(salt_b64)
        expected = base64.b64decode(hash_b64)
        _kdf(salt, int(iterations)).verify(password.encode("utf-8"), expected)
    except (InvalidKey, ValueError):
        return False
    return True


def create_access_token(user_id: str, role: str, expires_hours: Optional[int] = None) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "role": role,
        "iat": now,
        "exp": now + timedelta(hours=expires_hours or settings.jwt_expires_hours),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[Dict[str, Any]]:
    """Return the token claims, or None when the token is invalid or expired."""
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        logger.debug("Rejected expired access token")
        return None
    except jwt.InvalidTokenError as e:
        logger.debug(f"Rejected invalid access token: {e}")
        return None
