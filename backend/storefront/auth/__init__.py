"""Password hashing, JWT tokens and role checks."""
from .security import create_access_token, decode_token, hash_password, verify_password
from .dependencies import get_current_user, get_optional_user, require_admin, require_roles, require_seller

__all__ = [
    "create_access_token",
    "decode_token",
    "hash_password",
    "verify_password",
    "get_current_user",
    "get_optional_user",
    "require_admin",
    "require_roles",
    "require_seller",
]
