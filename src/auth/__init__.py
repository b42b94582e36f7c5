"""Authentication package: credential hashing and the session provider."""

from src.auth.credentials import hash_password, verify_password
from src.auth.session import NotAuthenticatedError, Session, SessionProvider

__all__ = [
    "NotAuthenticatedError",
    "Session",
    "SessionProvider",
    "hash_password",
    "verify_password",
]
