"""Authentication module exports."""

from promptlab.auth.context import AuthContext, CurrentAuth, UserId
from promptlab.auth.manager import AuthManager, AuthUser, NoAuthProvider


__all__ = [
    "AuthContext",
    "AuthManager",
    "AuthUser",
    "CurrentAuth",
    "NoAuthProvider",
    "UserId",
]
