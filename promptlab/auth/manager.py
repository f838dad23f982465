"""Simple authentication layer with no-auth and Supabase support."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

import jwt
from starlette.concurrency import run_in_threadpool

from promptlab.config.settings import Settings, get_settings

from .exceptions import InvalidTokenError, MissingTokenError, TokenExpiredError


if TYPE_CHECKING:
    from fastapi import Request


logger = logging.getLogger(__name__)

SUPABASE_AUDIENCE = "authenticated"


def get_bearer_token(request: "Request") -> str | None:
    """Extract the token from the Authorization header, falling back to the cookie."""
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None
    cookie_value = request.cookies.get("access_token")
    if cookie_value and cookie_value.startswith("Bearer "):
        return cookie_value[7:]
    return None


class AuthProviderType(Enum):
    """Supported authentication providers."""

    NONE = "none"  # Single-user dev mode
    SUPABASE = "supabase"  # Supabase Auth


@dataclass
class AuthUser:
    """User representation across auth providers."""

    id: UUID
    email: str | None = None


class AuthProvider(ABC):
    """Abstract base class for authentication providers."""

    @abstractmethod
    async def authenticate(self, request: "Request") -> AuthUser:
        """Return the caller or raise an ``AuthenticationError``."""


class NoAuthProvider(AuthProvider):
    """No authentication - single user mode.

    The ``X-Test-User-Id`` header only picks the caller when
    ``allow_test_header`` is set, which the manager does for ``ENVIRONMENT=test``.
    """

    DEFAULT_USER_ID = UUID("00000000-0000-0000-0000-000000000001")

    def __init__(self, *, allow_test_header: bool = False) -> None:
        self.allow_test_header = allow_test_header

    async def authenticate(self, request: "Request") -> AuthUser:
        """Return the default user, or the one named by the test header."""
        test_user_id = request.headers.get("X-Test-User-Id") if self.allow_test_header else None
        if test_user_id:
            try:
                return AuthUser(id=UUID(test_user_id), email="test@example.com")
            except ValueError:
                logger.warning("Ignoring malformed X-Test-User-Id header")
        return AuthUser(id=self.DEFAULT_USER_ID, email="demo@promptlab.local")


class SupabaseAuthProvider(AuthProvider):
    """Supabase authentication provider.

    Tokens are verified locally with ``SUPABASE_JWT_SECRET`` when it is set,
    otherwise through ``supabase.auth.get_user``.
    """

    def __init__(self, settings: Settings) -> None:
        """Initialize Supabase client."""
        from supabase import Client, create_client

        if not settings.SUPABASE_URL or not settings.SUPABASE_SECRET_KEY:
            msg = "Supabase configuration missing (URL and SECRET_KEY required for server-side auth)"
            raise ValueError(msg)

        self.jwt_secret = settings.SUPABASE_JWT_SECRET or None
        self.supabase: Client = create_client(settings.SUPABASE_URL, settings.SUPABASE_SECRET_KEY)

    async def authenticate(self, request: "Request") -> AuthUser:
        """Verify the bearer token and return its user."""
        token = get_bearer_token(request)
        if not token:
            raise MissingTokenError

        # Quick validation of JWT format before using it
        if len(token.split(".")) != 3:
            logger.warning("Invalid JWT format - not enough segments")
            raise InvalidTokenError

        if self.jwt_secret:
            return self._verify_locally(token)
        return await self._verify_remotely(token)

    def _verify_locally(self, token: str) -> AuthUser:
        try:
            payload = jwt.decode(token, self.jwt_secret, algorithms=["HS256"], audience=SUPABASE_AUDIENCE)
        except jwt.ExpiredSignatureError as e:
            raise TokenExpiredError from e
        except jwt.PyJWTError as e:
            logger.warning("Rejected access token: %s", e)
            raise InvalidTokenError from e

        try:
            user_id = UUID(str(payload["sub"]))
        except (KeyError, ValueError) as e:
            logger.warning("JWT payload does not contain a valid 'sub' claim")
            raise InvalidTokenError from e
        return AuthUser(id=user_id, email=payload.get("email"))

    async def _verify_remotely(self, token: str) -> AuthUser:
        try:
            # supabase-py's get_user is blocking
            user_response = await run_in_threadpool(self.supabase.auth.get_user, token)
        except Exception as e:
            logger.warning("Supabase rejected access token: %s", e)
            raise InvalidTokenError from e

        if not user_response or not user_response.user:
            logger.warning("No user in Supabase response")
            raise InvalidTokenError

        user = user_response.user
        return AuthUser(id=UUID(str(user.id)), email=user.email)


class AuthManager:
    """Main authentication manager that delegates to the configured provider."""

    def __init__(self, settings: Settings | None = None, provider: AuthProvider | None = None) -> None:
        self.settings = settings or get_settings()
        self.provider = provider or self._get_auth_provider()

    def _get_auth_provider(self) -> AuthProvider:
        """Get the configured authentication provider."""
        auth_provider = self.settings.AUTH_PROVIDER.lower()

        if auth_provider == AuthProviderType.NONE.value:
            if self.settings.ENVIRONMENT == "production":
                msg = "AUTH_PROVIDER=none is not allowed in production"
                raise ValueError(msg)
            logger.warning("Authentication disabled: every request acts as the default user")
            return NoAuthProvider(allow_test_header=self.settings.ENVIRONMENT == "test")
        if auth_provider == AuthProviderType.SUPABASE.value:
            return SupabaseAuthProvider(self.settings)

        error_msg = f"Unsupported auth provider: {auth_provider}. Use 'none' or 'supabase'"
        raise ValueError(error_msg)

    async def authenticate(self, request: "Request") -> AuthUser:
        """Authenticate the request through the configured provider."""
        return await self.provider.authenticate(request)
