"""Response envelope shared by every endpoint.

Success bodies are ``{"data": ...}``. Failures are produced by the exception
handlers in ``promptlab.middleware.error_handlers`` as
``{"data": null, "error": {...}}``.
"""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel


T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    """Successful response wrapper."""

    data: T


class ErrorBody(BaseModel):
    """Machine-readable error description."""

    code: str
    message: str
    details: dict[str, Any] | None = None


def success(data: T) -> Envelope[T]:
    """Wrap a payload in the success envelope."""
    return Envelope(data=data)
