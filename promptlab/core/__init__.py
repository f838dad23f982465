"""Core utilities shared across feature modules."""

from .envelope import Envelope, ErrorBody, success


__all__ = ["Envelope", "ErrorBody", "success"]
