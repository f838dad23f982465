"""Database layer: declarative base, engine and session factories."""

from .base import Base
from .engine import create_app_engine
from .session import DbSession, create_session_maker


__all__ = ["Base", "DbSession", "create_app_engine", "create_session_maker"]
