"""Database models for progress tracking."""

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    String,
    UniqueConstraint,
    Uuid,
)

from promptlab.database.base import Base


class UserProgress(Base):
    """Per-user, per-module progress through the four steps."""

    __tablename__ = "user_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "module_id", name="uq_user_module"),
        CheckConstraint(
            "status IN ('not_started', 'in_progress', 'completed')",
            name="ck_user_progress_status",
        ),
        CheckConstraint(
            "current_step IS NULL OR current_step IN "
            "('socratic_dialogue', 'prompt_writing', 'comparison_lab', 'reflection_journal')",
            name="ck_user_progress_current_step",
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    user_id = Column(Uuid, nullable=False, index=True)
    module_id = Column(Uuid, ForeignKey("modules.id", ondelete="CASCADE"), nullable=False, index=True)
    current_step = Column(String(32), nullable=True)
    status = Column(String(20), nullable=False, default="not_started")
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    score = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    def __repr__(self) -> str:
        """Return string representation of the progress."""
        return f"<UserProgress(id={self.id}, module_id={self.module_id}, status={self.status})>"


class TechniqueBadge(Base):
    """Technique earned by a user. One row per (user, technique)."""

    __tablename__ = "technique_badges"
    __table_args__ = (UniqueConstraint("user_id", "technique_name", name="uq_user_technique"),)

    id = Column(Uuid, primary_key=True, default=uuid4)
    user_id = Column(Uuid, nullable=False, index=True)
    technique_name = Column(String(100), nullable=False)
    module_id = Column(Uuid, ForeignKey("modules.id", ondelete="CASCADE"), nullable=False)
    earned_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC))
