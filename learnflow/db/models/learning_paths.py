"""
Learning Path Models.

A learning path is an ordered list of modules with a completion frontier:
module ``i`` is unlocked iff ``i <= completed_modules``. Progress and status
are derived from the frontier and never stored.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, JSONType, utcnow


class LearningPath(Base):
    """User-owned learning path."""

    __tablename__ = "learning_paths"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    category: Mapped[str] = mapped_column(String(64), nullable=False, default="general")
    skill_level: Mapped[str] = mapped_column(String(32), nullable=False, default="beginner")

    completed_modules: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # {"moduleIndex": int, "startTime": iso str, "state": "generating" | "ready"}
    active_lesson: Mapped[dict[str, Any] | None] = mapped_column(JSONType)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    modules: Mapped[list[LearningPathModule]] = relationship(
        back_populates="path",
        order_by="LearningPathModule.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (Index("idx_learning_paths_user", "user_id", "updated_at"),)

    @property
    def total_modules(self) -> int:
        return len(self.modules)

    @property
    def progress(self) -> float:
        """Percent complete, 0-100. Unrounded; clients round for display."""
        if not self.modules:
            return 0.0
        return min(100.0, self.completed_modules / len(self.modules) * 100)

    @property
    def status(self) -> str:
        if self.modules and self.completed_modules >= len(self.modules):
            return "completed"
        return "active"

    def __repr__(self) -> str:
        return f"<LearningPath {self.id} user={self.user_id} {self.completed_modules}/{self.total_modules}>"


class LearningPathModule(Base):
    """One module of a path, carrying the single-slot lesson content cache."""

    __tablename__ = "learning_path_modules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    path_id: Mapped[str] = mapped_column(
        ForeignKey("learning_paths.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    duration: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    topics: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    difficulty: Mapped[str] = mapped_column(String(32), nullable=False, default="beginner")
    learn_url: Mapped[str | None] = mapped_column(Text)

    # Lesson content cache
    generated_content: Mapped[dict[str, Any] | None] = mapped_column(JSONType)
    generation_started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    path: Mapped[LearningPath] = relationship(back_populates="modules")

    __table_args__ = (
        UniqueConstraint("path_id", "position", name="uq_path_module_position"),
    )

    def __repr__(self) -> str:
        return f"<LearningPathModule path={self.path_id} position={self.position} title={self.title!r}>"
