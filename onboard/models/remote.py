"""Reference backend tables: server-side onboarding progress and answers.

These back the FastAPI routers that stand in for the production API.
The client never touches them directly.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from onboard.models.base import Base, TimestampMixin


class RemoteProgress(TimestampMixin, Base):
    """Step-wizard progress as last reported by a client."""

    __tablename__ = "onboarding_progress"

    user_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    current_step: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    completed_steps: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last_updated: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class RemoteAnswer(TimestampMixin, Base):
    """One saved answer of the unified question flow."""

    __tablename__ = "onboarding_answers"
    __table_args__ = (UniqueConstraint("user_id", "question_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    question_id: Mapped[str] = mapped_column(String(100), nullable=False)
    value: Mapped[Any] = mapped_column(JSON, nullable=True)
    phase: Mapped[str | None] = mapped_column(String(20), nullable=True)
    answered_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class RemoteOnboardingStatus(TimestampMixin, Base):
    """Per-user unified-flow phase and completion flag."""

    __tablename__ = "onboarding_status"

    user_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    phase: Mapped[str] = mapped_column(String(20), nullable=False, default="essential")
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
