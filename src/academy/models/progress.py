"""Per-course learner progress model."""

from datetime import datetime

from sqlalchemy import JSON, DateTime, UniqueConstraint
from sqlmodel import Field, SQLModel

from academy.models.base import generate_nanoid, utcnow


class UserProgress(SQLModel, table=True):
    """Completed lessons and modules for one email and course."""

    __tablename__ = "user_progress"
    __table_args__ = (UniqueConstraint("email", "course_slug", name="uq_user_progress_email_course"),)

    id: str = Field(default_factory=generate_nanoid, primary_key=True, max_length=21)
    email: str = Field(index=True, max_length=255)
    course_slug: str = Field(max_length=255)
    completed_lessons: list[str] = Field(default_factory=list, sa_type=JSON)  # type: ignore[call-overload]
    completed_modules: list[str] = Field(default_factory=list, sa_type=JSON)  # type: ignore[call-overload]
    updated_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_type=DateTime(timezone=True),  # type: ignore[call-overload]
    )
