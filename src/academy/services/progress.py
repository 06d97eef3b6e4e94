"""Course access checks and learner progress."""

from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from academy.repositories import ProgressRepository, PurchaseRepository


@dataclass
class ProgressSnapshot:
    completed_lessons: list[str] = field(default_factory=list)
    completed_modules: list[str] = field(default_factory=list)
    updated_at: datetime | None = None


class ProgressService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.purchases = PurchaseRepository(session)
        self.progress = ProgressRepository(session)

    async def has_access(self, email: str, course_slug: str) -> bool:
        """Whether the email holds a completed purchase for the course."""
        return await self.purchases.has_access(email, course_slug)

    async def get_progress(self, email: str, course_slug: str) -> ProgressSnapshot:
        row = await self.progress.get(email, course_slug)
        if row is None:
            return ProgressSnapshot()
        return ProgressSnapshot(
            completed_lessons=list(row.completed_lessons),
            completed_modules=list(row.completed_modules),
            updated_at=row.updated_at,
        )

    async def save_progress(
        self,
        email: str,
        course_slug: str,
        completed_lessons: list[str],
        completed_modules: list[str],
    ) -> datetime:
        row = await self.progress.upsert(email, course_slug, completed_lessons, completed_modules)
        updated_at = row.updated_at
        await self.session.commit()
        return updated_at
