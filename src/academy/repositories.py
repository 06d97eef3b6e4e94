"""Typed data access for codes, sessions, purchases and progress.

Each repository wraps an ``AsyncSession`` and exposes only the queries the
services need. Repositories flush but never commit; the calling service owns
the transaction boundary.
"""

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import delete, func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from academy.models import AuthCode, Purchase, PurchaseStatus, UserProgress, UserSession, utcnow


class DuplicatePurchase(Exception):
    """A purchase for this external checkout session already exists."""

    def __init__(self, external_session_id: str):
        super().__init__(f"Purchase already recorded for {external_session_id}")
        self.external_session_id = external_session_id


class AuthCodeRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def invalidate_unused(self, email: str) -> int:
        """Mark every unused code for an email as used. Returns rows changed."""
        stmt = (
            update(AuthCode)
            .where(AuthCode.email == email, AuthCode.used == False)  # noqa: E712
            .values(used=True)
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    async def add(self, auth_code: AuthCode) -> AuthCode:
        self.session.add(auth_code)
        await self.session.flush()
        return auth_code

    async def find_usable(self, email: str, code: str, now: datetime) -> AuthCode | None:
        """Newest unused, unexpired code matching email and code."""
        stmt = (
            select(AuthCode)
            .where(
                AuthCode.email == email,
                AuthCode.code == code,
                AuthCode.used == False,  # noqa: E712
                AuthCode.expires_at > now,
            )
            .order_by(AuthCode.created_at.desc())  # type: ignore[attr-defined]
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def mark_used(self, code_id: str) -> bool:
        """Conditionally consume a code.

        Only succeeds while the row is still unused, so of two concurrent
        verifications of the same code exactly one gets ``True``.
        """
        stmt = (
            update(AuthCode)
            .where(AuthCode.id == code_id, AuthCode.used == False)  # noqa: E712
            .values(used=True)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def prune(self, expired_before: datetime) -> int:
        """Delete codes that expired before the cutoff."""
        stmt = (
            delete(AuthCode)
            .where(AuthCode.expires_at < expired_before)  # type: ignore[arg-type]
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0


class SessionRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, user_session: UserSession) -> UserSession:
        self.session.add(user_session)
        await self.session.flush()
        return user_session

    async def get_active(self, token: str, now: datetime) -> UserSession | None:
        stmt = select(UserSession).where(
            UserSession.token == token,
            UserSession.expires_at > now,
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def delete(self, token: str) -> int:
        result = await self.session.execute(delete(UserSession).where(UserSession.token == token))  # type: ignore[arg-type]
        return result.rowcount or 0

    async def delete_for_email(self, email: str) -> int:
        result = await self.session.execute(delete(UserSession).where(UserSession.email == email))  # type: ignore[arg-type]
        return result.rowcount or 0

    async def prune_expired(self, now: datetime) -> int:
        stmt = (
            delete(UserSession)
            .where(UserSession.expires_at <= now)  # type: ignore[arg-type]
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0


class PurchaseRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_external_session_id(self, external_session_id: str) -> Purchase | None:
        stmt = select(Purchase).where(Purchase.external_session_id == external_session_id)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def add(self, purchase: Purchase) -> Purchase:
        """Insert a purchase.

        Raises:
            DuplicatePurchase: the unique constraint on external_session_id
                rejected the row. The session has been rolled back.
        """
        self.session.add(purchase)
        try:
            await self.session.flush()
        except IntegrityError as e:
            await self.session.rollback()
            raise DuplicatePurchase(purchase.external_session_id) from e
        return purchase

    async def has_access(self, email: str, course_slug: str) -> bool:
        stmt = (
            select(Purchase.id)
            .where(
                Purchase.email == email,
                Purchase.course_slug == course_slug,
                Purchase.status == PurchaseStatus.COMPLETED,
            )
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.first() is not None

    async def list_recent(self, email: str | None = None, limit: int = 100) -> Sequence[Purchase]:
        stmt = select(Purchase).order_by(Purchase.created_at.desc()).limit(limit)  # type: ignore[attr-defined]
        if email:
            stmt = stmt.where(Purchase.email == email)
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def count(self, external_session_id: str | None = None) -> int:
        stmt = select(func.count()).select_from(Purchase)
        if external_session_id:
            stmt = stmt.where(Purchase.external_session_id == external_session_id)
        result = await self.session.execute(stmt)
        return result.scalar_one()


class ProgressRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, email: str, course_slug: str) -> UserProgress | None:
        stmt = select(UserProgress).where(
            UserProgress.email == email,
            UserProgress.course_slug == course_slug,
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def upsert(
        self,
        email: str,
        course_slug: str,
        completed_lessons: list[str],
        completed_modules: list[str],
    ) -> UserProgress:
        progress = await self.get(email, course_slug)
        now = utcnow()
        if progress is None:
            progress = UserProgress(email=email, course_slug=course_slug)
        progress.completed_lessons = list(completed_lessons)
        progress.completed_modules = list(completed_modules)
        progress.updated_at = now
        self.session.add(progress)
        await self.session.flush()
        return progress
