"""Housekeeping for expired codes and sessions."""

import logging
from datetime import timedelta
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from academy.models import utcnow
from academy.repositories import AuthCodeRepository, SessionRepository

logger = logging.getLogger(__name__)

# Expired codes are kept this long for auditing before they are deleted
CODE_RETENTION_DAYS = 30


async def prune_expired(
    session: AsyncSession,
    code_retention_days: int = CODE_RETENTION_DAYS,
) -> dict[str, Any]:
    """Delete expired sessions and codes past their retention window.

    Expiry is enforced on read, so this only reclaims space.
    """
    now = utcnow()
    sessions_deleted = await SessionRepository(session).prune_expired(now)
    codes_deleted = await AuthCodeRepository(session).prune(now - timedelta(days=code_retention_days))
    await session.commit()

    logger.info(f"Pruned {sessions_deleted} expired sessions and {codes_deleted} old codes")
    return {"sessions_deleted": sessions_deleted, "codes_deleted": codes_deleted}
