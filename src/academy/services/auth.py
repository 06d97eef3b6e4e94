"""Authentication service: one-time login codes and bearer sessions."""

import hashlib
import logging
import secrets
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from fastapi import BackgroundTasks
from sqlalchemy.ext.asyncio import AsyncSession

from academy.config import Settings, settings
from academy.models import AuthCode, UserSession, utcnow
from academy.repositories import AuthCodeRepository, SessionRepository
from academy.services.email import EmailService, email_service

logger = logging.getLogger(__name__)

CODE_DIGITS = 6
SESSION_TOKEN_BYTES = 32


class AuthError(Exception):
    """Authentication error."""

    pass


class InvalidOrExpiredCode(AuthError):
    """No usable code matched. Wrong, used and expired codes look the same."""

    def __init__(self) -> None:
        super().__init__("Invalid or expired code")


class NotAuthenticated(AuthError):
    """No valid session for the presented token."""

    def __init__(self) -> None:
        super().__init__("Not authenticated")


class ValidationError(ValueError):
    """Malformed input such as an email without an @."""

    pass


@dataclass
class IssuedSession:
    """Result of a successful code verification."""

    token: str
    email: str
    expires_at: datetime


def normalize_email(email: str | None) -> str:
    """Trim and lowercase an email, rejecting obviously malformed values."""
    normalized = (email or "").strip().lower()
    local, at, domain = normalized.partition("@")
    if not at or not local or not domain:
        raise ValidationError("Valid email required")
    return normalized


def generate_code() -> str:
    """Uniform random code over 000000-999999 from a CSPRNG."""
    return f"{secrets.randbelow(10**CODE_DIGITS):0{CODE_DIGITS}d}"


def generate_session_token() -> str:
    """256-bit hex bearer token."""
    return secrets.token_hex(SESSION_TOKEN_BYTES)


def token_fingerprint(token: str) -> str:
    """Short non-reversible identifier for a token, safe to log."""
    return hashlib.sha256(token.encode()).hexdigest()[:12]


class AuthService:
    """Issues and verifies login codes, mints and revokes sessions.

    All invariants are enforced by the database: codes are consumed through a
    conditional update, so no in-process locking is needed when several
    workers handle requests for the same email.
    """

    def __init__(
        self,
        session: AsyncSession,
        emails: EmailService | None = None,
        config: Settings | None = None,
        background_tasks: BackgroundTasks | None = None,
    ):
        self.session = session
        self.emails = emails or email_service
        self.config = config or settings
        self.background_tasks = background_tasks
        self.codes = AuthCodeRepository(session)
        self.sessions = SessionRepository(session)

    async def issue_code(
        self,
        email: str,
        *,
        ttl: timedelta | None = None,
        welcome_course: str | None = None,
    ) -> AuthCode:
        """Store a fresh code for an email and send it.

        Any earlier unused codes for the email are invalidated first. The code
        is committed before delivery is attempted; delivery failures are logged
        and do not affect the result.

        Args:
            email: Address to issue the code for
            ttl: Code lifetime, defaults to the login code TTL
            welcome_course: When set, send the post-purchase welcome email for
                this course instead of the plain login code email

        Raises:
            ValidationError: the email is malformed
        """
        normalized = normalize_email(email)
        ttl = ttl or timedelta(minutes=self.config.login_code_ttl_minutes)

        invalidated = await self.codes.invalidate_unused(normalized)
        auth_code = AuthCode(
            email=normalized,
            code=generate_code(),
            expires_at=utcnow() + ttl,
        )
        await self.codes.add(auth_code)
        await self.session.commit()

        logger.info(
            f"Issued login code for {normalized} "
            f"(expires in {ttl}, invalidated {invalidated} previous)"
        )

        if welcome_course is not None:
            await self._notify(
                self.emails.send_welcome,
                normalized,
                auth_code.code,
                welcome_course,
                int(ttl.total_seconds() // 3600),
            )
        else:
            await self._notify(
                self.emails.send_login_code,
                normalized,
                auth_code.code,
                int(ttl.total_seconds() // 60),
            )

        return auth_code

    async def _notify(self, send: Callable[..., Awaitable[bool]], *args: object) -> None:
        # Detach delivery from the request when a task runner is available
        if self.background_tasks is not None:
            self.background_tasks.add_task(send, *args)
            return
        await send(*args)

    async def verify_code(self, email: str, code: str) -> IssuedSession:
        """Exchange a login code for a new session.

        Raises:
            ValidationError: email or code missing
            InvalidOrExpiredCode: no unused, unexpired code matches, or a
                concurrent verification consumed it first
        """
        if not email or not code:
            raise ValidationError("Email and code required")
        normalized = normalize_email(email)
        now = utcnow()

        auth_code = await self.codes.find_usable(normalized, code.strip(), now)
        if auth_code is None:
            logger.info(f"Rejected login code for {normalized}")
            raise InvalidOrExpiredCode()

        if not await self.codes.mark_used(auth_code.id):
            await self.session.rollback()
            logger.warning(f"Login code for {normalized} was consumed concurrently")
            raise InvalidOrExpiredCode()

        user_session = UserSession(
            email=normalized,
            token=generate_session_token(),
            expires_at=now + timedelta(days=self.config.session_ttl_days),
        )
        await self.sessions.add(user_session)
        await self.session.commit()

        logger.info(
            f"Created session {token_fingerprint(user_session.token)} for {normalized}"
        )
        return IssuedSession(
            token=user_session.token,
            email=normalized,
            expires_at=user_session.expires_at,
        )

    async def validate_session(self, token: str | None) -> str | None:
        """Return the session's email, or None if absent or expired."""
        if not token:
            return None
        user_session = await self.sessions.get_active(token, utcnow())
        return user_session.email if user_session else None

    async def require_session(self, token: str | None) -> str:
        """Like validate_session but raises NotAuthenticated."""
        email = await self.validate_session(token)
        if email is None:
            raise NotAuthenticated()
        return email

    async def revoke_session(self, token: str | None) -> None:
        """Delete a session. Revoking an unknown token is a no-op."""
        if not token:
            return
        deleted = await self.sessions.delete(token)
        await self.session.commit()
        if deleted:
            logger.info(f"Revoked session {token_fingerprint(token)}")

    async def revoke_all_sessions(self, email: str) -> int:
        """Delete every session for an email. Returns the number removed."""
        normalized = normalize_email(email)
        deleted = await self.sessions.delete_for_email(normalized)
        await self.session.commit()
        logger.info(f"Revoked {deleted} sessions for {normalized}")
        return deleted
