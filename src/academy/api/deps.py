"""FastAPI dependencies for dependency injection."""

import logging
from typing import Annotated

from fastapi import BackgroundTasks, Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from academy.config import Settings, get_settings
from academy.database import get_session
from academy.services.auth import AuthService
from academy.services.email import EmailService, email_service
from academy.services.progress import ProgressService
from academy.services.purchases import PurchaseService

logger = logging.getLogger(__name__)

# Type alias for database session dependency
SessionDep = Annotated[AsyncSession, Depends(get_session)]
SettingsDep = Annotated[Settings, Depends(get_settings)]

# Security scheme
security = HTTPBearer(auto_error=False)


def get_email_service() -> EmailService:
    """Email service used for login and welcome emails."""
    return email_service


def get_auth_service(
    session: SessionDep,
    background_tasks: BackgroundTasks,
    emails: Annotated[EmailService, Depends(get_email_service)],
    config: SettingsDep,
) -> AuthService:
    """Auth service that sends email after the response is returned."""
    return AuthService(session, emails=emails, config=config, background_tasks=background_tasks)


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]


def get_purchase_service(session: SessionDep, auth: AuthServiceDep, config: SettingsDep) -> PurchaseService:
    return PurchaseService(session, auth, config=config)


def get_progress_service(session: SessionDep) -> ProgressService:
    return ProgressService(session)


PurchaseServiceDep = Annotated[PurchaseService, Depends(get_purchase_service)]
ProgressServiceDep = Annotated[ProgressService, Depends(get_progress_service)]


def get_session_token(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    config: SettingsDep,
) -> str | None:
    """Session token from the Authorization header, falling back to the cookie."""
    if credentials:
        return credentials.credentials
    return request.cookies.get(config.session_cookie_name)


SessionToken = Annotated[str | None, Depends(get_session_token)]


async def get_current_email(auth: AuthServiceDep, token: SessionToken) -> str:
    """Get the signed-in email or raise 401."""
    email = await auth.validate_session(token)
    if email is None:
        logger.debug("Session lookup failed")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="not_authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return email


CurrentEmail = Annotated[str, Depends(get_current_email)]
