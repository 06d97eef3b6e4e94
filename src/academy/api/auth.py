"""Authentication endpoints."""

import logging

from fastapi import APIRouter, HTTPException, Response, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from academy.api.deps import AuthServiceDep, SessionToken, SettingsDep
from academy.services.auth import InvalidOrExpiredCode, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter()


class SendCodeRequest(BaseModel):
    """Request body for requesting a login code."""

    email: str | None = None


class SendCodeResponse(BaseModel):
    ok: bool = True
    message: str


class VerifyCodeRequest(BaseModel):
    """Request body for code verification."""

    email: str | None = None
    code: str | None = None


class VerifyCodeResponse(BaseModel):
    """Response for a successful verification.

    The session token is also set as an httponly cookie; it is returned in
    the body for clients that send it as a bearer header instead.
    """

    ok: bool = True
    email: str
    access_token: str
    token_type: str = "bearer"


class SessionResponse(BaseModel):
    authenticated: bool
    email: str | None = None


@router.post("/send-code", response_model=SendCodeResponse)
async def send_code(request: SendCodeRequest, auth: AuthServiceDep):
    """
    Email a one-time login code.

    Always succeeds once the code is stored, even if the email fails to send.
    """
    try:
        await auth.issue_code(request.email or "")
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    return SendCodeResponse(message="Code sent")


@router.post("/verify-code", response_model=VerifyCodeResponse)
async def verify_code(
    request: VerifyCodeRequest,
    response: Response,
    auth: AuthServiceDep,
    config: SettingsDep,
):
    """
    Exchange a login code for a session.
    """
    try:
        issued = await auth.verify_code(request.email or "", request.code or "")
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except InvalidOrExpiredCode as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    response.set_cookie(
        key=config.session_cookie_name,
        value=issued.token,
        max_age=config.session_ttl_days * 24 * 60 * 60,
        path="/",
        httponly=True,
        secure=config.session_cookie_secure,
        samesite="none" if config.session_cookie_secure else "lax",
    )

    return VerifyCodeResponse(email=issued.email, access_token=issued.token)


@router.get("/session", response_model=SessionResponse)
async def get_session_info(auth: AuthServiceDep, token: SessionToken):
    """Report whether the presented session token is valid."""
    email = await auth.validate_session(token)
    if email is None:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"authenticated": False},
            headers={"WWW-Authenticate": "Bearer"},
        )
    return SessionResponse(authenticated=True, email=email)


@router.post("/logout")
async def logout(response: Response, auth: AuthServiceDep, token: SessionToken, config: SettingsDep):
    """Revoke the current session and clear the cookie."""
    if token:
        await auth.revoke_session(token)
        response.delete_cookie(config.session_cookie_name, path="/")
    return {"ok": True}
