"""
Authentication endpoints.

- Google OIDC login (authorization-code flow), at the paths the frontend
  already targets: /oauth2/authorization/google and /login/oauth2/code/google
- Logout at /api/logout, which revokes the session and bounces the browser
  back to the frontend login page
"""

from __future__ import annotations

from typing import Optional

import jwt
import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import (
    create_session_token,
    decode_session_token,
    generate_state,
    revoke_session,
    session_ttl_seconds,
)
from app.core.config import get_settings
from app.core.database import get_session
from app.core.oidc import GoogleOIDCClient, OIDCError, get_oidc_client
from app.services.users import provision_oidc_user

log = structlog.get_logger()
settings = get_settings()

router = APIRouter()
logout_router = APIRouter()

STATE_COOKIE = "th_oauth_state"
STATE_MAX_AGE = 600


def _set_session_cookie(response: RedirectResponse, token: str) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        httponly=True,
        secure=not settings.debug,  # allow non-HTTPS in dev
        samesite="lax",
        path="/",
        max_age=settings.session_expire_minutes * 60,
    )


# ---------------------------------------------------------------------------
# OIDC login
# ---------------------------------------------------------------------------

@router.get("/login")
async def login():
    """Entry point kept for clients that link to /login directly."""
    return RedirectResponse("/oauth2/authorization/google", status_code=302)


@router.get("/oauth2/authorization/{provider}")
async def oauth2_authorize(
    provider: str,
    oidc: GoogleOIDCClient = Depends(get_oidc_client),
):
    """Redirect the browser to the provider's consent screen."""
    if provider != "google":
        raise HTTPException(status_code=400, detail="Unsupported OIDC provider")

    state = generate_state()
    response = RedirectResponse(oidc.authorization_url(state), status_code=302)
    response.set_cookie(
        key=STATE_COOKIE,
        value=state,
        httponly=True,
        secure=not settings.debug,
        samesite="lax",
        path="/",
        max_age=STATE_MAX_AGE,
    )
    return response


@router.get("/login/oauth2/code/{provider}")
async def oauth2_callback(
    provider: str,
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    oidc: GoogleOIDCClient = Depends(get_oidc_client),
    session: AsyncSession = Depends(get_session),
):
    """Finish the login: exchange the code, provision the user, start a session."""
    if provider != "google":
        raise HTTPException(status_code=400, detail="Unsupported OIDC provider")
    if error:
        log.warning("auth.login_failure", provider=provider, reason=error)
        raise HTTPException(status_code=400, detail=f"Login failed: {error}")
    if not code:
        raise HTTPException(status_code=400, detail="Missing authorization code")

    expected_state = request.cookies.get(STATE_COOKIE)
    if not state or not expected_state or state != expected_state:
        log.warning("auth.login_failure", provider=provider, reason="state_mismatch")
        raise HTTPException(status_code=400, detail="Invalid OAuth2 state")

    try:
        claims = await oidc.authenticate(code)
    except OIDCError as exc:
        raise HTTPException(status_code=502, detail=str(exc))

    user = await provision_oidc_user(session, claims, provider=provider)
    await session.commit()

    token, _jti = create_session_token(user, provider=provider)
    response = RedirectResponse(f"{settings.frontend_url}?login_success=true", status_code=302)
    _set_session_cookie(response, token)
    response.delete_cookie(STATE_COOKIE, path="/")

    log.info("auth.login_success", user_id=str(user.id), email=user.email)
    return response


# ---------------------------------------------------------------------------
# Logout
# ---------------------------------------------------------------------------

@logout_router.post("/logout")
async def logout(request: Request):
    """Invalidate the current session and return to the frontend login page."""
    token = request.cookies.get(settings.session_cookie_name)
    if token:
        try:
            payload = decode_session_token(token)
        except jwt.PyJWTError:
            payload = None  # already invalid, just clear the cookie
        if payload and payload.get("jti"):
            await revoke_session(payload["jti"], session_ttl_seconds(payload))
            log.info("auth.logout", user_id=payload.get("sub"))

    response = RedirectResponse(
        f"{settings.frontend_url}/login?logout_success=true", status_code=302
    )
    response.delete_cookie(settings.session_cookie_name, path="/")
    return response
