"""Session cookie endpoints.

The browser signs in with Supabase directly and hands the resulting tokens to
POST /api/auth/session so server-rendered requests can authenticate by cookie.
"""

from fastapi import APIRouter, HTTPException, Response
from pydantic import BaseModel

from manymarkets.config import is_production

from .dependencies import ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE
from .security import decode_access_token

router = APIRouter(prefix="/api/auth", tags=["auth"])

REFRESH_COOKIE_MAX_AGE = 60 * 60 * 24 * 30


class SessionTokens(BaseModel):
    access_token: str | None = None
    refresh_token: str | None = None


@router.post("/session")
async def set_session(tokens: SessionTokens, response: Response):
    """Store Supabase tokens as httpOnly cookies."""
    if not tokens.access_token or not tokens.refresh_token:
        raise HTTPException(status_code=400, detail="Missing tokens")

    payload = decode_access_token(tokens.access_token)
    if payload is None:
        raise HTTPException(status_code=400, detail="Invalid access token")

    secure = is_production()
    access_max_age = None
    if payload.get("exp"):
        access_max_age = max(0, int(payload["exp"]) - int(payload.get("iat", payload["exp"])))

    response.set_cookie(
        ACCESS_TOKEN_COOKIE,
        tokens.access_token,
        max_age=access_max_age,
        httponly=True,
        secure=secure,
        samesite="lax",
    )
    response.set_cookie(
        REFRESH_TOKEN_COOKIE,
        tokens.refresh_token,
        max_age=REFRESH_COOKIE_MAX_AGE,
        httponly=True,
        secure=secure,
        samesite="lax",
    )
    return {"ok": True}


@router.delete("/session")
async def clear_session(response: Response):
    """Sign out by clearing the session cookies."""
    response.delete_cookie(ACCESS_TOKEN_COOKIE)
    response.delete_cookie(REFRESH_TOKEN_COOKIE)
    return {"ok": True}
