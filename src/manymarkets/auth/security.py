"""Supabase access token verification (HS256).

Supabase Auth signs access tokens with the project's JWT secret. The API only
verifies them; sign-up, login and refresh stay with Supabase.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from manymarkets.config import DEV_SUPABASE_JWT_SECRET, is_dev_secret, is_production, settings

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"


def create_access_token(
    user_id: str,
    email: str = "",
    full_name: Optional[str] = None,
    expires_minutes: int = 60,
) -> str:
    """
    Mint a token shaped like a Supabase access token (dev tooling and tests).
    """
    now = datetime.now(timezone.utc)
    claims: Dict[str, Any] = {
        "sub": user_id,
        "email": email,
        "aud": settings.supabase_jwt_audience,
        "role": "authenticated",
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=expires_minutes)).timestamp()),
        "user_metadata": {"full_name": full_name} if full_name else {},
    }
    return jwt.encode(claims, settings.supabase_jwt_secret, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Validate and decode a Supabase access token. Returns None when invalid.
    """
    if is_production() and is_dev_secret(settings.supabase_jwt_secret, DEV_SUPABASE_JWT_SECRET):
        logger.error("SUPABASE_JWT_SECRET not configured; rejecting access token")
        return None
    try:
        payload = jwt.decode(
            token,
            settings.supabase_jwt_secret,
            algorithms=[JWT_ALGORITHM],
            audience=settings.supabase_jwt_audience,
        )
    except JWTError:
        return None
    if not payload.get("sub"):
        return None
    return payload
