"""FastAPI dependencies resolving the caller's identity and profile."""

import logging
from dataclasses import dataclass
from typing import Annotated, Optional

from fastapi import Cookie, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from manymarkets.database import get_db
from manymarkets.models import Profile

from .security import decode_access_token

logger = logging.getLogger(__name__)

ACCESS_TOKEN_COOKIE = "sb-access-token"
REFRESH_TOKEN_COOKIE = "sb-refresh-token"


@dataclass(frozen=True)
class AuthUser:
    """Identity extracted from a verified access token."""

    id: str
    email: str
    full_name: Optional[str] = None

    @property
    def display_name(self) -> str:
        if self.full_name:
            return self.full_name
        if self.email:
            return self.email.split("@")[0]
        return "User"


def _extract_token(authorization: Optional[str], cookie_token: Optional[str]) -> Optional[str]:
    if authorization:
        parts = authorization.split()
        if len(parts) == 2 and parts[0].lower() == "bearer":
            return parts[1]
        return None
    return cookie_token


def _user_from_token(token: Optional[str]) -> Optional[AuthUser]:
    if not token:
        return None
    payload = decode_access_token(token)
    if not payload:
        return None
    metadata = payload.get("user_metadata") or {}
    return AuthUser(
        id=payload["sub"],
        email=payload.get("email") or "",
        full_name=metadata.get("full_name"),
    )


def get_optional_user(
    authorization: Annotated[Optional[str], Header(alias="Authorization")] = None,
    access_token: Annotated[Optional[str], Cookie(alias=ACCESS_TOKEN_COOKIE)] = None,
) -> Optional[AuthUser]:
    """Resolve the caller if a valid token is present, otherwise None."""
    return _user_from_token(_extract_token(authorization, access_token))


def get_current_user(user: Optional[AuthUser] = Depends(get_optional_user)) -> AuthUser:
    """Resolve the caller or reject with 401."""
    if user is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user


def ensure_profile(db: Session, user: AuthUser) -> Profile:
    """Return the caller's profile, creating it on first use."""
    profile = db.query(Profile).filter(Profile.id == user.id).first()
    if profile is not None:
        return profile

    logger.info("Creating profile for user %s", user.id)
    profile = Profile(id=user.id, email=user.email, full_name=user.display_name)
    db.add(profile)
    db.commit()
    db.refresh(profile)
    return profile


def get_current_profile(
    user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Profile:
    return ensure_profile(db, user)


def get_optional_profile(
    user: Optional[AuthUser] = Depends(get_optional_user),
    db: Session = Depends(get_db),
) -> Optional[Profile]:
    if user is None:
        return None
    return db.query(Profile).filter(Profile.id == user.id).first()
