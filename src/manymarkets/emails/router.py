"""Unsubscribe endpoints (/api/email/unsubscribe)."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import RedirectResponse
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from manymarkets.config import settings
from manymarkets.database import get_db

from .unsubscribe import unsubscribe_profile, verify_unsubscribe_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/email", tags=["email"])


class UnsubscribeRequest(BaseModel):
    token: Any = None


def _unsubscribe(db: Session, token) -> None:
    if not token:
        raise HTTPException(status_code=400, detail="Missing token")

    user_id = verify_unsubscribe_token(token) if isinstance(token, str) else None
    if not user_id:
        raise HTTPException(status_code=400, detail="Invalid or expired token")

    try:
        unsubscribe_profile(db, user_id)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Failed to unsubscribe %s: %s", user_id, exc)
        raise HTTPException(status_code=500, detail="Failed to unsubscribe")


@router.get("/unsubscribe")
def unsubscribe_link(token: str = "", db: Session = Depends(get_db)):
    """One-click link target; redirects to the confirmation page."""
    _unsubscribe(db, token)
    return RedirectResponse(url=f"{settings.app_url.rstrip('/')}/unsubscribe?success=true", status_code=307)


@router.post("/unsubscribe")
def unsubscribe(body: UnsubscribeRequest, db: Session = Depends(get_db)):
    _unsubscribe(db, body.token)
    return {"success": True}
