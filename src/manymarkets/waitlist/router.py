"""Public waitlist endpoints (/api/waitlist)."""

import logging
import re
from datetime import datetime, timezone
from typing import Any, Optional

import requests
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from manymarkets.config import settings
from manymarkets.database import get_db
from manymarkets.models import WaitlistEntry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/waitlist", tags=["waitlist"])

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
ALREADY_JOINED_MESSAGE = "You're already on the waitlist!"


class WaitlistSignup(BaseModel):
    email: Any = None
    name: Any = None
    country: Any = None
    referral_source: Optional[str] = Field(None, alias="referralSource")

    model_config = ConfigDict(populate_by_name=True)


def _welcome_message(name: str, position: int) -> str:
    first_name = name.split(" ")[0] if name else ""
    return (
        f"Hi {first_name}! Thank you for joining the ManyMarkets waitlist. You're #{position} on the list. "
        "We'll email you when it's your turn. Enjoy the early-bird benefits!\n\nThe ManyMarkets Team"
    )


def notify_waitlist_webhook(entry: WaitlistEntry) -> None:
    """POST the new signup to the CRM webhook; failures are logged and ignored."""
    url = settings.n8n_waitlist_webhook_url
    if not url:
        return

    headers = {"Content-Type": "application/json"}
    if settings.n8n_waitlist_webhook_secret:
        headers["x-waitlist-secret"] = settings.n8n_waitlist_webhook_secret

    payload = {
        "email": entry.email,
        "name": entry.name,
        "country": entry.country,
        "referralSource": entry.referral_source,
        "position": entry.position,
        "message": _welcome_message(entry.name, entry.position),
        "joinedAt": datetime.now(timezone.utc).isoformat(),
    }
    try:
        response = requests.post(url, json=payload, headers=headers, timeout=settings.provider_timeout_seconds)
        if response.status_code >= 400:
            logger.warning("Waitlist webhook returned %s", response.status_code)
    except requests.RequestException as exc:
        logger.error("Waitlist webhook error: %s", exc)


@router.post("")
def join_waitlist(body: WaitlistSignup, db: Session = Depends(get_db)):
    """Add an email to the waitlist, or report the existing position."""
    if not body.email or not body.name or not body.country:
        raise HTTPException(status_code=400, detail="Email, name, and country are required")
    if not isinstance(body.email, str) or not EMAIL_PATTERN.match(body.email):
        raise HTTPException(status_code=400, detail="Please enter a valid email address")

    email = body.email.lower()
    existing = db.query(WaitlistEntry).filter(WaitlistEntry.email == email).first()
    if existing:
        return {
            "success": True,
            "message": ALREADY_JOINED_MESSAGE,
            "position": existing.position,
            "alreadyExists": True,
        }

    last_position = db.query(func.max(WaitlistEntry.position)).scalar() or 0
    entry = WaitlistEntry(
        email=email,
        name=str(body.name).strip(),
        country=str(body.country).strip(),
        referral_source=body.referral_source or None,
        position=last_position + 1,
    )
    db.add(entry)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info("Concurrent waitlist signup for %s", email)
        return {"success": True, "message": ALREADY_JOINED_MESSAGE, "alreadyExists": True}
    db.refresh(entry)

    notify_waitlist_webhook(entry)

    return {
        "success": True,
        "message": "Welcome to the ManyMarkets waitlist!",
        "position": entry.position,
        "benefit": "lifetime_half_price",
    }


@router.get("")
def waitlist_info(email: Optional[str] = None, db: Session = Depends(get_db)):
    """Look up one signup's position, or the total signup count."""
    if email:
        entry = db.query(WaitlistEntry).filter(WaitlistEntry.email == email.lower()).first()
        if entry is None:
            return {"onWaitlist": False}
        return {
            "onWaitlist": True,
            "position": entry.position,
            "joinedAt": entry.created_at.isoformat() if entry.created_at else None,
        }

    return {"totalSignups": db.query(WaitlistEntry).count()}
