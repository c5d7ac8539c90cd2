"""Billing provider webhook endpoints.

- POST /api/webhooks/paddle        (form-encoded, RSA-SHA1 signed)
- POST /api/webhooks/whop          (JSON, optional HMAC signature)
- POST /api/webhooks/lemonsqueezy  (retired, always 410)
"""

import json
import logging
from typing import Optional
from urllib.parse import parse_qsl

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from manymarkets.config import is_production, settings
from manymarkets.database import get_db
from manymarkets.exceptions import ManyMarketsError
from manymarkets.models import BillingProvider, Profile, SubscriptionTier

from .paddle import (
    DOWNGRADE_ALERTS,
    UPGRADE_ALERTS,
    is_active_subscription,
    parse_event_time,
    verify_webhook_signature,
)
from .reconciliation import ReconcileOutcome, SubscriptionChange, apply_subscription_change
from .whop import extract_email, resolve_whop_change, verify_whop_signature

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])


def _profile_id_by_email(db: Session, email: str) -> Optional[str]:
    row = db.query(Profile.id).filter(func.lower(Profile.email) == email.lower()).first()
    return row[0] if row else None


def _paddle_change(fields: dict) -> Optional[SubscriptionChange]:
    alert_name = fields.get("alert_name", "")
    subscription_id = fields.get("subscription_id") or None
    customer_id = fields.get("user_id") or fields.get("paddle_user_id") or fields.get("email") or None
    common = {
        "provider": BillingProvider.PADDLE.value,
        "event_name": alert_name,
        "event_id": fields.get("alert_id") or None,
        "occurred_at": parse_event_time(fields.get("event_time")),
    }

    if alert_name in UPGRADE_ALERTS:
        active = is_active_subscription(fields.get("status", ""))
        return SubscriptionChange(
            tier=SubscriptionTier.PRO.value if active else SubscriptionTier.FREE.value,
            status=(fields.get("status") or None),
            columns={"paddle_customer_id": customer_id, "paddle_subscription_id": subscription_id},
            **common,
        )
    if alert_name in DOWNGRADE_ALERTS:
        return SubscriptionChange(
            tier=SubscriptionTier.FREE.value,
            columns={"paddle_subscription_id": None},
            **common,
        )
    return None


@router.post("/paddle")
async def paddle_webhook(request: Request, db: Session = Depends(get_db)):
    """Handle Paddle Classic subscription alerts."""
    raw_body = (await request.body()).decode("utf-8")
    fields = dict(parse_qsl(raw_body, keep_blank_values=True))

    public_key = settings.paddle_public_key
    if not public_key:
        if is_production():
            raise HTTPException(status_code=503, detail="Paddle webhook verification not configured")
        logger.warning("PADDLE_PUBLIC_KEY not configured - webhook verification skipped (insecure)")
    elif not verify_webhook_signature(fields, fields.get("p_signature", ""), public_key):
        logger.error("Invalid Paddle webhook signature")
        raise HTTPException(status_code=401, detail="Invalid signature")

    alert_name = fields.get("alert_name", "")
    logger.info(
        "Paddle webhook received",
        extra={
            "alert_name": alert_name,
            "subscription_id": fields.get("subscription_id"),
            "status": fields.get("status"),
        },
    )

    try:
        # passthrough carries our user id when the pay link was created by us
        user_id = fields.get("passthrough") or None
        if not user_id and fields.get("email"):
            user_id = _profile_id_by_email(db, fields["email"])
        if not user_id:
            logger.warning("Paddle webhook: no user found, skipping")
            return {"received": True, "warning": "No user ID found"}

        change = _paddle_change(fields)
        if change is None:
            logger.info("Unhandled Paddle webhook: %s", alert_name)
            return {"received": True}

        outcome = apply_subscription_change(db, user_id, change)
    except (ManyMarketsError, SQLAlchemyError) as exc:
        logger.error("Paddle webhook processing error: %s", exc, exc_info=True)
        db.rollback()
        raise HTTPException(status_code=500, detail="Webhook processing failed")

    if outcome is ReconcileOutcome.PROFILE_NOT_FOUND:
        return {"received": True, "warning": "User not found"}
    return {"received": True, "outcome": outcome.value}


@router.post("/whop")
async def whop_webhook(request: Request, db: Session = Depends(get_db)):
    """Handle Whop membership and payment events."""
    raw_body = await request.body()

    secret = settings.whop_webhook_secret
    if secret and not verify_whop_signature(raw_body, request.headers.get("x-whop-signature"), secret):
        logger.error("Invalid Whop webhook signature")
        raise HTTPException(status_code=401, detail="Invalid signature")

    try:
        payload = json.loads(raw_body or b"{}")
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON body")
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Invalid JSON body")
    if payload.get("data") is not None and not isinstance(payload["data"], dict):
        raise HTTPException(status_code=400, detail="Invalid payload data")

    action = payload.get("action", "")
    logger.info("Whop webhook received", extra={"action": action, "event_id": payload.get("id")})

    email = extract_email(payload.get("data"))
    if not email:
        logger.error("No email found in Whop webhook payload")
        return {"received": True, "warning": "No email in payload"}

    try:
        user_id = _profile_id_by_email(db, email)
        if not user_id:
            logger.info("Whop webhook: user not found for email %s", email)
            return {"received": True, "warning": "User not found"}

        change = resolve_whop_change(payload)
        if change is None:
            return {"received": True}

        outcome = apply_subscription_change(db, user_id, change)
    except (ManyMarketsError, SQLAlchemyError) as exc:
        logger.error("Whop webhook error: %s", exc, exc_info=True)
        db.rollback()
        raise HTTPException(status_code=500, detail="Webhook processing failed")

    return {"received": True, "success": True, "outcome": outcome.value}


@router.post("/lemonsqueezy")
async def lemonsqueezy_webhook():
    """Lemon Squeezy was replaced by Paddle; tell senders the endpoint is gone."""
    logger.warning("Received webhook to retired Lemon Squeezy endpoint; returning 410 Gone")
    raise HTTPException(status_code=410, detail="This webhook endpoint has been retired.")
