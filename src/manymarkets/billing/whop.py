"""Whop configuration and webhook event mapping.

Docs: https://docs.whop.com/webhooks
"""

import hashlib
import hmac
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from manymarkets.config import settings
from manymarkets.models import BillingProvider, SubscriptionTier

from .reconciliation import SubscriptionChange

logger = logging.getLogger(__name__)

ACTIVATING_ACTIONS = frozenset({"membership.went_valid", "membership.created", "payment.succeeded"})
ENDING_ACTIONS = frozenset({"membership.went_invalid", "membership.cancelled", "membership.expired"})
PAYMENT_FAILED_ACTION = "payment.failed"


def is_whop_configured() -> bool:
    return bool(settings.whop_pro_plan_id)


def whop_return_url() -> str:
    return f"{settings.app_url.rstrip('/')}/upgrade/complete"


def verify_whop_signature(raw_body: bytes, signature: Optional[str], secret: str) -> bool:
    """Check a hex HMAC-SHA256 of the raw body (optional ``sha256=`` prefix)."""
    if not signature:
        return False
    if signature.startswith("sha256="):
        signature = signature[len("sha256="):]
    expected = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature.strip())


def _object(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def extract_email(data: Any) -> Optional[str]:
    """Whop puts the customer email in one of several places."""
    data = _object(data)
    user = _object(data.get("user"))
    membership = _object(data.get("membership"))
    for email in (user.get("email"), membership.get("email"), data.get("email")):
        if email and isinstance(email, str):
            return email
    return None


def _event_time(payload: Dict[str, Any]) -> Optional[datetime]:
    data = _object(payload.get("data"))
    for raw in (payload.get("timestamp"), data.get("updated_at"), data.get("created_at")):
        if raw is None:
            continue
        try:
            if isinstance(raw, (int, float)) or str(raw).isdigit():
                return datetime.fromtimestamp(int(raw), tz=timezone.utc)
            return datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
        except (ValueError, OverflowError, OSError):
            logger.debug("Ignoring unparseable Whop timestamp %r", raw)
    return None


def resolve_whop_change(payload: Dict[str, Any]) -> Optional[SubscriptionChange]:
    """Map a Whop webhook payload to a subscription change (None if unhandled)."""
    action = payload.get("action") or ""
    data = _object(payload.get("data"))
    membership = _object(data.get("membership"))
    membership_id = membership.get("id") or data.get("id")
    event_id = payload.get("id")
    occurred_at = _event_time(payload)
    provider = BillingProvider.WHOP.value

    if action in ACTIVATING_ACTIONS:
        return SubscriptionChange(
            provider=provider,
            event_name=action,
            tier=SubscriptionTier.PRO.value,
            status="active",
            columns={"whop_membership_id": membership_id},
            event_id=event_id,
            occurred_at=occurred_at,
        )
    if action in ENDING_ACTIONS:
        return SubscriptionChange(
            provider=provider,
            event_name=action,
            tier=SubscriptionTier.FREE.value,
            status="cancelled",
            columns={"whop_membership_id": None},
            event_id=event_id,
            occurred_at=occurred_at,
        )
    if action == PAYMENT_FAILED_ACTION:
        # Don't downgrade immediately on a failed charge
        return SubscriptionChange(
            provider=provider,
            event_name=action,
            status="past_due",
            event_id=event_id,
            occurred_at=occurred_at,
        )

    logger.info("Unhandled Whop webhook action: %s", action)
    return None
