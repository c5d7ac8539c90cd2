"""Signed unsubscribe tokens.

A token is ``base64url("<user_id>:<issued_ms>") + "." + base64url(HMAC-SHA256)``
keyed with ``UNSUBSCRIBE_SECRET``. Tokens do not expire.
"""

import base64
import binascii
import hashlib
import hmac
import logging
import time
from typing import Optional

from sqlalchemy.orm import Session

from manymarkets.config import DEV_UNSUBSCRIBE_SECRET, is_dev_secret, is_production, settings
from manymarkets.models import Profile

logger = logging.getLogger(__name__)


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(value: str) -> bytes:
    return base64.urlsafe_b64decode(value + "=" * (-len(value) % 4))


def _sign(payload: str, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), payload.encode("utf-8"), hashlib.sha256).digest()
    return _b64encode(digest)


def generate_unsubscribe_token(user_id: str, secret: Optional[str] = None, issued_ms: Optional[int] = None) -> str:
    secret = secret or settings.unsubscribe_secret
    if issued_ms is None:
        issued_ms = int(time.time() * 1000)
    payload = f"{user_id}:{issued_ms}"
    return f"{_b64encode(payload.encode('utf-8'))}.{_sign(payload, secret)}"


def verify_unsubscribe_token(token: str, secret: Optional[str] = None) -> Optional[str]:
    """Return the user id carried by ``token``, or None if it is malformed or forged."""
    if not token or not isinstance(token, str) or token.count(".") != 1:
        return None
    if secret is None and is_production() and is_dev_secret(settings.unsubscribe_secret, DEV_UNSUBSCRIBE_SECRET):
        logger.error("UNSUBSCRIBE_SECRET not configured; rejecting unsubscribe token")
        return None
    secret = secret or settings.unsubscribe_secret
    encoded_payload, signature = token.split(".")
    try:
        payload = _b64decode(encoded_payload).decode("utf-8")
    except (binascii.Error, ValueError):
        return None

    if not hmac.compare_digest(_sign(payload, secret), signature):
        return None

    user_id = payload.split(":", 1)[0]
    return user_id or None


def unsubscribe_profile(db: Session, user_id: str) -> bool:
    """Opt the profile out of marketing email. Returns False if no profile matched."""
    updated = (
        db.query(Profile)
        .filter(Profile.id == user_id)
        .update({Profile.email_unsubscribed: True}, synchronize_session=False)
    )
    db.commit()
    if not updated:
        logger.info("Unsubscribe token for unknown profile %s", user_id)
    return bool(updated)
