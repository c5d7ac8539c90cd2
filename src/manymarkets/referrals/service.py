"""Referral program: applying codes and summarising a referrer's stats."""

import logging
import re
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from manymarkets.config import MAX_REFERRAL_BONUSES, REFERRAL_BONUS_SESSIONS
from manymarkets.exceptions import ReferralError
from manymarkets.models import Profile, Referral

logger = logging.getLogger(__name__)

MAX_BONUS_SESSIONS = MAX_REFERRAL_BONUSES * REFERRAL_BONUS_SESSIONS

_EMAIL_MASK = re.compile(r"(.{2}).*(@.*)")


def mask_email(email: Optional[str]) -> str:
    """Keep the first two characters and the domain: ``jo***@example.com``."""
    if not email:
        return "Anonymous"
    return _EMAIL_MASK.sub(r"\1***\2", email, count=1)


def normalize_code(code: str) -> str:
    return code.strip().upper()


def apply_referral_code(db: Session, profile: Profile, referral_code: Any) -> bool:
    """
    Credit ``profile`` as referred by the owner of ``referral_code``.

    The referrer row is locked for the duration so concurrent signups on the
    same code cannot both read a stale bonus balance.

    Args:
        db: Database session (committed on success)
        profile: The profile applying the code
        referral_code: Raw code as submitted

    Returns:
        Whether the referrer received bonus sessions

    Raises:
        ReferralError: If the code is missing, invalid, already used or the caller's own
    """
    if not referral_code or not isinstance(referral_code, str):
        raise ReferralError("Referral code is required")

    clean_code = normalize_code(referral_code)
    if not clean_code:
        raise ReferralError("Referral code is required")

    if profile.referred_by:
        raise ReferralError("You have already used a referral code")

    if profile.referral_code == clean_code:
        raise ReferralError("You cannot use your own referral code")

    referrer = (
        db.query(Profile)
        .filter(Profile.referral_code == clean_code)
        .with_for_update()
        .first()
    )
    if referrer is None:
        raise ReferralError("Invalid referral code")

    bonus_awarded = (referrer.bonus_sessions or 0) < MAX_BONUS_SESSIONS

    db.add(Referral(referrer_id=referrer.id, referred_id=profile.id, bonus_awarded=bonus_awarded))
    profile.referred_by = referrer.id
    referrer.referral_count = (referrer.referral_count or 0) + 1
    if bonus_awarded:
        referrer.bonus_sessions = (referrer.bonus_sessions or 0) + REFERRAL_BONUS_SESSIONS

    try:
        db.commit()
    except IntegrityError:
        # referred_id is unique: a concurrent request already applied a code
        db.rollback()
        raise ReferralError("You have already used a referral code")

    logger.info(
        "Referral applied: %s referred by %s (bonus_awarded=%s)", profile.id, referrer.id, bonus_awarded
    )
    return bonus_awarded


def referral_stats(db: Session, profile: Profile) -> Dict[str, Any]:
    referrals = (
        db.query(Referral)
        .filter(Referral.referrer_id == profile.id)
        .order_by(Referral.created_at.desc())
        .all()
    )
    items: List[Dict[str, Any]] = [
        {
            "id": r.id,
            "email": mask_email(r.referred.email if r.referred else None),
            "date": r.created_at.isoformat() if r.created_at else None,
            "bonusAwarded": r.bonus_awarded,
        }
        for r in referrals
    ]
    return {
        "referralCode": profile.referral_code,
        "referralCount": profile.referral_count or 0,
        "bonusSessions": profile.bonus_sessions or 0,
        "maxBonusSessions": MAX_BONUS_SESSIONS,
        "bonusPerReferral": REFERRAL_BONUS_SESSIONS,
        "wasReferred": bool(profile.referred_by),
        "referrals": items,
    }
