"""Referral endpoints (/api/referrals)."""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from manymarkets.auth import get_current_profile
from manymarkets.database import get_db
from manymarkets.exceptions import ReferralError
from manymarkets.models import Profile

from .service import apply_referral_code, referral_stats

router = APIRouter(prefix="/api/referrals", tags=["referrals"])


class ApplyReferral(BaseModel):
    referral_code: Any = Field(None, alias="referralCode")

    model_config = ConfigDict(populate_by_name=True)


@router.get("")
def get_referrals(profile: Profile = Depends(get_current_profile), db: Session = Depends(get_db)):
    """Return the caller's referral code, bonus balance and referred users."""
    return referral_stats(db, profile)


@router.post("/apply")
def apply_referral(
    body: ApplyReferral,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    try:
        bonus_awarded = apply_referral_code(db, profile, body.referral_code)
    except ReferralError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return {
        "success": True,
        "message": "Referral code applied successfully!",
        "bonusAwarded": bonus_awarded,
    }
