"""Referral program."""

from .router import router
from .service import apply_referral_code, mask_email, referral_stats

__all__ = ["router", "apply_referral_code", "mask_email", "referral_stats"]
