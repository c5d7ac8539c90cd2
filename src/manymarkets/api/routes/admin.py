"""Operator endpoints guarded by the admin token."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from manymarkets.database import get_db
from manymarkets.models import Profile, SubscriptionTier

from ..deps import verify_admin_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(verify_admin_token)])


@router.post("/disable-pricing")
def disable_pricing(db: Session = Depends(get_db)):
    """Put every profile back on the free tier and drop provider ownership."""
    try:
        updated = db.query(Profile).update(
            {
                Profile.subscription_tier: SubscriptionTier.FREE.value,
                Profile.subscription_status: "active",
                Profile.paddle_customer_id: None,
                Profile.paddle_subscription_id: None,
                Profile.whop_membership_id: None,
                Profile.billing_provider: None,
                Profile.billing_updated_at: None,
            },
            synchronize_session=False,
        )
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Failed to disable pricing via admin endpoint: %s", exc)
        raise HTTPException(status_code=500, detail="Failed to apply changes")

    logger.warning("[ADMIN] Pricing disabled; %d profiles reset to free", updated)
    return {"success": True, "message": "Pricing disabled for all profiles", "profilesUpdated": updated}
