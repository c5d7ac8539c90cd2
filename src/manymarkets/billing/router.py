"""Authenticated billing endpoints (Autumn feature gating and Paddle checkout)."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from manymarkets.auth import AuthUser, get_current_profile, get_current_user
from manymarkets.config import FREE_WATERMARKED_EXPORTS, settings
from manymarkets.database import get_db
from manymarkets.exceptions import AutumnError, AutumnNotFoundError, ManyMarketsError, PaddleError
from manymarkets.models import Profile

from .autumn import PRODUCTS, AutumnClient, current_plan, get_autumn_client, sync_customer_tier
from .paddle import PaddleClient, get_paddle_client
from .schemas import BillingAction, FeatureCheck, PaddleCheckout, UsageTrack
from .whop import is_whop_configured, whop_return_url

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/billing", tags=["billing"])


@router.get("")
def get_billing_state(
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db),
    autumn: AutumnClient = Depends(get_autumn_client),
):
    """Return the caller's Autumn customer state and keep the profile tier in sync."""
    try:
        customer = autumn.get_customer(profile.id)
    except AutumnNotFoundError:
        return {"customer": None, "products": [], "currentPlan": PRODUCTS["FREE"]}
    except AutumnError as exc:
        logger.error("Error fetching billing state: %s", exc)
        raise HTTPException(status_code=500, detail="Failed to fetch billing state")

    try:
        sync_customer_tier(db, profile, customer)
    except (ManyMarketsError, SQLAlchemyError) as exc:
        db.rollback()
        logger.warning("Autumn tier sync failed for %s: %s", profile.id, exc)

    return {
        "customer": customer,
        "products": customer.get("products") or [],
        "currentPlan": current_plan(customer),
    }


@router.post("")
def billing_action(
    body: BillingAction,
    user: AuthUser = Depends(get_current_user),
    autumn: AutumnClient = Depends(get_autumn_client),
):
    """Create the Autumn customer or run a checkout/attach/cancel action."""
    action = body.action
    if action not in ("create_customer", "checkout", "attach", "cancel"):
        raise HTTPException(status_code=400, detail="Invalid action")
    if action in ("checkout", "attach") and not body.product_id:
        raise HTTPException(status_code=400, detail="Product ID required")

    try:
        if action == "create_customer":
            customer = autumn.create_customer(user.id, user.display_name, user.email)
            return {"success": True, "customer": customer}

        if action == "checkout":
            data = autumn.checkout(user.id, body.product_id)
            url = data.get("url")
            return {"url": url, "preview": None if url else data}

        if action == "attach":
            data = autumn.attach(user.id, body.product_id)
            return {"success": True, "data": data}

        data = autumn.cancel(user.id, body.product_id or PRODUCTS["PRO"])
        return {"success": True, "data": data}
    except AutumnError as exc:
        logger.error("Billing action %s failed for %s: %s", action, user.id, exc)
        raise HTTPException(status_code=500, detail="Billing action failed")


@router.post("/check")
def check_feature(
    body: FeatureCheck,
    user: AuthUser = Depends(get_current_user),
    autumn: AutumnClient = Depends(get_autumn_client),
):
    if not body.feature_id:
        raise HTTPException(status_code=400, detail="Feature ID required")

    try:
        data = autumn.check(user.id, body.feature_id, body.required_balance)
    except AutumnError as exc:
        # Unknown customers are treated as free tier
        logger.info("Feature check failed for %s: %s", user.id, exc)
        return {"allowed": False, "reason": "Customer not found or feature not available"}

    return {
        "allowed": bool(data.get("allowed", False)),
        "balance": data.get("balance"),
        "unlimited": data.get("unlimited"),
    }


@router.post("/track")
def track_usage(
    body: UsageTrack,
    user: AuthUser = Depends(get_current_user),
    autumn: AutumnClient = Depends(get_autumn_client),
):
    if not body.feature_id:
        raise HTTPException(status_code=400, detail="Feature ID required")

    try:
        data = autumn.track(user.id, body.feature_id, body.value)
    except AutumnError as exc:
        logger.error("Usage tracking failed for %s: %s", user.id, exc)
        raise HTTPException(status_code=500, detail="Failed to track usage")

    return {"success": True, "data": data}


@router.post("/track-free-export")
def track_free_export(
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    """Count one watermarked export against the free allowance."""
    updated = (
        db.query(Profile)
        .filter(Profile.id == profile.id, Profile.free_exports_used < FREE_WATERMARKED_EXPORTS)
        .update({Profile.free_exports_used: Profile.free_exports_used + 1}, synchronize_session=False)
    )
    db.commit()
    db.refresh(profile)
    used = profile.free_exports_used

    if not updated:
        raise HTTPException(
            status_code=403,
            detail={
                "error": "Free export limit reached",
                "limitReached": True,
                "used": used,
                "limit": FREE_WATERMARKED_EXPORTS,
            },
        )

    return {
        "success": True,
        "used": used,
        "limit": FREE_WATERMARKED_EXPORTS,
        "remaining": max(0, FREE_WATERMARKED_EXPORTS - used),
    }


@router.post("/paddle/checkout")
def paddle_checkout(
    body: PaddleCheckout,
    user: AuthUser = Depends(get_current_user),
    paddle: PaddleClient = Depends(get_paddle_client),
):
    """Generate a Paddle pay link for the caller."""
    if not paddle.is_configured:
        raise HTTPException(status_code=503, detail="Paddle is not configured")

    product_id = body.product_id or settings.paddle_pro_product_id
    try:
        url = paddle.create_checkout(
            product_id=product_id,
            user_id=user.id,
            user_email=user.email or None,
            user_name=user.full_name,
            redirect_url=f"{settings.app_url.rstrip('/')}/upgrade/complete",
        )
    except PaddleError as exc:
        logger.error("Paddle checkout failed for %s: %s", user.id, exc)
        raise HTTPException(status_code=500, detail="Failed to create checkout")

    return {"url": url}


@router.get("/providers")
def billing_providers(paddle: PaddleClient = Depends(get_paddle_client)):
    """Report which billing providers are configured."""
    return {
        "pricingEnabled": settings.enable_pricing,
        "paddle": paddle.is_configured,
        "whop": {"configured": is_whop_configured(), "returnUrl": whop_return_url()},
        "autumn": bool(settings.autumn_api_key),
    }
