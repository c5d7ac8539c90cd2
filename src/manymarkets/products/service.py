"""Product plan rules: pro access and mapping suggestions onto stored columns."""

import logging
from typing import Any, Dict, Optional

from manymarkets.billing.autumn import AutumnClient, current_plan
from manymarkets.exceptions import AutumnError, AutumnNotFoundError
from manymarkets.models import PAID_TIERS, Profile, ProductStatus

from .schemas import ProductCreate

logger = logging.getLogger(__name__)

BUILD_DIFFICULTIES = frozenset({"easy", "medium", "hard"})
PRICING_MODELS = frozenset({"one_time", "subscription", "freemium", "usage_based", "other"})
PRODUCT_STATUSES = frozenset(s.value for s in ProductStatus)

_PRODUCT_TYPE_ALIASES = {
    "saas": "saas",
    "software": "saas",
    "course": "course",
    "online course": "course",
    "ebook": "ebook",
    "e-book": "ebook",
    "book": "ebook",
    "guide": "ebook",
    "template": "template",
    "templates": "template",
    "community": "community",
    "membership": "community",
    "marketplace": "marketplace",
    "tool": "tool",
    "mobile_app": "mobile_app",
    "app": "mobile_app",
}


def has_pro_access(profile: Profile, autumn: AutumnClient) -> bool:
    """Pro on the profile, or on Autumn when the webhook has not landed yet."""
    if profile.is_pro:
        return True
    if not autumn.is_configured:
        return False
    try:
        customer = autumn.get_customer(profile.id)
    except AutumnNotFoundError:
        return False
    except AutumnError as exc:
        logger.warning("Autumn plan lookup failed for %s: %s", profile.id, exc)
        return False
    return current_plan(customer) in PAID_TIERS


def map_pricing_model(revenue_model: Optional[str]) -> Optional[str]:
    """``"Subscription $19-49/mo"`` -> ``"subscription"``"""
    if not revenue_model:
        return None
    lower = revenue_model.lower()
    if "subscription" in lower or "/mo" in lower or "monthly" in lower:
        return "subscription"
    if "one-time" in lower or "one time" in lower or "one_time" in lower:
        return "one_time"
    if "free" in lower:
        return "freemium"
    if "usage" in lower or "pay per" in lower:
        return "usage_based"
    return "other"


def map_product_type(product_type: Optional[str]) -> Optional[str]:
    if not product_type:
        return None
    return _PRODUCT_TYPE_ALIASES.get(product_type.lower(), "other")


def product_fields(body: ProductCreate) -> Dict[str, Any]:
    """Column values for a new product; empty or unrecognised inputs are left unset."""
    fields: Dict[str, Any] = {"name": body.name, "session_id": body.session_id}
    if body.description:
        fields["description"] = body.description
    if body.product_type:
        fields["product_type"] = map_product_type(body.product_type)
    if body.tagline:
        fields["tagline"] = body.tagline
    if isinstance(body.mvp_scope, list):
        fields["core_features"] = body.mvp_scope
    if body.revenue_model:
        fields["pricing_model"] = map_pricing_model(body.revenue_model)
    if body.time_to_launch:
        fields["build_time"] = body.time_to_launch
    if body.difficulty and body.difficulty.lower() in BUILD_DIFFICULTIES:
        fields["build_difficulty"] = body.difficulty.lower()
    if body.estimated_earnings:
        fields["revenue_potential"] = body.estimated_earnings
    if body.skills_match or body.match_score:
        fields["raw_analysis"] = {"skillsMatch": body.skills_match, "matchScore": body.match_score}
    return fields


def invalid_update(updates: Dict[str, Any]) -> Optional[str]:
    """Error message for an update with an out-of-range enum value, else None."""
    status = updates.get("status")
    if status is not None and status not in PRODUCT_STATUSES:
        return f"Invalid status: {status}"
    difficulty = updates.get("build_difficulty")
    if difficulty is not None and difficulty not in BUILD_DIFFICULTIES:
        return f"Invalid build difficulty: {difficulty}"
    pricing = updates.get("pricing_model")
    if pricing is not None and pricing not in PRICING_MODELS:
        return f"Invalid pricing model: {pricing}"
    if "name" in updates and not updates["name"]:
        return "Product name is required"
    return None
