"""Autumn billing API client and customer sync."""

import logging
from typing import Any, Dict, Optional

import requests
from sqlalchemy.orm import Session

from manymarkets.config import settings
from manymarkets.exceptions import AutumnError, AutumnNotFoundError
from manymarkets.models import PAID_TIERS, BillingProvider, Profile, SubscriptionTier

from .reconciliation import ReconcileOutcome, SubscriptionChange, apply_subscription_change

logger = logging.getLogger(__name__)

# Product IDs matching the Autumn dashboard
PRODUCTS = {
    "FREE": "free",
    "PRO": "pro",
    "ENTERPRISE": "enterprise",
}

# Feature IDs for gating
FEATURES = {
    "AI_SESSIONS": "ai_sessions",
    "MARKETPLACE_LISTING": "marketplace_listing",
    "BUILDER_STUDIO": "builder_studio",
    "ANALYTICS": "analytics",
}


class AutumnClient:
    """Thin JSON client over the Autumn REST API."""

    def __init__(
        self,
        secret_key: Optional[str] = None,
        api_base: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.secret_key = secret_key if secret_key is not None else settings.autumn_api_key
        self.api_base = (api_base or settings.autumn_api_base).rstrip("/")
        self.timeout = timeout or settings.provider_timeout_seconds
        self.session = session or requests.Session()

    @property
    def is_configured(self) -> bool:
        return bool(self.secret_key)

    def _request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if not self.is_configured:
            raise AutumnError("AUTUMN_API_KEY not configured")
        try:
            resp = self.session.request(
                method,
                f"{self.api_base}{path}",
                json=json,
                headers={"Authorization": f"Bearer {self.secret_key}"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise AutumnError(f"Autumn request failed: {exc}") from exc

        try:
            body = resp.json()
        except ValueError:
            body = {}

        if resp.status_code == 404:
            raise AutumnNotFoundError(
                body.get("message") or "Customer not found",
                status_code=404,
                response_data=body,
            )
        if not resp.ok:
            message = body.get("message") or f"Autumn returned HTTP {resp.status_code}"
            raise AutumnError(message, status_code=resp.status_code, response_data=body)
        return body

    def get_customer(self, customer_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/customers/{customer_id}")

    def create_customer(self, customer_id: str, name: str, email: str) -> Dict[str, Any]:
        return self._request("POST", "/customers", {"id": customer_id, "name": name, "email": email})

    def checkout(self, customer_id: str, product_id: str) -> Dict[str, Any]:
        return self._request("POST", "/checkout", {"customer_id": customer_id, "product_id": product_id})

    def attach(self, customer_id: str, product_id: str) -> Dict[str, Any]:
        return self._request("POST", "/attach", {"customer_id": customer_id, "product_id": product_id})

    def cancel(self, customer_id: str, product_id: str) -> Dict[str, Any]:
        return self._request("POST", "/cancel", {"customer_id": customer_id, "product_id": product_id})

    def check(self, customer_id: str, feature_id: str, required_balance: int = 1) -> Dict[str, Any]:
        return self._request(
            "POST",
            "/check",
            {"customer_id": customer_id, "feature_id": feature_id, "required_balance": required_balance},
        )

    def track(self, customer_id: str, feature_id: str, value: int = 1) -> Dict[str, Any]:
        return self._request(
            "POST", "/track", {"customer_id": customer_id, "feature_id": feature_id, "value": value}
        )


def get_autumn_client() -> AutumnClient:
    """FastAPI dependency returning an Autumn client built from settings."""
    return AutumnClient()


def current_plan(customer: Optional[Dict[str, Any]]) -> str:
    products = (customer or {}).get("products") or []
    if products and products[0].get("id"):
        return products[0]["id"]
    return PRODUCTS["FREE"]


def sync_customer_tier(db: Session, profile: Profile, customer: Optional[Dict[str, Any]]) -> ReconcileOutcome:
    """Push Autumn's view of the customer's plan through the reconciler."""
    plan = current_plan(customer)
    paid = plan in PAID_TIERS
    change = SubscriptionChange(
        provider=BillingProvider.AUTUMN.value,
        event_name="customer.sync",
        tier=plan if paid else SubscriptionTier.FREE.value,
        status="active" if paid else None,
    )
    outcome = apply_subscription_change(db, profile.id, change)
    logger.debug("Autumn sync for %s: plan=%s outcome=%s", profile.id, plan, outcome.value)
    return outcome
