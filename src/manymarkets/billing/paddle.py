"""Paddle Classic integration: vendor API client and webhook helpers.

Webhooks arrive form-encoded with a ``p_signature`` field. The signature is an
RSA-SHA1 signature over the PHP-serialized, key-sorted remaining fields.
"""

import base64
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

import requests
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding

from manymarkets.config import settings
from manymarkets.exceptions import PaddleError

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = frozenset({"active", "trialing", "paused"})

UPGRADE_ALERTS = frozenset(
    {"subscription_created", "subscription_updated", "subscription_payment_succeeded"}
)
DOWNGRADE_ALERTS = frozenset(
    {"subscription_cancelled", "subscription_deleted", "subscription_payment_failed"}
)

EVENT_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def is_active_subscription(status: Optional[str]) -> bool:
    """Paddle states that still entitle the customer to the paid tier."""
    return (status or "").lower() in ACTIVE_STATUSES


def _php_string(value: str) -> str:
    return f's:{len(value.encode("utf-8"))}:"{value}";'


def php_serialize_fields(fields: Mapping[str, Any]) -> bytes:
    """PHP-serialize a flat mapping with keys sorted and values coerced to str."""
    items = sorted(fields.items())
    body = "".join(_php_string(str(k)) + _php_string(str(v)) for k, v in items)
    return f"a:{len(items)}:{{{body}}}".encode("utf-8")


def _load_public_key(public_key: str):
    pem = public_key.replace("\\n", "\n").strip()
    if "-----BEGIN PUBLIC KEY-----" not in pem:
        pem = f"-----BEGIN PUBLIC KEY-----\n{pem}\n-----END PUBLIC KEY-----"
    return serialization.load_pem_public_key(pem.encode("utf-8"))


def verify_webhook_signature(fields: Mapping[str, Any], signature: str, public_key: str) -> bool:
    """
    Verify a Paddle Classic webhook signature.

    Args:
        fields: All posted form fields (``p_signature`` is ignored if present)
        signature: Base64 ``p_signature`` value
        public_key: Vendor public key, PEM or bare base64 body

    Returns:
        True if the signature matches
    """
    if not signature:
        return False
    payload = {k: v for k, v in fields.items() if k != "p_signature"}
    try:
        key = _load_public_key(public_key)
        key.verify(
            base64.b64decode(signature),
            php_serialize_fields(payload),
            padding.PKCS1v15(),
            hashes.SHA1(),
        )
        return True
    except InvalidSignature:
        return False
    except ValueError as exc:
        logger.error("Error verifying Paddle webhook signature: %s", exc)
        return False


def parse_event_time(value: Optional[str]) -> Optional[datetime]:
    """Paddle sends ``event_time`` as 'YYYY-MM-DD HH:MM:SS' in UTC."""
    if not value:
        return None
    try:
        return datetime.strptime(value, EVENT_TIME_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError:
        logger.warning("Unparseable Paddle event_time %r", value)
        return None


class PaddleClient:
    """Minimal Paddle Classic Vendor API client."""

    def __init__(
        self,
        vendor_id: Optional[str] = None,
        vendor_auth: Optional[str] = None,
        api_base: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.vendor_id = vendor_id if vendor_id is not None else settings.paddle_vendor_id
        self.vendor_auth = vendor_auth if vendor_auth is not None else settings.paddle_vendor_auth
        self.api_base = (api_base or settings.paddle_api_base).rstrip("/")
        self.timeout = timeout or settings.provider_timeout_seconds
        self.session = session or requests.Session()

    @property
    def is_configured(self) -> bool:
        return bool(self.vendor_id and self.vendor_auth)

    def _post(self, path: str, data: Dict[str, str], failure_message: str) -> Any:
        if not self.is_configured:
            raise PaddleError("Paddle vendor credentials not configured")

        payload = {"vendor_id": self.vendor_id, "vendor_auth_code": self.vendor_auth, **data}
        try:
            resp = self.session.post(f"{self.api_base}{path}", data=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            raise PaddleError(f"{failure_message}: {exc}") from exc

        try:
            body = resp.json()
        except ValueError:
            body = {}

        if not resp.ok or body.get("success") is False:
            message = (body.get("error") or {}).get("message") or failure_message
            logger.error("Paddle API error on %s: %s", path, message)
            raise PaddleError(message, status_code=resp.status_code, response_data=body)
        return body.get("response")

    def create_checkout(
        self,
        product_id: str,
        user_id: str,
        user_email: Optional[str] = None,
        user_name: Optional[str] = None,
        redirect_url: Optional[str] = None,
    ) -> str:
        """Generate a pay link; ``passthrough`` carries our user id back in webhooks."""
        data = {"product_id": product_id, "passthrough": user_id}
        if user_email:
            data["customer_email"] = user_email
        if user_name:
            data["title"] = user_name
        if redirect_url:
            data["return_url"] = redirect_url

        response = self._post("/product/generate_pay_link", data, "Failed to generate Paddle pay link")
        return (response or {}).get("url", "")

    def get_customer_subscriptions(self, email_or_customer_id: str) -> List[Dict[str, Any]]:
        response = self._post(
            "/subscription/users",
            {"email": email_or_customer_id},
            "Failed to fetch Paddle subscriptions",
        )
        subscriptions = []
        for s in response or []:
            subscriptions.append(
                {
                    "id": str(s.get("subscription_id", s.get("id"))),
                    "status": s.get("state") or s.get("status") or "unknown",
                    "variant_id": str(s.get("variant_id", s.get("plan_id", ""))),
                    "product_id": str(s.get("plan_id", s.get("product_id", ""))),
                    "renews_at": s.get("next_payment") or s.get("next_bill_date"),
                    "ends_at": s.get("ended_at") or s.get("canceled_at"),
                }
            )
        return subscriptions

    def cancel_subscription(self, subscription_id: str) -> None:
        self._post(
            "/subscription/users_cancel",
            {"subscription_id": subscription_id},
            "Failed to cancel Paddle subscription",
        )


def get_paddle_client() -> PaddleClient:
    """FastAPI dependency returning a Paddle client built from settings."""
    return PaddleClient()
