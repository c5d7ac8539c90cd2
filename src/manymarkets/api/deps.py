"""API dependencies shared by the routers.

This module provides:
- get_client_ip: Client IP extraction respecting trusted proxies
- limiter: Rate limiter instance keyed by client IP
- verify_admin_token: Shared-secret check for operator endpoints
- verify_cron_secret: Bearer check for scheduled jobs

Forwarded headers are trusted only when the direct peer is a trusted proxy.
"""

import hmac
import ipaddress
import logging
import os
from typing import Optional

from fastapi import Header, HTTPException, Request
from slowapi import Limiter

from ..config import settings

logger = logging.getLogger(__name__)

# Trusted proxy IPs - only trust forwarded headers from these sources
# Override via MANYMARKETS_TRUSTED_PROXIES env var (comma-separated IPs/CIDRs)
_DEFAULT_TRUSTED_PROXIES = {"127.0.0.1", "::1"}


def _is_trusted_proxy(client_ip: Optional[str]) -> bool:
    """Check if the direct client IP is from a trusted proxy.

    Supports both single IPs and CIDR notation in MANYMARKETS_TRUSTED_PROXIES,
    e.g. "127.0.0.1, 10.0.0.0/8".
    """
    if not client_ip:
        return False

    try:
        client_ip_obj = ipaddress.ip_address(client_ip)
    except ValueError:
        return False

    trusted = os.getenv("MANYMARKETS_TRUSTED_PROXIES", "").strip()
    if trusted:
        trusted_list = [entry.strip() for entry in trusted.split(",") if entry.strip()]
    else:
        trusted_list = list(_DEFAULT_TRUSTED_PROXIES)

    for entry in trusted_list:
        try:
            network = ipaddress.ip_network(entry, strict=False)
            if client_ip_obj in network:
                return True
        except ValueError:
            continue

    return False


def get_client_ip(request: Request) -> str:
    """
    Extract real client IP, respecting X-Forwarded-For only from trusted proxies.

    Priority (when from trusted proxy):
    1. X-Forwarded-For header (first IP in chain = original client)
    2. X-Real-IP header
    3. request.client.host
    """
    direct_ip = request.client.host if request.client else None

    if _is_trusted_proxy(direct_ip):
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            return real_ip.strip()

    if direct_ip:
        return direct_ip

    return "127.0.0.1"


# Rate limiter instance - used by routes via app.state.limiter
limiter = Limiter(key_func=get_client_ip)


def verify_admin_token(x_admin_token: Optional[str] = Header(default=None)) -> None:
    """Require the x-admin-token header to match ADMIN_API_KEY."""
    expected = settings.admin_api_key
    if not expected:
        logger.error("ADMIN_API_KEY not configured")
        raise HTTPException(status_code=500, detail="Admin API not configured")
    if not x_admin_token or not hmac.compare_digest(x_admin_token, expected):
        raise HTTPException(status_code=401, detail="Unauthorized")


def verify_cron_secret(authorization: Optional[str] = Header(default=None)) -> None:
    """Require ``Authorization: Bearer <CRON_SECRET>`` when a cron secret is set."""
    secret = settings.cron_secret
    if not secret:
        return
    if not authorization or not hmac.compare_digest(authorization, f"Bearer {secret}"):
        raise HTTPException(status_code=401, detail="Unauthorized")
