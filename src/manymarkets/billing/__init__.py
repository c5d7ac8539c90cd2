"""Billing package: provider integrations and subscription reconciliation.

Exports:
- router: authenticated billing endpoints (/api/billing)
- webhooks_router: provider webhooks (/api/webhooks)
- apply_subscription_change and its types
"""

from .reconciliation import ReconcileOutcome, SubscriptionChange, apply_subscription_change
from .router import router
from .webhooks import router as webhooks_router

__all__ = [
    "router",
    "webhooks_router",
    "ReconcileOutcome",
    "SubscriptionChange",
    "apply_subscription_change",
]
