"""Subscription state reconciliation across billing providers.

Paddle, Whop and Autumn all report subscription changes for the same
``profiles`` row independently. Every change goes through
``apply_subscription_change`` which serializes writers on the profile row and
applies these guards before touching the tier:

- duplicate deliveries (same provider event id) are ignored
- events older than the last event applied from the same provider are
  ignored; providers are ordered independently because an event without a
  provider timestamp is stamped with its receipt time
- only an upgrade can change the tier or status of a paid profile owned by
  another provider
- a change that leaves tier and status as they are does not advance the
  last-applied timestamp
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from manymarkets.exceptions import ReconciliationError
from manymarkets.models import PAID_TIERS, BillingEvent, Profile, SubscriptionTier

logger = logging.getLogger(__name__)

# Columns a provider change may write besides tier/status
PROVIDER_COLUMNS = {
    "paddle": frozenset({"paddle_customer_id", "paddle_subscription_id"}),
    "whop": frozenset({"whop_membership_id"}),
    "autumn": frozenset(),
    "lemonsqueezy": frozenset(),
}


class ReconcileOutcome(str, Enum):
    APPLIED = "applied"
    COLUMNS_ONLY = "columns_only"
    STALE = "stale"
    DUPLICATE = "duplicate"
    NO_CHANGE = "no_change"
    PROFILE_NOT_FOUND = "profile_not_found"


WRITING_OUTCOMES = (ReconcileOutcome.APPLIED.value, ReconcileOutcome.COLUMNS_ONLY.value)


@dataclass(frozen=True)
class SubscriptionChange:
    """A provider-reported subscription transition for one profile.

    ``tier`` of None leaves the tier untouched (e.g. a payment failure that only
    changes status). ``occurred_at`` is the provider's event time; when absent
    the receipt time is used.
    """

    provider: str
    event_name: str
    tier: Optional[str] = None
    status: Optional[str] = None
    columns: Dict[str, Any] = field(default_factory=dict)
    event_id: Optional[str] = None
    occurred_at: Optional[datetime] = None

    def __post_init__(self):
        allowed = PROVIDER_COLUMNS.get(self.provider)
        if allowed is None:
            raise ReconciliationError(f"Unknown billing provider: {self.provider}")
        unexpected = set(self.columns) - allowed
        if unexpected:
            raise ReconciliationError(
                f"Provider {self.provider} may not write columns: {sorted(unexpected)}"
            )

    @property
    def is_downgrade(self) -> bool:
        return self.tier == SubscriptionTier.FREE.value

    @property
    def is_upgrade(self) -> bool:
        return self.tier in PAID_TIERS


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize to naive UTC so DB values and provider timestamps compare."""
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _already_processed(db: Session, change: SubscriptionChange) -> bool:
    if not change.event_id:
        return False
    return (
        db.query(BillingEvent.id)
        .filter(BillingEvent.provider == change.provider, BillingEvent.event_id == change.event_id)
        .first()
        is not None
    )


def _last_applied_at(db: Session, profile_id: str, provider: str) -> Optional[datetime]:
    """Latest event time from ``provider`` that wrote to the profile."""
    return (
        db.query(func.max(BillingEvent.occurred_at))
        .filter(
            BillingEvent.profile_id == profile_id,
            BillingEvent.provider == provider,
            BillingEvent.outcome.in_(WRITING_OUTCOMES),
        )
        .scalar()
    )


def _record(db: Session, change: SubscriptionChange, profile_id: str, outcome: ReconcileOutcome, occurred_at):
    db.add(
        BillingEvent(
            provider=change.provider,
            event_name=change.event_name,
            event_id=change.event_id,
            profile_id=profile_id,
            occurred_at=occurred_at,
            outcome=outcome.value,
        )
    )


def _commit(db: Session, change: SubscriptionChange) -> bool:
    """Commit, treating a concurrent insert of the same event id as a duplicate."""
    try:
        db.commit()
        return True
    except IntegrityError:
        db.rollback()
        logger.info(
            "[BILLING] Concurrent duplicate delivery %s/%s discarded", change.provider, change.event_id
        )
        return False


def apply_subscription_change(db: Session, profile_id: str, change: SubscriptionChange) -> ReconcileOutcome:
    """Apply a provider change to a profile under the reconciliation guards.

    Args:
        db: Database session (committed on return unless the profile is missing)
        profile_id: Profile to update
        change: The provider-reported transition

    Returns:
        How the change was handled
    """
    if _already_processed(db, change):
        logger.info("[BILLING] Duplicate %s event %s ignored", change.provider, change.event_id)
        return ReconcileOutcome.DUPLICATE

    profile = db.query(Profile).filter(Profile.id == profile_id).with_for_update().first()
    if profile is None:
        logger.warning("[BILLING] %s event %s for unknown profile %s", change.provider, change.event_name, profile_id)
        return ReconcileOutcome.PROFILE_NOT_FOUND

    occurred_at = _naive_utc(change.occurred_at) or _naive_utc(datetime.now(timezone.utc))
    last_applied = _naive_utc(_last_applied_at(db, profile_id, change.provider))

    if last_applied is not None and occurred_at < last_applied:
        logger.info(
            "[BILLING] Stale %s event %s (%s < %s) for profile %s ignored",
            change.provider,
            change.event_name,
            occurred_at.isoformat(),
            last_applied.isoformat(),
            profile_id,
        )
        _record(db, change, profile_id, ReconcileOutcome.STALE, occurred_at)
        _commit(db, change)
        return ReconcileOutcome.STALE

    owner = profile.billing_provider
    owned_elsewhere = (
        owner is not None and owner != change.provider and profile.subscription_tier in PAID_TIERS
    )

    tier_changed = change.tier is not None and change.tier != profile.subscription_tier
    status_changed = change.status is not None and change.status != profile.subscription_status
    owner_changed = change.is_upgrade and owner != change.provider

    for column, value in change.columns.items():
        setattr(profile, column, value)

    if owned_elsewhere and not change.is_upgrade:
        logger.info(
            "[BILLING] %s %s for profile %s kept tier %s owned by %s",
            change.provider,
            change.event_name,
            profile_id,
            profile.subscription_tier,
            owner,
        )
        outcome = ReconcileOutcome.COLUMNS_ONLY
    elif not (tier_changed or status_changed or owner_changed):
        outcome = ReconcileOutcome.COLUMNS_ONLY if change.columns else ReconcileOutcome.NO_CHANGE
    else:
        if change.tier is not None:
            profile.subscription_tier = change.tier
            profile.billing_provider = change.provider if change.is_upgrade else None
        if change.status is not None:
            profile.subscription_status = change.status
        profile.billing_updated_at = occurred_at
        outcome = ReconcileOutcome.APPLIED
        logger.info(
            "[BILLING] Applied %s %s to profile %s: tier=%s status=%s",
            change.provider,
            change.event_name,
            profile_id,
            profile.subscription_tier,
            profile.subscription_status,
        )

    _record(db, change, profile_id, outcome, occurred_at)
    if not _commit(db, change):
        return ReconcileOutcome.DUPLICATE
    return outcome
