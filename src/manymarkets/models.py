"""Database models for profiles, research sessions, ideas, referrals and billing"""

import secrets
import string
import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


_REFERRAL_ALPHABET = string.ascii_uppercase + string.digits


def generate_referral_code(length: int = 8) -> str:
    """Random upper-case referral code (codes are matched upper-cased)."""
    return "".join(secrets.choice(_REFERRAL_ALPHABET) for _ in range(length))


class SubscriptionTier(str, Enum):
    FREE = "free"
    PRO = "pro"
    ENTERPRISE = "enterprise"


PAID_TIERS = frozenset({SubscriptionTier.PRO.value, SubscriptionTier.ENTERPRISE.value})


class BillingProvider(str, Enum):
    """External billing integrations that report subscription state."""

    PADDLE = "paddle"
    LEMONSQUEEZY = "lemonsqueezy"
    WHOP = "whop"
    AUTUMN = "autumn"


class SessionPhase(str, Enum):
    """Research flow phases"""

    DISCOVERY = "discovery"
    NICHE_DRILLING = "niche_drilling"
    UVZ_IDENTIFICATION = "uvz_identification"
    VALIDATION = "validation"
    PRODUCT_IDEATION = "product_ideation"
    COMPLETED = "completed"


class Profile(Base):
    """Application user record, 1:1 with the Supabase auth identity"""

    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True)  # auth.users.id
    email = Column(String(255), index=True, nullable=False, default="")
    full_name = Column(String(255), nullable=True)

    # Subscription state
    subscription_tier = Column(String(20), nullable=False, default=SubscriptionTier.FREE.value)
    subscription_status = Column(String(20), nullable=False, default="active")
    paddle_customer_id = Column(String(255), nullable=True)
    paddle_subscription_id = Column(String(255), nullable=True)
    whop_membership_id = Column(String(255), nullable=True)
    # Provider that last set subscription_tier, and the provider-reported time of that event
    billing_provider = Column(String(20), nullable=True)
    billing_updated_at = Column(DateTime, nullable=True)

    # Referrals
    referral_code = Column(String(16), unique=True, index=True, nullable=False, default=generate_referral_code)
    referral_count = Column(Integer, nullable=False, default=0)
    bonus_sessions = Column(Integer, nullable=False, default=0)
    referred_by = Column(String(36), ForeignKey("profiles.id"), nullable=True)

    free_exports_used = Column(Integer, nullable=False, default=0)
    email_unsubscribed = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    sessions = relationship("ResearchSession", back_populates="profile", cascade="all, delete-orphan")

    @property
    def is_pro(self) -> bool:
        return self.subscription_tier in PAID_TIERS

    def __repr__(self) -> str:
        return f"<Profile(id={self.id}, email='{self.email}', tier='{self.subscription_tier}')>"


class Referral(Base):
    """One referred signup; a user can only be referred once"""

    __tablename__ = "referrals"

    id = Column(String(36), primary_key=True, default=new_id)
    referrer_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), index=True, nullable=False)
    referred_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), unique=True, nullable=False)
    bonus_awarded = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    referred = relationship("Profile", foreign_keys=[referred_id])


class BillingEvent(Base):
    """Ledger of provider notifications and how each one was reconciled"""

    __tablename__ = "billing_events"
    __table_args__ = (UniqueConstraint("provider", "event_id", name="uq_billing_event_provider_event"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    provider = Column(String(20), nullable=False)
    event_name = Column(String(100), nullable=False)
    event_id = Column(String(255), nullable=True)  # NULL when the provider sends no stable id
    profile_id = Column(String(36), index=True, nullable=True)
    occurred_at = Column(DateTime, nullable=True)
    outcome = Column(String(30), nullable=False)
    received_at = Column(DateTime, nullable=False, default=utcnow)


class ResearchSession(Base):
    """A chat-driven niche research session"""

    __tablename__ = "research_sessions"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), index=True, nullable=False)
    title = Column(String(255), nullable=False, default="New Research Session")
    phase = Column(String(30), nullable=False, default=SessionPhase.DISCOVERY.value)
    phase_progress = Column(Integer, nullable=False, default=0)
    industry = Column(String(255), nullable=True)
    selected_niche = Column(Text, nullable=True)
    selected_uvz = Column(Text, nullable=True)
    message_count = Column(Integer, nullable=False, default=0)
    tool_calls_count = Column(Integer, nullable=False, default=0)
    is_archived = Column(Boolean, nullable=False, default=False)
    is_starred = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    last_message_at = Column(DateTime, nullable=False, default=utcnow)

    profile = relationship("Profile", back_populates="sessions")
    messages = relationship(
        "Message",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="Message.created_at",
    )


class Message(Base):
    """One chat turn stored against a research session"""

    __tablename__ = "messages"

    id = Column(String(36), primary_key=True, default=new_id)
    session_id = Column(String(36), ForeignKey("research_sessions.id", ondelete="CASCADE"), index=True, nullable=False)
    user_id = Column(String(36), nullable=False)
    role = Column(String(20), nullable=False)  # user, assistant, system, tool
    content = Column(Text, nullable=False)
    tool_calls = Column(JSON, nullable=True)
    tool_results = Column(JSON, nullable=True)
    tokens_used = Column(Integer, nullable=True)
    model_used = Column(String(100), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    session = relationship("ResearchSession", back_populates="messages")


class ProductStatus(str, Enum):
    IDEA = "idea"
    PLANNING = "planning"
    BUILDING = "building"
    LAUNCHED = "launched"
    ARCHIVED = "archived"


class Product(Base):
    """A product plan the user is building out of a research session"""

    __tablename__ = "product_ideas"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), index=True, nullable=False)
    session_id = Column(String(36), ForeignKey("research_sessions.id", ondelete="SET NULL"), nullable=True)
    name = Column(String(255), nullable=False)
    tagline = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    product_type = Column(String(30), nullable=True)  # saas, course, ebook, template, ...
    core_features = Column(JSON, nullable=True)
    tech_stack = Column(JSON, nullable=True)
    pricing_model = Column(String(20), nullable=True)  # one_time, subscription, freemium, usage_based, other
    price_point = Column(String(100), nullable=True)
    revenue_potential = Column(String(100), nullable=True)
    build_time = Column(String(100), nullable=True)
    build_difficulty = Column(String(10), nullable=True)
    mvp_scope = Column(Text, nullable=True)
    go_to_market_strategy = Column(Text, nullable=True)
    target_launch_date = Column(Date, nullable=True)
    status = Column(String(20), index=True, nullable=False, default=ProductStatus.IDEA.value)
    is_favorite = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=True)
    raw_analysis = Column(JSON, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class DailyNicheIdea(Base):
    """Featured niche idea, generated once per day"""

    __tablename__ = "daily_niche_ideas"

    id = Column(String(36), primary_key=True, default=new_id)
    featured_date = Column(Date, index=True, nullable=False)
    display_order = Column(Integer, nullable=False, default=0)
    name = Column(String(255), nullable=False)
    industry = Column(String(255), index=True, nullable=True)
    one_liner = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    target_audience = Column(Text, nullable=True)
    core_problem = Column(Text, nullable=True)

    opportunity_score = Column(Float, nullable=True)
    problem_score = Column(Float, nullable=True)
    feasibility_score = Column(Float, nullable=True)
    total_score = Column(Float, nullable=True)
    scores_explanation = Column(JSON, nullable=True)
    demand_level = Column(String(20), nullable=True)
    competition_level = Column(String(20), nullable=True)
    trending_score = Column(Float, nullable=True)
    market_size = Column(Text, nullable=True)
    growth_rate = Column(Text, nullable=True)

    pain_points = Column(JSON, nullable=True)
    monetization_ideas = Column(JSON, nullable=True)
    product_ideas = Column(JSON, nullable=True)
    validation_signals = Column(JSON, nullable=True)
    full_research_report = Column(JSON, nullable=True)
    sources = Column(JSON, nullable=True)

    is_published = Column(Boolean, nullable=False, default=True)
    is_featured = Column(Boolean, nullable=False, default=False)
    generated_by = Column(String(50), nullable=True)
    generation_prompt = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        data = {c.name: getattr(self, c.name) for c in self.__table__.columns}
        data["featured_date"] = self.featured_date.isoformat() if self.featured_date else None
        data["created_at"] = self.created_at.isoformat() if self.created_at else None
        return data


class SavedIdea(Base):
    __tablename__ = "saved_ideas"
    __table_args__ = (UniqueConstraint("user_id", "idea_id", name="uq_saved_idea_user_idea"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), index=True, nullable=False)
    idea_id = Column(String(36), ForeignKey("daily_niche_ideas.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class WaitlistEntry(Base):
    __tablename__ = "waitlist"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False)
    country = Column(String(100), nullable=False)
    referral_source = Column(String(255), nullable=True)
    position = Column(Integer, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
