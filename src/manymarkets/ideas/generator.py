"""Daily niche idea generation.

One idea is generated per UTC day. The industry rotates through ``INDUSTRIES``
by day of year, and the model is asked for a single JSON document describing
the niche, which is stored as a published, featured ``DailyNicheIdea``.
"""

import json
import logging
import re
import threading
from datetime import date, datetime, timezone
from typing import Any, Dict, Optional, Tuple

from sqlalchemy.orm import Session

from manymarkets.exceptions import AIProviderError, IdeaGenerationError
from manymarkets.models import DailyNicheIdea

logger = logging.getLogger(__name__)

INDUSTRIES = [
    "AI & Automation",
    "Remote Work & Productivity",
    "Health & Wellness",
    "Education & E-Learning",
    "Creator Economy",
    "Sustainability & Green Tech",
    "Finance & Investing",
    "Gaming & Entertainment",
    "E-commerce & Retail",
    "Real Estate & PropTech",
    "Food & Beverage",
    "Fitness & Sports",
    "Pet Industry",
    "Beauty & Personal Care",
    "Travel & Hospitality",
    "Parenting & Family",
    "Career & Professional Development",
    "Mental Health & Mindfulness",
    "Home & DIY",
    "B2B SaaS & Enterprise",
]

GENERATED_BY = "ai-cron"

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")

# Serializes in-process generation so concurrent triggers don't double-generate
_generation_lock = threading.Lock()


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def industry_for_day(day: date) -> str:
    """Rotate industries by day of year (Jan 1 is day 1)."""
    return INDUSTRIES[day.timetuple().tm_yday % len(INDUSTRIES)]


def build_generation_prompt(industry: str) -> str:
    return f"""You are an expert market researcher finding a hidden gem niche opportunity.

Industry: "{industry}"

Find ONE highly specific, underserved niche opportunity (Unique Value Zone) in this industry.

Requirements:
1. Must be SPECIFIC - not broad like "health apps" but specific like "Sleep tracking for night shift nurses"
2. Must have REAL demand signals
3. Must have LOW to MEDIUM competition
4. Must be actionable for a solo founder or small team

Return ONLY valid JSON:
{{
  "name": "Specific Niche Name (5-8 words max)",
  "industry": "{industry}",
  "one_liner": "One compelling sentence describing the opportunity",
  "description": "2-3 paragraph detailed description of the niche opportunity",
  "target_audience": "Super specific target customer with demographics, psychographics, and behaviors",
  "core_problem": "The exact painful problem this audience faces that isn't being solved well",
  "opportunity_score": 8.5,
  "demand_level": "high",
  "competition_level": "low",
  "trending_score": 75,
  "market_size": "Estimated market size (e.g., $2.5B growing at 12% CAGR)",
  "growth_rate": "Annual growth rate with reasoning",
  "pain_points": ["Specific pain point 1 with context", "Specific pain point 2 with context"],
  "monetization_ideas": [
    {{"model": "SaaS/Course/Template/Community/Marketplace/Consulting", "description": "How to monetize", "price_range": "$X-$Y", "recurring": true}}
  ],
  "product_ideas": [
    {{"type": "SaaS/Course/Template/Community/Tool", "name": "Product name", "tagline": "One-liner", "description": "What it does", "core_features": ["Feature 1", "Feature 2"], "price_point": "$X/month", "build_time": "X weeks", "build_difficulty": "Easy/Medium/Hard", "mvp_scope": "Minimum viable product description"}}
  ],
  "validation_signals": [
    {{"signal": "What demand signal was found", "source": "Where it was found", "strength": "Strong/Moderate/Weak"}}
  ],
  "full_research_report": {{
    "executive_summary": "2-3 sentence overview of the opportunity",
    "market_analysis": {{"overview": "...", "size_and_growth": "...", "key_trends": ["..."], "drivers": ["..."]}},
    "competitive_landscape": {{"saturation_level": "Low/Medium/High", "major_players": ["..."], "gaps_and_opportunities": ["..."], "barriers_to_entry": "..."}},
    "target_customer_profile": {{"demographics": "...", "psychographics": "...", "behaviors": "...", "where_to_find_them": ["..."]}},
    "go_to_market_strategy": {{"positioning": "...", "channels": ["..."], "quick_wins": ["..."], "content_ideas": ["..."]}},
    "risk_assessment": {{"risks": [{{"risk": "...", "severity": "High/Medium/Low", "mitigation": "..."}}], "overall_risk_level": "Low/Medium/High"}},
    "action_plan": {{"week_1": "...", "month_1": "...", "month_3": "..."}},
    "verdict": "GO/CAUTION - clear recommendation with reasoning"
  }}
}}"""


def parse_idea_json(text: str) -> Dict[str, Any]:
    """Extract the first ``{...}`` block from the model output.

    Raises:
        IdeaGenerationError: If no JSON object can be parsed
    """
    match = _JSON_OBJECT.search(text or "")
    if not match:
        raise IdeaGenerationError("No JSON found in response")
    try:
        data = json.loads(match.group(0))
    except ValueError as exc:
        raise IdeaGenerationError(f"Invalid JSON in response: {exc}") from exc
    if not isinstance(data, dict) or not data.get("name"):
        raise IdeaGenerationError("Response JSON is missing the idea name")
    return data


def _as_float(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _level(value: Any) -> str:
    return str(value).lower() if value else "medium"


def build_idea(data: Dict[str, Any], industry: str, day: date) -> DailyNicheIdea:
    return DailyNicheIdea(
        featured_date=day,
        display_order=0,
        name=str(data["name"])[:255],
        industry=data.get("industry") or industry,
        one_liner=data.get("one_liner"),
        description=data.get("description"),
        target_audience=data.get("target_audience"),
        core_problem=data.get("core_problem"),
        opportunity_score=_as_float(data.get("opportunity_score")),
        demand_level=_level(data.get("demand_level")),
        competition_level=_level(data.get("competition_level")),
        trending_score=_as_float(data.get("trending_score")),
        market_size=data.get("market_size"),
        growth_rate=data.get("growth_rate"),
        pain_points=data.get("pain_points") or [],
        monetization_ideas=data.get("monetization_ideas") or [],
        product_ideas=data.get("product_ideas") or [],
        validation_signals=data.get("validation_signals") or [],
        full_research_report=data.get("full_research_report"),
        sources=[],
        is_published=True,
        is_featured=True,
        generated_by=GENERATED_BY,
        generation_prompt=industry,
    )


def find_idea_for_day(db: Session, day: date) -> Optional[DailyNicheIdea]:
    return db.query(DailyNicheIdea).filter(DailyNicheIdea.featured_date == day).first()


def generate_daily_idea(db: Session, llm, day: Optional[date] = None) -> Tuple[DailyNicheIdea, bool]:
    """
    Generate and store the idea for ``day`` unless one already exists.

    Args:
        db: Database session
        llm: Client exposing ``generate_text``
        day: UTC date to generate for (defaults to today)

    Returns:
        (idea, created) where created is False if the day already had an idea

    Raises:
        AIProviderError: If the model cannot be reached
        IdeaGenerationError: If the response cannot be parsed
    """
    day = day or utc_today()
    with _generation_lock:
        existing = find_idea_for_day(db, day)
        if existing is not None:
            return existing, False

        industry = industry_for_day(day)
        logger.info("Generating daily idea for %s (industry: %s)", day.isoformat(), industry)

        data = parse_idea_json(llm.generate_text(build_generation_prompt(industry)))
        idea = build_idea(data, industry, day)
        db.add(idea)
        db.commit()
        db.refresh(idea)

    logger.info("Created daily idea %s - %s", idea.id, idea.name)
    return idea, True


def generate_daily_idea_in_background(session_factory, llm) -> None:
    """BackgroundTasks entry point; owns its own session and never raises."""
    db = session_factory()
    try:
        generate_daily_idea(db, llm)
    except (AIProviderError, IdeaGenerationError) as exc:
        logger.error("Background daily idea generation failed: %s", exc)
    except Exception:
        logger.exception("Unexpected error during background daily idea generation")
        db.rollback()
    finally:
        db.close()
