"""Free-tier view of a daily idea."""

from typing import Any, Dict, List

GATED_SECTIONS: List[str] = [
    "monetization_ideas",
    "full_research_report",
    "market_size",
    "growth_rate",
    "sources",
    "full_pain_points",
]

FREE_PAIN_POINTS = 2


def gated_idea_view(idea) -> Dict[str, Any]:
    """Basic fields plus a teaser of the pain points; paid sections are nulled."""
    explanation = idea.scores_explanation or None
    if explanation is not None:
        explanation = {
            "opportunity": explanation.get("opportunity") or None,
            "problem": explanation.get("problem") or None,
        }
    total_score = idea.total_score if idea.total_score is not None else idea.opportunity_score

    return {
        "id": idea.id,
        "name": idea.name,
        "industry": idea.industry,
        "one_liner": idea.one_liner,
        "description": idea.description,
        "target_audience": idea.target_audience,
        "core_problem": idea.core_problem,
        "total_score": total_score,
        "opportunity_score": idea.opportunity_score,
        "problem_score": idea.problem_score or None,
        "feasibility_score": idea.feasibility_score or None,
        "scores_explanation": explanation,
        "demand_level": idea.demand_level,
        "competition_level": idea.competition_level,
        "trending_score": idea.trending_score,
        "featured_date": idea.featured_date.isoformat() if idea.featured_date else None,
        "pain_points": list(idea.pain_points or [])[:FREE_PAIN_POINTS],
        "monetization_ideas": None,
        "product_ideas": idea.product_ideas,
        "validation_signals": idea.validation_signals,
        "full_research_report": None,
        "sources": None,
        # Sent so the UI can render them blurred
        "market_size": idea.market_size,
        "growth_rate": idea.growth_rate,
    }
