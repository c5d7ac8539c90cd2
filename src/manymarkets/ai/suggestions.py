"""Digital product suggestions for a finished research session."""

import json
import logging
import re
from typing import Any, Dict, List, Optional, Sequence

from manymarkets.exceptions import AIProviderError

logger = logging.getLogger(__name__)

PRODUCT_TYPES = [
    ("ebook", "E-book/Guide"),
    ("course", "Online Course"),
    ("template", "Templates/Tools"),
    ("saas", "SaaS/Software"),
    ("community", "Paid Community"),
    ("coaching", "Coaching/Consulting"),
    ("newsletter", "Paid Newsletter"),
    ("audio", "Podcast/Audio"),
]

CONTEXT_MESSAGES = 10

_JSON_ARRAY = re.compile(r"\[[\s\S]*\]")


def _niche_label(session, default: str) -> str:
    return session.selected_niche or session.industry or default


def research_summary(session) -> Dict[str, str]:
    return {
        "niche": _niche_label(session, "Your niche"),
        "uvz": session.selected_uvz or "Your unique value zone",
        "targetAudience": "Your target audience",
    }


def fallback_suggestions(session, skills: Sequence[str]) -> List[Dict[str, Any]]:
    """Three generic products used when the model is unavailable or unparseable."""
    matched = list(skills[:2])
    return [
        {
            "id": "fallback-ebook",
            "type": "ebook",
            "name": f"{_niche_label(session, 'Niche')} Success Guide",
            "description": (
                "A comprehensive ebook covering the key insights from your research. "
                "Perfect for establishing authority and generating passive income."
            ),
            "matchScore": 75,
            "skillsMatch": matched,
            "timeToLaunch": "2-3 weeks",
            "revenueModel": "One-time $29-49",
            "difficulty": "Easy",
            "whyThisProduct": "Ebooks are the fastest way to monetize expertise and validate demand.",
            "mvpScope": ["Core content (10-15 chapters)", "PDF formatting", "Sales page"],
            "estimatedEarnings": "$500-1k/month",
        },
        {
            "id": "fallback-template",
            "type": "template",
            "name": f"{_niche_label(session, 'Productivity')} Template Pack",
            "description": (
                "Ready-to-use templates that solve a specific problem for your audience. "
                "High value, quick to create."
            ),
            "matchScore": 70,
            "skillsMatch": matched,
            "timeToLaunch": "1-2 weeks",
            "revenueModel": "One-time $19-39",
            "difficulty": "Easy",
            "whyThisProduct": "Templates have high perceived value and are quick to create.",
            "mvpScope": ["5-10 templates", "Usage guide", "Gumroad/Notion setup"],
            "estimatedEarnings": "$300-800/month",
        },
        {
            "id": "fallback-community",
            "type": "community",
            "name": f"{_niche_label(session, 'Niche')} Inner Circle",
            "description": (
                "A paid community for people in your niche to connect and grow together. "
                "Builds recurring revenue."
            ),
            "matchScore": 65,
            "skillsMatch": matched,
            "timeToLaunch": "1-2 weeks",
            "revenueModel": "Subscription $19-49/mo",
            "difficulty": "Medium",
            "whyThisProduct": "Communities build recurring revenue and create strong customer relationships.",
            "mvpScope": ["Discord/Circle setup", "Welcome content", "Weekly live calls"],
            "estimatedEarnings": "$500-2k/month",
        },
    ]


def build_suggestions_prompt(session, messages, profile: Dict[str, Any]) -> str:
    conversation = "\n".join(f"{m.role}: {m.content}" for m in list(messages)[-CONTEXT_MESSAGES:])
    product_types = "\n".join(f"- {type_id}: {name}" for type_id, name in PRODUCT_TYPES)

    return f"""You are a product strategy expert. Based on the following research and user profile, suggest the top 3 digital products they should build.

RESEARCH CONTEXT:
Industry: {session.industry or "Not specified"}
Selected Niche: {session.selected_niche or "Not specified"}
Selected UVZ: {session.selected_uvz or "Not specified"}

Recent Conversation:
{conversation}

USER PROFILE:
Skills: {", ".join(profile["skills"])}
Experience Level: {profile.get("experienceLevel")}
Time Commitment: {profile.get("timeCommitment")}
Additional Notes: {profile.get("additionalNotes") or "None"}

AVAILABLE PRODUCT TYPES:
{product_types}

Generate exactly 3 product suggestions. Each suggestion should match the user's skills and experience level, fit their time commitment, and solve a real problem identified in the research.

Respond ONLY with a valid JSON array (no markdown, no explanation):
[
  {{
    "id": "unique-id-1",
    "type": "ebook|course|template|saas|community|coaching|newsletter|audio",
    "name": "Product Name",
    "description": "2-3 sentence description",
    "matchScore": 85,
    "skillsMatch": ["skill1", "skill2"],
    "timeToLaunch": "2-4 weeks",
    "revenueModel": "One-time purchase $49",
    "difficulty": "Easy|Medium|Hard",
    "whyThisProduct": "1-2 sentences explaining why this is perfect for them",
    "mvpScope": ["Feature 1", "Feature 2", "Feature 3"],
    "estimatedEarnings": "$500-2k/month"
  }}
]"""


def parse_suggestions(text: str) -> Optional[List[Any]]:
    """First ``[...]`` block of the model output, or None."""
    match = _JSON_ARRAY.search(text or "")
    if not match:
        return None
    try:
        parsed = json.loads(match.group(0))
    except ValueError:
        return None
    return parsed if isinstance(parsed, list) else None


def suggest_products(llm, session, messages, profile: Dict[str, Any]) -> Dict[str, Any]:
    """
    Suggest three products for ``session`` given the user's skill profile.

    Model failures degrade to ``fallback_suggestions`` rather than raising.

    Returns:
        ``{"suggestions": [...], "researchSummary": {...}}``
    """
    try:
        text = llm.generate_text(build_suggestions_prompt(session, messages, profile))
        suggestions = parse_suggestions(text)
        if suggestions is None:
            logger.error("Error parsing product suggestions response: %r", text)
    except AIProviderError as exc:
        logger.error("Product suggestion generation failed: %s", exc)
        suggestions = None

    if suggestions is None:
        suggestions = fallback_suggestions(session, profile["skills"])

    return {"suggestions": suggestions, "researchSummary": research_summary(session)}
