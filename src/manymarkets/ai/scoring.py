"""Business idea viability scoring."""

import json
import logging
import math
import re
from typing import Any, Dict, List

logger = logging.getLogger(__name__)

DEFAULT_SCORE_RESULT: Dict[str, Any] = {
    "score": 50,
    "trending": 50,
    "specificity": 50,
    "trust": 40,
    "reason": (
        "Unable to fully analyze. The idea shows potential but needs more specific details about "
        "target market, unique value proposition, and monetization strategy."
    ),
    "breakdown": [
        "Insufficient data to compute trending signals",
        "Idea needs clearer specificity and target market description",
    ],
}

_FENCE_JSON = re.compile(r"```json\s*", re.IGNORECASE)
_FENCE = re.compile(r"```\s*")
_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def build_score_prompt(idea: str) -> str:
    return f"""You are an expert business analyst. For the business idea below, compute an overall viability score from 0-100.
You MUST evaluate and return the following component scores (0-100):
- "trending": how strongly current demand and momentum indicate growth (search trends, social interest, recent news, niche growth). 0 means no momentum, 100 means clearly trending upward.
- "specificity": how specific and well-defined the idea is. 0 = very general, 100 = highly specific actionable idea.
- "trust": your confidence in the assessment based on available signals and ambiguity. 0 = low confidence, 100 = high confidence.

Compute an overall "score" (0-100) that weights these components (describe weights in your breakdown). Then provide a detailed, evidence-backed explanation that justifies the score and each component, noting any assumptions and uncertainties.

Business Idea: "{idea.strip()}"

Respond with ONLY valid JSON in this exact format (no markdown, no code blocks):
{{"score": <number 0-100>, "trending": <number 0-100>, "specificity": <number 0-100>, "trust": <number 0-100>, "reason": "<detailed explanation>", "breakdown": ["<short bullet 1>", "<short bullet 2>"]}}
"""


def parse_score_json(text: str) -> Dict[str, Any]:
    """Strip markdown fences and parse the first ``{...}`` block, else the defaults."""
    cleaned = _FENCE.sub("", _FENCE_JSON.sub("", (text or "").strip()))
    match = _JSON_OBJECT.search(cleaned)
    if match:
        try:
            parsed = json.loads(match.group(0))
            if isinstance(parsed, dict):
                return parsed
        except ValueError:
            pass
    logger.error("Failed to parse AI score response: %r", text)
    return dict(DEFAULT_SCORE_RESULT)


def to_score(value: Any, default: int) -> int:
    """Truncate to an integer in 0..100; unparseable values become ``default``."""
    if isinstance(value, bool) or value is None:
        number = default
    elif isinstance(value, (int, float)):
        number = int(value) if math.isfinite(value) else default
    else:
        match = _LEADING_INT.match(str(value))
        number = int(match.group(1)) if match else default
    return min(100, max(0, number))


def _breakdown(value: Any) -> List[Any]:
    if isinstance(value, list):
        return value
    return [str(value)] if value else []


def normalize_score_result(parsed: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "score": to_score(parsed.get("score"), 50),
        "trending": to_score(parsed.get("trending"), 0),
        "specificity": to_score(parsed.get("specificity"), 0),
        "trust": to_score(parsed.get("trust"), 0),
        "reason": parsed.get("reason") or "Analysis complete.",
        "breakdown": _breakdown(parsed.get("breakdown")),
    }


def score_idea(llm, idea: str) -> Dict[str, Any]:
    """Ask the model to score ``idea`` and return the normalized result.

    Raises:
        AIProviderError: If the model cannot be reached
    """
    text = llm.generate_text(build_score_prompt(idea))
    return normalize_score_result(parse_score_json(text))
