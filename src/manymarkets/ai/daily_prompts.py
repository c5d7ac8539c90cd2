"""Quick-start prompts shown above the chat box, rotated daily.

The fallback ordering is a seeded shuffle of ``DAILY_PROMPTS`` keyed on the
UTC day number, so every server (and the browser bundle) shows the same three
prompts on a given day.
"""

import json
import logging
import re
import threading
from datetime import date, datetime, timezone
from typing import Callable, List, Optional, Tuple, Union

from manymarkets.exceptions import AIProviderError

from .prompts import DAILY_PROMPTS_SYSTEM_PROMPT

logger = logging.getLogger(__name__)

_MASK = 0xFFFFFFFF
_SECONDS_PER_DAY = 86400

DAILY_PROMPTS: List[str] = [
    "My one-sentence elevator pitch: what's my product and who is it for?",
    "Give me 3 underserved micro-niches in the ${industry} space.",
    "Describe a high-value freelance service I could build in 7 days.",
    "Suggest 5 quick marketing hooks for a product that saves time for small teams.",
    "What's a simple pricing strategy to maximize early adoption for a digital tool?",
    "List 3 creative lead magnet ideas for an ebook about productivity.",
    "Give a 2-sentence pitch that would convert on a landing page for a SaaS tool.",
    "Suggest 4 low-cost channels to validate demand for a new course.",
    "Write a short cold DM to test interest in a beta product (friendly, first-person).",
    "Outline a 3-step onboarding checklist that reduces churn for a digital product.",
    "Name 5 adjacent audiences who'd pay for this product and why.",
    "Generate a short, first-person testimonial prompt we can ask early users to write.",
    "Brainstorm 3 premium upsell ideas for a basic digital product.",
    "Suggest a creative giveaway to grow an email list in 30 days.",
    "Give a 2-sentence cold email subject + opener to pitch to potential partners.",
    "What features should a minimal MVP include to validate core value quickly?",
    "List 4 content starter ideas for a week of social posts about a launch.",
    "Suggest 3 partnership types that can boost early distribution for a product.",
    "Write a short value proposition emphasizing speed and simplicity in first person.",
    "Provide a 30-word description for an app store listing that converts.",
]


def _imul(a: int, b: int) -> int:
    return (a * b) & _MASK


def mulberry32(seed: int) -> Callable[[], float]:
    """32-bit mulberry PRNG returning floats in [0, 1)."""
    state = seed & _MASK

    def rng() -> float:
        nonlocal state
        state = (state + 0x6D2B79F5) & _MASK
        t = state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & _MASK
        return ((t ^ (t >> 14)) & _MASK) / 4294967296

    return rng


def day_number(day: Union[date, datetime, None] = None) -> int:
    """Whole UTC days since the Unix epoch."""
    if day is None:
        day = datetime.now(timezone.utc)
    if isinstance(day, datetime):
        if day.tzinfo is None:
            day = day.replace(tzinfo=timezone.utc)
        return int(day.timestamp() // _SECONDS_PER_DAY)
    return (day - date(1970, 1, 1)).days


def get_daily_prompts(count: int = 3, day: Union[date, datetime, None] = None) -> List[str]:
    """Deterministic Fisher-Yates shuffle of DAILY_PROMPTS for ``day``."""
    rng = mulberry32(day_number(day))
    prompts = list(DAILY_PROMPTS)
    for i in range(len(prompts) - 1, 0, -1):
        j = int(rng() * (i + 1))
        prompts[i], prompts[j] = prompts[j], prompts[i]
    return prompts[: max(0, min(count, len(prompts)))]


_LIST_PREFIX = re.compile(r"^[-*\d.)\s]+")


def parse_generated_prompts(text: str, limit: int = 5) -> List[str]:
    """Read model output as a JSON array, else as one prompt per line."""
    try:
        parsed = json.loads(text)
        if not isinstance(parsed, list):
            raise ValueError("Not an array")
        prompts = [p.strip() if isinstance(p, str) else str(p) for p in parsed]
        return [p for p in prompts if p][:limit]
    except ValueError:
        lines = [line.strip() for line in text.splitlines() if line.strip()]
        cleaned = [_LIST_PREFIX.sub("", line) for line in lines]
        return [line for line in cleaned if len(line) > 5][:limit]


def build_user_prompt(today: str) -> str:
    return (
        f"Date: {today}\nContext: general\nRequirements: 5 items, concise (<= 120 chars), varied, "
        'and actionable. Output only a JSON array like ["...","..."].'
    )


class DailyPromptCache:
    """In-process cache holding one day's prompts."""

    def __init__(self):
        self._lock = threading.Lock()
        self._date: Optional[str] = None
        self._prompts: List[str] = []

    def get(self, today: str) -> Optional[List[str]]:
        with self._lock:
            if self._date == today and self._prompts:
                return list(self._prompts)
            return None

    def set(self, today: str, prompts: List[str]) -> None:
        with self._lock:
            self._date = today
            self._prompts = list(prompts)

    def clear(self) -> None:
        with self._lock:
            self._date = None
            self._prompts = []


daily_prompt_cache = DailyPromptCache()


def generate_daily_prompts(llm, today: str, system_prompt: str = DAILY_PROMPTS_SYSTEM_PROMPT) -> Tuple[List[str], str]:
    """
    Produce today's prompts, preferring the model and falling back to the shuffle.

    Returns:
        (prompts, source) where source is "ai" or "fallback"
    """
    try:
        text = llm.generate_text(build_user_prompt(today), system=system_prompt)
    except AIProviderError as exc:
        logger.error("Daily prompts generation failed: %s", exc)
        return get_daily_prompts(5, date.fromisoformat(today)), "fallback"

    prompts = parse_generated_prompts(text)
    if not prompts:
        return get_daily_prompts(5, date.fromisoformat(today)), "fallback"
    return prompts, "ai"
