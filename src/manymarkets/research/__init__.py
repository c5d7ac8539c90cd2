"""Chat-driven niche research sessions, idea scoring and product suggestions."""

from .router import router
from .score import router as score_router

__all__ = ["router", "score_router"]
