"""Daily niche ideas: generation, gated views and saved ideas."""

from .cron import router as cron_router
from .router import router

__all__ = ["router", "cron_router"]
