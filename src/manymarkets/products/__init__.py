"""Product plans built from research sessions, and the builder assistant."""

from .router import builder_router, router

__all__ = ["router", "builder_router"]
