"""Pre-launch waitlist signups."""

from .router import router

__all__ = ["router"]
