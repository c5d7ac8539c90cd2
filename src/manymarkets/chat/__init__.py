"""Research assistant chat."""

from .router import router

__all__ = ["router"]
