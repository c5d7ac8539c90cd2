"""ManyMarkets API: niche research, AI chat, and multi-provider billing."""

from .version import __version__

__all__ = ["__version__"]
