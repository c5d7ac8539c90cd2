"""Authentication package for ManyMarkets (Supabase JWT, HS256).

Exports:
- router: FastAPI router with prefix /api/auth
- AuthUser and the identity/profile dependencies used by every other router
- Token helpers (create_access_token, decode_access_token)
"""

from .dependencies import (
    AuthUser,
    ensure_profile,
    get_current_profile,
    get_current_user,
    get_optional_profile,
    get_optional_user,
)
from .router import router
from .security import create_access_token, decode_access_token

__all__ = [
    "router",
    "AuthUser",
    "ensure_profile",
    "get_current_profile",
    "get_current_user",
    "get_optional_profile",
    "get_optional_user",
    "create_access_token",
    "decode_access_token",
]
