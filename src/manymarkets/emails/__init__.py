"""Email preferences: signed unsubscribe links."""

from .router import router
from .unsubscribe import generate_unsubscribe_token, unsubscribe_profile, verify_unsubscribe_token

__all__ = ["router", "generate_unsubscribe_token", "verify_unsubscribe_token", "unsubscribe_profile"]
