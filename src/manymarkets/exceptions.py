"""Custom exceptions for the ManyMarkets service."""


class ManyMarketsError(Exception):
    """Base exception for all ManyMarkets errors."""

    pass


class ProviderError(ManyMarketsError):
    """Exception raised when an external billing provider call fails."""

    def __init__(self, message: str, status_code: int = None, response_data: dict = None):
        """
        Initialize provider error.

        Args:
            message: Error message
            status_code: Optional HTTP status code returned by the provider
            response_data: Optional decoded response body
        """
        super().__init__(message)
        self.status_code = status_code
        self.response_data = response_data


class AutumnError(ProviderError):
    """Autumn billing API returned an error."""

    pass


class AutumnNotFoundError(AutumnError):
    """Autumn does not know the requested customer."""

    pass


class PaddleError(ProviderError):
    """Paddle Vendor API returned an error or is not configured."""

    pass


class SignatureError(ManyMarketsError):
    """Webhook payload failed signature verification."""

    pass


class AIProviderError(ManyMarketsError):
    """All configured model providers failed to produce a response."""

    def __init__(self, message: str, model: str = None):
        super().__init__(message)
        self.model = model


class ReconciliationError(ManyMarketsError):
    """A subscription change could not be applied to a profile."""

    pass


class ReferralError(ManyMarketsError):
    """A referral code could not be applied."""

    pass


class IdeaGenerationError(ManyMarketsError):
    """The model's daily idea could not be parsed or stored."""

    pass
