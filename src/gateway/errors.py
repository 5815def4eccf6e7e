# Error taxonomy for the inference gateway.

from __future__ import annotations
from typing import Optional, Union


class GatewayError(Exception):
    """Base class for gateway errors."""


class ProviderError(GatewayError):
    """A backend call failed (network, auth, quota, malformed request)."""

    def __init__(self, provider: str, message: str):
        self.provider = provider
        self.message = message
        super().__init__(f"{provider} API error: {message}")


class FallbackExhaustedError(GatewayError):
    """Both the primary and the fallback backend failed for one request."""

    def __init__(self, primary_error: Union[BaseException, str], fallback_error: Union[BaseException, str]):
        self.primary_error = primary_error
        self.fallback_error = fallback_error
        super().__init__(
            f"Both primary and fallback models failed. "
            f"Primary: {primary_error}, Fallback: {fallback_error}"
        )


class UnsupportedProviderError(GatewayError):
    def __init__(self, provider: Optional[str]):
        self.provider = provider
        super().__init__(f"Unsupported model provider: {provider}")


class JSONRecoveryError(GatewayError):
    """Raised inside the recovery engine when no stage produced valid JSON."""
