# Adapter registry and factory.
# Adding a backend means adding a ProviderAdapter subclass and one entry here.

from __future__ import annotations
from typing import Dict, Type

from ..errors import UnsupportedProviderError
from ..logs import get_logger
from ..types import ModelConfig, Provider
from .base import ProviderAdapter
from .echo_adapter import EchoDevAdapter
from .gemini_adapter import GeminiAdapter
from .openai_adapter import OpenAIAdapter

logger = get_logger(__name__)

ADAPTERS: Dict[Provider, Type[ProviderAdapter]] = {
    Provider.OPENAI: OpenAIAdapter,
    Provider.GEMINI: GeminiAdapter,
    Provider.ECHO: EchoDevAdapter,
}


def create_adapter(config: ModelConfig) -> ProviderAdapter:
    try:
        provider = Provider(config.provider)
    except ValueError:
        raise UnsupportedProviderError(str(config.provider)) from None
    cls = ADAPTERS.get(provider)
    if cls is None:
        raise UnsupportedProviderError(provider.value)
    logger.info("Created %s adapter with model %s", provider.value, config.model)
    return cls(config)


__all__ = [
    "ADAPTERS",
    "create_adapter",
    "ProviderAdapter",
    "OpenAIAdapter",
    "GeminiAdapter",
    "EchoDevAdapter",
]
