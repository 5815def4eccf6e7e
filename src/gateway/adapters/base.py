# Contract every model backend implements.

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import AsyncIterator

from ..errors import ProviderError
from ..types import ModelConfig, ModelInput, ModelResponse, StreamingChunk


class ProviderAdapter(ABC):
    """
    One backend behind the canonical request/response/stream types.

    generate() raises ProviderError on any backend failure.
    generate_stream() never raises: failures arrive as a terminal `error` chunk,
    and every stream ends with exactly one terminal chunk.
    """

    provider: str = "unknown"

    def __init__(self, config: ModelConfig):
        self.config = config

    @property
    def model(self) -> str:
        return self.config.model

    @abstractmethod
    async def generate(self, model_input: ModelInput) -> ModelResponse:
        ...

    @abstractmethod
    def generate_stream(self, model_input: ModelInput) -> AsyncIterator[StreamingChunk]:
        ...

    def _error(self, exc: BaseException) -> ProviderError:
        if isinstance(exc, ProviderError):
            return exc
        return ProviderError(self.provider, str(exc) or exc.__class__.__name__)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(model={self.config.model!r})"
