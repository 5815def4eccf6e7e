# ===============================================
# tests/conftest.py
# Fake adapters and config sources shared by the
# orchestrator, service and endpoint tests.
# ===============================================

from typing import List, Optional

import pytest

from src.gateway.adapters.base import ProviderAdapter
from src.gateway.errors import ProviderError
from src.gateway.types import ChunkType, ModelConfig, ModelInput, ModelResponse, Provider, StreamingChunk


class FakeAdapter(ProviderAdapter):
    """In-memory adapter: canned response / error for generate, canned chunks for streams."""

    def __init__(
        self,
        name: str = "fake",
        content: str = '{"ok":true}',
        error: Optional[Exception] = None,
        chunks: Optional[List[StreamingChunk]] = None,
        stream_raises: Optional[Exception] = None,
        config: Optional[ModelConfig] = None,
    ):
        super().__init__(config or ModelConfig(provider=Provider.ECHO, model=name))
        self.provider = name
        self.content = content
        self.error = error
        self.chunks = chunks
        self.stream_raises = stream_raises
        self.calls = 0
        self.stream_calls = 0
        self.inputs: List[ModelInput] = []

    async def generate(self, model_input: ModelInput) -> ModelResponse:
        self.calls += 1
        self.inputs.append(model_input)
        if self.error:
            raise self.error
        return ModelResponse(content=self.content, provider=self.provider)

    async def generate_stream(self, model_input: ModelInput):
        self.stream_calls += 1
        self.inputs.append(model_input)
        if self.stream_raises:
            raise self.stream_raises
        if self.chunks is not None:
            for chunk in self.chunks:
                yield chunk
            return
        if self.error:
            yield StreamingChunk(type=ChunkType.ERROR, error=str(self.error))
            return
        yield StreamingChunk(type=ChunkType.PARTIAL_ANALYSIS, data={"partial": True}, progress=5)
        yield StreamingChunk(type=ChunkType.COMPLETE_ANALYSIS, data={"ok": True}, progress=100)


class StaticConfigSource:
    def __init__(self, primary: ModelConfig, fallback: ModelConfig):
        self._primary = primary
        self._fallback = fallback
        self.invalidated = 0

    def primary(self) -> ModelConfig:
        return self._primary

    def fallback(self) -> ModelConfig:
        return self._fallback

    def forced(self, provider: Provider) -> ModelConfig:
        return ModelConfig(provider=Provider(provider), model="forced-model")

    def invalidate(self) -> None:
        self.invalidated += 1


def failing(name: str, message: str) -> FakeAdapter:
    return FakeAdapter(name=name, error=ProviderError(name, message))


@pytest.fixture
def fake_adapter():
    return FakeAdapter


@pytest.fixture
def static_config():
    return StaticConfigSource


@pytest.fixture
def failing_adapter():
    return failing


async def collect(stream) -> List[StreamingChunk]:
    return [chunk async for chunk in stream]


@pytest.fixture
def drain():
    return collect


class CountingFactory:
    """Adapter factory building one FakeAdapter per config; keeps every adapter it made."""

    def __init__(self, errors=None):
        self.errors = errors or {}
        self.built: List[FakeAdapter] = []

    def __call__(self, config: ModelConfig) -> FakeAdapter:
        adapter = FakeAdapter(name=config.model, error=self.errors.get(config.model), config=config)
        self.built.append(adapter)
        return adapter

    def by_model(self, model: str) -> List[FakeAdapter]:
        return [a for a in self.built if a.config.model == model]


@pytest.fixture
def counting_factory():
    return CountingFactory
