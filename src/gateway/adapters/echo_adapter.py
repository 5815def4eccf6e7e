# Dummy adapter for local dev and testing without API calls.

from __future__ import annotations
from typing import AsyncIterator

from ..recovery import dumps
from ..streaming import StreamNormalizer
from ..types import ModelInput, ModelResponse, Provider, StreamingChunk, TokenUsage
from .base import ProviderAdapter


class EchoDevAdapter(ProviderAdapter):
    provider = Provider.ECHO.value

    def _payload(self, model_input: ModelInput) -> dict:
        user = model_input.last("user")
        return {
            "echo": user.content if user else "(no user input)",
            "model": self.model,
            "files": [f.filename for f in model_input.files or []],
        }

    async def generate(self, model_input: ModelInput) -> ModelResponse:
        content = dumps(self._payload(model_input))
        return ModelResponse(content=content, usage=TokenUsage(total_tokens=0), provider=self.provider)

    async def generate_stream(self, model_input: ModelInput) -> AsyncIterator[StreamingChunk]:
        norm = StreamNormalizer(self.provider)
        payload = self._payload(model_input)
        chunk = norm.replace(dumps(payload))
        if chunk:
            yield chunk
        yield norm.complete(payload)
