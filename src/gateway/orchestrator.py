# =============================================================
# orchestrator.py
# -------------------------------------------------------------
# Try-primary-then-fallback policy over two ProviderAdapters.
#
# Blocking:  primary -> (on any failure) fallback -> FallbackExhaustedError
# Streaming: primary stream; if it fails before producing output, one
#            metadata chunk announces the fallback and the fallback stream
#            takes over. Fallback is strictly sequential, never hedged.
#
# Per call: NOT_STARTED -> TRYING_PRIMARY -> (SUCCESS | TRYING_FALLBACK)
#           -> (SUCCESS | FAILED)
# =============================================================

from __future__ import annotations
from dataclasses import replace
from enum import Enum
from typing import AsyncIterator, Dict, Optional, Tuple

from .adapters.base import ProviderAdapter
from .errors import FallbackExhaustedError, ProviderError
from .logs import get_logger
from .streaming import enforce_stream_contract
from .types import ChunkType, ModelInput, ModelMessage, ModelResponse, StreamingChunk

logger = get_logger(__name__)

FALLBACK_MARKER = "\n\n<!-- Generated using fallback model -->"

PROBE_INPUT = ModelInput(
    messages=[
        ModelMessage(role="system", content="You are a test assistant."),
        ModelMessage(role="user", content='Reply with {"status": "test successful"}'),
    ]
)


class CallState(str, Enum):
    NOT_STARTED = "not_started"
    TRYING_PRIMARY = "trying_primary"
    TRYING_FALLBACK = "trying_fallback"
    SUCCESS = "success"
    FAILED = "failed"


_TRANSITIONS = {
    CallState.NOT_STARTED: {CallState.TRYING_PRIMARY},
    CallState.TRYING_PRIMARY: {CallState.SUCCESS, CallState.TRYING_FALLBACK},
    CallState.TRYING_FALLBACK: {CallState.SUCCESS, CallState.FAILED},
    CallState.SUCCESS: set(),
    CallState.FAILED: set(),
}


class _Call:
    """State of a single orchestrated request."""

    def __init__(self, owner: "FallbackOrchestrator", kind: str):
        self.owner = owner
        self.kind = kind
        self.state = CallState.NOT_STARTED

    def advance(self, new_state: CallState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal call state transition {self.state.value} -> {new_state.value}")
        logger.debug("[%s] %s -> %s", self.kind, self.state.value, new_state.value)
        self.state = new_state
        self.owner.last_state = new_state


class FallbackOrchestrator:
    def __init__(self, primary: ProviderAdapter, fallback: ProviderAdapter):
        self.primary = primary
        self.fallback = fallback
        self.last_state = CallState.NOT_STARTED

    @staticmethod
    def _as_provider_error(adapter: ProviderAdapter, exc: BaseException) -> ProviderError:
        if isinstance(exc, ProviderError):
            return exc
        return ProviderError(adapter.provider, str(exc) or exc.__class__.__name__)

    # -------------------------
    # Blocking
    # -------------------------
    async def generate(self, model_input: ModelInput) -> ModelResponse:
        call = _Call(self, "generate")
        call.advance(CallState.TRYING_PRIMARY)
        try:
            response = await self.primary.generate(model_input)
        except Exception as e:
            primary_error = self._as_provider_error(self.primary, e)
            logger.warning("Primary provider failed, trying fallback: %s", primary_error)
        else:
            call.advance(CallState.SUCCESS)
            return response

        call.advance(CallState.TRYING_FALLBACK)
        try:
            response = await self.fallback.generate(model_input)
        except Exception as e:
            fallback_error = self._as_provider_error(self.fallback, e)
            call.advance(CallState.FAILED)
            logger.error(
                "Both primary and fallback providers failed. primary=%s fallback=%s",
                primary_error,
                fallback_error,
            )
            raise FallbackExhaustedError(primary_error, fallback_error) from e

        call.advance(CallState.SUCCESS)
        logger.info("Successfully used fallback provider %s", self.fallback.provider)
        return replace(response, content=response.content + FALLBACK_MARKER, used_fallback=True)

    # -------------------------
    # Streaming
    # -------------------------
    @staticmethod
    async def _first_chunk(
        adapter: ProviderAdapter, stream: AsyncIterator[StreamingChunk]
    ) -> Tuple[Optional[StreamingChunk], Optional[str]]:
        """Pull the first chunk; return (chunk, None) or (None, failure message)."""
        try:
            first = await stream.__anext__()
        except StopAsyncIteration:
            return None, f"{adapter.provider} stream ended before producing output"
        except Exception as e:
            return None, str(FallbackOrchestrator._as_provider_error(adapter, e))
        if first.type == ChunkType.ERROR:
            await stream.aclose()
            return None, first.error or f"{adapter.provider} streaming failed"
        return first, None

    async def _stream_with_fallback(self, model_input: ModelInput) -> AsyncIterator[StreamingChunk]:
        call = _Call(self, "stream")
        call.advance(CallState.TRYING_PRIMARY)

        primary_stream = self.primary.generate_stream(model_input)
        first, primary_error = await self._first_chunk(self.primary, primary_stream)
        if primary_error is None:
            call.advance(CallState.SUCCESS)
            try:
                yield first
                async for chunk in primary_stream:
                    yield chunk
            finally:
                await primary_stream.aclose()
            return

        call.advance(CallState.TRYING_FALLBACK)
        logger.warning("Primary streaming provider failed, trying fallback: %s", primary_error)
        yield StreamingChunk(
            type=ChunkType.METADATA,
            data={"using_fallback": True, "primary_error": primary_error},
        )

        fallback_stream = self.fallback.generate_stream(model_input)
        first, fallback_error = await self._first_chunk(self.fallback, fallback_stream)
        if fallback_error is not None:
            call.advance(CallState.FAILED)
            err = FallbackExhaustedError(primary_error, fallback_error)
            logger.error("%s", err)
            yield StreamingChunk(type=ChunkType.ERROR, error=str(err))
            return

        call.advance(CallState.SUCCESS)
        logger.info("Using fallback provider %s for streaming", self.fallback.provider)
        try:
            yield first
            async for chunk in fallback_stream:
                yield chunk
        finally:
            await fallback_stream.aclose()

    def generate_stream(self, model_input: ModelInput) -> AsyncIterator[StreamingChunk]:
        return enforce_stream_contract(self._stream_with_fallback(model_input))

    # -------------------------
    # Diagnostics
    # -------------------------
    async def probe(self) -> Dict[str, bool]:
        """Call each adapter independently with a tiny prompt."""
        results: Dict[str, bool] = {}
        for name, adapter in (("primary", self.primary), ("fallback", self.fallback)):
            try:
                await adapter.generate(PROBE_INPUT)
                results[name] = True
            except Exception as e:
                logger.info("%s provider probe failed: %s", name, e)
                results[name] = False
        return results
