# Stream normalization shared by every adapter.
# Adapters feed provider-native text deltas in; canonical StreamingChunks come out.

from __future__ import annotations
from typing import Any, AsyncIterator, Optional

from .logs import get_logger
from .recovery import try_parse_partial
from .types import ChunkType, StreamingChunk

logger = get_logger(__name__)

PROGRESS_STEP = 5
PROGRESS_CAP = 95


class StreamNormalizer:
    """Accumulates deltas for one stream and builds chunks with a monotonic progress value."""

    def __init__(self, provider: str):
        self.provider = provider
        self.buffer = ""
        self.chunk_count = 0
        self.progress = 0
        self.finished = False

    def _advance(self) -> int:
        self.chunk_count += 1
        self.progress = max(self.progress, min(self.chunk_count * PROGRESS_STEP, PROGRESS_CAP))
        return self.progress

    def feed(self, delta: Optional[str]) -> Optional[StreamingChunk]:
        """Append a text delta; return a partial chunk when anything is extractable."""
        if not delta:
            return None
        self.buffer += delta
        progress = self._advance()
        partial = try_parse_partial(self.buffer)
        if partial is None:
            return None
        return StreamingChunk(type=ChunkType.PARTIAL_ANALYSIS, data=partial, progress=progress)

    def replace(self, text: str) -> Optional[StreamingChunk]:
        """Swap the buffer wholesale (used when a backend returns structured arguments)."""
        self.buffer = text
        progress = self._advance()
        partial = try_parse_partial(self.buffer)
        if partial is None:
            return None
        return StreamingChunk(type=ChunkType.PARTIAL_ANALYSIS, data=partial, progress=progress)

    def complete(self, data: Any) -> StreamingChunk:
        self.finished = True
        self.progress = 100
        return StreamingChunk(type=ChunkType.COMPLETE_ANALYSIS, data=data, progress=100)

    def error(self, message: str) -> StreamingChunk:
        self.finished = True
        logger.warning("[%s] stream error: %s", self.provider, message)
        return StreamingChunk(type=ChunkType.ERROR, error=message, progress=self.progress)


async def enforce_stream_contract(stream: AsyncIterator[StreamingChunk]) -> AsyncIterator[StreamingChunk]:
    """
    Guarantee the canonical stream invariants regardless of the producer:
    non-decreasing progress, at most one metadata chunk before any partial,
    exactly one terminal chunk and nothing after it.
    """
    progress = 0
    seen_metadata = False
    seen_partial = False
    terminated = False
    try:
        async for chunk in stream:
            if chunk.type == ChunkType.METADATA:
                if seen_metadata or seen_partial:
                    logger.debug("Dropping late metadata chunk: %r", chunk.data)
                    continue
                seen_metadata = True
            elif chunk.type == ChunkType.PARTIAL_ANALYSIS:
                seen_partial = True
            progress = max(progress, chunk.progress)
            chunk.progress = progress
            yield chunk
            if chunk.is_terminal:
                terminated = True
                break
    except Exception as e:
        logger.exception("Stream producer raised")
        terminated = True
        yield StreamingChunk(type=ChunkType.ERROR, error=str(e) or "Streaming failed", progress=progress)
    finally:
        aclose = getattr(stream, "aclose", None)
        if aclose is not None:
            await aclose()
    if not terminated:
        yield StreamingChunk(type=ChunkType.ERROR, error="Stream ended without a result", progress=progress)
