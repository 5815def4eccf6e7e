# Inference gateway package.
# Exposes the canonical types, the facade and the error taxonomy.

from .adapters import ProviderAdapter, create_adapter
from .config_source import ConfigSource, SettingsConfigSource
from .errors import FallbackExhaustedError, GatewayError, ProviderError, UnsupportedProviderError
from .orchestrator import FALLBACK_MARKER, CallState, FallbackOrchestrator
from .recovery import parse_json, recover_json
from .service import InferenceGateway
from .types import (
    ChunkType,
    ModelConfig,
    ModelFileInput,
    ModelInput,
    ModelMessage,
    ModelResponse,
    Provider,
    StreamingChunk,
    TokenUsage,
    ToolSchema,
)

__all__ = [
    "InferenceGateway",
    "FallbackOrchestrator",
    "CallState",
    "FALLBACK_MARKER",
    "ProviderAdapter",
    "create_adapter",
    "ConfigSource",
    "SettingsConfigSource",
    "GatewayError",
    "ProviderError",
    "FallbackExhaustedError",
    "UnsupportedProviderError",
    "parse_json",
    "recover_json",
    "ChunkType",
    "ModelConfig",
    "ModelFileInput",
    "ModelInput",
    "ModelMessage",
    "ModelResponse",
    "Provider",
    "StreamingChunk",
    "TokenUsage",
    "ToolSchema",
]
