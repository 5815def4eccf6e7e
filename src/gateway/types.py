# Canonical, provider-agnostic types shared by adapters, the orchestrator
# and the gateway facade.

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class Provider(str, Enum):
    OPENAI = "openai"
    GEMINI = "gemini"
    ECHO = "echo"


# camelCase keys accepted in config files
_CONFIG_ALIASES = {"maxTokens": "max_tokens", "topP": "top_p"}


def _provider_tag(raw: Any) -> Union[Provider, str]:
    tag = str(getattr(raw, "value", raw)).lower()
    try:
        return Provider(tag)
    except ValueError:
        # unknown tags are kept; the adapter factory rejects them
        return tag


@dataclass(frozen=True)
class ModelConfig:
    """Immutable model selection. Two configs are the same if their fields are."""
    provider: Union[Provider, str]
    model: str
    temperature: float = 0.1
    max_tokens: int = 4000
    top_p: float = 1.0

    @staticmethod
    def normalize_keys(raw: Dict[str, Any]) -> Dict[str, Any]:
        return {_CONFIG_ALIASES.get(k, k): v for k, v in raw.items()}

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "ModelConfig":
        raw = cls.normalize_keys(raw)
        return cls(
            provider=_provider_tag(raw["provider"]),
            model=str(raw["model"]),
            temperature=float(raw.get("temperature", 0.1)),
            max_tokens=int(raw.get("max_tokens", 4000)),
            top_p=float(raw.get("top_p", 1.0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": getattr(self.provider, "value", self.provider),
            "model": self.model,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "top_p": self.top_p,
        }


@dataclass
class ModelMessage:
    """Single chat turn: system, user, or assistant."""
    role: str
    content: str


@dataclass
class ModelFileInput:
    """A file attached to a request, base64 encoded."""
    filename: str
    data: str
    mime_type: Optional[str] = None

    @property
    def resolved_mime_type(self) -> str:
        return self.mime_type or "application/pdf"


@dataclass
class ToolSchema:
    """
    Provider-agnostic tool description.
    `builtin` tools name a provider capability (e.g. web_search) instead of a function.
    """
    name: str
    description: str = ""
    parameters: Optional[Dict[str, Any]] = None
    builtin: bool = False


@dataclass
class ModelInput:
    messages: List[ModelMessage]
    files: Optional[List[ModelFileInput]] = None
    tools: Optional[List[ToolSchema]] = None

    def first(self, role: str) -> Optional[ModelMessage]:
        return next((m for m in self.messages if m.role == role), None)

    def last(self, role: str) -> Optional[ModelMessage]:
        return next((m for m in reversed(self.messages) if m.role == role), None)

    @property
    def function_tools(self) -> List[ToolSchema]:
        return [t for t in (self.tools or []) if not t.builtin]


@dataclass
class TokenUsage:
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None


@dataclass
class ModelResponse:
    content: str
    usage: Optional[TokenUsage] = None
    provider: Optional[str] = None
    used_fallback: bool = False


class ChunkType(str, Enum):
    PARTIAL_ANALYSIS = "partial_analysis"
    COMPLETE_ANALYSIS = "complete_analysis"
    ERROR = "error"
    METADATA = "metadata"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class StreamingChunk:
    type: ChunkType
    data: Any = None
    error: Optional[str] = None
    timestamp: str = field(default_factory=_now_iso)
    progress: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.type in (ChunkType.COMPLETE_ANALYSIS, ChunkType.ERROR)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"type": self.type.value, "timestamp": self.timestamp, "progress": self.progress}
        if self.data is not None:
            out["data"] = self.data
        if self.error is not None:
            out["error"] = self.error
        return out
