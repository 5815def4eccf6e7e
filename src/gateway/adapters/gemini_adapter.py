# Adapter for Google Gemini (google-genai SDK, async client).
#
# Differences from the OpenAI adapter:
#   - system prompt and generation settings live on the request config
#   - function tools come back as structured call arguments, not text
#   - streams are often cut off mid-document; before giving up we close the
#     document with a fixed suffix and try again

from __future__ import annotations
import base64
from typing import Any, AsyncIterator, List, Optional, Tuple

from google import genai
from google.genai import types as genai_types

from src.settings import settings
from ..errors import JSONRecoveryError, ProviderError
from ..logs import get_logger
from ..recovery import dumps, looks_truncated, parse_json, recover_json, trim_dangling_tail
from ..streaming import StreamNormalizer
from ..types import ModelConfig, ModelInput, ModelResponse, Provider, StreamingChunk, TokenUsage
from .base import ProviderAdapter

logger = get_logger(__name__)

# closes the "sections" array, its parent object and the root object
TRUNCATION_SUFFIX = "\n    ]\n  }\n}"


class GeminiAdapter(ProviderAdapter):
    provider = Provider.GEMINI.value

    def __init__(self, config: ModelConfig, api_key: Optional[str] = None, client: Any = None):
        super().__init__(config)
        self.api_key = api_key
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            key = self.api_key or settings.GEMINI_API_KEY
            if not key:
                raise ProviderError(self.provider, "GEMINI_API_KEY is required for the Gemini provider")
            self._client = genai.Client(api_key=key)
        return self._client

    # -------------------------
    # Request
    # -------------------------
    def _file_parts(self, model_input: ModelInput) -> List[genai_types.Part]:
        return [
            genai_types.Part.from_bytes(data=base64.b64decode(f.data), mime_type=f.resolved_mime_type)
            for f in model_input.files or []
        ]

    def _prepare(self, model_input: ModelInput) -> Tuple[List[genai_types.Content], genai_types.GenerateContentConfig]:
        builtin = [t.name for t in model_input.tools or [] if t.builtin]
        if builtin:
            raise ProviderError(self.provider, f"Tools not supported by Gemini: {', '.join(builtin)}")

        system = model_input.first("system")
        turns = [m for m in model_input.messages if m.role != "system"]
        user_idx = [i for i, m in enumerate(turns) if m.role == "user"]
        attach_at = user_idx[-1] if user_idx else None

        contents: List[genai_types.Content] = []
        for i, m in enumerate(turns):
            parts = [genai_types.Part.from_text(text=m.content)]
            if i == attach_at:
                parts.extend(self._file_parts(model_input))
            contents.append(genai_types.Content(role="model" if m.role == "assistant" else "user", parts=parts))
        if attach_at is None and model_input.files:
            contents.append(genai_types.Content(role="user", parts=self._file_parts(model_input)))

        cfg: dict = {
            "temperature": self.config.temperature,
            "max_output_tokens": self.config.max_tokens,
            "top_p": self.config.top_p,
        }
        if system:
            cfg["system_instruction"] = system.content

        functions = model_input.function_tools
        if functions:
            cfg["tools"] = [
                genai_types.Tool(
                    function_declarations=[
                        genai_types.FunctionDeclaration(
                            name=t.name,
                            description=t.description,
                            parameters_json_schema=t.parameters or {"type": "object", "properties": {}},
                        )
                        for t in functions
                    ]
                )
            ]
            cfg["tool_config"] = genai_types.ToolConfig(
                function_calling_config=genai_types.FunctionCallingConfig(
                    mode=genai_types.FunctionCallingConfigMode.ANY,
                    allowed_function_names=[t.name for t in functions],
                )
            )
        return contents, genai_types.GenerateContentConfig(**cfg)

    # -------------------------
    # Blocking
    # -------------------------
    async def generate(self, model_input: ModelInput) -> ModelResponse:
        try:
            contents, cfg = self._prepare(model_input)
            resp = await self.client.aio.models.generate_content(model=self.model, contents=contents, config=cfg)
        except Exception as e:
            err = self._error(e)
            logger.warning("[gemini] %s", err.message)
            raise err from e

        calls = getattr(resp, "function_calls", None)
        if calls:
            content = dumps(calls[0].args or {})
        else:
            content = recover_json(getattr(resp, "text", None) or "")

        meta = getattr(resp, "usage_metadata", None)
        usage = TokenUsage(
            prompt_tokens=getattr(meta, "prompt_token_count", None),
            completion_tokens=getattr(meta, "candidates_token_count", None),
            total_tokens=getattr(meta, "total_token_count", None),
        )
        return ModelResponse(content=content, usage=usage, provider=self.provider)

    # -------------------------
    # Streaming
    # -------------------------
    def _finalize(self, norm: StreamNormalizer) -> StreamingChunk:
        text = norm.buffer.strip()
        if not text:
            return norm.error("Empty response from Gemini")

        if looks_truncated(text):
            logger.warning("[gemini] response appears truncated: %r", text[-100:])
            try:
                return norm.complete(parse_json(trim_dangling_tail(text) + TRUNCATION_SUFFIX))
            except JSONRecoveryError:
                logger.warning("[gemini] closing suffix did not repair the response")

        try:
            return norm.complete(parse_json(text))
        except JSONRecoveryError:
            return norm.error("Could not parse the final AI response from Gemini; the output may have been truncated")

    async def generate_stream(self, model_input: ModelInput) -> AsyncIterator[StreamingChunk]:
        norm = StreamNormalizer(self.provider)
        try:
            contents, cfg = self._prepare(model_input)
            stream = await self.client.aio.models.generate_content_stream(
                model=self.model, contents=contents, config=cfg
            )
            async for part in stream:
                calls = getattr(part, "function_calls", None)
                if calls:
                    chunk = norm.replace(dumps(calls[0].args or {}))
                else:
                    chunk = norm.feed(getattr(part, "text", None))
                if chunk:
                    yield chunk
        except Exception as e:
            yield norm.error(str(self._error(e)))
            return

        yield self._finalize(norm)
