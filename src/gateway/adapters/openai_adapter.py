# Adapter for the OpenAI API.
# Plain chat goes through Chat Completions; requests with files or tools use
# the Responses API, which is the only one that accepts both.

from __future__ import annotations
from typing import Any, AsyncIterator, Dict, List, Optional

from openai import AsyncOpenAI

from src.settings import settings
from ..errors import JSONRecoveryError, ProviderError
from ..logs import get_logger
from ..recovery import parse_json, recover_json
from ..streaming import StreamNormalizer
from ..types import ModelConfig, ModelInput, ModelResponse, Provider, StreamingChunk, TokenUsage, ToolSchema
from .base import ProviderAdapter

logger = get_logger(__name__)

TEXT_DELTA_EVENTS = ("response.output_text.delta", "response.function_call_arguments.delta")
ERROR_EVENTS = ("error", "response.failed")


class OpenAIAdapter(ProviderAdapter):
    provider = Provider.OPENAI.value

    def __init__(self, config: ModelConfig, api_key: Optional[str] = None, client: Any = None):
        super().__init__(config)
        self.api_key = api_key
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            key = self.api_key or settings.OPENAI_API_KEY
            if not key:
                raise ProviderError(self.provider, "Missing OpenAI API key")
            self._client = AsyncOpenAI(api_key=key)
        return self._client

    # -------------------------
    # Request shapes
    # -------------------------
    @staticmethod
    def _tool(tool: ToolSchema) -> Dict[str, Any]:
        if tool.builtin:
            return {"type": "web_search_preview"} if tool.name == "web_search" else {"type": tool.name}
        return {
            "type": "function",
            "name": tool.name,
            "description": tool.description,
            "parameters": tool.parameters or {"type": "object", "properties": {}},
            "strict": False,
        }

    def _responses_params(self, model_input: ModelInput) -> Dict[str, Any]:
        if model_input.files:
            system = model_input.first("system")
            user = model_input.last("user")
            file_parts: List[Dict[str, Any]] = [
                {
                    "type": "input_file",
                    "filename": f.filename,
                    "file_data": f"data:{f.resolved_mime_type};base64,{f.data}",
                }
                for f in model_input.files
            ]
            items = [
                {"role": "system", "content": [{"type": "input_text", "text": system.content if system else ""}]},
                {"role": "user", "content": [*file_parts, {"type": "input_text", "text": user.content if user else ""}]},
            ]
        else:
            items = [
                {
                    "role": m.role,
                    "content": [{"type": "output_text" if m.role == "assistant" else "input_text", "text": m.content}],
                }
                for m in model_input.messages
            ]

        params: Dict[str, Any] = {
            "model": self.model,
            "input": items,
            "temperature": self.config.temperature,
            "max_output_tokens": self.config.max_tokens,
            "top_p": self.config.top_p,
            "store": True,
        }
        if model_input.tools:
            params["tools"] = [self._tool(t) for t in model_input.tools]
        return params

    def _chat_params(self, model_input: ModelInput) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": [{"role": m.role, "content": m.content} for m in model_input.messages],
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
            "top_p": self.config.top_p,
        }

    # -------------------------
    # Blocking
    # -------------------------
    @staticmethod
    def _responses_text(resp: Any) -> str:
        # a function call carries the structured result in its arguments
        for item in getattr(resp, "output", None) or []:
            if getattr(item, "type", None) == "function_call":
                return item.arguments or ""
        return getattr(resp, "output_text", None) or ""

    async def generate(self, model_input: ModelInput) -> ModelResponse:
        try:
            if model_input.files or model_input.tools:
                resp = await self.client.responses.create(**self._responses_params(model_input))
                text = self._responses_text(resp)
                u = getattr(resp, "usage", None)
                usage = TokenUsage(
                    prompt_tokens=getattr(u, "input_tokens", None),
                    completion_tokens=getattr(u, "output_tokens", None),
                    total_tokens=getattr(u, "total_tokens", None),
                )
            else:
                resp = await self.client.chat.completions.create(**self._chat_params(model_input))
                text = resp.choices[0].message.content or ""
                u = getattr(resp, "usage", None)
                usage = TokenUsage(
                    prompt_tokens=getattr(u, "prompt_tokens", None),
                    completion_tokens=getattr(u, "completion_tokens", None),
                    total_tokens=getattr(u, "total_tokens", None),
                )
        except Exception as e:
            err = self._error(e)
            logger.warning("[openai] %s", err.message)
            raise err from e

        return ModelResponse(content=recover_json(text), usage=usage, provider=self.provider)

    # -------------------------
    # Streaming
    # -------------------------
    @staticmethod
    def _event_error(event: Any) -> str:
        msg = getattr(event, "message", None)
        if not msg:
            err = getattr(getattr(event, "response", None), "error", None)
            msg = getattr(err, "message", None) if err is not None else None
        return msg or "Unknown streaming error"

    def _finalize(self, norm: StreamNormalizer) -> StreamingChunk:
        try:
            return norm.complete(parse_json(norm.buffer))
        except JSONRecoveryError:
            logger.error("[openai] failed to parse the complete response: %r", norm.buffer[:200])
            return norm.error("Could not parse the final AI response.")

    async def generate_stream(self, model_input: ModelInput) -> AsyncIterator[StreamingChunk]:
        norm = StreamNormalizer(self.provider)
        try:
            if model_input.files or model_input.tools:
                stream = await self.client.responses.create(**self._responses_params(model_input), stream=True)
                async for event in stream:
                    kind = getattr(event, "type", "")
                    if kind in TEXT_DELTA_EVENTS:
                        chunk = norm.feed(getattr(event, "delta", ""))
                        if chunk:
                            yield chunk
                    elif kind == "response.completed":
                        yield self._finalize(norm)
                        return
                    elif kind in ERROR_EVENTS:
                        yield norm.error(self._event_error(event))
                        return
            else:
                stream = await self.client.chat.completions.create(**self._chat_params(model_input), stream=True)
                async for part in stream:
                    choices = getattr(part, "choices", None) or []
                    if not choices:
                        continue
                    chunk = norm.feed(getattr(choices[0].delta, "content", None))
                    if chunk:
                        yield chunk
        except Exception as e:
            yield norm.error(str(self._error(e)))
            return

        # the transport closed without an explicit completion event
        yield self._finalize(norm)
