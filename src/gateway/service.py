# InferenceGateway: task-level operations over the fallback chain.
# Builds ModelInput from prompts + files + tools, resolves adapters from the
# config source, and hands the request to a FallbackOrchestrator.

from __future__ import annotations
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

from .adapters import create_adapter
from .adapters.base import ProviderAdapter
from .config_source import ConfigSource
from .errors import GatewayError, ProviderError
from .logs import get_logger
from .orchestrator import FallbackOrchestrator
from .prompts import DefaultPrompts, PromptSource
from .schemas import DISPLAY_IMPROVED_RESUME_TOOL, WEB_SEARCH_TOOL
from .types import (
    ChunkType,
    ModelConfig,
    ModelFileInput,
    ModelInput,
    ModelMessage,
    ModelResponse,
    Provider,
    StreamingChunk,
    ToolSchema,
)

logger = get_logger(__name__)

AdapterFactory = Callable[[ModelConfig], ProviderAdapter]


class _UnavailableAdapter(ProviderAdapter):
    """Stands in for an adapter that could not be built, failing like a provider would."""

    def __init__(self, config: ModelConfig, reason: str):
        super().__init__(config)
        self.provider = str(getattr(config.provider, "value", config.provider))
        self.reason = reason

    async def generate(self, model_input: ModelInput) -> ModelResponse:
        raise ProviderError(self.provider, self.reason)

    async def generate_stream(self, model_input: ModelInput) -> AsyncIterator[StreamingChunk]:
        yield StreamingChunk(type=ChunkType.ERROR, error=str(ProviderError(self.provider, self.reason)))


class AdapterCache:
    """
    Adapter for the last-resolved config. Rebuilt only when the config value
    changes. Not locked: two concurrent rebuilds produce equivalent adapters.
    """

    def __init__(self, factory: AdapterFactory):
        self.factory = factory
        self.config: Optional[ModelConfig] = None
        self.adapter: Optional[ProviderAdapter] = None

    def get(self, config: ModelConfig) -> ProviderAdapter:
        adapter = self.adapter
        if adapter is not None and self.config == config:
            return adapter
        try:
            adapter = self.factory(config)
        except GatewayError as e:
            logger.error("Could not create adapter for %s: %s", config.provider, e)
            return _UnavailableAdapter(config, str(e))
        self.config, self.adapter = config, adapter
        return adapter

    def clear(self) -> None:
        self.config = None
        self.adapter = None


class InferenceGateway:
    def __init__(
        self,
        config_source: ConfigSource,
        prompts: Optional[PromptSource] = None,
        adapter_factory: AdapterFactory = create_adapter,
    ):
        self.config_source = config_source
        self.prompts = prompts or DefaultPrompts()
        self.adapter_factory = adapter_factory
        self._primary = AdapterCache(adapter_factory)
        self._fallback = AdapterCache(adapter_factory)
        self._forced = AdapterCache(adapter_factory)

    def _orchestrator(self) -> FallbackOrchestrator:
        return FallbackOrchestrator(
            self._primary.get(self.config_source.primary()),
            self._fallback.get(self.config_source.fallback()),
        )

    @staticmethod
    def _input(
        system: str,
        user: str,
        files: Optional[List[ModelFileInput]] = None,
        tools: Optional[List[ToolSchema]] = None,
    ) -> ModelInput:
        return ModelInput(
            messages=[ModelMessage(role="system", content=system), ModelMessage(role="user", content=user)],
            files=files,
            tools=tools,
        )

    # -------------------------
    # Blocking operations
    # -------------------------
    async def generate(
        self,
        messages: List[ModelMessage],
        files: Optional[List[ModelFileInput]] = None,
        tools: Optional[List[ToolSchema]] = None,
    ) -> ModelResponse:
        return await self._orchestrator().generate(ModelInput(messages=messages, files=files, tools=tools))

    async def analyze(self, resume_file: ModelFileInput) -> ModelResponse:
        model_input = self._input(self.prompts.analysis_system(), self.prompts.analysis_user(), files=[resume_file])
        return await self._orchestrator().generate(model_input)

    async def improve(
        self,
        target_role: str,
        target_industry: str,
        custom_prompt: Optional[str],
        resume_file: ModelFileInput,
    ) -> ModelResponse:
        model_input = self._input(
            self.prompts.improvement_system(),
            self.prompts.improvement_user(target_role, target_industry, custom_prompt),
            files=[resume_file],
        )
        return await self._orchestrator().generate(model_input)

    async def tailor(
        self,
        current_resume: Any,
        job_description: str,
        include_cover_letter: bool = False,
        company_name: Optional[str] = None,
        job_title: Optional[str] = None,
    ) -> ModelResponse:
        model_input = self._input(
            self.prompts.tailoring_system(),
            self.prompts.tailoring_user(current_resume, job_description, include_cover_letter, company_name, job_title),
        )
        return await self._orchestrator().generate(model_input)

    async def extract_job_info(
        self,
        job_url: str,
        tools: Optional[List[ToolSchema]] = None,
        force_provider: Optional[Provider] = None,
    ) -> ModelResponse:
        """
        Extract job posting details from a URL.

        Web search only exists on the OpenAI backend, so callers that rely on it
        pass force_provider=Provider.OPENAI. The forced path skips the fallback
        chain and raises ProviderError directly.
        """
        model_input = self._input(
            self.prompts.job_extraction_system(),
            self.prompts.job_extraction_user(job_url),
            tools=tools if tools is not None else [WEB_SEARCH_TOOL],
        )
        if force_provider is not None:
            config = self.config_source.forced(force_provider)
            logger.info("Forcing %s (%s) for job extraction", getattr(config.provider, "value", config.provider), config.model)
            return await self._forced.get(config).generate(model_input)
        return await self._orchestrator().generate(model_input)

    # -------------------------
    # Streaming operations
    # -------------------------
    def analyze_stream(self, resume_file: ModelFileInput) -> AsyncIterator[StreamingChunk]:
        model_input = self._input(self.prompts.analysis_system(), self.prompts.analysis_user(), files=[resume_file])
        return self._orchestrator().generate_stream(model_input)

    def improve_stream(
        self,
        resume_file: ModelFileInput,
        target_role: str,
        target_industry: str,
        custom_prompt: Optional[str] = None,
    ) -> AsyncIterator[StreamingChunk]:
        model_input = self._input(
            self.prompts.improvement_system(),
            self.prompts.improvement_user(target_role, target_industry, custom_prompt),
            files=[resume_file],
            tools=[DISPLAY_IMPROVED_RESUME_TOOL],
        )
        return self._orchestrator().generate_stream(model_input)

    def tailor_stream(
        self,
        current_resume: Any,
        job_description: str,
        include_cover_letter: bool = False,
        company_name: Optional[str] = None,
        job_title: Optional[str] = None,
    ) -> AsyncIterator[StreamingChunk]:
        model_input = self._input(
            self.prompts.tailoring_system(),
            self.prompts.tailoring_user(current_resume, job_description, include_cover_letter, company_name, job_title),
        )
        return self._orchestrator().generate_stream(model_input)

    # -------------------------
    # Config / diagnostics
    # -------------------------
    def refresh_config(self) -> None:
        self.config_source.invalidate()
        self._primary.clear()
        self._fallback.clear()
        self._forced.clear()

    def current_config(self) -> Dict[str, ModelConfig]:
        return {"primary": self.config_source.primary(), "fallback": self.config_source.fallback()}

    async def probe(self) -> Dict[str, bool]:
        return await self._orchestrator().probe()
