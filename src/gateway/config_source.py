# Model configuration source.
# Settings provide the defaults; an optional YAML file overrides them:
#
#   primary:  {provider: openai, model: gpt-4o-mini, temperature: 0.1}
#   fallback: {provider: gemini, model: gemini-2.0-flash}
#   forced:
#     openai: {model: gpt-4o-mini}

from __future__ import annotations
import os
from typing import Any, Dict, Optional, Protocol

import yaml

from src.settings import Settings, settings as default_settings
from .logs import get_logger
from .types import ModelConfig, Provider

logger = get_logger(__name__)

DEFAULT_MODELS = {
    Provider.OPENAI: "gpt-4o-mini",
    Provider.GEMINI: "gemini-2.0-flash",
    Provider.ECHO: "echo-dev",
}


class ConfigSource(Protocol):
    def primary(self) -> ModelConfig: ...

    def fallback(self) -> ModelConfig: ...

    def forced(self, provider: Provider) -> ModelConfig: ...

    def invalidate(self) -> None: ...


class SettingsConfigSource:
    def __init__(self, settings: Optional[Settings] = None, config_path: Optional[str] = None):
        self.settings = settings or default_settings
        self.config_path = config_path or self.settings.MODEL_CONFIG_PATH
        self._cfg: Optional[Dict[str, Any]] = None

    def _load_config(self) -> Dict[str, Any]:
        if self._cfg is None:
            if self.config_path and os.path.exists(self.config_path):
                with open(self.config_path, "r", encoding="utf-8") as f:
                    self._cfg = yaml.safe_load(f) or {}
                logger.info("Loaded model config overrides from %s", self.config_path)
            else:
                self._cfg = {}
        return self._cfg

    def _section(self, name: str) -> Dict[str, Any]:
        return ModelConfig.normalize_keys(self._load_config().get(name) or {})

    def _defaults(self, provider: str, model: str) -> Dict[str, Any]:
        return {
            "provider": provider,
            "model": model,
            "temperature": self.settings.MODEL_TEMPERATURE,
            "max_tokens": self.settings.MODEL_MAX_TOKENS,
            "top_p": self.settings.MODEL_TOP_P,
        }

    def primary(self) -> ModelConfig:
        base = self._defaults(self.settings.PRIMARY_PROVIDER, self.settings.PRIMARY_MODEL)
        return ModelConfig.from_dict({**base, **self._section("primary")})

    def fallback(self) -> ModelConfig:
        base = self._defaults(self.settings.FALLBACK_PROVIDER, self.settings.FALLBACK_MODEL)
        return ModelConfig.from_dict({**base, **self._section("fallback")})

    def forced(self, provider: Provider) -> ModelConfig:
        provider = Provider(provider)
        base = self._defaults(provider.value, DEFAULT_MODELS[provider])
        override = ModelConfig.normalize_keys(self._section("forced").get(provider.value) or {})
        return ModelConfig.from_dict({**base, **override, "provider": provider.value})

    def invalidate(self) -> None:
        self._cfg = None
        logger.info("Model configuration cache cleared, will reload on next request")
