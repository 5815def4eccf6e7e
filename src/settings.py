# src/settings.py
import os

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # core
    APP_NAME: str = Field(default="Resume Inference Gateway")
    ENV: str = Field(default=os.getenv("APP_ENV", "dev"))
    DEBUG: bool = Field(default=True)
    LOG_LEVEL: str = Field(default="INFO")

    # provider secrets
    OPENAI_API_KEY: str | None = None
    GEMINI_API_KEY: str | None = None

    # model defaults (overlaid by the YAML at MODEL_CONFIG_PATH, when set)
    PRIMARY_PROVIDER: str = Field(default="openai")
    PRIMARY_MODEL: str = Field(default="gpt-4o-mini")
    FALLBACK_PROVIDER: str = Field(default="gemini")
    FALLBACK_MODEL: str = Field(default="gemini-2.0-flash")
    MODEL_TEMPERATURE: float = Field(default=0.1)
    MODEL_MAX_TOKENS: int = Field(default=4000)
    MODEL_TOP_P: float = Field(default=1.0)
    MODEL_CONFIG_PATH: str = Field(default="")

    # read root-level .env.dev
    model_config = SettingsConfigDict(
        env_file=".env.dev",
        extra="ignore",
    )

    @property
    def app_name(self) -> str:
        return self.APP_NAME


settings = Settings()
