"""
Configuration management.

Loads settings from environment variables and .env file.
Prefix: GATEKEEPER_
"""

from enum import Enum
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LLMChoice(str, Enum):
    """Which backend the application is configured to use."""

    UNSET = "unset"
    LOCAL_3B = "local_3b"
    LOCAL_7B = "local_7b"
    CUSTOM = "custom"
    REMOTE = "remote"
    OLLAMA_CLOUD = "ollama_cloud"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="GATEKEEPER_",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    llm_choice: LLMChoice = Field(default=LLMChoice.UNSET, description="Configured backend")

    # Storage
    data_dir: Path = Field(default=Path("data"), description="Data storage directory")
    audit_log_file: Path | None = Field(
        default=None, description="Optional file receiving privacy decision records"
    )

    # On-device models
    local_3b_download_url: str = Field(default="", description="Download URL of the 3B model")
    local_7b_download_url: str = Field(default="", description="Download URL of the 7B model")
    custom_llm_path: str = Field(default="", description="Path to a user supplied GGUF model")

    # OpenAI-compatible API
    openai_api_key: str = Field(default="", description="OpenAI API key")
    openai_model: str = Field(default="gpt-4o-mini", description="OpenAI model name")
    openai_base_url: str = Field(
        default="https://api.openai.com/v1",
        description="OpenAI-compatible API endpoint",
    )

    # Ollama Cloud
    ollama_api_key: str = Field(default="", description="Ollama Cloud API key")
    ollama_base_url: str = Field(default="https://ollama.com", description="Ollama Cloud endpoint")
    ollama_model: str = Field(default="gpt-oss:20b", description="Ollama model name")

    # Remote call behaviour
    request_timeout: float = Field(default=60.0, description="Per-attempt timeout in seconds")
    max_retries: int = Field(default=2, description="Retries after the first remote attempt")
    retry_backoff_base_ms: int = Field(default=500, description="Initial backoff in milliseconds")

    @property
    def models_dir(self) -> Path:
        return self.data_dir / "models"


def get_settings() -> Settings:
    """Get settings instance."""
    return Settings()
