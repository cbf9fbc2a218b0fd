"""Application configuration."""
from __future__ import annotations

from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings loaded from .env and environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    llm_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("LLM_API_KEY", "GROQ_API_KEY", "OPENAI_API_KEY"),
    )
    llm_base_url: str = "https://api.groq.com/openai/v1"
    llm_model: str = "llama3-70b-8192"
    llm_max_tokens: int = 3000
    llm_temperature: float = 0.1

    database_url: str = Field(
        default="sqlite+pysqlite:///./novaflow.db",
        validation_alias=AliasChoices("DATABASE_URL"),
    )
    output_dir: str = "outputs"
    log_level: str = "INFO"

    renderer_backend: str = "cli"  # cli | docker | ink | preview
    mermaid_cli_command: str = "mmdc"
    mermaid_renderer_image: str = "minlag/mermaid-cli"
    mermaid_ink_url: str = "https://mermaid.ink"
    render_debounce_ms: int = 300
    render_timeout_seconds: Optional[float] = None

    mermaid_theme: str = "default"
    mermaid_font_family: str = "Inter, system-ui, sans-serif"
    mermaid_font_size: int = 14


settings = Settings()
