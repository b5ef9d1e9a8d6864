"""Application settings — Pydantic-based configuration with YAML and env var support.

Configuration is loaded from (in order of precedence):
  1. YAML config file (if specified)
  2. Environment variables (PERPLEXITY_ prefix)
  3. Default values
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""


class ServerSettings(BaseModel):
    """Identity announced to stdio clients during the protocol handshake."""

    name: str = Field(default="perplexity-mcp", description="Server name reported to clients")
    version: str = Field(default="0.2.3", description="Server version reported to clients")


class ObservabilitySettings(BaseModel):
    """Observability configuration."""

    log_level: str = Field(default="info", description="Log level: debug, info, warning, error")
    log_format: str = Field(default="json", description="Log format: json, console")


class Settings(BaseSettings):
    """Root application settings.

    Configuration is loaded from environment variables with the PERPLEXITY_ prefix.
    Nested settings use double underscores: PERPLEXITY_OBSERVABILITY__LOG_LEVEL=debug

    Example:
        PERPLEXITY_API_KEY=pplx-...
        PERPLEXITY_TIMEOUT_MS=600000
        PERPLEXITY_BASE_URL=https://api.perplexity.ai
    """

    model_config = {
        "env_prefix": "PERPLEXITY_",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }

    api_key: str = Field(default="", description="Perplexity API key, forwarded as a bearer token")
    timeout_ms: int = Field(
        default=300000,
        description="Per-request timeout in milliseconds; for streams, the maximum gap between chunks",
    )
    base_url: str = Field(default="https://api.perplexity.ai", description="Perplexity API base URL")

    server: ServerSettings = Field(default_factory=ServerSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    @field_validator("timeout_ms")
    @classmethod
    def _positive_timeout(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("timeout_ms must be a positive number of milliseconds")
        return v

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000

    def require_api_key(self) -> str:
        """Return the API key, failing loudly when it is not configured.

        Raises:
            ConfigurationError: If ``PERPLEXITY_API_KEY`` is unset or empty.
        """
        if not self.api_key:
            raise ConfigurationError("PERPLEXITY_API_KEY environment variable is required")
        return self.api_key

    @classmethod
    def from_yaml(cls, path: str | Path) -> Settings:
        """Load settings from a YAML configuration file.

        Keys present in the YAML file override the environment; anything the
        file leaves out is still read from PERPLEXITY_* variables.

        Args:
            path: Path to the YAML config file.

        Returns:
            Populated Settings instance.
        """
        import yaml  # type: ignore[import-untyped]

        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)
