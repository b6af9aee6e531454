"""Application configuration using pydantic-settings."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Controller settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="HYDRA_MAESTER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_json: bool = False

    # Hydra admin API
    hydra_url: str = Field(
        default="http://localhost",
        description="Hydra admin URL (scheme and host, optionally a path)",
    )
    hydra_port: int | None = Field(
        default=4445,
        description="Hydra admin port; unset to use the port in hydra_url",
    )
    endpoint: str = Field(
        default="/clients",
        description="Client registry path on the admin API",
    )
    timeout: float = Field(
        default=30.0,
        description="HTTP request timeout in seconds",
    )

    # Run loop
    max_concurrent_reconciles: int = Field(default=1, ge=1)
    requeue_base_delay: float = 1.0
    requeue_max_delay: float = 60.0
    max_retries: int = Field(default=5, ge=0)
    resync_interval: float = 30.0

    # File store
    manifests_file: Path = Field(default=Path("oauth2clients.yaml"))
    secrets_file: Path = Field(default=Path(".oauth2clients.secrets.yaml"))

    @property
    def registry_url(self) -> str:
        """Base endpoint of the client registry, e.g. http://localhost:4445/clients."""
        base = self.hydra_url.rstrip("/")
        scheme, sep, rest = base.partition("://")
        if not sep:
            scheme, rest = "http", base
        host, slash, path = rest.partition("/")
        if self.hydra_port is not None and ":" not in host:
            host = f"{host}:{self.hydra_port}"
        prefix = f"/{path}" if slash else ""
        return f"{scheme}://{host}{prefix}/{self.endpoint.strip('/')}"

    def with_overrides(
        self,
        *,
        hydra_url: str | None = None,
        hydra_port: int | None = None,
        endpoint: str | None = None,
        secrets_file: Path | None = None,
        manifests_file: Path | None = None,
    ) -> "Settings":
        """Create a new settings instance with CLI overrides applied."""
        return self.model_copy(
            update={
                "hydra_url": hydra_url or self.hydra_url,
                "hydra_port": hydra_port if hydra_port is not None else self.hydra_port,
                "endpoint": endpoint or self.endpoint,
                "secrets_file": secrets_file or self.secrets_file,
                "manifests_file": manifests_file or self.manifests_file,
            }
        )


settings = Settings()


@lru_cache
def get_settings() -> Settings:
    """Alias for the module-level settings singleton."""
    return settings
