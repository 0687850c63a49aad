"""
kubereats.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for every service kind.
- Validate drain/startup timings and dependency endpoints at startup.
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ServiceKindName = Literal["user", "order", "restaurant"]


class Settings(BaseSettings):
    """
    One settings shape for all services:
    - `service` selects which identity this process serves
    - Timings are bounded so shutdown and startup never wait forever
    """

    model_config = SettingsConfigDict(env_prefix="KUBEREATS_", case_sensitive=False)

    env: Literal["dev", "test", "prod"] = "dev"
    service: ServiceKindName = "user"
    log_level: str = "INFO"

    api_host: str = "0.0.0.0"
    api_port: int = Field(default=8080, ge=1, le=65535)

    # Shutdown
    drain_grace_period_seconds: float = Field(default=20.0, gt=0)

    # Startup
    startup_check_timeout_seconds: float = Field(default=5.0, gt=0)
    dependencies: list[str] = Field(default_factory=list)

    @field_validator("dependencies")
    @classmethod
    def _validate_dependencies(cls, value: list[str]) -> list[str]:
        for entry in value:
            split_endpoint(entry)
        return value

    @property
    def service_name(self) -> str:
        return f"{self.service.capitalize()} Service"

    @property
    def listen_address(self) -> str:
        return f"{self.api_host}:{self.api_port}"


def split_endpoint(entry: str) -> tuple[str, int]:
    """
    Split `host:port` (or `[v6-address]:port`) into its parts.
    Raises ValueError for anything else, including an unbracketed IPv6 address.
    """
    host, sep, port = entry.rpartition(":")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
        if not host:
            raise ValueError(f"dependency must be host:port, got {entry!r}")
    elif ":" in host:
        raise ValueError(f"IPv6 dependency must be written as [address]:port, got {entry!r}")
    if not sep or not host or "[" in host or "]" in host:
        raise ValueError(f"dependency must be host:port, got {entry!r}")
    if not port.isdigit() or not 0 < int(port) <= 65535:
        raise ValueError(f"dependency port must be 1-65535, got {entry!r}")
    return host, int(port)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for each request dependency.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# Health-check cadence and failure thresholds are orchestrator configuration; only the
# drain/startup bounds the process itself enforces live here.
