"""Configuration management for cafewatch.

Loads settings from a YAML configuration file with environment variable
overrides. Supports .env files.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/cafewatch.yaml")


class ServerConfig(BaseModel):
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=5000, ge=1, le=65535)
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])


class RegistryConfig(BaseModel):
    active_window_ms: int = Field(default=30_000, gt=0)
    recent_window_ms: int = Field(default=300_000, gt=0)

    @model_validator(mode="after")
    def _recent_covers_active(self) -> RegistryConfig:
        if self.recent_window_ms < self.active_window_ms:
            raise ValueError("recent_window_ms must not be shorter than active_window_ms")
        return self


class AgentConfig(BaseModel):
    server_url: str = Field(default="http://localhost:5000/api")
    identifier: str | None = Field(
        default=None, description="Address to report; detected from the host when unset"
    )
    user_agent: str = Field(default="cafewatch-agent")
    heartbeat_interval: float = Field(default=1.0, gt=0)
    launch_poll_interval: float = Field(default=3.0, gt=0)
    retry_delay: float = Field(default=5.0, gt=0)
    timeout: float = Field(default=5.0, gt=0)


class DiscoveryConfig(BaseModel):
    subnet: str | None = Field(
        default=None, description="Three-octet prefix such as '192.168.1.'; auto-detected when unset"
    )
    range_start: int = Field(default=1, ge=1, le=254)
    range_end: int = Field(default=50, ge=1, le=254)
    timeout: float = Field(default=1.0, gt=0)
    concurrency: int = Field(default=32, gt=0)

    @model_validator(mode="after")
    def _range_ordered(self) -> DiscoveryConfig:
        if self.range_start > self.range_end:
            raise ValueError("range_start must not be greater than range_end")
        return self


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO")
    format: str = Field(
        default="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    file: str | None = Field(default=None)


class Settings(BaseSettings):
    """Root configuration for cafewatch.

    Loads from YAML file and supports environment variable overrides.
    Reads .env files automatically.
    """

    model_config = {
        "env_prefix": "CAFEWATCH_",
        "env_nested_delimiter": "__",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    server: ServerConfig = Field(default_factory=ServerConfig)
    registry: RegistryConfig = Field(default_factory=RegistryConfig)
    agent: AgentConfig = Field(default_factory=AgentConfig)
    discovery: DiscoveryConfig = Field(default_factory=DiscoveryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_settings(config_path: Path | str | None = None) -> Settings:
    """Load settings from YAML + .env + environment variables.

    Sections present in the YAML file take precedence over
    ``CAFEWATCH_``-prefixed environment variables; plain ``HOST`` and
    ``PORT`` variables override both for the server section.
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    # Load .env file manually for non-prefixed vars
    _load_dotenv()

    yaml_data = {}
    if path.exists():
        with open(path) as f:
            yaml_data = yaml.safe_load(f) or {}
        logger.info("Loaded configuration from %s", path)
    else:
        logger.warning("Config file %s not found, using defaults + env vars", path)

    _apply_env_overrides(yaml_data)

    return Settings(**yaml_data)


def _load_dotenv() -> None:
    """Load .env file into os.environ if it exists."""
    env_path = Path(".env")
    if not env_path.exists():
        return
    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" in line:
                key, _, value = line.partition("=")
                key = key.strip()
                value = value.strip()
                if not os.environ.get(key):
                    os.environ[key] = value


def _apply_env_overrides(yaml_data: dict) -> None:
    """Apply the conventional non-prefixed HOST/PORT overrides."""
    host = os.environ.get("HOST", "")
    port = os.environ.get("PORT", "")

    if not (host or port):
        return

    server = yaml_data.setdefault("server", {})
    if host:
        server["host"] = host
    if port:
        server["port"] = port
