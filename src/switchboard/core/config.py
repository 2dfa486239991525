"""
Runtime configuration for Switchboard.
"""

from dataclasses import dataclass, field
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class EnvSettings(BaseSettings):
    """Environment-based settings loaded from SWITCHBOARD_* variables or a .env file."""

    model_config = SettingsConfigDict(
        env_prefix="SWITCHBOARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = "INFO"
    resource_timeout: float = 7.0  # seconds
    resource_root: str = "."
    web_host: str = "127.0.0.1"
    web_port: int = 8000


@dataclass
class WebConfig:
    """Inspection API configuration."""

    enabled: bool = False
    host: Optional[str] = None
    port: Optional[int] = None
    log_buffer: int = 1000  # records kept for the log stream


@dataclass
class RuntimeConfig:
    """Complete runtime configuration."""

    web: WebConfig = field(default_factory=WebConfig)
    env: Optional[EnvSettings] = None

    def __post_init__(self):
        if self.env is None:
            try:
                self.env = EnvSettings()
            except Exception:
                self.env = EnvSettings.model_construct()
        if self.web.host is None:
            self.web.host = self.env.web_host
        if self.web.port is None:
            self.web.port = self.env.web_port
