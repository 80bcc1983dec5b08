"""Application configuration from environment variables."""

from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Telegram credentials (TELEGRAM_BOT_TOKEN / TELEGRAM_CHAT_ID)
    telegram_bot_token: Optional[str] = None
    telegram_chat_id: Optional[str] = None
    telegram_api_url: str = "https://api.telegram.org"

    # Device inventory
    devices_file: Path = Path("devices.yaml")

    # Probe tuning
    probe_concurrency: int = 16  # Devices probed in parallel per cycle
    tcp_fallback_ports: Optional[str] = None  # e.g. "22,443", tried when ICMP fails

    @field_validator("probe_concurrency")
    @classmethod
    def validate_probe_concurrency(cls, v: int) -> int:
        if v < 1:
            raise ValueError("probe_concurrency must be at least 1")
        return v

    @property
    def tcp_fallback_ports_list(self) -> List[int]:
        """Parse TCP fallback ports into list of integers.

        Empty when not configured, which disables the TCP fallback.
        """
        if not self.tcp_fallback_ports:
            return []
        ports = []
        for entry in self.tcp_fallback_ports.split(","):
            entry = entry.strip()
            if not entry:
                continue
            port = int(entry)
            if not 0 < port < 65536:
                raise ValueError(f"invalid TCP fallback port: {port}")
            ports.append(port)
        return ports

    # Prometheus metrics endpoint (disabled when unset)
    metrics_port: Optional[int] = None

    # Logging
    log_level: str = "INFO"
    log_format: str = "text"  # "text" or "json"
    log_file: Optional[Path] = None

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level: {v}")
        return level

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        fmt = v.strip().lower()
        if fmt not in ("text", "json"):
            raise ValueError(f"log_format must be 'text' or 'json', got {v!r}")
        return fmt

    @property
    def telegram_configured(self) -> bool:
        """Check if both Telegram credentials are present."""
        return bool(self.telegram_bot_token) and bool(self.telegram_chat_id)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore unknown environment variables



def load_settings() -> Settings:
    """Load settings, turning validation errors into a fatal startup message."""
    try:
        return Settings()
    except ValidationError as e:
        raise SystemExit(f"Invalid configuration: {e}") from e


# Global settings instance
settings = load_settings()
