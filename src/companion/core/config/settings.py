"""Application settings loaded from environment variables."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Care Companion server configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Server
    # Loopback only unless explicitly overridden: there is no auth layer
    # beyond the caregiver PIN.
    companion_host: str = "127.0.0.1"
    companion_port: int = 8001
    companion_log_level: str = "info"
    companion_transport: Literal["stdio", "streamable-http"] = "stdio"
    companion_allow_insecure_bind: bool = False

    # Storage (local record store)
    db_path: str = "~/.companion/companion.db"
    storage_namespace: str = "ai-health-companion"
    # 0 disables the quota check
    storage_quota_bytes: int = 0

    # Encryption at rest; empty means plaintext JSON
    encryption_key: str = ""

    # Caregiver mode gate. A fixed-value comparison, not a security boundary.
    caregiver_pin: str = "1234"

    # Derived state
    trend_strategy: Literal["previous_reading", "simulated"] = "previous_reading"
    recognition_seed: int | None = None


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
