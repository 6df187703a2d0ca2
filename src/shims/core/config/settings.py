"""Application settings loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """SHIMS monitoring server configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Server
    # Loopback by default: check-ins are patient data and there is no auth layer.
    shims_host: str = "127.0.0.1"
    shims_port: int = 8011
    shims_log_level: str = "info"
    # Binding to a non-loopback host is refused unless this is set true.
    shims_allow_insecure_bind: bool = False

    # Storage (local key-value store)
    store_path: str = "~/.shims/monitoring.db"

    # Encryption of stored values; empty means plaintext JSON
    encryption_key: str = ""

    # Profile roster dataset; empty means the bundled sample_profiles.json
    profiles_dataset_path: str = ""


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
