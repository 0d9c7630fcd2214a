"""Application settings loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All configuration is driven by environment variables."""

    # Diagnostics
    provisioner_debug_log: str = ""
    provisioner_log_level: str = "INFO"
    provisioner_log_json: bool = False

    # API key
    provisioner_api_key: str = ""

    # SSH transport
    ssh_connect_timeout_seconds: int = 15
    ssh_banner_timeout_seconds: int = 15
    ssh_auth_timeout_seconds: int = 15
    ssh_strict_host_key: bool = False
    ssh_known_hosts_file: str = ""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


# Singleton – import this from anywhere
settings = Settings()
