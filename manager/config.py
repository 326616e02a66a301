"""
Deployment settings for the database under test.

The harness entry point calls load_settings() (or init_settings()) once and
then configure_logging() before any node is set up; library code reads the
result through get_settings().
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings

from common.models.cluster import HealthColor
from common.utils import deep_merge, load_yaml


class DeploymentSettings(BaseSettings):
    """Deployment constants, overridable from the environment."""

    # Service account and layout
    user: str = "crate"
    base_dir: str = "/opt/crate"
    pidfile: str = "/tmp/crate.pid"
    daemon_name: str = "crate"

    # Packages
    java_package: str = "openjdk-17-jre-headless"
    system_packages: list[str] = ["apt-transport-https", "curl"]

    # Cluster
    cluster_name: str = "crate"
    http_port: int = 44200
    transport_port: int = 44300
    psql_port: int = 55432
    heap_size: str = "1g"
    max_map_count: int = 262144

    # Startup
    startup_timeout: int = 90  # seconds
    startup_color: HealthColor = HealthColor.GREEN
    health_poll_interval: float = 0.0  # seconds

    # SQL connection
    db_type: str = "crate"
    db_driver: str = "crate"
    db_name: str = "test"
    db_user: str = "crate"
    db_password: str = ""

    # Index store
    index_store_port: Optional[int] = None  # defaults to http_port
    index_connect_attempts: int = 10
    index_connect_backoff: float = 5.0  # seconds
    scroll_page_size: int = 128
    scroll_keep_alive_ms: int = 60000

    # Operations
    overload_backoff: float = 1.0  # seconds

    # SSH
    ssh_user: str = "root"
    ssh_port: int = 22
    ssh_key_path: Optional[str] = None
    ssh_password: Optional[str] = None
    command_timeout: int = 300  # seconds

    # Logging
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    class Config:
        env_prefix = "CRATE_HARNESS_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        frozen = True

    @property
    def index_port(self) -> int:
        """Port of the REST surface used by the index-store client."""
        return self.index_store_port or self.http_port

    @property
    def log_dir(self) -> str:
        return f"{self.base_dir}/logs"

    @property
    def data_dir(self) -> str:
        return f"{self.base_dir}/data"

    @property
    def stdout_logfile(self) -> str:
        return f"{self.log_dir}/stdout.log"

    @property
    def service_logfile(self) -> str:
        return f"{self.log_dir}/crate.log"

    @property
    def config_file(self) -> str:
        return f"{self.base_dir}/config/crate.yml"

    @property
    def environment_file(self) -> str:
        return f"{self.base_dir}/bin/crate.in.sh"


# Global settings instance
_settings: Optional[DeploymentSettings] = None


def get_settings() -> DeploymentSettings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = DeploymentSettings()
    return _settings


def init_settings(**kwargs) -> DeploymentSettings:
    """Initialize settings with custom values."""
    global _settings
    _settings = DeploymentSettings(**kwargs)
    return _settings


def load_settings(path: str | Path, **overrides) -> DeploymentSettings:
    """Initialize settings from a YAML file, with keyword overrides on top."""
    return init_settings(**deep_merge(load_yaml(path), overrides))


def configure_logging(settings: Optional[DeploymentSettings] = None) -> None:
    """Route log records to stdout using the configured level and format."""
    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format=settings.log_format,
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
