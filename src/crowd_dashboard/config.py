"""
Crowd Dashboard Configuration
=============================

This module handles configuration loading for the dashboard core.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    DASHBOARD_API_URL          -> backend.base_url
    DASHBOARD_API_KEY          -> backend.api_key
    DASHBOARD_API_TIMEOUT      -> backend.timeout_seconds
    DASHBOARD_PROJECT_ID       -> dashboard.project_id
    DASHBOARD_AREA_ID          -> dashboard.default_area_id
    DASHBOARD_LOOKBACK_HOURS   -> dashboard.lookback_hours
    DASHBOARD_REFRESH_INTERVAL -> live.refresh_interval_seconds
    DASHBOARD_PORT             -> server.port
    DASHBOARD_LOG_LEVEL        -> logging.level
    PORT                       -> server.port (Cloud Run)

Example:
    from crowd_dashboard.config import settings

    print(settings.backend.base_url)
    print(settings.live.refresh_interval_seconds)
    print(settings.density.ceiling)
"""

import os
import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class AppConfig(BaseModel):
    """Service identification configuration."""

    name: str = Field(default="crowd-dashboard", description="Service name")
    version: str = Field(default="v0.1.0", description="Service version")


class BackendConfig(BaseModel):
    """Density backend connection configuration."""

    base_url: str = Field(
        default="http://localhost:8000/api/v1",
        description="Base URL of the density backend API",
    )
    api_key: str = Field(
        default="",
        description="Value sent in the X-API-KEY header",
    )
    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Per-request HTTP timeout",
    )


class DashboardConfig(BaseModel):
    """Project selection and default manual controls."""

    project_id: str = Field(default="", description="Project shown by the dashboard")
    default_area_id: Optional[str] = Field(
        default=None,
        description="Area selected at startup (first area when unset)",
    )
    lookback_hours: int = Field(
        default=3,
        ge=1,
        description="Default series window length in hours",
    )
    half_moving_avg_size: int = Field(
        default=2,
        ge=0,
        description="Default half-width of the server-side moving average",
    )


class DensityConfig(BaseModel):
    """Density field and grid configuration."""

    ceiling: float = Field(
        default=6.0,
        gt=0,
        le=6.0,
        description="Saturation density (people/m²) used for clamping",
    )
    cell_size: float = Field(
        default=1.0,
        gt=0,
        description="World units (meters) per grid cell",
    )


class LiveConfig(BaseModel):
    """Live-refresh timing configuration."""

    refresh_interval_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Period between live pipeline runs",
    )
    countdown_step_seconds: float = Field(
        default=1.0,
        gt=0,
        description="Period between countdown decrements",
    )


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=8080, ge=1, le=65535, description="Bind port")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="json", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for the crowd dashboard.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    app: AppConfig = Field(default_factory=AppConfig)
    backend: BackendConfig = Field(default_factory=BackendConfig)
    dashboard: DashboardConfig = Field(default_factory=DashboardConfig)
    density: DensityConfig = Field(default_factory=DensityConfig)
    live: LiveConfig = Field(default_factory=LiveConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values

    Args:
        config_path: Path to config.yaml. If None, searches common locations.

    Returns:
        Settings: Loaded configuration
    """
    # Find config file
    if config_path is None:
        search_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path("/app/config.yaml"),
            Path(__file__).parent.parent.parent / "config.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break

    # Load from YAML if exists
    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.warning("No config file found, using defaults and environment variables")

    # Apply environment variable overrides
    _apply_env_overrides(config_data)

    # Build settings object
    settings = Settings.model_validate(config_data)

    return settings


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Backend settings
    if env_url := os.environ.get("DASHBOARD_API_URL"):
        config_data.setdefault("backend", {})["base_url"] = env_url
    if env_key := os.environ.get("DASHBOARD_API_KEY"):
        config_data.setdefault("backend", {})["api_key"] = env_key
    if env_timeout := os.environ.get("DASHBOARD_API_TIMEOUT"):
        config_data.setdefault("backend", {})["timeout_seconds"] = float(env_timeout)

    # Dashboard settings
    if env_project := os.environ.get("DASHBOARD_PROJECT_ID"):
        config_data.setdefault("dashboard", {})["project_id"] = env_project
    if env_area := os.environ.get("DASHBOARD_AREA_ID"):
        config_data.setdefault("dashboard", {})["default_area_id"] = env_area
    if env_lookback := os.environ.get("DASHBOARD_LOOKBACK_HOURS"):
        config_data.setdefault("dashboard", {})["lookback_hours"] = int(env_lookback)

    # Live settings
    if env_interval := os.environ.get("DASHBOARD_REFRESH_INTERVAL"):
        config_data.setdefault("live", {})["refresh_interval_seconds"] = float(env_interval)

    # Server settings (Cloud Run uses PORT env var)
    if env_port := os.environ.get("PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)
    elif env_port := os.environ.get("DASHBOARD_PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)

    # Logging settings
    if env_log := os.environ.get("DASHBOARD_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


# =============================================================================
# Global Settings Instance
# =============================================================================

# Global settings instance - loaded on import
settings = load_config()
setup_logging(settings)
