"""
FPGA Telemetry Monitor Configuration
====================================

This module handles configuration loading for the telemetry monitor.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    FPGA_MONITOR_ENV                    -> stream.environment
    FPGA_MONITOR_STREAM_URL             -> stream.url
    FPGA_MONITOR_RECONNECT_BACKOFF_MS   -> stream.reconnect_backoff_ms
    FPGA_MONITOR_MAX_RECONNECT_ATTEMPTS -> stream.max_reconnect_attempts
    FPGA_MONITOR_WINDOW_SIZE            -> window.size
    FPGA_MONITOR_FLOW_MAX               -> thresholds.flow_max
    FPGA_MONITOR_PRESSURE_MIN           -> thresholds.pressure_min
    FPGA_MONITOR_PORT                   -> server.port
    FPGA_MONITOR_LOG_LEVEL              -> logging.level
    PORT                                -> server.port (Render / Cloud Run)

Endpoint Selection:
    stream.url wins when set. Otherwise the endpoint is picked by
    stream.environment: production_url for "production",
    development_url for "development".

Example:
    from fpga_monitor.config import load_config

    settings = load_config()
    print(settings.stream.resolved_url)
    print(settings.thresholds.flow_max)
"""

import os
import logging
from enum import Enum
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, model_validator


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class MonitorConfig(BaseModel):
    """Monitor identification configuration."""

    name: str = Field(default="fpga-telemetry-monitor", description="Service name")
    version: str = Field(default="v0.1.0", description="Service version")


class Environment(str, Enum):
    """Deployment environment used for endpoint selection."""

    PRODUCTION = "production"
    DEVELOPMENT = "development"


class StreamConfig(BaseModel):
    """Telemetry stream connection configuration."""

    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Deployment environment: 'production' or 'development'",
    )
    production_url: str = Field(
        default="wss://fgpa-dashboard-backend.onrender.com/ws/telemetry",
        description="WebSocket URL used in production",
    )
    development_url: str = Field(
        default="ws://localhost:8000/ws/telemetry",
        description="WebSocket URL used in development",
    )
    url: Optional[str] = Field(
        default=None,
        description="Explicit WebSocket URL, overrides environment selection",
    )
    reconnect_backoff_ms: int = Field(
        default=500,
        ge=100,
        description="First backoff in milliseconds between reconnect attempts",
    )
    reconnect_backoff_max_ms: int = Field(
        default=30_000,
        ge=100,
        description="Upper bound on reconnect backoff in milliseconds",
    )
    backoff_factor: float = Field(
        default=2.0,
        ge=1.0,
        description="Backoff multiplier per consecutive failure",
    )
    backoff_jitter: float = Field(
        default=0.1,
        ge=0,
        le=1.0,
        description="Max random fraction added to each backoff",
    )
    max_reconnect_attempts: int = Field(
        default=0,
        ge=0,
        description="Maximum reconnection attempts (0 = unlimited)",
    )

    @model_validator(mode="after")
    def _check_backoff_bounds(self) -> "StreamConfig":
        if self.reconnect_backoff_max_ms < self.reconnect_backoff_ms:
            raise ValueError("reconnect_backoff_max_ms must be >= reconnect_backoff_ms")
        return self

    @property
    def resolved_url(self) -> str:
        """Endpoint to connect to after applying environment selection."""
        if self.url:
            return self.url
        if self.environment is Environment.PRODUCTION:
            return self.production_url
        return self.development_url


class WindowConfig(BaseModel):
    """Rolling window configuration."""

    size: int = Field(
        default=41,
        ge=1,
        description="Number of most recent samples kept (last 40 plus incoming)",
    )


class ThresholdsConfig(BaseModel):
    """Fault predicate thresholds."""

    flow_max: float = Field(default=7000.0, description="Fault when flow is above this")
    pressure_min: float = Field(default=25000.0, description="Fault when pressure is below this")


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=8001, ge=1, le=65535, description="Bind port")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for the telemetry monitor.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    monitor: MonitorConfig = Field(default_factory=MonitorConfig)
    stream: StreamConfig = Field(default_factory=StreamConfig)
    window: WindowConfig = Field(default_factory=WindowConfig)
    thresholds: ThresholdsConfig = Field(default_factory=ThresholdsConfig)
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
        logger.info("No config file found, using defaults and environment variables")

    # Apply environment variable overrides
    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Stream settings
    if env_mode := os.environ.get("FPGA_MONITOR_ENV"):
        config_data.setdefault("stream", {})["environment"] = env_mode.lower()
    if env_url := os.environ.get("FPGA_MONITOR_STREAM_URL"):
        config_data.setdefault("stream", {})["url"] = env_url
    if env_backoff := os.environ.get("FPGA_MONITOR_RECONNECT_BACKOFF_MS"):
        config_data.setdefault("stream", {})["reconnect_backoff_ms"] = int(env_backoff)
    if env_attempts := os.environ.get("FPGA_MONITOR_MAX_RECONNECT_ATTEMPTS"):
        config_data.setdefault("stream", {})["max_reconnect_attempts"] = int(env_attempts)

    # Window settings
    if env_window := os.environ.get("FPGA_MONITOR_WINDOW_SIZE"):
        config_data.setdefault("window", {})["size"] = int(env_window)

    # Threshold overrides
    if env_flow := os.environ.get("FPGA_MONITOR_FLOW_MAX"):
        config_data.setdefault("thresholds", {})["flow_max"] = float(env_flow)
    if env_pressure := os.environ.get("FPGA_MONITOR_PRESSURE_MIN"):
        config_data.setdefault("thresholds", {})["pressure_min"] = float(env_pressure)

    # Server settings (Render / Cloud Run use PORT env var)
    if env_port := os.environ.get("PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)
    elif env_port := os.environ.get("FPGA_MONITOR_PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)

    # Logging settings
    if env_log := os.environ.get("FPGA_MONITOR_LOG_LEVEL"):
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
