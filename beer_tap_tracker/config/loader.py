"""
Configuration management and loading.

Handles application settings, environment overrides and logging setup.
"""

import logging
import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Dict, Optional

import yaml

from ..core.pricing import PRICE_PER_LITRE

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class PricingConfig:
    """Price charged per litre served."""
    price_per_litre: Decimal = PRICE_PER_LITRE

    def __post_init__(self):
        """Validate price is positive."""
        if self.price_per_litre <= 0:
            raise ValueError("price_per_litre must be > 0")


@dataclass(frozen=True)
class ServerConfig:
    """Address the HTTP API listens on."""
    host: str = "127.0.0.1"
    port: int = 3000

    def __post_init__(self):
        """Validate port range."""
        if not 0 < self.port < 65536:
            raise ValueError("port must be between 1 and 65535")


@dataclass(frozen=True)
class LoggingConfig:
    """Log verbosity."""
    level: str = "INFO"

    def __post_init__(self):
        """Validate log level name."""
        if self.level not in VALID_LOG_LEVELS:
            raise ValueError(f"level must be one of: {list(VALID_LOG_LEVELS)}")


@dataclass(frozen=True)
class Settings:
    """Complete application settings."""
    pricing: PricingConfig = field(default_factory=PricingConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_settings(path: Optional[str] = None) -> Settings:
    """Load and validate settings from a YAML file.

    Every section is optional; missing values take their defaults. Unknown
    keys are rejected so typos never go unnoticed. The ``PORT``
    environment variable overrides ``server.port``.

    Args:
        path: Path to YAML configuration file, or None for defaults

    Returns:
        Validated Settings object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    raw_config: Dict = {}
    if path is not None:
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Settings file not found: {path}")

        with open(config_path, 'r', encoding='utf-8') as f:
            try:
                raw_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if not isinstance(raw_config, dict):
        raise ValueError("Configuration must be a mapping")

    allowed_top_keys = {'pricing', 'server', 'logging'}
    unknown_keys = set(raw_config.keys()) - allowed_top_keys
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    pricing = _parse_pricing(_section(raw_config, 'pricing', {'price_per_litre'}))
    server = _parse_server(_section(raw_config, 'server', {'host', 'port'}))
    log_config = _parse_logging(_section(raw_config, 'logging', {'level'}))

    return Settings(pricing=pricing, server=server, logging=log_config)


def _section(raw_config: Dict, name: str, allowed_keys: set) -> Dict:
    """Fetch an optional section and reject unknown keys in it."""
    data = raw_config.get(name)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"'{name}' must be a dictionary")

    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown keys in {name}: {unknown_keys}")
    return data


def _parse_pricing(data: Dict) -> PricingConfig:
    if 'price_per_litre' not in data:
        return PricingConfig()

    price = data['price_per_litre']
    if isinstance(price, bool) or not isinstance(price, (int, float, str)):
        raise ValueError("'price_per_litre' in pricing must be a number")
    try:
        value = Decimal(str(price))
    except InvalidOperation:
        raise ValueError("'price_per_litre' in pricing must be a number")
    if not value.is_finite():
        raise ValueError("'price_per_litre' in pricing must be a number")

    return PricingConfig(price_per_litre=value)


def _parse_server(data: Dict) -> ServerConfig:
    host = data.get('host', ServerConfig.host)
    if not isinstance(host, str) or not host.strip():
        raise ValueError("'host' in server must be a non-empty string")

    port = data.get('port', ServerConfig.port)
    env_port = os.environ.get('PORT')
    if env_port:
        try:
            port = int(env_port)
        except ValueError:
            raise ValueError(f"PORT environment variable must be an integer, got {env_port!r}")
    if isinstance(port, bool) or not isinstance(port, int):
        raise ValueError("'port' in server must be an integer")

    return ServerConfig(host=host, port=port)


def _parse_logging(data: Dict) -> LoggingConfig:
    level = data.get('level', LoggingConfig.level)
    if not isinstance(level, str):
        raise ValueError("'level' in logging must be a string")
    return LoggingConfig(level=level.upper())


def configure_logging(level: str = "INFO") -> None:
    """Send log records to stderr at the given level."""
    logging.basicConfig(level=getattr(logging, level.upper()), format=LOG_FORMAT, force=True)
