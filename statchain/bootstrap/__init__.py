"""
bootstrap/ - Configuration and logging setup
"""

from .config import (
    EngineConfig,
    LoggingConfig,
    StatChainConfig,
    get_config,
    load_config,
    parse_fan_in_policy,
    parse_strategy,
    reset_config,
)
from .log_setup import JSONFormatter, setup_logging, setup_logging_from_config

__all__ = [
    # Config
    "EngineConfig",
    "LoggingConfig",
    "StatChainConfig",
    "get_config",
    "load_config",
    "parse_fan_in_policy",
    "parse_strategy",
    "reset_config",
    # Logging
    "JSONFormatter",
    "setup_logging",
    "setup_logging_from_config",
]
