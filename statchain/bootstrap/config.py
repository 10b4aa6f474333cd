"""
bootstrap/config.py - Engine configuration

Provides configuration loading from files, environment variables, and defaults.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from pathlib import Path
import os
import json
import logging

from statchain.core.enums import EvaluationStrategy, FanInPolicy
from statchain.errors import InvalidStrategyError

logger = logging.getLogger(__name__)


def parse_strategy(value: Any) -> EvaluationStrategy:
    """Coerce an enum member or its string value to EvaluationStrategy."""
    if isinstance(value, EvaluationStrategy):
        return value
    try:
        return EvaluationStrategy(str(value).lower())
    except ValueError:
        valid = ", ".join(s.value for s in EvaluationStrategy)
        raise InvalidStrategyError(
            f"Strategy must be one of {valid}, got {value!r}"
        ) from None


def parse_fan_in_policy(value: Any) -> FanInPolicy:
    """Coerce an enum member or its string value to FanInPolicy."""
    if isinstance(value, FanInPolicy):
        return value
    try:
        return FanInPolicy(str(value).lower())
    except ValueError:
        valid = ", ".join(p.value for p in FanInPolicy)
        raise InvalidStrategyError(
            f"Fan-in policy must be one of {valid}, got {value!r}"
        ) from None


@dataclass
class EngineConfig:
    """Propagation engine defaults."""

    strategy: str = EvaluationStrategy.EAGER.value
    fan_in_policy: str = FanInPolicy.PERMISSIVE.value

    @classmethod
    def from_env(cls) -> "EngineConfig":
        return cls(
            strategy=os.getenv("STATCHAIN_STRATEGY", EvaluationStrategy.EAGER.value),
            fan_in_policy=os.getenv("STATCHAIN_FAN_IN_POLICY", FanInPolicy.PERMISSIVE.value),
        )

    @property
    def evaluation_strategy(self) -> EvaluationStrategy:
        return parse_strategy(self.strategy)

    @property
    def fan_in(self) -> FanInPolicy:
        return parse_fan_in_policy(self.fan_in_policy)


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_file: Optional[str] = None
    json_logs: bool = False

    @classmethod
    def from_env(cls) -> "LoggingConfig":
        return cls(
            level=os.getenv("STATCHAIN_LOG_LEVEL", "INFO"),
            format=os.getenv("STATCHAIN_LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
            log_file=os.getenv("STATCHAIN_LOG_FILE"),
            json_logs=os.getenv("STATCHAIN_JSON_LOGS", "false").lower() == "true",
        )


@dataclass
class StatChainConfig:
    """Root configuration for statchain."""

    debug: bool = False

    engine: EngineConfig = field(default_factory=EngineConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls) -> "StatChainConfig":
        """Create configuration from environment variables."""
        return cls(
            debug=os.getenv("STATCHAIN_DEBUG", "false").lower() == "true",
            engine=EngineConfig.from_env(),
            logging=LoggingConfig.from_env(),
        )

    @classmethod
    def from_file(cls, filepath: str) -> "StatChainConfig":
        """Load configuration from JSON file."""
        path = Path(filepath)
        if not path.exists():
            logger.warning(f"Config file not found: {filepath}, using defaults")
            return cls.from_env()

        with open(path) as f:
            data = json.load(f)

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "StatChainConfig":
        """Create config from dictionary, layered over the environment."""
        config = cls.from_env()

        if "debug" in data:
            config.debug = bool(data["debug"])

        for section in ("engine", "logging"):
            target = getattr(config, section)
            for key, value in data.get(section, {}).items():
                if hasattr(target, key):
                    setattr(target, key, value)
                else:
                    logger.warning(f"Ignoring unknown config key: {section}.{key}")

        # Fail at load time rather than at first graph construction
        parse_strategy(config.engine.strategy)
        parse_fan_in_policy(config.engine.fan_in_policy)

        return config

    def to_dict(self) -> Dict[str, Any]:
        """Serialize config to dictionary."""
        return {
            "debug": self.debug,
            "engine": {
                "strategy": self.engine.strategy,
                "fan_in_policy": self.engine.fan_in_policy,
            },
            "logging": {
                "level": self.logging.level,
                "format": self.logging.format,
                "log_file": self.logging.log_file,
                "json_logs": self.logging.json_logs,
            },
        }


# Global config instance
_config: Optional[StatChainConfig] = None


def load_config(filepath: Optional[str] = None) -> StatChainConfig:
    """
    Load configuration from file or environment.

    Args:
        filepath: Optional path to JSON config file

    Returns:
        StatChainConfig instance
    """
    global _config

    if filepath:
        _config = StatChainConfig.from_file(filepath)
    else:
        env_path = os.getenv("STATCHAIN_CONFIG")
        default_paths = [p for p in (env_path, "./statchain.json") if p]

        for path in default_paths:
            if Path(path).exists():
                _config = StatChainConfig.from_file(path)
                break
        else:
            _config = StatChainConfig.from_env()

    return _config


def get_config() -> StatChainConfig:
    """Get the loaded configuration, loading it on first use."""
    if _config is None:
        return load_config()
    return _config


def reset_config() -> None:
    """Forget the cached configuration."""
    global _config
    _config = None
