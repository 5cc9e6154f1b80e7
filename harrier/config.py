"""
Config system - layered configuration for the server bootstrap.

Merge precedence (later overrides earlier):
defaults < .env file < environment variables < manual overrides
"""

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional
import json
import os

from dotenv import dotenv_values


class ConfigError(Exception):
    """Raised when configuration validation fails."""
    pass


LOG_LEVELS = ("trace", "debug", "info", "warn", "warning", "error", "critical")
LOG_FORMATS = ("dev", "structured")


@dataclass
class ServerConfig:
    """Process-wide settings bound in the root injector."""

    host: str = "127.0.0.1"
    port: int = 9000
    log_level: str = "info"
    log_format: str = "dev"
    debug: bool = False

    def __post_init__(self):
        if not isinstance(self.port, int) or isinstance(self.port, bool):
            raise ConfigError(f"port must be an integer, got {self.port!r}")
        if not 0 <= self.port <= 65535:
            raise ConfigError(f"port out of range: {self.port}")
        self.log_level = str(self.log_level).lower()
        if self.log_level not in LOG_LEVELS:
            raise ConfigError(
                f"log_level must be one of {', '.join(LOG_LEVELS)}, got {self.log_level!r}"
            )
        if self.log_format not in LOG_FORMATS:
            raise ConfigError(
                f"log_format must be one of {', '.join(LOG_FORMATS)}, got {self.log_format!r}"
            )


class ConfigLoader:
    """
    Loads and merges configuration from multiple sources.

    Environment keys are mapped by stripping the prefix and lower-casing;
    a double underscore separates nesting levels
    (``HARRIER_SERVER__PORT`` -> ``server.port``).
    """

    def __init__(self, env_prefix: str = "HARRIER_"):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = {}

    @classmethod
    def load(
        cls,
        env_prefix: str = "HARRIER_",
        env_file: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> "ConfigLoader":
        """
        Load configuration from all sources.

        Args:
            env_prefix: Prefix for environment variables
            env_file: Path to .env file
            overrides: Manual overrides (highest precedence)

        Returns:
            Configured ConfigLoader instance
        """
        loader = cls(env_prefix=env_prefix)

        if env_file:
            loader._load_env_file(env_file)

        loader._load_from_env()

        if overrides:
            loader._merge_dict(loader.config_data, overrides)

        return loader

    def _load_env_file(self, path: str):
        """Load prefixed keys from a .env file."""
        if not Path(path).exists():
            return
        for key, value in dotenv_values(path).items():
            if key.startswith(self.env_prefix) and value is not None:
                self._set_nested(key, value)

    def _load_from_env(self):
        for key, value in os.environ.items():
            if key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def _set_nested(self, key: str, value: str):
        """Convert HARRIER_SERVER__PORT to a nested dict entry."""
        key = key[len(self.env_prefix):]
        parts = key.lower().split("__")

        current = self.config_data
        for part in parts[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]

        current[parts[-1]] = self._parse_value(value)

    def _parse_value(self, value: str) -> Any:
        """Parse string value to appropriate type."""
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False

        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

        if value.startswith(("{", "[")):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                pass

        return value

    def _merge_dict(self, target: dict, source: dict):
        """Deep merge source into target."""
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._merge_dict(target[key], value)
            else:
                target[key] = value

    def get(self, path: str, default: Any = None) -> Any:
        """Get config value by dot-separated path."""
        current = self.config_data
        for part in path.split("."):
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                return default
        return current

    def to_server_config(self) -> ServerConfig:
        """
        Build the ``ServerConfig`` from the ``server`` section.

        Raises:
            ConfigError: If a value is invalid or a key is unknown
        """
        section = self.get("server", {})
        if not isinstance(section, dict):
            raise ConfigError(f"'server' must be a mapping, got {type(section).__name__}")

        known = {f.name for f in fields(ServerConfig)}
        unknown = set(section) - known
        if unknown:
            raise ConfigError(f"Unknown server config keys: {', '.join(sorted(unknown))}")

        return ServerConfig(**section)

    def to_dict(self) -> dict:
        return self.config_data
