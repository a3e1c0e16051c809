"""
Config system - layered configuration for the server builder.

Merge order (later overrides earlier):
    defaults < JSON file < .env file < TETHER_* environment variables < overrides
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import dotenv_values

from .faults import ConfigInvalidFault


logger = logging.getLogger("tether.config")

_LOG_LEVELS = ("debug", "info", "warning", "error", "critical")


class ConfigLoader:
    """
    Loads and merges configuration from multiple sources.

    Environment keys are stripped of the prefix, lower-cased, and split on
    double underscores into nested keys: ``TETHER_SERVER__PORT=9000`` becomes
    ``{"server": {"port": 9000}}``.
    """

    def __init__(self, env_prefix: str = "TETHER_"):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = {}

    @classmethod
    def load(
        cls,
        path: Optional[str] = None,
        env_prefix: str = "TETHER_",
        env_file: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
        defaults: Optional[Dict[str, Any]] = None,
    ) -> "ConfigLoader":
        """
        Load configuration from every source.

        Args:
            path: JSON config file (skipped when missing)
            env_prefix: Prefix for environment variables
            env_file: Path to a .env file (skipped when missing)
            overrides: Manual overrides (highest precedence)
            defaults: Base values (lowest precedence)
        """
        loader = cls(env_prefix=env_prefix)

        if defaults:
            loader._merge_dict(loader.config_data, defaults)

        if path:
            loader._load_json_file(Path(path))

        if env_file:
            loader._load_env_file(env_file)

        loader._load_from_env()

        if overrides:
            loader._merge_dict(loader.config_data, overrides)

        return loader

    def _load_json_file(self, path: Path):
        if not path.exists():
            logger.debug("Config file %s not found; skipping", path)
            return
        with open(path) as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ConfigInvalidFault(str(path), "top-level JSON value must be an object")
        self._merge_dict(self.config_data, data)

    def _load_env_file(self, path: str):
        if not Path(path).exists():
            logger.debug("Env file %s not found; skipping", path)
            return
        for key, value in dotenv_values(path).items():
            if key.startswith(self.env_prefix) and value is not None:
                self._set_nested(key, value)

    def _load_from_env(self):
        for key, value in os.environ.items():
            if key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def _set_nested(self, key: str, value: str):
        """Convert TETHER_SERVER__PORT to nested dict."""
        parts = key[len(self.env_prefix):].lower().split("__")

        current = self.config_data
        for part in parts[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]

        current[parts[-1]] = self._parse_value(value)

    def _parse_value(self, value: str) -> Any:
        """Parse string value to appropriate type."""
        if value.lower() in ("true", "yes", "on"):
            return True
        if value.lower() in ("false", "no", "off"):
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

    def to_dict(self) -> dict:
        return self.config_data


@dataclass(frozen=True)
class ServerConfig:
    """
    Settings consumed by ``ServerBuilder``.

    Read from the ``server`` section of a loader, so ``TETHER_SERVER__PORT``
    or ``{"server": {"port": 9000}}`` both set ``port``.
    """
    root_path: str = "/"
    debug: bool = False
    request_scope: bool = False
    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "info"

    def __post_init__(self):
        if not isinstance(self.root_path, str) or not self.root_path.startswith("/"):
            raise ConfigInvalidFault("server.root_path", "must be a string starting with '/'")
        for key in ("debug", "request_scope"):
            if not isinstance(getattr(self, key), bool):
                raise ConfigInvalidFault(f"server.{key}", "must be a boolean")
        if not isinstance(self.host, str) or not self.host:
            raise ConfigInvalidFault("server.host", "must be a non-empty string")
        if isinstance(self.port, bool) or not isinstance(self.port, int) or not 0 < self.port < 65536:
            raise ConfigInvalidFault("server.port", "must be an integer between 1 and 65535")
        if not isinstance(self.log_level, str) or self.log_level.lower() not in _LOG_LEVELS:
            raise ConfigInvalidFault("server.log_level", f"must be one of {', '.join(_LOG_LEVELS)}")
        object.__setattr__(self, "log_level", self.log_level.lower())

    @classmethod
    def from_loader(cls, loader: ConfigLoader, section: str = "server") -> "ServerConfig":
        data = loader.get(section, {}) or {}
        if not isinstance(data, dict):
            raise ConfigInvalidFault(section, "must be a mapping")

        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            logger.warning("Ignoring unknown %s keys: %s", section, ", ".join(sorted(unknown)))

        return cls(**{key: value for key, value in data.items() if key in known})
