"""
Config system - layered routing configuration.

Merge precedence (later overrides earlier):
defaults < config files (YAML/JSON) < .env file < environment < overrides
"""

import json
import logging
import os
from dataclasses import dataclass, fields
from glob import glob
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import dotenv_values

from .cache import RouteCache
from .faults import Fault, FaultDomain

logger = logging.getLogger("biroute.config")

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(Fault):
    """Raised when configuration loading or validation fails."""

    def __init__(self, message: str, *, metadata: Optional[Dict[str, Any]] = None):
        super().__init__(
            code="CONFIG_INVALID",
            message=message,
            domain=FaultDomain.CONFIG,
            public=False,
            metadata=metadata,
        )


@dataclass
class RoutingConfig:
    """Typed settings consumed by the cache, the CLI and route parsing."""
    cache_size: int = 1000
    cache_ttl: Optional[float] = None
    default_end: bool = False
    log_level: str = "WARNING"

    def __post_init__(self):
        if isinstance(self.cache_size, bool) or not isinstance(self.cache_size, int):
            raise ConfigError(f"Config field 'cache_size' expected int, got {type(self.cache_size).__name__}")
        if self.cache_size < 0:
            raise ConfigError("Config field 'cache_size' must not be negative")
        if self.cache_ttl is not None:
            if isinstance(self.cache_ttl, bool) or not isinstance(self.cache_ttl, (int, float)):
                raise ConfigError(
                    f"Config field 'cache_ttl' expected number, got {type(self.cache_ttl).__name__}"
                )
            if self.cache_ttl <= 0:
                raise ConfigError("Config field 'cache_ttl' must be positive")
        if not isinstance(self.default_end, bool):
            raise ConfigError(
                f"Config field 'default_end' expected bool, got {type(self.default_end).__name__}"
            )
        self.log_level = str(self.log_level).upper()
        if self.log_level not in LOG_LEVELS:
            raise ConfigError(f"Config field 'log_level' must be one of {', '.join(LOG_LEVELS)}")

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


class ConfigLoader:
    """
    Loads and merges configuration from multiple sources with precedence:
    overrides > environment variables > .env file > config files > defaults

    Settings may sit at the top level or under a ``routing`` section.
    """

    def __init__(self, env_prefix: str = "BIROUTE_"):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = {}

    @classmethod
    def load(
        cls,
        paths: Optional[List[str]] = None,
        env_prefix: str = "BIROUTE_",
        env_file: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> "ConfigLoader":
        """
        Load configuration from multiple sources.

        Args:
            paths: Config file paths (glob patterns supported)
            env_prefix: Prefix for environment variables
            env_file: Path to .env file
            overrides: Manual overrides (highest precedence)
        """
        loader = cls(env_prefix=env_prefix)

        for pattern in paths or []:
            loader._load_from_files(pattern)

        if env_file:
            loader._load_env_file(env_file)

        loader._load_from_env()

        if overrides:
            loader._merge_dict(loader.config_data, overrides)

        return loader

    def _load_from_files(self, pattern: str):
        """Load config from JSON or YAML files."""
        matches = sorted(glob(pattern))
        if not matches:
            logger.debug("No config files match %r", pattern)
        for path_str in matches:
            path = Path(path_str)
            if path.suffix == ".json":
                self._load_json_file(path)
            elif path.suffix in (".yaml", ".yml"):
                self._load_yaml_file(path)
            else:
                raise ConfigError(f"Unsupported config file type: {path}", metadata={"path": str(path)})

    def _load_json_file(self, path: Path):
        with open(path) as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as exc:
                raise ConfigError(f"Invalid JSON in {path}: {exc}", metadata={"path": str(path)}) from exc
        self._merge_mapping(path, data)

    def _load_yaml_file(self, path: Path):
        with open(path) as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as exc:
                raise ConfigError(f"Invalid YAML in {path}: {exc}", metadata={"path": str(path)}) from exc
        if data:
            self._merge_mapping(path, data)

    def _merge_mapping(self, path: Path, data: Any):
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping", metadata={"path": str(path)})
        logger.debug("Loaded config file %s", path)
        self._merge_dict(self.config_data, data)

    def _load_env_file(self, path: str):
        """Load config from .env file."""
        if not Path(path).exists():
            logger.debug(".env file %s not found", path)
            return
        for key, value in dotenv_values(path).items():
            if value is not None and key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def _load_from_env(self):
        for key, value in os.environ.items():
            if key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def _set_nested(self, key: str, value: str):
        """Convert BIROUTE_ROUTING__CACHE_SIZE to a nested dict."""
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
        if value.lower() in ("none", "null"):
            return None

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

    def routing_config(self) -> RoutingConfig:
        """Build the typed routing settings."""
        known = {f.name for f in fields(RoutingConfig)}
        data = {k: v for k, v in self.config_data.items() if k in known}
        section = self.config_data.get("routing", {})
        if not isinstance(section, dict):
            raise ConfigError("Config section 'routing' must be a mapping")
        data.update({k: v for k, v in section.items() if k in known})

        unknown = sorted(set(section) - known)
        if unknown:
            logger.warning("Ignoring unknown routing settings: %s", ", ".join(unknown))

        return RoutingConfig(**data)


def load_config(
    paths: Optional[List[str]] = None,
    env_file: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> RoutingConfig:
    """Shortcut for ConfigLoader.load(...).routing_config()."""
    return ConfigLoader.load(paths, env_file=env_file, overrides=overrides).routing_config()


def configure_logging(config: RoutingConfig):
    """Apply the configured level to the biroute logger hierarchy."""
    logging.getLogger("biroute").setLevel(config.log_level)


def build_cache(config: RoutingConfig) -> RouteCache:
    """Create a route cache sized by the configuration."""
    return RouteCache(max_size=config.cache_size, ttl=config.cache_ttl)
