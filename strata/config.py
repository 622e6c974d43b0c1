"""
Config system - layered loader configuration with validation.

Merge precedence (later overrides earlier):
    defaults < YAML file < environment variables (STRATA_*) < explicit overrides
"""

from typing import Any, Dict, Optional
from dataclasses import dataclass, fields, asdict
from pathlib import Path
import os

import yaml

__all__ = ["LoaderConfig", "ConfigLoader", "ConfigError"]

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class ConfigError(Exception):
    """Raised when configuration validation fails."""
    pass


@dataclass(frozen=True)
class LoaderConfig:
    """
    Loader behaviour switches.

    Attributes:
        concurrent: Resolve sibling requirements concurrently. When False they
            are built one by one in declared order.
        trace: Attach a logging diagnostic listener to every loader.
        log_level: Level the CLI configures logging with.
    """
    concurrent: bool = True
    trace: bool = False
    log_level: str = "WARNING"

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            expected = bool if f.type in (bool, "bool") else str
            if not isinstance(value, expected):
                raise ConfigError(
                    f"Config option '{f.name}' must be {expected.__name__}, "
                    f"got {type(value).__name__}: {value!r}"
                )
        if self.log_level.upper() not in _LOG_LEVELS:
            raise ConfigError(
                f"Config option 'log_level' must be one of {', '.join(_LOG_LEVELS)}, "
                f"got {self.log_level!r}"
            )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ConfigLoader:
    """
    Loads and merges loader configuration from multiple sources.
    """

    def __init__(self, env_prefix: str = "STRATA_"):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = {}

    @classmethod
    def load(
        cls,
        path: Optional[str] = None,
        env_prefix: str = "STRATA_",
        overrides: Optional[Dict[str, Any]] = None,
    ) -> LoaderConfig:
        """
        Load configuration with proper merge strategy.

        Args:
            path: Optional YAML file; a ``strata`` top-level section is used
                when present, otherwise the whole document
            env_prefix: Prefix for environment variables
            overrides: Manual overrides (highest precedence)

        Returns:
            Validated LoaderConfig

        Raises:
            ConfigError: On unreadable files, unknown keys or wrong types
        """
        loader = cls(env_prefix=env_prefix)

        if path:
            loader._load_yaml_file(Path(path))

        loader._load_from_env()

        if overrides:
            loader.config_data.update(overrides)

        return loader.build()

    def build(self) -> LoaderConfig:
        known = {f.name for f in fields(LoaderConfig)}
        unknown = sorted(set(self.config_data) - known)
        if unknown:
            raise ConfigError(
                f"Unknown config options: {', '.join(unknown)} "
                f"(expected: {', '.join(sorted(known))})"
            )
        return LoaderConfig(**self.config_data)

    def _load_yaml_file(self, path: Path):
        """Load config from YAML file."""
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")

        with open(path) as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {path}: {e}") from e

        if data is None:
            return
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")

        section = data.get("strata", data)
        if not isinstance(section, dict):
            raise ConfigError(f"'strata' section in {path} must be a mapping")
        self.config_data.update(section)

    def _load_from_env(self):
        """Load config from environment variables, one per LoaderConfig field."""
        for field in fields(LoaderConfig):
            value = os.environ.get(f"{self.env_prefix}{field.name.upper()}")
            if value is not None:
                self.config_data[field.name] = self._parse_value(value)

    def _parse_value(self, value: str) -> Any:
        """Parse string value to appropriate type."""
        if value.lower() in ("true", "yes", "1", "on"):
            return True
        if value.lower() in ("false", "no", "0", "off"):
            return False
        return value
