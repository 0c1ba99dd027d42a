"""Configuration resolver with 4-level priority.

Priority (highest to lowest):
1. CLI arguments
2. Environment variables (TARGZ_*)
3. Config files (user > system)
4. Defaults
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from targz.core.errors import ConfigError

ALLOWED_LOGGING_LEVELS = frozenset({"quiet", "normal", "verbose", "debug"})
ALLOWED_ENTRY_ORDERS = frozenset({"children_first", "parent_first"})
ALLOWED_ERROR_POLICIES = frozenset({"propagate", "tolerate"})

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class LoggingPolicy:
    """Resolved, immutable logging policy."""

    level_name: str  # quiet | normal | verbose | debug
    color: bool
    source: str


class ConfigResolver:
    """Resolve configuration with strict 4-level priority.

    Example:
        resolver = ConfigResolver(
            cli_args={'archive': {'entry_order': 'parent_first'}},
            user_config_path=Path('~/.config/targz/config.yaml'),
        )

        order, source = resolver.resolve('archive.entry_order')
        # order = 'parent_first', source = 'cli'
    """

    def __init__(
        self,
        cli_args: dict[str, Any] | None = None,
        user_config_path: Path | None = None,
        system_config_path: Path | None = None,
        defaults: dict[str, Any] | None = None,
    ) -> None:
        """Initialize config resolver.

        Args:
            cli_args: Arguments from CLI (highest priority), nested or dotted keys
            user_config_path: Path to user config file
            system_config_path: Path to system config file
            defaults: Default values (lowest priority)
        """
        self.cli_args = cli_args or {}
        self.user_config_path = user_config_path or Path.home() / ".config/targz/config.yaml"
        self.system_config_path = system_config_path or Path("/etc/targz/config.yaml")
        self.defaults = defaults or self._default_config()

        self._user_config: dict[str, Any] | None = None
        self._system_config: dict[str, Any] | None = None

    def resolve(self, key: str) -> tuple[Any, str]:
        """Resolve config value with priority.

        Args:
            key: Config key (supports dot notation: 'logging.level')

        Returns:
            (value, source) tuple

        Raises:
            ConfigError: If key not found in any source
        """
        value = self._from_cli(key)
        if value is not None:
            return value, "cli"

        value = self._from_env(key)
        if value is not None:
            return value, "env"

        value = self._get_nested(self._get_user_config(), key)
        if value is not None:
            return value, "user_config"

        value = self._get_nested(self._get_system_config(), key)
        if value is not None:
            return value, "system_config"

        value = self._get_nested(self.defaults, key)
        if value is not None:
            return value, "default"

        raise ConfigError(f"Config key '{key}' not found in any source")

    def resolve_logging_policy(self) -> LoggingPolicy:
        """Resolve logging.level and logging.color into a LoggingPolicy."""
        level, source = self.resolve("logging.level")
        level_name = self._choice("logging.level", level, ALLOWED_LOGGING_LEVELS)
        color, _src = self.resolve("logging.color")
        return LoggingPolicy(
            level_name=level_name,
            color=self._bool("logging.color", color),
            source=source,
        )

    def resolve_entry_order(self) -> str:
        value, _src = self.resolve("archive.entry_order")
        return self._choice("archive.entry_order", value, ALLOWED_ENTRY_ORDERS)

    def resolve_error_policy(self) -> str:
        value, _src = self.resolve("archive.on_error")
        return self._choice("archive.on_error", value, ALLOWED_ERROR_POLICIES)

    def resolve_compresslevel(self) -> int:
        key = "archive.compresslevel"
        value, _src = self.resolve(key)
        if isinstance(value, bool):
            raise ConfigError(f"Config key '{key}' must be an int, got bool")
        if isinstance(value, str) and value.strip().isdigit():
            value = int(value.strip())
        if not isinstance(value, int):
            raise ConfigError(f"Config key '{key}' must be an int, got {type(value).__name__}")
        if not 0 <= value <= 9:
            raise ConfigError(f"Invalid '{key}': {value!r}. Allowed range: 0-9")
        return value

    def _choice(self, key: str, value: Any, allowed: frozenset[str]) -> str:
        if not isinstance(value, str):
            raise ConfigError(f"Config key '{key}' must be a string, got {type(value).__name__}")
        norm = value.strip().lower().replace("-", "_")
        if norm not in allowed:
            raise ConfigError(
                f"Invalid '{key}': {value!r}. Allowed values: {', '.join(sorted(allowed))}"
            )
        return norm

    def _bool(self, key: str, value: Any) -> bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            norm = value.strip().lower()
            if norm in _TRUE_VALUES:
                return True
            if norm in _FALSE_VALUES:
                return False
        raise ConfigError(f"Config key '{key}' must be a bool")

    def _from_cli(self, key: str) -> Any | None:
        if key in self.cli_args:
            return self.cli_args[key]
        return self._get_nested(self.cli_args, key)

    def _from_env(self, key: str) -> Any | None:
        """Get value from environment variables.

        Environment variable format: TARGZ_KEY_NAME
        Example: TARGZ_LOGGING_LEVEL, TARGZ_ARCHIVE_ENTRY_ORDER
        """
        env_key = f"TARGZ_{key.upper().replace('.', '_')}"
        return os.environ.get(env_key)

    def _get_user_config(self) -> dict[str, Any]:
        if self._user_config is None:
            self._user_config = self._load_yaml(self.user_config_path)
        return self._user_config

    def _get_system_config(self) -> dict[str, Any]:
        if self._system_config is None:
            self._system_config = self._load_yaml(self.system_config_path)
        return self._system_config

    def _load_yaml(self, path: Path) -> dict[str, Any]:
        if not path.exists():
            return {}

        try:
            with open(path) as f:
                data = yaml.safe_load(f)
                return data if isinstance(data, dict) else {}
        except Exception as e:
            raise ConfigError(f"Failed to load config from {path}: {e}") from e

    def _get_nested(self, data: dict[str, Any], key: str) -> Any | None:
        """Get nested value using dot notation.

        Example:
            data = {'logging': {'level': 'debug'}}
            _get_nested(data, 'logging.level') -> 'debug'
        """
        current: Any = data
        for part in key.split("."):
            if not isinstance(current, dict):
                return None
            current = current.get(part)
            if current is None:
                return None
        return current

    @staticmethod
    def _default_config() -> dict[str, Any]:
        return {
            "logging": {
                "level": "normal",
                "color": True,
            },
            "archive": {
                "entry_order": "children_first",
                "on_error": "propagate",
                "compresslevel": 9,
            },
        }
