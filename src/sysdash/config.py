"""Configuration loading for sysdash.

Settings come from a TOML file merged over built-in defaults.
Search order: explicit --config path -> <config dir>/config.toml -> defaults only.
The config and data directories can be moved with SYSDASH_CONFIG and SYSDASH_DATA.
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Mapping

from sysdash.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_ENV = "SYSDASH_CONFIG"
DATA_ENV = "SYSDASH_DATA"

DEFAULT_KEYBINDINGS: dict[str, str] = {
    "q": "quit",
    "ctrl+c": "quit",
    "ctrl+z": "suspend",
    "s": "sort",
}

ACTIONS = frozenset({"quit", "suspend", "sort"})


@dataclass(frozen=True)
class Config:
    """Settings for one run, built once at startup."""

    tick_rate: float = 4.0
    frame_rate: float = 60.0
    mouse: bool = False
    paste: bool = False
    poll_interval_ms: int = 1000
    cpu_window: int = 50
    memory_window: int = 10
    network_window: int = 25
    log_level: str = "INFO"
    keybindings: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_KEYBINDINGS))
    config_dir: Path = field(default_factory=lambda: Path.home() / ".config" / "sysdash")
    data_dir: Path = field(default_factory=lambda: Path.home() / ".local" / "share" / "sysdash")

    @property
    def poll_interval(self) -> float:
        """Seconds between collection cycles."""
        return self.poll_interval_ms / 1000.0

    def override(self, **changes: Any) -> Config:
        """Return a validated copy with the non-None changes applied."""
        config = replace(self, **{k: v for k, v in changes.items() if v is not None})
        validate(config)
        return config


# Keys a config file may set; directories and keybindings are handled apart
_FILE_KEYS = {
    f.name: f.type for f in fields(Config) if f.name not in ("keybindings", "config_dir", "data_dir")
}


def config_dir(env: Mapping[str, str] | None = None) -> Path:
    """Directory holding config.toml."""
    env = os.environ if env is None else env
    if env.get(CONFIG_ENV):
        return Path(env[CONFIG_ENV])
    return Path.home() / ".config" / "sysdash"


def data_dir(env: Mapping[str, str] | None = None) -> Path:
    """Directory holding the log file."""
    env = os.environ if env is None else env
    if env.get(DATA_ENV):
        return Path(env[DATA_ENV])
    return Path.home() / ".local" / "share" / "sysdash"


def validate(config: Config) -> None:
    """
    Raises:
        ConfigError: If a value is out of range.
    """
    if config.tick_rate <= 0:
        raise ConfigError(f"tick_rate must be positive, got {config.tick_rate}")
    if config.frame_rate <= 0:
        raise ConfigError(f"frame_rate must be positive, got {config.frame_rate}")
    if config.poll_interval_ms <= 0:
        raise ConfigError(f"poll_interval_ms must be positive, got {config.poll_interval_ms}")
    for name in ("cpu_window", "memory_window", "network_window"):
        if getattr(config, name) < 1:
            raise ConfigError(f"{name} must be at least 1, got {getattr(config, name)}")
    if logging.getLevelName(config.log_level.upper()) not in (
        logging.DEBUG,
        logging.INFO,
        logging.WARNING,
        logging.ERROR,
        logging.CRITICAL,
    ):
        raise ConfigError(f"unknown log_level: {config.log_level}")
    for key, action in config.keybindings.items():
        if action not in ACTIONS:
            raise ConfigError(f"unknown action {action!r} bound to {key!r}")


def _from_mapping(data: dict[str, Any], base: Config) -> Config:
    unknown = set(data) - set(_FILE_KEYS) - {"keybindings"}
    if unknown:
        raise ConfigError(f"unknown setting(s): {', '.join(sorted(unknown))}")

    changes: dict[str, Any] = {}
    for key, value in data.items():
        if key == "keybindings":
            if not isinstance(value, dict):
                raise ConfigError("keybindings must be a table")
            changes["keybindings"] = {**base.keybindings, **{str(k): str(v) for k, v in value.items()}}
            continue
        expected = _FILE_KEYS[key]
        if expected == "float" and isinstance(value, (int, float)) and not isinstance(value, bool):
            changes[key] = float(value)
        elif expected == "int" and isinstance(value, int) and not isinstance(value, bool):
            changes[key] = value
        elif expected == "bool" and isinstance(value, bool):
            changes[key] = value
        elif expected == "str" and isinstance(value, str):
            changes[key] = value
        else:
            raise ConfigError(f"{key} must be of type {expected}, got {value!r}")

    config = replace(base, **changes)
    validate(config)
    return config


def _read_toml(path: Path) -> dict[str, Any]:
    return tomllib.loads(path.read_text(encoding="utf-8"))


def load_config(path: Path | None = None, env: Mapping[str, str] | None = None) -> Config:
    """Load configuration, merging user TOML over defaults.

    Args:
        path: Explicit config file path (from --config). If None, tries
              config.toml in the config directory.
        env: Environment to resolve directories from. Defaults to os.environ.

    Returns:
        The merged, validated Config.

    Raises:
        ConfigError: If an explicit path doesn't exist or can't be parsed, or
                     if any file holds invalid values.
    """
    base = Config(config_dir=config_dir(env), data_dir=data_dir(env))

    if path is not None:
        if not path.is_file():
            raise ConfigError(f"config file not found: {path}")
        try:
            data = _read_toml(path)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"invalid TOML in {path}: {e}") from e
        return _from_mapping(data, base)

    default_path = base.config_dir / "config.toml"
    if default_path.is_file():
        try:
            data = _read_toml(default_path)
        except tomllib.TOMLDecodeError:
            logger.warning("Ignoring invalid TOML in %s", default_path)
            return base
        return _from_mapping(data, base)

    return base


def dump_default_config() -> str:
    """Return the default configuration as a TOML string."""
    defaults = Config()
    lines = [
        "# sysdash configuration",
        "# Place this file at ~/.config/sysdash/config.toml",
        "",
        f"tick_rate = {defaults.tick_rate}",
        f"frame_rate = {defaults.frame_rate}",
        f"mouse = {str(defaults.mouse).lower()}",
        f"paste = {str(defaults.paste).lower()}",
        f"poll_interval_ms = {defaults.poll_interval_ms}",
        f"cpu_window = {defaults.cpu_window}",
        f"memory_window = {defaults.memory_window}",
        f"network_window = {defaults.network_window}",
        f'log_level = "{defaults.log_level}"',
        "",
        "[keybindings]",
    ]
    for key, action in defaults.keybindings.items():
        lines.append(f'"{key}" = "{action}"')
    return "\n".join(lines) + "\n"
