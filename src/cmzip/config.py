"""User defaults for cmzip, read from a TOML file and the environment.

Example ``~/.cmzip.toml``::

    [cmzip]
    level = 9
    workers = 4
    trailing = "error"
    keep_going = false

Environment variables (``CMZIP_LEVEL``, ``CMZIP_WORKERS``, ``CMZIP_TRAILING``)
override the file; command line options override both.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:
    import tomli as tomllib  # type: ignore[no-redef]

from cmzip.core.compression import validate_level
from cmzip.core.constants import DEFAULT_LEVEL, TrailingPolicy
from cmzip.core.errors import ConfigError, InvalidLevelError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".cmzip.toml"
CONFIG_ENV = "CMZIP_CONFIG"

_ENV_OVERRIDES = {
    "CMZIP_LEVEL": "level",
    "CMZIP_WORKERS": "workers",
    "CMZIP_TRAILING": "trailing",
}


@dataclass
class Settings:
    level: int = DEFAULT_LEVEL
    workers: int = 1
    trailing: TrailingPolicy = TrailingPolicy.INCLUDE
    keep_going: bool = False

    def update(self, values: dict[str, object], source: str) -> None:
        """Apply raw values (from TOML or env), validating each one."""
        known = {f.name for f in fields(self)}
        for key, value in values.items():
            if key not in known:
                logger.warning("Ignoring unknown setting %r in %s", key, source)
                continue
            setattr(self, key, _coerce(key, value, source))


def _coerce(key: str, value: object, source: str) -> object:
    try:
        if key in ("level", "workers") and (
            isinstance(value, bool) or not isinstance(value, (int, str))
        ):
            raise TypeError(f"expected an integer, got {value!r}")
        if key == "level":
            return validate_level(int(value))  # type: ignore[arg-type]
        if key == "workers":
            workers = int(value)  # type: ignore[arg-type]
            if workers < 1:
                raise ValueError("must be at least 1")
            return workers
        if key == "trailing":
            return TrailingPolicy(str(value).lower())
        if key == "keep_going":
            if isinstance(value, bool):
                return value
            return str(value).lower() in ("1", "true", "yes", "on")
    except (InvalidLevelError, ValueError, TypeError) as e:
        raise ConfigError(f"Invalid value for {key!r} in {source}: {value!r} ({e})") from e
    return value


def _resolve_config_path(path: str | Path | None) -> Path | None:
    if path is not None:
        path = Path(path)
        if not path.is_file():
            raise ConfigError(f"Config file not found: {path}")
        return path
    env_path = os.environ.get(CONFIG_ENV)
    if env_path:
        return _resolve_config_path(env_path)
    if DEFAULT_CONFIG_PATH.is_file():
        return DEFAULT_CONFIG_PATH
    return None


def load_settings(path: str | Path | None = None) -> Settings:
    """Build Settings from defaults, an optional TOML file and the environment."""
    settings = Settings()

    config_path = _resolve_config_path(path)
    if config_path is not None:
        try:
            with open(config_path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML in {config_path}: {e}") from e
        table = data.get("cmzip", {})
        if not isinstance(table, dict):
            raise ConfigError(f"[cmzip] in {config_path} must be a table")
        settings.update(table, str(config_path))
        logger.debug("Loaded settings from %s", config_path)

    env_values = {
        attr: os.environ[var] for var, attr in _ENV_OVERRIDES.items() if os.environ.get(var)
    }
    if env_values:
        settings.update(env_values, "environment")

    return settings
