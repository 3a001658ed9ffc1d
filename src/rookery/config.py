"""Engine configuration loaded from TOML with environment overrides.

Example ``rookery.toml``::

    log_level = "DEBUG"

    [search]
    default_depth = 5
    move_overhead_ms = 50

    [protocol]
    engine_name = "rookery"
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

from rookery import __version__

_LOGGER = logging.getLogger(__name__)

CONFIG_ENV_VAR = "ROOKERY_CONFIG"
DEPTH_ENV_VAR = "ROOKERY_DEPTH"

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


@dataclass(frozen=True, slots=True)
class SearchConfig:
    default_depth: int = 4
    max_depth: int = 64
    move_overhead_ms: int = 30
    default_moves_to_go: int = 30
    tt_max_entries: int = 200_000

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise ValueError(f"search.{f.name} must be an integer, got {value!r}")
        if not 1 <= self.max_depth <= 128:
            raise ValueError(f"search.max_depth must be in 1..128, got {self.max_depth}")
        if not 1 <= self.default_depth <= self.max_depth:
            raise ValueError(
                f"search.default_depth must be in 1..{self.max_depth}, got {self.default_depth}"
            )
        if self.move_overhead_ms < 0:
            raise ValueError(f"search.move_overhead_ms must be >= 0, got {self.move_overhead_ms}")
        if self.default_moves_to_go < 1:
            raise ValueError(
                f"search.default_moves_to_go must be >= 1, got {self.default_moves_to_go}"
            )
        if self.tt_max_entries < 1:
            raise ValueError(f"search.tt_max_entries must be >= 1, got {self.tt_max_entries}")


@dataclass(frozen=True, slots=True)
class ProtocolConfig:
    engine_name: str = f"rookery {__version__}"
    engine_author: str = "the rookery developers"

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"protocol.{f.name} must be a non-empty string, got {value!r}")


@dataclass(frozen=True, slots=True)
class EngineConfig:
    search: SearchConfig = field(default_factory=SearchConfig)
    protocol: ProtocolConfig = field(default_factory=ProtocolConfig)
    log_level: str = "WARNING"

    def __post_init__(self) -> None:
        if not isinstance(self.log_level, str) or self.log_level.upper() not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_LOG_LEVELS)}, got {self.log_level!r}")


def load_config(path: str | Path | None = None) -> EngineConfig:
    """Build the configuration.

    The file is *path*, else ``$ROOKERY_CONFIG``, else none (defaults).
    ``$ROOKERY_DEPTH`` overrides ``search.default_depth``.

    Raises:
        FileNotFoundError: an explicitly named file does not exist.
        ValueError: the file is not valid TOML or holds invalid values.
    """
    if path is None:
        env_path = os.environ.get(CONFIG_ENV_VAR)
        path = Path(env_path) if env_path else None

    raw: dict[str, Any] = {}
    if path is not None:
        with open(path, "rb") as fh:
            try:
                raw = tomllib.load(fh)
            except tomllib.TOMLDecodeError as exc:
                raise ValueError(f"Invalid TOML in {path}: {exc}") from exc
        _LOGGER.debug("Loaded configuration from %s", path)

    config = config_from_mapping(raw)

    override_depth = os.environ.get(DEPTH_ENV_VAR)
    if override_depth:
        try:
            depth = int(override_depth)
        except ValueError as exc:
            raise ValueError(f"{DEPTH_ENV_VAR} must be an integer, got {override_depth!r}") from exc
        config = replace(config, search=replace(config.search, default_depth=depth))
    return config


def config_from_mapping(raw: dict[str, Any]) -> EngineConfig:
    """Map parsed TOML onto the config dataclasses, warning about unknown keys."""
    search = _section(raw, "search", SearchConfig)
    protocol = _section(raw, "protocol", ProtocolConfig)
    top_level: dict[str, Any] = {}
    for key, value in raw.items():
        if key in ("search", "protocol"):
            continue
        if key == "log_level":
            top_level[key] = value
        else:
            _LOGGER.warning("Ignoring unknown configuration key %r", key)
    return EngineConfig(search=search, protocol=protocol, **top_level)


def _section(raw: dict[str, Any], name: str, cls: type[Any]) -> Any:
    table = raw.get(name, {})
    if not isinstance(table, dict):
        raise ValueError(f"[{name}] must be a table, got {table!r}")
    known = {f.name for f in fields(cls)}
    values: dict[str, Any] = {}
    for key, value in table.items():
        if key in known:
            values[key] = value
        else:
            _LOGGER.warning("Ignoring unknown configuration key %r in [%s]", key, name)
    return cls(**values)
