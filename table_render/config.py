"""Configuration loading for table_render."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Mapping, MutableMapping

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:  # pragma: no cover - fallback for older interpreters
    import tomli as tomllib  # type: ignore

_WORD_PATTERN = re.compile(r"^\w+$")
_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class ConfigError(ValueError):
    """Raised when a configuration file contains invalid values."""


@dataclass(slots=True)
class RenderConfig:
    """Rendering defaults applied when a column spec leaves them out."""

    default_graph_width: int = 50
    graph_class_prefix: str = "cellgraph"
    escape_html: bool = True


@dataclass(slots=True)
class LoggingConfig:
    level: str = "WARNING"

    @property
    def numeric_level(self) -> int:
        return logging.getLevelName(self.level)


@dataclass(slots=True)
class Config:
    """Top-level configuration container."""

    render: RenderConfig = field(default_factory=RenderConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _load_toml(path: Path) -> Mapping[str, Any]:
    if not path.exists():
        return {}
    with path.open("rb") as fh:
        try:
            return tomllib.load(fh)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"{path} is not valid TOML: {exc}") from exc


def load_config(path: str | Path | None = None) -> Config:
    """Load configuration from ``path`` if provided, otherwise defaults.

    Parameters
    ----------
    path:
        Path to a ``config.toml`` file. When ``None`` (or when the file does
        not exist) the default configuration is used.
    """

    cfg = Config()
    if path is None:
        return cfg

    data = _load_toml(Path(path))
    render_data = data.get("render")
    if isinstance(render_data, Mapping):
        cfg.render = _parse_render(render_data, base=cfg.render)
    elif render_data is not None:
        raise ConfigError("[render] must be a table")
    logging_data = data.get("logging")
    if isinstance(logging_data, Mapping):
        cfg.logging = _parse_logging(logging_data, base=cfg.logging)
    elif logging_data is not None:
        raise ConfigError("[logging] must be a table")
    return cfg


def load_column_specs(path: str | Path) -> list[dict[str, Any]]:
    """Read the ``[[columns]]`` array of tables from a TOML file.

    Each table holds the rules for one column, in dataset column order. An
    empty table leaves that column unformatted.
    """

    source = Path(path)
    if not source.exists():
        raise ConfigError(f"Column spec file {source} does not exist")
    data = _load_toml(source)
    columns = data.get("columns")
    if not isinstance(columns, list):
        raise ConfigError(f"{source} must define a [[columns]] array of tables")
    specs: list[dict[str, Any]] = []
    for index, item in enumerate(columns):
        if not isinstance(item, Mapping):
            raise ConfigError(f"columns[{index}] in {source} must be a table")
        specs.append(dict(item))
    return specs


def _parse_render(data: Mapping[str, Any], base: RenderConfig) -> RenderConfig:
    overrides: MutableMapping[str, Any] = {}
    if "default_graph_width" in data:
        width = data["default_graph_width"]
        if isinstance(width, bool) or not isinstance(width, int) or not 0 < width < 1000:
            raise ConfigError("render.default_graph_width must be an integer between 1 and 999")
        overrides["default_graph_width"] = width
    if "graph_class_prefix" in data:
        prefix = str(data["graph_class_prefix"])
        if not _WORD_PATTERN.match(prefix):
            raise ConfigError("render.graph_class_prefix must contain word characters only")
        overrides["graph_class_prefix"] = prefix
    if "escape_html" in data:
        overrides["escape_html"] = bool(data["escape_html"])
    if not overrides:
        return base
    return replace(base, **overrides)


def _parse_logging(data: Mapping[str, Any], base: LoggingConfig) -> LoggingConfig:
    overrides: MutableMapping[str, Any] = {}
    if "level" in data:
        level = str(data["level"]).upper()
        if level not in _LEVELS:
            raise ConfigError(f"logging.level must be one of {', '.join(_LEVELS)}")
        overrides["level"] = level
    if not overrides:
        return base
    return replace(base, **overrides)


__all__ = [
    "Config",
    "ConfigError",
    "LoggingConfig",
    "RenderConfig",
    "load_column_specs",
    "load_config",
]
