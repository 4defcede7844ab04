"""Render row/column datasets into HTML tables with per-column presentation rules."""
from __future__ import annotations

__version__ = "0.3.0"

from .columns import ColumnSpec, GraphSpec
from .config import Config, ConfigError, RenderConfig, load_column_specs, load_config
from .errors import ExpressionError, InvalidInput
from .expression import Expression, compile_expression
from .links import LinkTemplate
from .renderer import TableRenderer, render_table

__all__ = [
    "ColumnSpec",
    "Config",
    "ConfigError",
    "Expression",
    "ExpressionError",
    "GraphSpec",
    "InvalidInput",
    "LinkTemplate",
    "RenderConfig",
    "TableRenderer",
    "__version__",
    "compile_expression",
    "load_column_specs",
    "load_config",
    "render_table",
]
