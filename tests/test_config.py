from __future__ import annotations

import logging
from pathlib import Path

import pytest

from table_render.config import ConfigError, load_column_specs, load_config


def _write(tmp_path: Path, content: str, name: str = "config.toml") -> Path:
    path = tmp_path / name
    path.write_text(content.strip() + "\n", encoding="utf-8")
    return path


def test_load_config_defaults_without_path(tmp_path: Path) -> None:
    config = load_config(None)
    assert config.render.default_graph_width == 50
    assert config.render.graph_class_prefix == "cellgraph"
    assert config.render.escape_html is True
    assert config.logging.level == "WARNING"

    missing = load_config(tmp_path / "absent.toml")
    assert missing.render.default_graph_width == 50


def test_load_config_applies_overrides(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        """
[render]
default_graph_width = 120
graph_class_prefix = "bargraph"
escape_html = false

[logging]
level = "debug"
""",
    )

    config = load_config(path)
    assert config.render.default_graph_width == 120
    assert config.render.graph_class_prefix == "bargraph"
    assert config.render.escape_html is False
    assert config.logging.level == "DEBUG"
    assert config.logging.numeric_level == logging.DEBUG


@pytest.mark.parametrize(
    "content, message",
    [
        ("[render]\ndefault_graph_width = 0", "default_graph_width"),
        ("[render]\ndefault_graph_width = 1000", "default_graph_width"),
        ("[render]\ndefault_graph_width = \"50\"", "default_graph_width"),
        ("[render]\ngraph_class_prefix = \"bar graph\"", "graph_class_prefix"),
        ("[logging]\nlevel = \"loud\"", "logging.level"),
        ("render = 5", r"\[render\]"),
        ("[render\n", "not valid TOML"),
    ],
)
def test_load_config_rejects_invalid_values(tmp_path: Path, content: str, message: str) -> None:
    path = _write(tmp_path, content)

    with pytest.raises(ConfigError, match=message):
        load_config(path)


def test_load_column_specs_reads_array_of_tables(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        """
[[columns]]
header = "Place"
footer = "TOTAL"

[[columns]]

[[columns]]
header = "Sales"
footer = "sum"
width = 100
graph = { min = 0 }
""",
        name="columns.toml",
    )

    specs = load_column_specs(path)

    assert specs == [
        {"header": "Place", "footer": "TOTAL"},
        {},
        {"header": "Sales", "footer": "sum", "width": 100, "graph": {"min": 0}},
    ]


def test_load_column_specs_requires_columns(tmp_path: Path) -> None:
    path = _write(tmp_path, 'title = "no columns"', name="columns.toml")

    with pytest.raises(ConfigError, match=r"\[\[columns\]\]"):
        load_column_specs(path)
    with pytest.raises(ConfigError, match="does not exist"):
        load_column_specs(tmp_path / "missing.toml")
