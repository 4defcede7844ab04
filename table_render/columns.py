"""Column presentation rules and their validation."""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from .errors import InvalidInput
from .expression import Expression, compile_expression
from .links import LinkTemplate
from .values import to_number

_CSS_CLASS_PATTERN = re.compile(r"^\w+$")
_BOUND_PATTERN = re.compile(r"^-?\d+(\.\d+)?$")
_WIDTH_PATTERN = re.compile(r"^\d{1,3}$")
_AGGREGATE_PATTERN = re.compile(r"^(sum|avg)$")
_LABEL_PATTERN = re.compile(r"^[a-z]\w*$", re.IGNORECASE)
_FOOTER_EXPRESSION_PATTERN = re.compile(r"^\(* *'\w+'.*$")

_ALLOWED_KEYS = frozenset({"header", "footer", "format", "width", "graph", "link", "css_class"})
_GRAPH_KEYS = frozenset({"min", "max"})

FORMAT_VARIABLE = "cell"


@dataclass(frozen=True, slots=True)
class GraphSpec:
    """Bar-graph bounds; ``None`` means computed from the column values."""

    min: int | float | None = None
    max: int | float | None = None


@dataclass(frozen=True, slots=True)
class FooterSpec:
    kind: str
    text: str
    expression: Expression | None = None

    @property
    def is_expression(self) -> bool:
        return self.kind == "expression"


@dataclass(frozen=True, slots=True)
class ColumnSpec:
    """Presentation rules for one column."""

    header: str | None = None
    footer: FooterSpec | None = None
    format: Expression | None = None
    width: int | None = None
    graph: GraphSpec | None = None
    link: LinkTemplate | None = None
    css_class: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None, *, column: object = None) -> "ColumnSpec":
        if data is None:
            return cls()
        if isinstance(data, ColumnSpec):
            return data
        if not isinstance(data, Mapping):
            raise InvalidInput("Column spec must be a mapping", column=column, value=type(data).__name__)
        unknown = sorted(str(key) for key in data if key not in _ALLOWED_KEYS)
        if unknown:
            raise InvalidInput("Unknown column spec keys", column=column, value=", ".join(unknown))
        header = data.get("header")
        return cls(
            header=str(header) if header is not None else None,
            footer=_parse_footer(data["footer"], column) if "footer" in data else None,
            format=_parse_format(data["format"], column) if "format" in data else None,
            width=parse_width(data["width"], column=column) if "width" in data else None,
            graph=_parse_graph(data["graph"], column) if "graph" in data else None,
            link=LinkTemplate.parse(str(data["link"]), column=column) if "link" in data else None,
            css_class=_parse_css_class(data["css_class"], column) if "css_class" in data else None,
        )


def align_column_specs(
    specs: Sequence[ColumnSpec],
    column_keys: Sequence[object],
) -> dict[object, ColumnSpec]:
    """Pair spec ``i`` with the ``i``-th dataset column key."""

    if len(specs) != len(column_keys):
        raise InvalidInput(
            "The column spec list and data columns must have the same size. "
            f"Spec list has [{len(specs)}] items and should have [{len(column_keys)}] items"
        )
    return dict(zip(column_keys, specs))


def parse_column_specs(
    raw: Sequence[Mapping[str, Any] | ColumnSpec | None],
    column_keys: Sequence[object] = (),
) -> list[ColumnSpec]:
    """Validate every entry of ``raw``; errors name the matching column key."""

    if isinstance(raw, (str, bytes, Mapping)) or not isinstance(raw, Sequence):
        raise InvalidInput("Column specs must be a list", value=type(raw).__name__)
    specs: list[ColumnSpec] = []
    for index, item in enumerate(raw):
        column = column_keys[index] if index < len(column_keys) else index
        specs.append(ColumnSpec.from_mapping(item, column=column))
    return specs


def parse_width(value: object, *, column: object = None) -> int:
    text = "" if isinstance(value, bool) else str(value).strip()
    if not _WIDTH_PATTERN.match(text):
        raise InvalidInput("Invalid width given", column=column, value=value)
    return int(text)


def _parse_css_class(value: object, column: object) -> str:
    text = str(value).strip()
    if not _CSS_CLASS_PATTERN.match(text):
        raise InvalidInput("Invalid css class given", column=column, value=value)
    return text


def _parse_bound(name: str, value: object, column: object) -> int | float:
    text = "" if isinstance(value, bool) else str(value).strip()
    if not _BOUND_PATTERN.match(text):
        raise InvalidInput(f"Invalid {name} given", column=column, value=value)
    return to_number(text)


def _parse_graph(value: object, column: object) -> GraphSpec:
    if value is None:
        return GraphSpec()
    if not isinstance(value, Mapping):
        raise InvalidInput("Graph options must be a mapping", column=column, value=value)
    unknown = sorted(str(key) for key in value if key not in _GRAPH_KEYS)
    if unknown:
        raise InvalidInput("Unknown graph keys", column=column, value=", ".join(unknown))
    return GraphSpec(
        min=_parse_bound("min", value["min"], column) if "min" in value else None,
        max=_parse_bound("max", value["max"], column) if "max" in value else None,
    )


def _parse_format(value: object, column: object) -> Expression:
    return compile_expression(str(value), names=(FORMAT_VARIABLE,))


def _parse_footer(value: object, column: object) -> FooterSpec:
    text = str(value).strip()
    if _AGGREGATE_PATTERN.match(text):
        return FooterSpec(kind=text, text=text)
    if _LABEL_PATTERN.match(text):
        return FooterSpec(kind="label", text=text)
    if _FOOTER_EXPRESSION_PATTERN.match(text):
        expression = compile_expression(text, quoted_references=True)
        return FooterSpec(kind="expression", text=text, expression=expression)
    raise InvalidInput("Invalid footer given", column=column, value=value)


__all__ = [
    "ColumnSpec",
    "FORMAT_VARIABLE",
    "FooterSpec",
    "GraphSpec",
    "align_column_specs",
    "parse_column_specs",
    "parse_width",
]
