"""Per-render column plans: formats, classes, links, graph scales and footers.

A plan is derived from the configured dataset and column specs at the start
of every render and thrown away afterwards, so rendering never mutates the
renderer's configuration.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Mapping, Sequence

from .columns import FORMAT_VARIABLE, ColumnSpec, FooterSpec, GraphSpec
from .config import RenderConfig
from .errors import ExpressionError, InvalidInput
from .expression import Expression
from .links import LinkTemplate
from .values import display, to_number

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class GraphPlan:
    min: int | float
    max: int | float
    width: int
    scale: float

    def offset(self, value: object) -> int:
        """Background offset in pixels; ``-width`` is an empty bar, ``0`` a full one."""

        return math.floor((to_number(value) - self.min) * self.scale - self.width)


@dataclass(frozen=True, slots=True)
class FooterCell:
    value: object
    is_label: bool = False


@dataclass(frozen=True, slots=True)
class ColumnPlan:
    key: object
    index: int
    header: str
    header_width: int | None = None
    format: Expression | None = None
    css_class: str | None = None
    link: LinkTemplate | None = None
    graph: GraphPlan | None = None

    def format_value(self, value: object) -> object:
        if self.format is None:
            return value
        return self.format.evaluate({FORMAT_VARIABLE: value})


@dataclass(frozen=True, slots=True)
class RenderPlan:
    columns: tuple[ColumnPlan, ...]
    footer: tuple[FooterCell | None, ...] | None = None

    @property
    def has_footer(self) -> bool:
        return self.footer is not None


def build_plan(
    rows: Sequence[Sequence[object]],
    column_keys: Sequence[object],
    specs: Mapping[object, ColumnSpec] | None,
    config: RenderConfig,
) -> RenderPlan:
    """Derive the :class:`RenderPlan` for ``rows``.

    ``rows`` hold cell values in ``column_keys`` order; ``specs`` is keyed by
    the same column keys (or ``None`` when no column rules were configured).
    """

    columns: list[ColumnPlan] = []
    for index, key in enumerate(column_keys):
        spec = specs.get(key) if specs is not None else None
        columns.append(_plan_column(rows, index, key, spec or ColumnSpec(), config, len(column_keys)))
    footer = _plan_footer(rows, column_keys, specs) if specs is not None else None
    logger.debug(
        "Planned %d column(s): %d graph(s), %d link(s), footer=%s",
        len(columns),
        sum(1 for column in columns if column.graph is not None),
        sum(1 for column in columns if column.link is not None),
        footer is not None,
    )
    return RenderPlan(columns=tuple(columns), footer=footer)


def _plan_column(
    rows: Sequence[Sequence[object]],
    index: int,
    key: object,
    spec: ColumnSpec,
    config: RenderConfig,
    column_count: int,
) -> ColumnPlan:
    if spec.link is not None:
        for referenced in spec.link.column_indices:
            if referenced >= column_count:
                raise InvalidInput("Link references a missing column", column=key, value=f"column[{referenced}]")
    graph = _plan_graph(rows, index, key, spec.graph, spec.width, config) if spec.graph is not None else None
    css_class = spec.css_class
    if css_class is None and graph is not None:
        css_class = f"{config.graph_class_prefix}_{graph.width}"
    header_width = spec.width
    if header_width is None and graph is not None:
        header_width = graph.width
    return ColumnPlan(
        key=key,
        index=index,
        header=spec.header if spec.header is not None else display(key),
        header_width=header_width,
        format=spec.format,
        css_class=css_class,
        link=spec.link,
        graph=graph,
    )


def _plan_graph(
    rows: Sequence[Sequence[object]],
    index: int,
    key: object,
    graph: GraphSpec,
    width: int | None,
    config: RenderConfig,
) -> GraphPlan:
    values = _numeric_column(rows, index, key, "graph")
    lower = graph.min if graph.min is not None else min(values)
    upper = graph.max if graph.max is not None else max(values)
    bar_width = width if width is not None else config.default_graph_width
    scale = bar_width / (upper - lower) if upper > lower else 0
    return GraphPlan(min=lower, max=upper, width=bar_width, scale=scale)


def _numeric_column(
    rows: Sequence[Sequence[object]],
    index: int,
    key: object,
    purpose: str,
) -> list[int | float]:
    values: list[int | float] = []
    for row in rows:
        try:
            values.append(to_number(row[index]))
        except ValueError as exc:
            raise InvalidInput(
                f"Non-numeric value in {purpose} column", column=key, value=row[index]
            ) from exc
    return values


def _plan_footer(
    rows: Sequence[Sequence[object]],
    column_keys: Sequence[object],
    specs: Mapping[object, ColumnSpec],
) -> tuple[FooterCell | None, ...] | None:
    footers: dict[object, FooterSpec] = {
        key: spec.footer for key, spec in specs.items() if spec.footer is not None
    }
    if not footers:
        return None
    resolved: dict[object, FooterCell] = {}

    # Pass 1: aggregates and labels.
    for index, key in enumerate(column_keys):
        footer = footers.get(key)
        if footer is None or footer.is_expression or key in resolved:
            continue
        if footer.kind == "label":
            resolved[key] = FooterCell(footer.text, is_label=True)
            continue
        total = sum(_numeric_column(rows, index, key, footer.kind))
        if footer.kind == "avg":
            resolved[key] = FooterCell(total / len(rows))
        else:
            resolved[key] = FooterCell(total)

    # Pass 2: expressions over the footer values resolved above.
    pending: set[object] = set()

    def resolve_column(key: object) -> object:
        cell = resolved.get(key)
        if cell is not None:
            return cell.value
        footer = footers.get(key)
        if footer is None or footer.expression is None:
            raise ExpressionError(f"Column '{key}' has no footer value to reference")
        if key in pending:
            raise ExpressionError(f"Footer expressions reference each other in a cycle at column '{key}'")
        pending.add(key)
        value = footer.expression.evaluate(
            resolve=lambda name: resolve_column(_lookup_key(name, column_keys, footer.expression))
        )
        pending.discard(key)
        resolved[key] = FooterCell(value)
        return value

    for key in column_keys:
        footer = footers.get(key)
        if footer is not None and footer.is_expression and key not in resolved:
            resolve_column(key)

    return tuple(resolved.get(key) for key in column_keys)


def _lookup_key(name: str, column_keys: Sequence[object], expression: Expression) -> object:
    for key in column_keys:
        if isinstance(key, str) and key == name:
            return key
    if name.isdigit():
        number = int(name)
        for key in column_keys:
            if isinstance(key, int) and key == number:
                return key
    raise ExpressionError(f"Unknown column '{name}'", expression=expression.text)


__all__ = [
    "ColumnPlan",
    "FooterCell",
    "GraphPlan",
    "RenderPlan",
    "build_plan",
]
