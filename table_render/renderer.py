"""Render a two-dimensional dataset into an HTML table.

Simple use::

    data = [["AAA", "500"], ["BBB", "1000"]]
    html = TableRenderer(data).render()

With column rules::

    columns = [
        {"header": "Place", "footer": "TOTAL"},
        {
            "header": "Sales",
            "footer": "sum",
            "format": "number_format(cell, 2, '.', ',')",
            "link": "sales.php?module=sales&place=column[0]",
            "graph": {"min": 0, "max": 10000},
            "width": 100,
        },
    ]
    html = TableRenderer(data, 'id="sales" class="table"', columns).render()
"""
from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

import pyarrow as pa

from .columns import ColumnSpec, align_column_specs, parse_column_specs
from .config import Config, RenderConfig
from .errors import InvalidInput
from .markup import render_markup
from .plan import RenderPlan, build_plan
from .values import table_to_records

logger = logging.getLogger(__name__)

ColumnsArg = Sequence[Mapping[str, Any] | ColumnSpec | None]


class TableRenderer:
    """Holds a dataset plus its column rules and renders them on demand.

    Every setter re-validates the dataset against the column rules, so the
    renderer never holds a spec list whose length disagrees with the data.
    A setter that fails leaves the previous configuration untouched.
    """

    def __init__(
        self,
        data: Sequence[Any] | pa.Table | None = None,
        attributes: str | None = None,
        columns: ColumnsArg | None = None,
        *,
        config: Config | RenderConfig | None = None,
    ) -> None:
        if isinstance(config, Config):
            config = config.render
        self._config = config or RenderConfig()
        self._data: Sequence[Any] | pa.Table = []
        self._keys: tuple[object, ...] = ()
        self._rows: list[tuple[object, ...]] = []
        self._attributes: str | None = None
        self._column_specs: list[ColumnSpec] | None = None
        self._aligned: dict[object, ColumnSpec] | None = None
        if data is not None:
            self.set_data(data)
        if attributes is not None:
            self.set_attributes(attributes)
        if columns is not None:
            self.set_columns(columns)

    @property
    def data(self) -> Sequence[Any] | pa.Table:
        return self._data

    @property
    def attributes(self) -> str | None:
        return self._attributes

    @property
    def columns(self) -> list[ColumnSpec] | None:
        return list(self._column_specs) if self._column_specs is not None else None

    @property
    def column_keys(self) -> tuple[object, ...]:
        return self._keys

    @property
    def rows(self) -> int:
        return len(self._rows)

    @property
    def column_count(self) -> int:
        return len(self._keys)

    def set_data(self, data: Sequence[Any] | pa.Table) -> None:
        keys, rows = _normalize_dataset(data)
        aligned = None
        if self._column_specs is not None and rows:
            aligned = align_column_specs(self._column_specs, keys)
        self._data = data
        self._keys = keys
        self._rows = rows
        self._aligned = aligned

    def set_attributes(self, attributes: str | None) -> None:
        if attributes is not None and not isinstance(attributes, str):
            raise InvalidInput("Table attributes must be a string", value=type(attributes).__name__)
        self._attributes = attributes

    def set_columns(self, columns: ColumnsArg | None) -> None:
        if columns is None:
            self._column_specs = None
            self._aligned = None
            return
        if isinstance(columns, (str, bytes, Mapping)) or not isinstance(columns, Sequence):
            raise InvalidInput("Column specs must be a list", value=type(columns).__name__)
        raw = list(columns)
        if self._rows:
            align_column_specs(raw, self._keys)
        specs = parse_column_specs(raw, self._keys)
        self._aligned = align_column_specs(specs, self._keys) if self._rows else None
        self._column_specs = specs

    def plan(self) -> RenderPlan | None:
        """Return the render plan for the current configuration, or ``None`` when empty."""

        if not self._rows:
            return None
        return build_plan(self._rows, self._keys, self._aligned, self._config)

    def render(self) -> str | None:
        """Render the table markup; ``None`` when the dataset has no rows."""

        plan = self.plan()
        if plan is None:
            logger.debug("Nothing to render: dataset is empty")
            return None
        markup = render_markup(plan, self._rows, self._attributes, escape=self._config.escape_html)
        logger.debug(
            "Rendered %d row(s) x %d column(s) into %d characters",
            len(self._rows),
            len(self._keys),
            len(markup),
        )
        return markup


def render_table(
    data: Sequence[Any] | pa.Table,
    attributes: str | None = None,
    columns: ColumnsArg | None = None,
    *,
    config: Config | RenderConfig | None = None,
) -> str | None:
    """Shortcut for ``TableRenderer(data, attributes, columns).render()``."""

    return TableRenderer(data, attributes, columns, config=config).render()


def _normalize_dataset(data: object) -> tuple[tuple[object, ...], list[tuple[object, ...]]]:
    if isinstance(data, pa.Table):
        records = table_to_records(data)
        keys = tuple(data.column_names)
        return keys, [tuple(record[key] for key in keys) for record in records]
    if isinstance(data, (str, bytes, Mapping)) or not isinstance(data, Sequence):
        raise InvalidInput("Data must be a list of rows", value=type(data).__name__)
    if not data:
        return (), []
    first = data[0]
    if isinstance(first, Mapping):
        keys = tuple(first.keys())
        expected = set(keys)
        rows: list[tuple[object, ...]] = []
        for index, row in enumerate(data):
            if not isinstance(row, Mapping) or len(row) != len(keys) or set(row.keys()) != expected:
                raise InvalidInput(f"Row {index} does not have the columns of row 0")
            rows.append(tuple(row[key] for key in keys))
        return keys, rows
    if _is_row_sequence(first):
        width = len(first)
        rows = []
        for index, row in enumerate(data):
            if not _is_row_sequence(row) or len(row) != width:
                raise InvalidInput(f"Row {index} does not have the columns of row 0")
            rows.append(tuple(row))
        return tuple(range(width)), rows
    raise InvalidInput("Data rows must be lists or mappings", value=type(first).__name__)


def _is_row_sequence(row: object) -> bool:
    return isinstance(row, Sequence) and not isinstance(row, (str, bytes))


__all__ = ["TableRenderer", "render_table"]
