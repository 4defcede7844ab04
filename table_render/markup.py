"""HTML fragments for the rendered table."""
from __future__ import annotations

import html
from typing import Sequence

from .plan import ColumnPlan, FooterCell, RenderPlan
from .values import display


def render_markup(
    plan: RenderPlan,
    rows: Sequence[Sequence[object]],
    attributes: str | None = None,
    *,
    escape: bool = True,
) -> str:
    text = _escaper(escape)
    extra = f" {attributes}" if attributes and attributes.strip() else ""
    parts = [f"<table{extra}>\n", "<thead>\n", _header_row(plan.columns, text), "</thead>\n", "<tbody>\n"]
    parts.extend(_body_row(plan.columns, row, text) for row in rows)
    if plan.has_footer:
        parts.append(_footer_row(plan.columns, plan.footer, text))
    parts.append("</tbody>\n")
    parts.append("</table>")
    return "".join(parts)


def _escaper(enabled: bool):
    if enabled:
        return lambda value: html.escape(display(value))
    return display


def _header_row(columns: Sequence[ColumnPlan], text) -> str:
    cells: list[str] = []
    for column in columns:
        style = f' style="width:{column.header_width}px;"' if column.header_width is not None else ""
        cells.append(f"<th{style}>{text(column.header)}</th> ")
    return "<tr> " + "".join(cells) + "</tr>\n"


def _body_row(columns: Sequence[ColumnPlan], row: Sequence[object], text) -> str:
    cells: list[str] = []
    for column in columns:
        raw = row[column.index]
        content = text(column.format_value(raw))
        if column.link is not None:
            content = f'<a href="{column.link.href(row)}">{content}</a>'
        attrs = f' class="{column.css_class}"' if column.css_class is not None else ""
        if column.graph is not None:
            attrs += f' style="background-position:{column.graph.offset(raw)}px;"'
        cells.append(f"<td{attrs}>{content}</td> ")
    return "<tr> " + "".join(cells) + "</tr>\n"


def _footer_row(
    columns: Sequence[ColumnPlan],
    footer: Sequence[FooterCell | None],
    text,
) -> str:
    cells: list[str] = []
    for column, cell in zip(columns, footer):
        if cell is None:
            content = ""
        elif cell.is_label:
            content = text(cell.value)
        else:
            content = text(column.format_value(cell.value))
        cells.append(f"<th>{content}</th> ")
    return "<tr> " + "".join(cells) + "</tr>\n"


__all__ = ["render_markup"]
