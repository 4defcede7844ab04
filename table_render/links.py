"""Hyperlink templates whose query values can point at other columns."""
from __future__ import annotations

import html
import re
from dataclasses import dataclass
from typing import Sequence
from urllib.parse import quote_plus

from .errors import InvalidInput
from .values import display

_COLUMN_PATTERN = re.compile(r"^column\[(?P<index>\d+)\]$", re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class LinkParameter:
    name: str
    value: str
    column: int | None = None


@dataclass(frozen=True, slots=True)
class LinkTemplate:
    """Parsed form of ``page.php?module=sales&parameter=column[0]``."""

    base: str
    parameters: tuple[LinkParameter, ...]
    has_query: bool = True

    @classmethod
    def parse(cls, text: str, *, column: object = None) -> "LinkTemplate":
        template = text.strip()
        if not template:
            raise InvalidInput("Empty link template", column=column)
        base, separator, query = template.partition("?")
        if not separator:
            return cls(base=base, parameters=(), has_query=False)
        parameters: list[LinkParameter] = []
        for raw in query.split("&"):
            name, equals, value = raw.partition("=")
            if not equals or not name:
                raise InvalidInput("Invalid link parameter", column=column, value=raw)
            match = _COLUMN_PATTERN.match(value)
            index = int(match.group("index")) if match else None
            parameters.append(LinkParameter(name=name, value=value, column=index))
        return cls(base=base, parameters=tuple(parameters))

    @property
    def column_indices(self) -> tuple[int, ...]:
        return tuple(param.column for param in self.parameters if param.column is not None)

    def href(self, row: Sequence[object]) -> str:
        """Return the escaped ``href`` value for ``row`` (values in column order)."""

        if not self.has_query:
            return html.escape(self.base, quote=True)
        parts: list[str] = []
        for param in self.parameters:
            if param.column is not None:
                value = quote_plus(display(row[param.column]))
            else:
                value = quote_plus(param.value)
            parts.append(f"{html.escape(param.name, quote=True)}={value}")
        return html.escape(self.base, quote=True) + "?" + "&amp;".join(parts)


__all__ = ["LinkParameter", "LinkTemplate"]
