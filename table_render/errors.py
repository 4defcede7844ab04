"""Error taxonomy shared by the renderer, expression engine and CLI."""
from __future__ import annotations


class InvalidInput(ValueError):
    """Raised when a dataset, column spec or table option has the wrong shape."""

    def __init__(self, message: str, *, column: object = None, value: object = None) -> None:
        if column is not None:
            message = f"{message} for column [{column}]"
        if value is not None:
            message = f"{message}: [{value}]"
        super().__init__(message)
        self.column = column
        self.value = value


class ExpressionError(RuntimeError):
    """Raised when a format or footer expression cannot be parsed or evaluated."""

    def __init__(self, message: str, *, expression: str | None = None) -> None:
        if expression is not None:
            message = f"{message} in expression {expression!r}"
        super().__init__(message)
        self.expression = expression


__all__ = ["ExpressionError", "InvalidInput"]
