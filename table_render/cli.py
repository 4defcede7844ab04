"""Command line interface for table_render."""
from __future__ import annotations

import argparse
import csv
import json
import logging
import sys
from pathlib import Path
from typing import Any, Sequence

import pyarrow as pa
import pyarrow.feather as feather
import pyarrow.parquet as pq

from .config import ConfigError, load_column_specs, load_config
from .errors import ExpressionError, InvalidInput
from .renderer import TableRenderer

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="table-render", description="Render datasets as HTML tables")
    subparsers = parser.add_subparsers(dest="command")

    render_parser = subparsers.add_parser("render", help="Render a data file into an HTML table")
    render_parser.add_argument("data", help="Data file (.csv, .json, .parquet, .arrow or .feather)")
    render_parser.add_argument("--columns", default=None, help="TOML file with a [[columns]] array of tables")
    render_parser.add_argument("--attributes", default=None, help="Extra attributes for the <table> tag")
    render_parser.add_argument("--config", default="config.toml", help="Path to configuration file")
    render_parser.add_argument("--output", default=None, help="Write the markup to this file instead of stdout")
    render_parser.add_argument("--verbose", action="store_true", help="Log debug details to stderr")

    args = parser.parse_args(argv)
    if args.command == "render":
        return _cmd_render(args)

    parser.print_help()
    return 1


def _cmd_render(args: argparse.Namespace) -> int:
    try:
        config = load_config(args.config)
    except ConfigError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else config.logging.numeric_level,
        format=_LOG_FORMAT,
    )
    try:
        data = load_dataset(args.data)
        columns = load_column_specs(args.columns) if args.columns else None
        renderer = TableRenderer(data, args.attributes, columns, config=config)
        markup = renderer.render()
    except (ConfigError, InvalidInput, ExpressionError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    if markup is None:
        logger.info("%s has no rows; nothing rendered", args.data)
        return 0
    if args.output:
        Path(args.output).write_text(markup + "\n", encoding="utf-8")
        logger.info("Wrote %d row(s) to %s", renderer.rows, args.output)
    else:
        print(markup)
    return 0


def load_dataset(path: str | Path) -> list[Any] | pa.Table:
    """Load a dataset from ``path`` based on its file extension."""

    source = Path(path)
    if not source.exists():
        raise InvalidInput("Data file does not exist", value=source)
    suffix = source.suffix.lower()
    try:
        if suffix == ".csv":
            with source.open(encoding="utf-8", newline="") as handle:
                return [dict(row) for row in csv.DictReader(handle)]
        if suffix == ".json":
            with source.open(encoding="utf-8") as handle:
                return json.load(handle)
        if suffix == ".parquet":
            return pq.read_table(source)
        if suffix in {".arrow", ".feather"}:
            return feather.read_table(source)
    except json.JSONDecodeError as exc:
        raise InvalidInput(f"Data file is not valid JSON: {exc}", value=source) from exc
    except (UnicodeDecodeError, csv.Error) as exc:
        raise InvalidInput(f"Data file is not readable UTF-8 text: {exc}", value=source) from exc
    except (pa.ArrowInvalid, OSError) as exc:
        raise InvalidInput(f"Data file could not be read: {exc}", value=source) from exc
    raise InvalidInput("Unsupported data file type", value=suffix or source.name)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
