"""
Compile a query template offline and print the SQL.

Usage:
  dbquery-compile "SELECT * FROM ?F WHERE id IN (?@)" --args '["users", [1, 2]]'
  dbquery-compile --file query.sql --args-file args.json

Strings are escaped with pymysql's escape_string (backslash escaping, as for
a server without NO_BACKSLASH_ESCAPES).
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from pymysql.converters import escape_string

from dbquery.core.config import settings
from dbquery.engines.sql import QueryCompiler, QueryCompilerError, scan_placeholders

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dbquery-compile",
        description="Compile a ?-placeholder query template with JSON arguments.",
    )
    parser.add_argument("template", nargs="?", help="Query template (or use --file)")
    parser.add_argument("--file", type=Path, help="Read the template from a file")
    parser.add_argument(
        "--args",
        default="[]",
        help="JSON array of positional arguments (default: [])",
    )
    parser.add_argument("--args-file", type=Path, help="Read the JSON arguments from a file")
    parser.add_argument(
        "--list-placeholders",
        action="store_true",
        help="Print the placeholders found in the template instead of compiling",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=settings.LOG_LEVEL, format="%(levelname)s %(name)s: %(message)s")

    if args.file is not None:
        template = args.file.read_text(encoding="utf-8")
    elif args.template is not None:
        template = args.template
    else:
        parser.error("a template or --file is required")

    if args.list_placeholders:
        for number, placeholder in enumerate(scan_placeholders(template), start=1):
            print(f"{number}\t?{placeholder.kind.value}\t{placeholder.position}")
        return 0

    raw_args = args.args_file.read_text(encoding="utf-8") if args.args_file else args.args
    try:
        arguments = json.loads(raw_args)
    except json.JSONDecodeError as e:
        print(f"Error: arguments are not valid JSON: {e}", file=sys.stderr)
        return 2
    if not isinstance(arguments, list):
        print("Error: arguments must be a JSON array", file=sys.stderr)
        return 2

    logger.debug("Compiling template with %d argument(s)", len(arguments))
    try:
        sql = QueryCompiler(escape_string).compile(template, arguments)
    except QueryCompilerError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    print(sql)
    return 0


if __name__ == "__main__":
    sys.exit(main())
