"""
Query compiler: typed ``?`` placeholders + positional arguments -> final SQL.

    compiler = QueryCompiler(escaper=conn.escape_string)
    compiler.compile("SELECT * FROM ?F WHERE id IN (?@)", ["users", [1, 2]])
    # "SELECT * FROM `users` WHERE id IN ('1','2')"

Literal template text is copied unchanged; only placeholders are replaced.
The compiler keeps no state between calls apart from the escaper, so one
instance can be shared between threads when the escaper allows it.
"""

from collections.abc import Callable, Sequence
from typing import Any

from dbquery.engines.sql.errors import EscaperNotSetError, PlaceholderCountError
from dbquery.engines.sql.render import (
    Escaper,
    render_identifier,
    render_identifier_list,
    render_key_value_map,
    render_like,
    render_raw,
    render_scalar,
    render_scalar_list,
)
from dbquery.engines.sql.scanner import PlaceholderKind, scan_placeholders


class QueryCompiler:
    """Compiles query templates using an injected escaping function."""

    def __init__(self, escaper: Escaper | None = None) -> None:
        self._escaper: Escaper | None = None
        if escaper is not None:
            self.set_escaper(escaper)

    def __getstate__(self) -> dict[str, Any]:
        # The escaper is usually bound to a live connection; the owner re-registers it.
        return {"escaper": None}

    def __setstate__(self, state: dict[str, Any]) -> None:
        self._escaper = None

    @property
    def escaper(self) -> Escaper | None:
        return self._escaper

    def set_escaper(self, escaper: Callable[[str], str]) -> None:
        """Register (or replace) the function used to escape string values."""
        if not callable(escaper):
            raise TypeError("Bad escaper callback.")
        self._escaper = escaper

    def _escape(self, text: str) -> str:
        if self._escaper is None:
            raise EscaperNotSetError("Escaper function is not set.")
        return self._escaper(text)

    def compile(self, template: str, arguments: Sequence[Any]) -> str:
        """Return *template* with every placeholder replaced by its argument.

        Arguments are consumed in placeholder order; extra arguments are ignored.
        """
        if self._escaper is None:
            raise EscaperNotSetError("Escaper function is not set.")
        escape = self._escape

        parts: list[str] = []
        pos = 0
        for index, placeholder in enumerate(scan_placeholders(template)):
            ordinal = index + 1
            parts.append(template[pos : placeholder.position])
            pos = placeholder.end

            if index >= len(arguments):
                raise PlaceholderCountError(
                    f"Placeholder #{ordinal} has no argument.", ordinal=ordinal
                )
            value = arguments[index]
            kind = placeholder.kind

            if kind is PlaceholderKind.SCALAR:
                parts.append(render_scalar(value, escape, ordinal))
            elif kind is PlaceholderKind.RAW:
                parts.append(render_raw(value, ordinal))
            elif kind is PlaceholderKind.IDENTIFIER:
                parts.append(render_identifier(value, ordinal))
            elif kind is PlaceholderKind.LIKE:
                parts.append(render_like(value, escape, ordinal))
            elif kind is PlaceholderKind.SCALAR_LIST:
                parts.append(render_scalar_list(value, escape, ordinal))
            elif kind is PlaceholderKind.IDENTIFIER_LIST:
                parts.append(render_identifier_list(value, ordinal))
            elif kind is PlaceholderKind.KEY_VALUE_MAP:
                parts.append(render_key_value_map(value, escape, ordinal))

        parts.append(template[pos:])
        return "".join(parts)


def compile_query(
    template: str, arguments: Sequence[Any], escaper: Callable[[str], str]
) -> str:
    """One-shot compile with *escaper*, without keeping a compiler around."""
    return QueryCompiler(escaper).compile(template, arguments)
