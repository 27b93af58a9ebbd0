"""
Per-kind renderers used by the query compiler.

Each renderer validates one argument against its placeholder kind and returns
the SQL text to splice into the template. Quote safety of values depends on
the ``escape`` callable supplied by the connection (it must neutralise at
least single quotes and backslashes).
"""

from collections.abc import Callable, Mapping
from typing import Any

from dbquery.engines.sql.errors import InvalidIdentifierError, PlaceholderTypeError

Escaper = Callable[[str], str]

NULL = "NULL"

# Characters stripped around identifiers.
_TRIM_CHARS = " \t\n\r\0\x0b"

# LIKE wildcards that must match literally inside a ?L placeholder.
_LIKE_ESCAPE = str.maketrans({"%": "\\%", "_": "\\_"})


def _type_name(value: Any) -> str:
    return type(value).__name__


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


# ---------------------------------------------------------------------------
# Primitives
# ---------------------------------------------------------------------------


def format_number(value: int | float) -> str:
    """Decimal text of a number; integral floats drop the trailing ``.0``."""
    if isinstance(value, float):
        text = repr(value)
        if text.endswith(".0"):
            text = text[:-2]
        return text
    return str(value)


def quote_identifier(name: str) -> str:
    """Back-quote *name*, doubling any backtick inside it."""
    return "`" + name.replace("`", "``") + "`"


def escape_like(value: str, escape: Escaper) -> str:
    """Escape *value* and then backslash-escape ``%`` and ``_``."""
    return escape(value).translate(_LIKE_ESCAPE)


# ---------------------------------------------------------------------------
# Single values
# ---------------------------------------------------------------------------


def render_scalar(value: Any, escape: Escaper, ordinal: int | None = None) -> str:
    """
    Render a value placeholder (``?``).

    None and the string ``"NULL"`` -> NULL; bool -> '0'/'1'; int/float ->
    quoted decimal text; str -> escaped and single-quoted.
    """
    if value is None or value == NULL:
        return NULL
    if isinstance(value, bool):
        text = "1" if value else "0"
    elif isinstance(value, (int, float)):
        text = format_number(value)
    elif isinstance(value, str):
        text = value
    else:
        raise PlaceholderTypeError(
            f'Invalid variable type "{_type_name(value)}" in placeholder #{ordinal}. '
            "Allowed types: None, bool, int, float, str.",
            ordinal=ordinal,
            actual_type=_type_name(value),
        )
    return "'" + escape(text) + "'"


def render_raw(value: Any, ordinal: int | None = None) -> str:
    """Render ``?N``: the string is inserted as is."""
    if not isinstance(value, str):
        raise PlaceholderTypeError(
            f'Non-string value of type "{_type_name(value)}" passed to placeholder #{ordinal}.',
            ordinal=ordinal,
            actual_type=_type_name(value),
        )
    return value


def render_identifier(value: Any, ordinal: int | None = None) -> str:
    """Render ``?F``: a trimmed, back-quoted column or table name."""
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise InvalidIdentifierError(
            f'Invalid identifier type "{_type_name(value)}" in placeholder #{ordinal}. '
            "Allowed only int and str.",
            ordinal=ordinal,
            actual_type=_type_name(value),
        )
    name = str(value).strip(_TRIM_CHARS)
    if name == "":
        raise InvalidIdentifierError(
            f"Identifier in placeholder #{ordinal} must be non empty.",
            ordinal=ordinal,
        )
    if name == "*":
        raise InvalidIdentifierError(
            f"Identifier in placeholder #{ordinal} must not be a star (*) character.",
            ordinal=ordinal,
        )
    return quote_identifier(name)


def render_like(value: Any, escape: Escaper, ordinal: int | None = None) -> str:
    """Render ``?L``; the template supplies quotes and wildcards: ``LIKE '%?L%'``."""
    if not isinstance(value, str):
        raise PlaceholderTypeError(
            f'Non-string value of type "{_type_name(value)}" passed to placeholder #{ordinal}.',
            ordinal=ordinal,
            actual_type=_type_name(value),
        )
    return escape_like(value, escape)


# ---------------------------------------------------------------------------
# Collections
# ---------------------------------------------------------------------------


def render_scalar_list(value: Any, escape: Escaper, ordinal: int | None = None) -> str:
    """Render ``?@``: comma separated values. Empty -> NULL so ``IN (?@)`` stays valid."""
    if not _is_sequence(value):
        raise PlaceholderTypeError(
            f'Non-list value of type "{_type_name(value)}" passed to placeholder #{ordinal}.',
            ordinal=ordinal,
            actual_type=_type_name(value),
        )
    if not value:
        return NULL
    return ",".join(render_scalar(v, escape, ordinal) for v in value)


def render_identifier_list(value: Any, ordinal: int | None = None) -> str:
    """Render ``?@F``: comma separated identifiers. Empty -> empty string."""
    if not _is_sequence(value):
        raise PlaceholderTypeError(
            f'Non-list value of type "{_type_name(value)}" passed to placeholder #{ordinal}.',
            ordinal=ordinal,
            actual_type=_type_name(value),
        )
    return ",".join(render_identifier(v, ordinal) for v in value)


def render_key_value_map(
    value: Any, escape: Escaper, ordinal: int | None = None
) -> str:
    """Render ``?%``: ```key`='value'`` pairs, e.g. for ``UPDATE t SET ?%``."""
    if not isinstance(value, Mapping):
        raise PlaceholderTypeError(
            f'Non-mapping value of type "{_type_name(value)}" passed to placeholder #{ordinal}.',
            ordinal=ordinal,
            actual_type=_type_name(value),
        )
    return ",".join(
        render_identifier(k, ordinal) + "=" + render_scalar(v, escape, ordinal)
        for k, v in value.items()
    )
