"""
Placeholder scanner for query templates.

A placeholder is the ``?`` marker optionally followed by a kind tag:

    ?      scalar value            ?N   raw SQL
    ?F     identifier              ?L   LIKE pattern body
    ?@     list of scalar values   ?@F  list of identifiers
    ?%     key=value assignments

Any other character after ``?`` is template text and the placeholder is a
scalar. There is no way to write a literal ``?`` in a template.
"""

from enum import Enum
from typing import NamedTuple

MARKER = "?"

_TAGS = frozenset({"%", "@", "F", "N", "L"})


class PlaceholderKind(str, Enum):
    """Placeholder kind, valued by its tag as written after the marker."""

    SCALAR = ""
    RAW = "N"
    IDENTIFIER = "F"
    LIKE = "L"
    SCALAR_LIST = "@"
    IDENTIFIER_LIST = "@F"
    KEY_VALUE_MAP = "%"


class Placeholder(NamedTuple):
    kind: PlaceholderKind
    position: int  # index of the marker in the template

    @property
    def end(self) -> int:
        """Index just past the marker and its tag."""
        return self.position + len(MARKER) + len(self.kind.value)


def scan_placeholders(template: str) -> list[Placeholder]:
    """Return the placeholders of *template* in left-to-right order."""
    placeholders: list[Placeholder] = []
    length = len(template)
    pos = template.find(MARKER)

    while pos != -1:
        start = pos
        tag = ""
        pos += 1

        if pos < length and template[pos] in _TAGS:
            tag = template[pos]
            pos += 1
            if tag == "@" and pos < length and template[pos] == "F":
                tag += "F"
                pos += 1

        placeholders.append(Placeholder(PlaceholderKind(tag), start))
        pos = template.find(MARKER, pos)

    return placeholders
