"""
Build a simple ``LIKE`` search condition from free text.

Only a conservative character set survives (letters incl. Cyrillic, digits and
some punctuation), so the words can be placed inside double-quoted LIKE
patterns without further escaping.
"""

import re

_DISALLOWED = re.compile(r"[^0-9a-zа-яёЁ_\-:#@$%*()\[\]{}?<>\s]", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")
_LIKE_ESCAPE = str.maketrans({"_": "\\_", "%": "\\%"})


def build_search_sql(
    text: str,
    field_name: str,
    operator: str | None = "OR",
    min_word_length: int | None = None,
) -> str | None:
    """
    Return ``(field LIKE "%w1%" OR field LIKE "%w2%")`` for the words of *text*.

    - operator: joins the per-word conditions (``OR``/``AND``); when empty the
      whole text is matched as one phrase.
    - min_word_length: words shorter than this are dropped.

    Returns None when nothing searchable is left. *field_name* is inserted as
    is and must come from trusted code.
    """
    s = _DISALLOWED.sub("", text)

    if min_word_length is not None and min_word_length > 1:
        short_word = re.compile(r"(^|\s)\S{1,%d}(\s|$)" % (min_word_length - 1))
        s = short_word.sub(" ", s)

    s = s.translate(_LIKE_ESCAPE)
    s = _WHITESPACE.sub(" ", s).strip()

    if s == "":
        return None

    if operator:
        s = s.replace(" ", f'%" {operator} {field_name} LIKE "%')

    return f'({field_name} LIKE "%{s}%")'
