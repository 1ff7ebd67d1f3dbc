"""Read-only gate for free-form SQL written by the model.

Only statements that start with SELECT are let through, and every statement
that reaches storage is bounded by a row ceiling:

- no top-level LIMIT clause: `` LIMIT n`` is appended
- a top-level ``LIMIT <int>`` within the ceiling: the text is left alone
- a top-level ``LIMIT <int>`` above the ceiling: the number is capped
- a top-level LIMIT that is not a plain integer: the query is wrapped in
  ``SELECT * FROM (...) LIMIT n``

"limit" inside string literals, quoted identifiers, comments, sub-queries or
longer words (``limited``) is not mistaken for a LIMIT clause.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_ROW_LIMIT = 100
MAX_ROW_LIMIT = 500

SELECT_ONLY_MESSAGE = (
    "Error: Only SELECT queries are allowed for security reasons. Please start your query with SELECT."
)

_LIMIT_WORD = re.compile(r"\blimit\b", re.IGNORECASE)
# Applied to the masked text right after the LIMIT keyword.
_LIMIT_TAIL = re.compile(
    r"\s+(?P<first>\d+)\s*(?:,\s*(?P<count>\d+)|\boffset\b\s*\d+)?\s*;?\s*$",
    re.IGNORECASE,
)


class RejectedOperation(ValueError):
    """The query is not a read-only SELECT and must not be executed."""


@dataclass(frozen=True)
class GuardedQuery:
    original: str
    text: str
    limit: int

    @property
    def rewritten(self) -> bool:
        return self.text != self.original


def resolve_limit(
    limit: int | None,
    *,
    default: int = DEFAULT_ROW_LIMIT,
    maximum: int = MAX_ROW_LIMIT,
) -> int:
    """Effective row ceiling: ``min(limit or default, maximum)``, never negative."""
    requested = default if limit is None else int(limit)
    return max(0, min(requested, maximum))


def is_select(text: str) -> bool:
    return text.strip().lower().startswith("select")


def _mask(sql: str) -> str:
    """Blank out literals and comments, keeping every offset aligned with ``sql``.

    Quoted strings and identifiers become ``_`` runs, comments become spaces.
    """
    out = list(sql)
    n = len(sql)
    i = 0
    while i < n:
        ch = sql[i]
        if ch in "'\"`[":
            close = "]" if ch == "[" else ch
            j = i + 1
            while j < n:
                if sql[j] == close:
                    # '' and "" escape the quote inside a literal
                    if close != "]" and j + 1 < n and sql[j + 1] == close:
                        j += 2
                        continue
                    break
                j += 1
            end = min(j + 1, n)
            out[i:end] = "_" * (end - i)
            i = end
        elif sql.startswith("--", i):
            end = sql.find("\n", i)
            end = n if end == -1 else end
            out[i:end] = " " * (end - i)
            i = end
        elif sql.startswith("/*", i):
            end = sql.find("*/", i + 2)
            end = n if end == -1 else end + 2
            out[i:end] = " " * (end - i)
            i = end
        else:
            i += 1
    return "".join(out)


def _depth_at(masked: str, pos: int) -> int:
    head = masked[:pos]
    return head.count("(") - head.count(")")


def _top_level_limit(masked: str) -> re.Match[str] | None:
    found = None
    for m in _LIMIT_WORD.finditer(masked):
        if _depth_at(masked, m.start()) == 0:
            found = m
    return found


def guard_query(
    text: str,
    limit: int | None = None,
    *,
    default_limit: int = DEFAULT_ROW_LIMIT,
    max_limit: int = MAX_ROW_LIMIT,
) -> GuardedQuery:
    """Validate ``text`` and return the bounded statement to execute.

    Raises:
        RejectedOperation: if ``text`` does not start with SELECT.
    """
    if not is_select(text):
        raise RejectedOperation(SELECT_ONLY_MESSAGE)

    effective = resolve_limit(limit, default=default_limit, maximum=max_limit)
    masked = _mask(text)
    # Trailing whitespace, semicolons and comments are dropped before appending.
    body = text[: len(masked.rstrip().rstrip(";").rstrip())]

    clause = _top_level_limit(masked)
    if clause is None:
        return GuardedQuery(original=text, text=f"{body} LIMIT {effective}", limit=effective)

    tail = _LIMIT_TAIL.match(masked, clause.end())
    if tail is None:
        logger.info("LIMIT clause is not a plain integer; wrapping query")
        return GuardedQuery(
            original=text,
            text=f"SELECT * FROM ({body}) LIMIT {effective}",
            limit=effective,
        )

    group = "count" if tail.group("count") is not None else "first"
    rows = int(tail.group(group))
    if rows <= max_limit:
        return GuardedQuery(original=text, text=text, limit=rows)

    logger.info("Capping LIMIT %d to %d", rows, max_limit)
    start, end = tail.span(group)
    return GuardedQuery(
        original=text,
        text=f"{text[:start]}{max_limit}{text[end:]}",
        limit=max_limit,
    )
