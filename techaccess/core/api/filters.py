"""Client-side filtering for listing endpoints.

The service offers no server-side name filters, so collections are fetched
whole and narrowed here.
"""
from __future__ import annotations
import re
from functools import lru_cache
from typing import Iterable, Optional

from .exceptions import AmbiguousMatchError, NotFoundError


@lru_cache(maxsize=256)
def _compile(pattern: str, case_sensitive: bool) -> re.Pattern:
    # Only * and ? are wildcards; everything else (including [ and ]) is literal.
    parts = []
    for char in pattern:
        if char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    flags = re.DOTALL if case_sensitive else re.DOTALL | re.IGNORECASE
    return re.compile("".join(parts) + r"\Z", flags)


def glob_match(value: str, pattern: str, case_sensitive: bool = True) -> bool:
    """Return True if value matches the glob pattern as a whole."""
    return _compile(pattern, case_sensitive).match(value) is not None


def filter_records(
    records: Iterable[dict],
    pattern: Optional[str],
    key: str = "name",
    case_sensitive: bool = True,
) -> list[dict]:
    """Keep records whose `key` field matches the glob pattern.

    A None pattern keeps everything. Order is preserved.
    """
    records = list(records)
    if pattern is None:
        return records
    return [
        record for record in records
        if isinstance(record.get(key), str) and glob_match(record[key], pattern, case_sensitive)
    ]


def exact_matches(records: Iterable[dict], key: str, value: object, case_sensitive: bool = True) -> list[dict]:
    """Records whose field equals value (no wildcard interpretation)."""
    if isinstance(value, str) and not case_sensitive:
        folded = value.casefold()
        return [r for r in records if isinstance(r.get(key), str) and r[key].casefold() == folded]
    return [r for r in records if r.get(key) == value]


def select_one(matches: list[dict], kind: str, label: object) -> dict:
    """Return the single match or raise.

    Raises:
        NotFoundError: No record matched
        AmbiguousMatchError: More than one record matched
    """
    if not matches:
        raise NotFoundError(kind, str(label))
    if len(matches) > 1:
        raise AmbiguousMatchError(kind, str(label), len(matches))
    return matches[0]
