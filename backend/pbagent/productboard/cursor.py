"""Pagination cursor normalization and query-string building."""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any
from urllib.parse import quote, urlencode

_ABSOLUTE_URL = re.compile(r"^https?://", re.IGNORECASE)


def encode_query(params: Mapping[str, Any] | None) -> str:
    """Serialize params in insertion order, expanding lists into repeated keys.

    None, empty strings and empty lists are skipped.
    """
    pairs: list[tuple[str, str]] = []
    for key, value in (params or {}).items():
        if value is None or value == "":
            continue
        if isinstance(value, (list, tuple)):
            pairs.extend((key, str(v)) for v in value if v is not None and v != "")
        elif isinstance(value, bool):
            pairs.append((key, "true" if value else "false"))
        else:
            pairs.append((key, str(value)))
    return urlencode(pairs)


def normalize_cursor(
    cursor: str | None,
    base_path: str,
    params: Mapping[str, Any] | None = None,
) -> str:
    """Turn a cursor (absolute URL, root-relative path or bare token) into a URL.

    Without a cursor the first-page URL is built from ``base_path`` and
    ``params``.
    """
    if cursor is None or not cursor.strip():
        query = encode_query(params)
        return f"{base_path}?{query}" if query else base_path
    if _ABSOLUTE_URL.match(cursor) or cursor.startswith("/"):
        return cursor
    return f"{base_path}?pageCursor={quote(cursor, safe='')}"


_RESUME_SUFFIX = re.compile(r"#skip=(\d+)$")


def with_skip(url: str, skip: int) -> str:
    """Cursor for resuming partway through the page at ``url``."""
    return f"{url}#skip={skip}"


def split_skip(cursor: str | None) -> tuple[str | None, int]:
    """Separate a ``#skip=N`` suffix from a cursor; 0 when absent."""
    if not cursor:
        return cursor, 0
    match = _RESUME_SUFFIX.search(cursor)
    if match is None:
        return cursor, 0
    return cursor[: match.start()], int(match.group(1))
