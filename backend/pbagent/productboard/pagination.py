"""Paginated collector — fetch, filter, project and accumulate list pages.

Every list tool goes through ``collect()``; only the base path, query params,
match predicate and projection differ per entity.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from pydantic import BaseModel, Field

from .cursor import normalize_cursor, split_skip, with_skip
from .errors import MalformedResponseError

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 20
DEFAULT_MAX_PAGES = 5

Fetch = Callable[[str], Awaitable[Any]]
Record = dict[str, Any]


class CollectResult(BaseModel):
    """Accumulated matches plus enough metadata to resume."""

    items: list[Record] = Field(default_factory=list)
    pages_fetched: int = 0
    had_error: bool = False
    error: str | None = None
    next_cursor: str | None = None

    def meta(self, limit: int) -> dict[str, Any]:
        return {
            "count": len(self.items),
            "limit": limit,
            "pagesFetched": self.pages_fetched,
            "hadError": self.had_error,
            "error": self.error,
            "nextCursor": self.next_cursor,
        }


def page_records(page: Mapping[str, Any]) -> list[Record]:
    data = page.get("data")
    if not isinstance(data, list):
        return []
    return [r for r in data if isinstance(r, dict)]


def next_link(page: Mapping[str, Any]) -> str | None:
    links = page.get("links")
    if not isinstance(links, dict):
        return None
    nxt = links.get("next")
    if isinstance(nxt, str) and nxt.strip():
        return nxt
    return None


async def collect(
    fetch: Fetch,
    base_path: str,
    params: Mapping[str, Any] | None = None,
    *,
    cursor: str | None = None,
    match: Callable[[Record], bool] | None = None,
    transform: Callable[[Record], Record] | None = None,
    limit: int = DEFAULT_LIMIT,
    auto_paginate: bool = False,
    max_pages: int = DEFAULT_MAX_PAGES,
) -> CollectResult:
    """Collect up to ``limit`` matching records from a paginated listing.

    A failure on the first page propagates. A failure on a later page stops
    the loop and returns what was gathered so far with ``had_error`` set.
    With ``auto_paginate`` off exactly one page is fetched. When ``limit``
    is reached partway through a page, ``next_cursor`` points back at that
    page with a ``#skip=N`` suffix so no record is lost on resume.
    """
    result = CollectResult()
    if limit <= 0:
        return result

    nxt, skip = split_skip(cursor)

    while True:
        url = normalize_cursor(nxt, base_path, params)
        try:
            page = await fetch(url)
        except Exception as exc:
            if result.pages_fetched == 0:
                raise
            logger.warning(
                "Page %d of %s failed, returning %d partial results: %s",
                result.pages_fetched + 1,
                base_path,
                len(result.items),
                exc,
            )
            result.had_error = True
            result.error = str(exc)
            result.next_cursor = nxt
            break

        if not isinstance(page, dict):
            if result.pages_fetched == 0:
                raise MalformedResponseError(f"Expected a JSON object from {base_path}")
            logger.warning("Malformed page %d from %s", result.pages_fetched + 1, base_path)
            result.had_error = True
            result.error = f"Malformed page from {base_path}"
            result.next_cursor = nxt
            break

        records = page_records(page)
        resume_at: int | None = None
        for index in range(skip, len(records)):
            record = records[index]
            if match is not None and not match(record):
                continue
            result.items.append(transform(record) if transform else record)
            if len(result.items) >= limit:
                if index + 1 < len(records):
                    resume_at = index + 1
                break
        skip = 0

        nxt = next_link(page)
        result.next_cursor = with_skip(url, resume_at) if resume_at is not None else nxt
        result.pages_fetched += 1

        if not (
            auto_paginate
            and len(result.items) < limit
            and result.pages_fetched < max_pages
            and nxt is not None
        ):
            break

    return result
