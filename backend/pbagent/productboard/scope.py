"""Default product resolution and feature-status lookup.

The default product id is memoized on the resolver instance; the feature
status taxonomy is cached in Redis like other slow-changing metadata.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from pbagent.redis_client import cache_get, cache_set

from .errors import ScopeNotFoundError, ValidationError
from .pagination import Fetch, collect, page_records

logger = logging.getLogger(__name__)

FEATURE_STATUSES_CACHE_KEY = "productboard:feature_statuses"


class DefaultScopeResolver:
    """Resolves the workspace's primary product by name, once.

    Two concurrent first calls may both hit the API; both write the same id.
    A missing product is not cached, so a later call looks again.
    """

    def __init__(self, fetch: Fetch, product_name: str = "coder"):
        self._fetch = fetch
        self.product_name = product_name
        self._product_id: str | None = None

    @property
    def cached_id(self) -> str | None:
        return self._product_id

    async def resolve(self) -> str:
        if self._product_id:
            return self._product_id

        data = await self._fetch("/products")
        products = page_records(data) if isinstance(data, dict) else []
        wanted = self.product_name.lower()
        match = next(
            (p for p in products if str(p.get("name") or "").lower() == wanted),
            None,
        )
        if match is None or match.get("id") is None:
            raise ScopeNotFoundError(self.product_name)

        self._product_id = str(match["id"])
        logger.info("Resolved default product '%s' -> %s", self.product_name, self._product_id)
        return self._product_id

    def invalidate(self) -> None:
        self._product_id = None


class FeatureStatusDirectory:
    """Name-to-id lookup over the feature status taxonomy."""

    def __init__(self, fetch: Fetch, ttl: int = 3600):
        self._fetch = fetch
        self._ttl = ttl

    async def statuses(self) -> list[dict[str, Any]]:
        cached = await cache_get(FEATURE_STATUSES_CACHE_KEY)
        if cached is not None:
            return cached

        result = await collect(
            self._fetch,
            "/feature-statuses",
            limit=1000,
            auto_paginate=True,
            max_pages=5,
        )
        statuses = [
            {"id": s.get("id"), "name": s.get("name")}
            for s in result.items
            if s.get("id")
        ]
        if not result.had_error:
            await cache_set(FEATURE_STATUSES_CACHE_KEY, statuses, ttl=self._ttl)
        return statuses

    async def ids_for_names(self, names: Iterable[str]) -> list[str]:
        statuses = await self.statuses()
        by_name = {str(s.get("name") or "").lower(): str(s["id"]) for s in statuses}

        ids: list[str] = []
        unknown: list[str] = []
        for name in names:
            status_id = by_name.get(name.strip().lower())
            if status_id is None:
                unknown.append(name)
            else:
                ids.append(status_id)

        if unknown:
            known = ", ".join(sorted(s["name"] for s in statuses if s.get("name")))
            raise ValidationError(f"Unknown feature status(es): {', '.join(unknown)}. Known: {known}")
        return ids
