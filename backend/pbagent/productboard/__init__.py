"""Productboard API core — client, retry, pagination, projection, scope."""

from __future__ import annotations

from .client import ProductboardClient
from .cursor import encode_query, normalize_cursor, split_skip, with_skip
from .errors import (
    ConfigurationError,
    MalformedResponseError,
    ProductboardError,
    ScopeNotFoundError,
    UpstreamError,
    ValidationError,
)
from .pagination import CollectResult, collect
from .projection import WILDCARD, project
from .retry import is_retryable, with_retry
from .scope import DefaultScopeResolver, FeatureStatusDirectory

__all__ = [
    "ProductboardClient",
    "encode_query",
    "normalize_cursor",
    "split_skip",
    "with_skip",
    "ProductboardError",
    "ConfigurationError",
    "UpstreamError",
    "MalformedResponseError",
    "ScopeNotFoundError",
    "ValidationError",
    "CollectResult",
    "collect",
    "WILDCARD",
    "project",
    "is_retryable",
    "with_retry",
    "DefaultScopeResolver",
    "FeatureStatusDirectory",
]
