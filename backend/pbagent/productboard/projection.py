"""Field projection — reduce upstream records to the fields the agent asked for.

Each known field has an explicit extractor; unknown names are copied as-is.
Falsy values are dropped rather than emitted as null.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import Any

WILDCARD = "*"
MAX_TEXT_LENGTH = 500
TRUNCATION_MARKER = "..."

FEATURE_FIELDS = ["id", "name", "description", "status", "product", "owner", "updatedAt"]
RELEASE_FIELDS = ["id", "name", "description", "state", "timeframe", "releaseGroup"]
ASSIGNMENT_FIELDS = ["feature", "release", "state"]
NOTE_FIELDS = ["id", "title", "content", "tags", "company", "owner", "createdAt", "updatedAt"]
ALL_FIELDS = [WILDCARD]


def truncate_text(value: Any) -> Any:
    if isinstance(value, str) and len(value) > MAX_TEXT_LENGTH:
        return value[:MAX_TEXT_LENGTH] + TRUNCATION_MARKER
    return value


def _ref(value: Any) -> dict[str, Any] | None:
    if not isinstance(value, dict):
        return None
    ref = {k: value[k] for k in ("id", "name") if value.get(k)}
    return ref or None


def _owner(record: Mapping[str, Any]) -> dict[str, Any] | None:
    owner = record.get("owner")
    if not isinstance(owner, dict):
        return None
    ref: dict[str, Any] = {}
    if owner.get("id"):
        ref["id"] = owner["id"]
    name = owner.get("name") or owner.get("email")
    if name:
        ref["name"] = name
    return ref or None


def _product(record: Mapping[str, Any]) -> dict[str, Any] | None:
    product = record.get("product")
    if not product:
        parent = record.get("parent")
        if isinstance(parent, dict):
            product = parent.get("product")
    return _ref(product)


def _nested(name: str) -> Callable[[Mapping[str, Any]], Any]:
    return lambda record: _ref(record.get(name))


def _text(name: str) -> Callable[[Mapping[str, Any]], Any]:
    return lambda record: truncate_text(record.get(name))


_EXTRACTORS: dict[str, Callable[[Mapping[str, Any]], Any]] = {
    "status": _nested("status"),
    "product": _product,
    "owner": _owner,
    "releaseGroup": _nested("releaseGroup"),
    "feature": _nested("feature"),
    "release": _nested("release"),
    "company": _nested("company"),
    "description": _text("description"),
    "content": _text("content"),
}


def project(record: Mapping[str, Any], fields: Iterable[str]) -> dict[str, Any]:
    """Return a copy of ``record`` holding only ``fields``.

    ``"*"`` anywhere in ``fields`` returns the record unmodified.
    """
    fields = list(fields)
    if WILDCARD in fields:
        return dict(record)

    projected: dict[str, Any] = {}
    for name in fields:
        extractor = _EXTRACTORS.get(name)
        value = extractor(record) if extractor else record.get(name)
        if value:
            projected[name] = value
    return projected


def projector(fields: Iterable[str] | None, default: Iterable[str]) -> Callable[[Mapping[str, Any]], dict[str, Any]]:
    """Bind a field list (or the entity default) for use as a collector transform."""
    chosen = list(fields) if fields else list(default)
    return lambda record: project(record, chosen)
