"""Productboard tools — read products, features, releases, notes and taxonomy.

Every list tool runs through the shared paginated collector: one page by
default, opt-in auto-pagination, hard caps on results and pages. Results are
returned to the agent as JSON text.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any, Literal

import httpx
import pydantic
from claude_agent_sdk import tool
from pydantic import BaseModel, ConfigDict, Field, model_validator

from pbagent.config import settings
from pbagent.productboard import (
    DefaultScopeResolver,
    FeatureStatusDirectory,
    ProductboardClient,
    ProductboardError,
    ValidationError,
    collect,
)
from pbagent.productboard.projection import (
    ALL_FIELDS,
    ASSIGNMENT_FIELDS,
    FEATURE_FIELDS,
    NOTE_FIELDS,
    RELEASE_FIELDS,
    project,
    projector,
)
from pbagent.productboard.scope import FEATURE_STATUSES_CACHE_KEY
from pbagent.redis_client import cache_delete

logger = logging.getLogger(__name__)

MAX_LIMIT = 100
MAX_PAGES_CAP = 20


# ---------------------------------------------------------------------------
# Shared services
# ---------------------------------------------------------------------------


class ProductboardServices:
    """Client plus the caches that hang off it, shared by all tools."""

    def __init__(self, client: ProductboardClient | None = None):
        self.client = client or ProductboardClient()
        self.default_scope = DefaultScopeResolver(
            self.client.fetch, settings.productboard_default_product
        )
        self.statuses = FeatureStatusDirectory(
            self.client.fetch, ttl=settings.productboard_metadata_ttl_seconds
        )

    async def invalidate(self) -> None:
        """Forget the default product and the cached status taxonomy."""
        self.default_scope.invalidate()
        await cache_delete(FEATURE_STATUSES_CACHE_KEY)


_services: ProductboardServices | None = None


def get_services() -> ProductboardServices:
    global _services
    if _services is None:
        _services = ProductboardServices()
    return _services


def set_services(services: ProductboardServices | None) -> None:
    """Swap the shared services (tests, or after a credential change)."""
    global _services
    _services = services


# ---------------------------------------------------------------------------
# Argument models
# ---------------------------------------------------------------------------


class ListArgs(BaseModel):
    model_config = ConfigDict(extra="ignore")

    cursor: str | None = Field(
        default=None, description="Continuation cursor or next-page URL from a previous call"
    )
    limit: int = Field(
        default=settings.productboard_default_limit,
        ge=1,
        le=MAX_LIMIT,
        description="Maximum number of records to return",
    )
    auto_paginate: bool = Field(
        default=False, description="Keep fetching pages until limit or max_pages is reached"
    )
    max_pages: int = Field(
        default=settings.productboard_max_pages,
        ge=1,
        le=MAX_PAGES_CAP,
        description="Page cap when auto_paginate is on",
    )
    fields: list[str] | None = Field(
        default=None, description='Fields to return per record; ["*"] returns full records'
    )


class TaxonomyListArgs(ListArgs):
    limit: int = Field(default=MAX_LIMIT, ge=1, le=MAX_LIMIT)


class ListFeaturesArgs(ListArgs):
    product_id: str | None = Field(
        default=None, description="Product id; defaults to the workspace's primary product"
    )
    status_ids: list[str] | None = None
    status_names: list[str] | None = Field(
        default=None, description='Status names such as "In progress"; resolved to ids'
    )
    release_id: str | None = None
    updated_since: str | None = Field(default=None, description="ISO 8601 timestamp")


class GetFeatureArgs(BaseModel):
    feature_id: str = Field(min_length=1)
    fields: list[str] | None = None


class ListReleasesArgs(ListArgs):
    release_group_id: str | None = None
    state: Literal["upcoming", "in-progress", "completed"] | None = None


class ListAssignmentsArgs(ListArgs):
    release_id: str | None = None
    feature_id: str | None = None


class ListLinksArgs(ListArgs):
    from_type: Literal["feature", "initiative", "objective"] | None = None
    to_type: Literal["feature", "initiative", "objective"] | None = None
    from_id: str | None = None
    to_id: str | None = None

    @model_validator(mode="after")
    def _require_an_endpoint(self) -> ListLinksArgs:
        if not self.cursor and not self.from_id and not self.to_id:
            raise ValueError("from_id or to_id is required")
        return self


class ListNotesArgs(ListArgs):
    feature_id: str | None = None
    tag: str | None = None
    updated_since: str | None = Field(default=None, description="ISO 8601 timestamp")


class ListCustomFieldsArgs(TaxonomyListArgs):
    type: str | None = Field(
        default=None, description="Custom field type, e.g. text, number, dropdown"
    )


class CustomFieldValuesArgs(ListArgs):
    entity_type: Literal["feature", "initiative", "objective", "product"] = "feature"
    entity_ids: list[str] = Field(min_length=1)
    custom_field_ids: list[str] | None = None


def _parse(model: type[BaseModel], args: dict) -> Any:
    try:
        return model.model_validate(args or {})
    except pydantic.ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'arguments'}: {err['msg']}"
            for err in e.errors()
        )
        raise ValidationError(problems) from e


# ---------------------------------------------------------------------------
# Result helpers
# ---------------------------------------------------------------------------


def _text_result(payload: Any) -> dict:
    return {"content": [{"type": "text", "text": json.dumps(payload, default=str)}]}


def _error_result(kind: str, message: str, hint: str) -> dict:
    return {
        "content": [{"type": "text", "text": f"{kind}: {message}\nHint: {hint}"}],
        "is_error": True,
    }


async def _run(tool_name: str, operation: Callable[[], Awaitable[Any]]) -> dict:
    try:
        payload = await operation()
    except ProductboardError as e:
        logger.warning("%s failed: %s", tool_name, e)
        return _error_result(e.kind, str(e), e.hint)
    except httpx.HTTPError as e:
        logger.warning("%s network error: %s", tool_name, e)
        return _error_result(
            "NetworkError",
            str(e) or type(e).__name__,
            "Productboard could not be reached; retry shortly.",
        )
    except Exception as e:
        logger.exception("Unexpected error in %s", tool_name)
        return _error_result("Error", str(e), "Report this failure; retrying is unlikely to help.")
    return _text_result(payload)


async def _list(
    base_path: str,
    args: ListArgs,
    params: dict[str, Any] | None = None,
    *,
    match: Callable[[dict], bool] | None = None,
    default_fields: list[str] = ALL_FIELDS,
) -> dict:
    query = {**(params or {}), "limit": args.limit}
    result = await collect(
        get_services().client.fetch,
        base_path,
        query,
        cursor=args.cursor,
        match=match,
        transform=projector(args.fields, default_fields),
        limit=args.limit,
        auto_paginate=args.auto_paginate,
        max_pages=args.max_pages,
    )
    return {"data": result.items, "meta": result.meta(args.limit)}


# ---------------------------------------------------------------------------
# Client-side filter fallbacks
# ---------------------------------------------------------------------------


def _nested_id(record: dict, *path: str) -> str | None:
    value: Any = record
    for key in path:
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return str(value) if value is not None else None


def _parse_timestamp(value: str) -> datetime | None:
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.astimezone()
    return parsed


def _updated_since(record: dict, since: datetime | None) -> bool:
    if since is None:
        return True
    updated = record.get("updatedAt")
    if not isinstance(updated, str):
        return True
    parsed = _parse_timestamp(updated)
    return parsed is None or parsed >= since


def _all_of(*predicates: Callable[[dict], bool] | None) -> Callable[[dict], bool] | None:
    active = [p for p in predicates if p is not None]
    if not active:
        return None
    return lambda record: all(p(record) for p in active)


def _field_equals(path: tuple[str, ...], wanted: str | None) -> Callable[[dict], bool] | None:
    """Drop records whose field mismatches; keep records that lack it."""
    if not wanted:
        return None

    def check(record: dict) -> bool:
        actual = _nested_id(record, *path)
        return actual is None or actual == wanted

    return check


def _feature_product_id(record: dict) -> str | None:
    return _nested_id(record, "product", "id") or _nested_id(record, "parent", "product", "id")


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


@tool(
    "pb_list_products",
    "List all Productboard products in the workspace.",
    TaxonomyListArgs.model_json_schema(),
)
async def pb_list_products(args: dict) -> dict:
    """List products."""

    async def operation() -> Any:
        return await _list("/products", _parse(TaxonomyListArgs, args))

    return await _run("pb_list_products", operation)


@tool(
    "pb_list_feature_statuses",
    "List all feature statuses (workspace taxonomy).",
    TaxonomyListArgs.model_json_schema(),
)
async def pb_list_feature_statuses(args: dict) -> dict:
    """List feature statuses."""

    async def operation() -> Any:
        return await _list("/feature-statuses", _parse(TaxonomyListArgs, args))

    return await _run("pb_list_feature_statuses", operation)


@tool(
    "pb_list_features",
    "List features with optional filters (status, release, updated since). "
    "Defaults to the primary product when product_id is omitted.",
    ListFeaturesArgs.model_json_schema(),
)
async def pb_list_features(args: dict) -> dict:
    """List features scoped to a product, filtered by status and recency."""

    async def operation() -> Any:
        parsed = _parse(ListFeaturesArgs, args)
        since = _parse_timestamp(parsed.updated_since) if parsed.updated_since else None
        if parsed.updated_since and since is None:
            raise ValidationError(f"updated_since is not an ISO 8601 timestamp: {parsed.updated_since}")

        services = get_services()
        product_id = parsed.product_id
        status_ids = list(parsed.status_ids or [])
        if not parsed.cursor:
            if product_id is None:
                product_id = await services.default_scope.resolve()
            if parsed.status_names:
                status_ids.extend(await services.statuses.ids_for_names(parsed.status_names))

        def in_product(record: dict) -> bool:
            actual = _feature_product_id(record)
            return actual is None or actual == product_id

        def in_statuses(record: dict) -> bool:
            actual = _nested_id(record, "status", "id")
            return actual is None or actual in status_ids

        params = {
            "productId": product_id,
            "statusId": status_ids,
            "releaseId": parsed.release_id,
            "updatedSince": parsed.updated_since,
        }
        return await _list(
            "/features",
            parsed,
            params,
            match=_all_of(
                in_product if product_id else None,
                in_statuses if status_ids else None,
                (lambda r: _updated_since(r, since)) if since else None,
            ),
            default_fields=FEATURE_FIELDS,
        )

    return await _run("pb_list_features", operation)


@tool(
    "pb_get_feature",
    "Get details for a specific feature by ID.",
    GetFeatureArgs.model_json_schema(),
)
async def pb_get_feature(args: dict) -> dict:
    """Fetch one feature; full record unless fields are given."""

    async def operation() -> Any:
        parsed = _parse(GetFeatureArgs, args)
        body = await get_services().client.fetch(f"/features/{parsed.feature_id}")
        feature = body.get("data") if isinstance(body, dict) else None
        if not isinstance(feature, dict):
            return body
        return {"data": project(feature, parsed.fields or ALL_FIELDS)}

    return await _run("pb_get_feature", operation)


@tool(
    "pb_list_releases",
    "List releases, optionally filtered by release group or state.",
    ListReleasesArgs.model_json_schema(),
)
async def pb_list_releases(args: dict) -> dict:
    """List releases."""

    async def operation() -> Any:
        parsed = _parse(ListReleasesArgs, args)

        def in_state(record: dict) -> bool:
            state = record.get("state")
            return state is None or state == parsed.state

        return await _list(
            "/releases",
            parsed,
            {"releaseGroupId": parsed.release_group_id},
            match=_all_of(
                _field_equals(("releaseGroup", "id"), parsed.release_group_id),
                in_state if parsed.state else None,
            ),
            default_fields=RELEASE_FIELDS,
        )

    return await _run("pb_list_releases", operation)


@tool(
    "pb_list_feature_release_assignments",
    "List feature-release assignments, optionally filtered by release_id or feature_id.",
    ListAssignmentsArgs.model_json_schema(),
)
async def pb_list_feature_release_assignments(args: dict) -> dict:
    """List which features are assigned to which releases."""

    async def operation() -> Any:
        parsed = _parse(ListAssignmentsArgs, args)
        return await _list(
            "/feature-release-assignments",
            parsed,
            {
                "releaseId": parsed.release_id,
                "featureId": parsed.feature_id,
            },
            match=_all_of(
                _field_equals(("release", "id"), parsed.release_id),
                _field_equals(("feature", "id"), parsed.feature_id),
            ),
            default_fields=ASSIGNMENT_FIELDS,
        )

    return await _run("pb_list_feature_release_assignments", operation)


@tool(
    "pb_list_initiatives",
    "List all initiatives.",
    TaxonomyListArgs.model_json_schema(),
)
async def pb_list_initiatives(args: dict) -> dict:
    async def operation() -> Any:
        return await _list("/initiatives", _parse(TaxonomyListArgs, args))

    return await _run("pb_list_initiatives", operation)


@tool(
    "pb_list_objectives",
    "List all objectives.",
    TaxonomyListArgs.model_json_schema(),
)
async def pb_list_objectives(args: dict) -> dict:
    async def operation() -> Any:
        return await _list("/objectives", _parse(TaxonomyListArgs, args))

    return await _run("pb_list_objectives", operation)


@tool(
    "pb_list_links",
    "List links between entities (e.g. objective->feature, initiative->feature). "
    "Provide from_type/to_type and from_id or to_id.",
    ListLinksArgs.model_json_schema(),
)
async def pb_list_links(args: dict) -> dict:
    """List entity links; at least one endpoint id is required."""

    async def operation() -> Any:
        parsed = _parse(ListLinksArgs, args)
        return await _list(
            "/links",
            parsed,
            {
                "fromType": parsed.from_type,
                "toType": parsed.to_type,
                "fromId": parsed.from_id,
                "toId": parsed.to_id,
            },
        )

    return await _run("pb_list_links", operation)


@tool(
    "pb_list_notes",
    "List notes (customer insights). Optionally filter by feature_id, tag, or updated_since.",
    ListNotesArgs.model_json_schema(),
)
async def pb_list_notes(args: dict) -> dict:
    """List notes, newest content trimmed to keep results small."""

    async def operation() -> Any:
        parsed = _parse(ListNotesArgs, args)
        since = _parse_timestamp(parsed.updated_since) if parsed.updated_since else None
        if parsed.updated_since and since is None:
            raise ValidationError(f"updated_since is not an ISO 8601 timestamp: {parsed.updated_since}")

        def has_tag(record: dict) -> bool:
            tags = record.get("tags")
            if not isinstance(tags, list):
                return True
            names = [t.get("name") if isinstance(t, dict) else t for t in tags]
            return parsed.tag.lower() in {str(n).lower() for n in names if n}

        def linked_to_feature(record: dict) -> bool:
            features = record.get("features")
            if not isinstance(features, list):
                return True
            return any(_nested_id(f, "id") == parsed.feature_id for f in features if isinstance(f, dict))

        return await _list(
            "/notes",
            parsed,
            {
                "featureId": parsed.feature_id,
                "tag": parsed.tag,
                "updatedSince": parsed.updated_since,
            },
            match=_all_of(
                has_tag if parsed.tag else None,
                linked_to_feature if parsed.feature_id else None,
                (lambda r: _updated_since(r, since)) if since else None,
            ),
            default_fields=NOTE_FIELDS,
        )

    return await _run("pb_list_notes", operation)


@tool(
    "pb_list_tags",
    "List all tags.",
    TaxonomyListArgs.model_json_schema(),
)
async def pb_list_tags(args: dict) -> dict:
    async def operation() -> Any:
        return await _list("/tags", _parse(TaxonomyListArgs, args))

    return await _run("pb_list_tags", operation)


@tool(
    "pb_list_custom_fields",
    "List custom field definitions. Specifying a 'type' filter keeps results forward-compatible.",
    ListCustomFieldsArgs.model_json_schema(),
)
async def pb_list_custom_fields(args: dict) -> dict:
    async def operation() -> Any:
        parsed = _parse(ListCustomFieldsArgs, args)
        return await _list("/custom-fields", parsed, {"type": parsed.type})

    return await _run("pb_list_custom_fields", operation)


@tool(
    "pb_get_custom_field_values",
    "Get custom field values for specific entities (e.g. features). "
    "Provide entity_type and entity_ids; optionally custom_field_ids.",
    CustomFieldValuesArgs.model_json_schema(),
)
async def pb_get_custom_field_values(args: dict) -> dict:
    async def operation() -> Any:
        parsed = _parse(CustomFieldValuesArgs, args)
        return await _list(
            "/custom-fields/values",
            parsed,
            {
                "entityType": parsed.entity_type,
                "entityId": parsed.entity_ids,
                "customFieldId": parsed.custom_field_ids,
            },
        )

    return await _run("pb_get_custom_field_values", operation)


PRODUCTBOARD_TOOLS = [
    pb_list_products,
    pb_list_feature_statuses,
    pb_list_features,
    pb_get_feature,
    pb_list_releases,
    pb_list_feature_release_assignments,
    pb_list_initiatives,
    pb_list_objectives,
    pb_list_links,
    pb_list_notes,
    pb_list_tags,
    pb_list_custom_fields,
    pb_get_custom_field_values,
]
