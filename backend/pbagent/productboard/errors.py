"""Error taxonomy for the Productboard integration.

Every error carries a short ``kind`` and a ``hint`` so the agent can tell the
user what went wrong and what to try next, without a stack trace.
"""

from __future__ import annotations


class ProductboardError(Exception):
    """Base class for failures raised by the Productboard layer."""

    kind = "ProductboardError"
    hint = "Try again, or narrow the request."


class ConfigurationError(ProductboardError):
    kind = "ConfigurationError"
    hint = "Set PRODUCTBOARD_TOKEN in the environment and restart the service."


class UpstreamError(ProductboardError):
    """Productboard answered with a non-success HTTP status."""

    kind = "UpstreamError"

    def __init__(self, status: int, body: str = ""):
        self.status = status
        self.body = body
        super().__init__(f"Productboard {status}: {body}" if body else f"Productboard {status}")

    @property
    def hint(self) -> str:  # type: ignore[override]
        if self.status in (401, 403):
            return "The Productboard token was rejected; check that it is valid and has access."
        if self.status == 404:
            return "The requested entity does not exist; check the id."
        if self.status == 429:
            return "Productboard is rate limiting requests; wait a moment and retry."
        if self.status >= 500:
            return "Productboard is having trouble; retry shortly."
        return "Check the request parameters."


class MalformedResponseError(ProductboardError):
    kind = "MalformedResponseError"
    hint = "Productboard returned an unexpected payload; retry or resume from the last cursor."


class ScopeNotFoundError(ProductboardError):
    """The default product could not be found in the workspace."""

    kind = "ScopeNotFoundError"

    def __init__(self, product_name: str):
        self.product_name = product_name
        super().__init__(f"Default product '{product_name}' not found in Productboard")

    @property
    def hint(self) -> str:  # type: ignore[override]
        return (
            f"Pass product_id explicitly (see pb_list_products), "
            f"or create a product named '{self.product_name}'."
        )


class ValidationError(ProductboardError):
    kind = "ValidationError"
    hint = "Fix the tool arguments and call the tool again."
