"""Product catalog tools — thin wrappers around ProductClient.

Each tool returns the catalog's JSON payload as a single ``json`` text block.
Catalog failures become ToolErrors, so the caller gets an error envelope.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Optional

from toolrelay.core.errors import INTERNAL_ERROR, INVALID_PARAMS, ToolError
from toolrelay.schemas.envelope import ToolResult
from toolrelay.services.api_client import APIError
from toolrelay.services.products.client import ProductClient
from toolrelay.services.tools.registry import registry
from toolrelay.services.tools.tool_context import ToolContext

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

def _make_client(ctx: ToolContext) -> ProductClient:
    return ProductClient(base_url=ctx.settings.dummy_json_api_url)


def _json_result(data: Any) -> ToolResult:
    return ToolResult.text(json.dumps(data, default=str), format="json")


def _api_failure(e: APIError, action: str) -> ToolError:
    if e.status_code == 404:
        return ToolError(INVALID_PARAMS, f"Not found: {action}.", data={"status": 404})
    return ToolError(INTERNAL_ERROR, f"Failed {action}: {e.message}", data={"status": e.status_code})


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------

@registry.tool(
    name="fetch_product",
    description="Fetches a product by its ID from the product catalog.",
    module="products",
)
async def fetch_product(ctx: ToolContext, id: int) -> ToolResult:
    """
    id: The ID of the product to fetch.
    """
    try:
        async with _make_client(ctx) as client:
            product = await client.get_product_by_id(id)
    except APIError as e:
        raise _api_failure(e, f"fetching product {id}") from e
    return _json_result(product)


@registry.tool(
    name="fetch_all_products",
    description="Fetches a page of products from the product catalog.",
    module="products",
)
async def fetch_all_products(
    ctx: ToolContext, skip: Optional[int] = None, limit: Optional[int] = None,
) -> ToolResult:
    """
    skip: Number of products to skip.
    limit: Maximum number of products to return.
    """
    try:
        async with _make_client(ctx) as client:
            data = await client.get_products(skip=skip, limit=limit)
    except APIError as e:
        raise _api_failure(e, "fetching products") from e
    return _json_result(data)


@registry.tool(
    name="fetch_products_by_category",
    description="Fetches a page of products in the given category.",
    module="products",
)
async def fetch_products_by_category(
    ctx: ToolContext, category: str, skip: int = 0, limit: int = 10,
) -> ToolResult:
    """
    category: The category slug, e.g. 'smartphones'.
    skip: Number of products to skip.
    limit: Maximum number of products to return.
    """
    try:
        async with _make_client(ctx) as client:
            data = await client.get_products_by_category(category, skip=skip, limit=limit)
    except APIError as e:
        raise _api_failure(e, f"fetching products in category '{category}'") from e
    return _json_result(data)


@registry.tool(
    name="search_products",
    description="Searches the product catalog by a free-text query.",
    module="products",
)
async def search_products(ctx: ToolContext, query: str) -> ToolResult:
    """
    query: Search term matched against product titles and descriptions.
    """
    try:
        async with _make_client(ctx) as client:
            data = await client.search_products(query)
    except APIError as e:
        raise _api_failure(e, f"searching products for '{query}'") from e
    return _json_result(data)


@registry.tool(
    name="fetch_product_categories",
    description="Lists all product categories in the catalog.",
    module="products",
)
async def fetch_product_categories(ctx: ToolContext) -> ToolResult:
    try:
        async with _make_client(ctx) as client:
            data = await client.get_categories()
    except APIError as e:
        raise _api_failure(e, "fetching product categories") from e
    return _json_result(data)
