"""Product catalog client (DummyJSON products API)."""
from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from toolrelay.config import settings
from toolrelay.services.api_client import BaseAPIClient

logger = logging.getLogger(__name__)


class ProductClient(BaseAPIClient):
    """Async client for the product catalog endpoints."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(
            base_url or settings.dummy_json_api_url,
            timeout=timeout,
            transport=transport,
        )

    async def get_products(self, skip: Optional[int] = None, limit: Optional[int] = None) -> dict:
        """Fetch all products with optional skip/limit paging."""
        return await self._get("/products", params={"skip": skip, "limit": limit})

    async def get_product_by_id(self, product_id: int) -> dict:
        return await self._get(f"/products/{product_id}")

    async def search_products(self, query: Optional[str]) -> dict:
        return await self._get("/products/search", params={"q": query})

    async def get_categories(self) -> list[Any]:
        return await self._get("/products/categories")

    async def get_products_by_category(self, category: str, skip: int = 0, limit: int = 10) -> dict:
        """Get products in a category, paged."""
        return await self._get(
            f"/products/category/{category}", params={"skip": skip, "limit": limit}
        )
