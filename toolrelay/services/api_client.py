"""
Shared async httpx base for the third-party API clients.

No retry/backoff: a failed request surfaces as ``APIError`` and the calling
tool turns it into an error envelope.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from toolrelay.config import settings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class APIError(Exception):
    """Custom exception for API errors."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response = response


# ---------------------------------------------------------------------------
# BaseAPIClient (async httpx)
# ---------------------------------------------------------------------------

class BaseAPIClient:
    """Base API client with request handling (async)."""

    def __init__(
        self,
        base_url: str,
        timeout: Optional[float] = None,
        auth: Optional[httpx.Auth | tuple[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")

        # Shared async client (caller must close via ``aclose()``)
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout if timeout is not None else settings.request_timeout,
            headers=self._default_headers(),
            auth=auth,
            transport=transport,
        )

    def _default_headers(self) -> Dict[str, str]:
        return {"Accept": "application/json", "Content-Type": "application/json"}

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    # -- core request methods --

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> Any:
        # httpx would send "None" for unset query params
        if params:
            params = {k: v for k, v in params.items() if v is not None}
        try:
            response = await self._http.request(method, path, params=params, json=json)
        except httpx.TimeoutException as e:
            raise APIError(f"Request timed out: {method} {path}") from e
        except httpx.HTTPError as e:
            raise APIError(f"Request failed: {method} {path}: {e}") from e

        if response.status_code >= 400:
            body_preview = response.text[:200] if response.text else "(empty)"
            logger.warning(f"HTTP {response.status_code} for {method} {path}: {body_preview}")
            raise APIError(
                f"HTTP {response.status_code} for {path}",
                status_code=response.status_code,
                response=body_preview,
            )

        try:
            return response.json()
        except ValueError as e:
            raise APIError(
                f"Invalid JSON from {path}", status_code=response.status_code
            ) from e

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self._request("GET", path, params=params)

    async def _post(self, path: str, body: Any = None) -> Any:
        return await self._request("POST", path, json=body)
