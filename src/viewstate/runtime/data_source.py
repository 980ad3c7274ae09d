"""
Data sources: where a view's page of items comes from.

``DataSource`` is the one contract the orchestrator depends on. The HTTP
adapter talks to the list backend, whose responses look like::

    {
        "success": true,
        "message": "OK",
        "statusCode": 200,
        "data": [...],
        "metadata": {"pagination": {"total": 95, "currentPage": 2, ...}}
    }

Failures become ``DataSourceError``. Nothing here retries or refreshes
credentials; that belongs to the caller's transport.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from viewstate.core.errors import DataSourceError, ErrorContext
from viewstate.runtime.query_builder import clean_query_params
from viewstate.specs.query import Envelope, FetchResult, PaginationEnvelope

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class DataSource(Protocol):
    async def fetch(self, endpoint: str, params: Mapping[str, Any]) -> FetchResult: ...


FetchFunction = Callable[[str, Mapping[str, Any]], Awaitable[FetchResult]]


class CallableDataSource:
    """Adapts a plain ``async def fetch(endpoint, params)`` function."""

    def __init__(self, fetch: FetchFunction) -> None:
        self._fetch = fetch

    async def fetch(self, endpoint: str, params: Mapping[str, Any]) -> FetchResult:
        return await self._fetch(endpoint, params)


def _query_value(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    return value


def parse_response(body: Any) -> FetchResult:
    """Map a backend response body to a ``FetchResult``.

    Raises:
        DataSourceError: If the body is not a successful list response.
    """
    if not isinstance(body, dict):
        raise DataSourceError("Response body is not a JSON object", payload=body)

    if not body.get("success", True):
        raise DataSourceError(
            body.get("message") or "Request failed",
            status_code=body.get("statusCode"),
            payload=body,
        )

    data = body.get("data")
    if data is None:
        items: list[Any] = []
    elif isinstance(data, list):
        items = data
    else:
        raise DataSourceError("Response data is not a list", payload=body)

    metadata = body.get("metadata") or {}
    if not isinstance(metadata, dict):
        metadata = {}
    raw_pagination = metadata.get("pagination")
    pagination = None
    if raw_pagination is not None:
        try:
            pagination = PaginationEnvelope.model_validate(raw_pagination)
        except ValidationError as exc:
            raise DataSourceError(
                f"Malformed pagination metadata: {exc.error_count()} errors",
                payload=body,
            ) from exc

    extra = {k: v for k, v in metadata.items() if k != "pagination"}
    return FetchResult(items=items, envelope=Envelope(pagination=pagination, **extra))


class HttpDataSource:
    """
    Fetches list pages over HTTP with httpx.

    Args:
        base_url: Prefix joined with each endpoint
        headers: Extra request headers (e.g. an Authorization header)
        timeout: Request timeout in seconds
        client: Optional pre-built ``httpx.AsyncClient``; the source does not
            close a client it did not create
    """

    def __init__(
        self,
        base_url: str = "",
        *,
        headers: Mapping[str, str] | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.headers = dict(headers or {})
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    def _client_instance(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    def _url(self, endpoint: str) -> str:
        if endpoint.startswith(("http://", "https://")) or not self.base_url:
            return endpoint
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    async def fetch(self, endpoint: str, params: Mapping[str, Any]) -> FetchResult:
        query = {k: _query_value(v) for k, v in clean_query_params(params).items()}
        url = self._url(endpoint)
        context = ErrorContext(endpoint=endpoint, params=dict(query))

        try:
            resp = await self._client_instance().get(url, params=query, headers=self.headers)
        except httpx.HTTPError as exc:
            logger.warning("GET %s failed: %s", url, exc)
            raise DataSourceError(f"Request failed: {exc}", context=context) from exc

        try:
            body = resp.json()
        except ValueError:
            body = {"raw": resp.text[:1000]}

        if not 200 <= resp.status_code < 300:
            message = body.get("message") if isinstance(body, dict) else None
            logger.warning("GET %s returned %d: %s", url, resp.status_code, resp.text[:200])
            raise DataSourceError(
                message or f"HTTP {resp.status_code}",
                status_code=resp.status_code,
                payload=body,
                context=context,
            )

        try:
            return parse_response(body)
        except DataSourceError as exc:
            if exc.status_code is None:
                exc.status_code = resp.status_code
            exc.context = exc.context or context
            raise

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> HttpDataSource:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
