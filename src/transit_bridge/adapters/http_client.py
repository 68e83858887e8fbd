"""HTTP client shared by all backend adapters."""

import asyncio
import logging
from typing import TYPE_CHECKING, Any

import aiohttp

from transit_bridge.adapters.api_request_logger import RequestLogger
from transit_bridge.domain.errors import HttpStatusError, ServiceDownError

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from aiohttp import ClientResponse, ClientSession

DEFAULT_USER_AGENT = "transit-bridge/0.1"
DEFAULT_TIMEOUT_SECONDS = 15.0
DEFAULT_CONNECT_TIMEOUT_SECONDS = 5.0
DEFAULT_MAX_RETRIES = 2
ERROR_BODY_PEEK = 500

Params = dict[str, Any] | list[tuple[str, Any]]


class TransitHttpClient:
    """Performs one request/response cycle per call.

    Empty bodies and timeouts are retried up to ``max_retries`` more times
    with nothing but a log notice in between. Connection errors and 5xx
    answers raise ServiceDownError at once, 4xx answers raise
    HttpStatusError with the body so the adapter can read the backend's
    error payload.
    """

    def __init__(
        self,
        session: "ClientSession | None" = None,
        *,
        headers: dict[str, str] | None = None,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        connect_timeout_seconds: float = DEFAULT_CONNECT_TIMEOUT_SECONDS,
        max_retries: int = DEFAULT_MAX_RETRIES,
        request_logger: RequestLogger | None = None,
    ) -> None:
        """Initialize with an aiohttp session and fixed transport settings."""
        self._session = session
        self._headers = {"User-Agent": user_agent, "Accept-Encoding": "gzip", **(headers or {})}
        self._timeout = aiohttp.ClientTimeout(
            total=timeout_seconds, connect=connect_timeout_seconds
        )
        self._max_retries = max_retries
        self._request_logger = request_logger or RequestLogger()

    @property
    def headers(self) -> dict[str, str]:
        return dict(self._headers)

    async def get_text(
        self, url: str, params: Params | None = None, headers: dict[str, str] | None = None
    ) -> str:
        """GET a URL and return the response body."""
        return await self._request("GET", url, params=params, headers=headers)

    async def post_text(
        self,
        url: str,
        body: str,
        params: Params | None = None,
        content_type: str = "application/json",
    ) -> str:
        """POST a body and return the response body."""
        return await self._request(
            "POST", url, params=params, data=body, headers={"Content-Type": content_type}
        )

    async def _request(
        self,
        method: str,
        url: str,
        params: Params | None = None,
        data: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> str:
        if self._session is None:
            raise RuntimeError("TransitHttpClient requires an aiohttp ClientSession")

        request_headers = {**self._headers, **(headers or {})}
        self._request_logger.log(method, url, params, request_headers, data)

        attempts = self._max_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                async with self._session.request(
                    method,
                    url,
                    params=params,
                    data=data,
                    headers=request_headers,
                    timeout=self._timeout,
                ) as response:
                    body = await self._read_body(response, url)
            except (asyncio.TimeoutError, aiohttp.ServerTimeoutError) as e:
                if attempt < attempts:
                    logger.info(f"Timeout on {method} {url}, retrying ({attempt}/{attempts - 1})")
                    continue
                raise ServiceDownError(f"Timeout on {method} {url}") from e
            except aiohttp.ClientError as e:
                raise ServiceDownError(f"Error on {method} {url}: {e}") from e

            if body.strip():
                return body
            if attempt < attempts:
                logger.info(f"Empty body from {method} {url}, retrying ({attempt}/{attempts - 1})")
                continue
            raise ServiceDownError(f"Empty body from {method} {url}")

        raise ServiceDownError(f"No response from {method} {url}")

    async def _read_body(self, response: "ClientResponse", url: str) -> str:
        body = await response.text()
        if response.status < 400:
            return body

        self._log_error_response(response, url, body)
        if response.status >= 500:
            raise ServiceDownError(f"HTTP {response.status} for {url}")
        raise HttpStatusError(response.status, url, body)

    def _log_error_response(self, response: "ClientResponse", url: str, body: str) -> None:
        """Log error response details."""
        error_body = body[:ERROR_BODY_PEEK] if body else "(empty response body)"
        content_type = response.headers.get("Content-Type", "unknown")
        server = response.headers.get("Server", "unknown")
        logger.error(
            f"Backend returned status {response.status} for {url}: "
            f"{error_body} (Content-Type: {content_type}, Server: {server})"
        )
