from __future__ import annotations

from typing import Any

import httpx
import structlog

logger = structlog.get_logger()


class HTTPClientError(Exception):
    """Base class for HTTP failures raised by the clients."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TransientHTTPError(HTTPClientError):
    """Network failures and server-side statuses that may succeed later."""


class PermanentHTTPError(HTTPClientError):
    """Client-side statuses (4xx) that will not succeed when repeated."""


def is_transient_status(status_code: int) -> bool:
    """Determine if HTTP status code signals a transient server-side problem."""
    return status_code in (408, 429, 500, 502, 503, 504)


class BaseHTTPClient:
    """
    Base HTTP client.

    Requests are never retried here; failures are classified as transient or
    permanent and the caller decides whether to repeat them.
    """

    def __init__(self, base_url: str, *, timeout: float = 30.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    def _headers(self) -> dict[str, str]:
        """Override to provide custom headers."""
        return {"Accept": "application/json"}

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Execute HTTP request and decode the JSON body."""
        url = f"{self._base_url}{path}"
        req_headers = self._headers()
        if headers:
            req_headers.update(headers)

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.request(method, url, params=params, headers=req_headers)
        except httpx.TransportError as exc:
            logger.warning("http_network_error", method=method, url=url, error=str(exc))
            raise TransientHTTPError(str(exc)) from exc

        if is_transient_status(response.status_code):
            logger.warning(
                "http_transient_error",
                status=response.status_code,
                method=method,
                url=url,
            )
            raise TransientHTTPError(
                f"HTTP {response.status_code}: {response.text}", response.status_code
            )

        if response.is_error:
            # Missing files are an expected answer, not an incident
            log = logger.info if response.status_code == 404 else logger.error
            log("http_permanent_error", status=response.status_code, method=method, url=url)
            raise PermanentHTTPError(
                f"HTTP {response.status_code}: {response.text}", response.status_code
            )

        try:
            return response.json() if response.content else {}
        except ValueError as exc:
            raise PermanentHTTPError(
                f"invalid JSON from {url}: {exc}", response.status_code
            ) from exc

    async def get(
        self,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Execute GET request."""
        return await self._request("GET", path, params=params, headers=headers)
