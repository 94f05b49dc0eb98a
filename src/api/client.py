# manages the HTTP connection to the portal API, internal helpers for api package
from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from api.errors import ApiError, NetworkError, UnauthorizedError
from utils.logger import get_logger

_logger = get_logger(__name__)

AUTH_HEADER = "Authorization"
DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}


def _error_message(response: httpx.Response) -> str:
    """Pick ``message`` or ``detail`` out of an error body, else a generic line."""
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        for key in ("message", "detail"):
            if isinstance(data.get(key), str) and data[key]:
                return data[key]
    return f"Request failed with status {response.status_code}"


class PortalClient:
    """
    Thin wrapper over a shared ``httpx.AsyncClient``.

    Attaches the bearer token, turns non-2xx answers into ``ApiError`` /
    ``UnauthorizedError`` and transport failures into ``NetworkError``.
    Cancellation (``asyncio.CancelledError``) is never wrapped.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            headers=DEFAULT_HEADERS,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    async def __aenter__(self) -> "PortalClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _send(
        self,
        method: str,
        path: str,
        token: Optional[str],
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
        accept: Optional[str] = None,
    ) -> httpx.Response:
        headers: Dict[str, str] = {}
        if token:
            headers[AUTH_HEADER] = f"Bearer {token}"
        if accept:
            headers["Accept"] = accept
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        try:
            response = await self._http.request(
                method, path, json=json, params=params or None, headers=headers
            )
        except httpx.TransportError as e:
            _logger.warning(f"{method} {path} failed: {e!r}")
            raise NetworkError(f"Unable to reach the portal: {e}") from e

        _logger.debug(f"{method} {path} -> {response.status_code}")
        if response.is_success:
            return response

        message = _error_message(response)
        if response.status_code == 401:
            raise UnauthorizedError(message, response.status_code)
        raise ApiError(message, response.status_code)

    async def request(
        self,
        method: str,
        path: str,
        *,
        token: Optional[str] = None,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Send a request and return the decoded JSON body, or None on 204."""
        response = await self._send(method, path, token, json=json, params=params)
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            _logger.warning(f"{method} {path} returned a body that is not JSON: {e}")
            raise ApiError(
                "Unexpected response from the portal", response.status_code
            ) from e

    async def request_bytes(
        self,
        method: str,
        path: str,
        *,
        token: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None,
        accept: str = "*/*",
    ) -> bytes:
        """Send a request and return the raw body (file downloads)."""
        response = await self._send(method, path, token, params=params, accept=accept)
        return response.content
