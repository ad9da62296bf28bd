from __future__ import annotations

import ssl
from typing import Any, Dict, Optional, Union

import httpx

from ...domain.errors import UpstreamError


def _json_or_none(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _error_detail(response: httpx.Response, data: Any) -> str:
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict):
            error = error.get("message")
        detail = data.get("message") or error
        if detail:
            return str(detail)
    return response.reason_phrase or "no details"


class AsyncHttpClient:
    """JSON-over-HTTP client shared by the node backends.

    - Normalizes base URLs and paths.
    - Applies a default timeout.
    - Turns timeouts, connection failures, error statuses and unparseable
      bodies into ``UpstreamError`` prefixed with ``service``.
    """

    def __init__(
        self,
        service: str,
        base_url: str,
        timeout: float = 10.0,
        *,
        verify: Union[bool, str, ssl.SSLContext] = True,
        auth: Optional[httpx.Auth] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.service = service
        self._base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            timeout=timeout,
            verify=verify,
            auth=auth,
            transport=transport,
        )

    def _url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self._base_url}/{path.lstrip('/')}"

    async def request_json(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        accept_error_body: bool = False,
    ) -> Any:
        """Send a request and return the decoded JSON body.

        With ``accept_error_body`` an error status that still carries a JSON
        object is returned to the caller instead of raising, for protocols
        that report their own errors in the body.
        """
        try:
            resp = await self._client.request(
                method, self._url(path), json=json, headers=headers
            )
        except httpx.TimeoutException as e:
            raise UpstreamError(f"{self.service} request timed out: {path}") from e
        except httpx.RequestError as e:
            raise UpstreamError(f"{self.service} request failed: {e}") from e

        data = _json_or_none(resp)
        if resp.is_error:
            if accept_error_body and isinstance(data, dict):
                return data
            raise UpstreamError(
                f"{self.service} HTTP {resp.status_code}: {_error_detail(resp, data)}"
            )
        if data is None:
            raise UpstreamError(f"Failed to parse {self.service} response")
        return data

    async def aclose(self) -> None:
        await self._client.aclose()
