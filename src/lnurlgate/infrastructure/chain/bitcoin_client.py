"""bitcoind JSON-RPC client."""

from __future__ import annotations

from typing import Any, List, Optional, Type
from types import TracebackType

import httpx

from ...domain.errors import UpstreamError
from ..http.http_client import AsyncHttpClient


class BitcoinRpcClient:
    """Minimal JSON-RPC 1.0 client for bitcoind, authenticated with HTTP basic auth."""

    def __init__(
        self,
        host: str,
        port: int,
        user: str,
        password: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._http = AsyncHttpClient(
            "Bitcoin RPC",
            f"http://{host}:{port}",
            timeout=timeout,
            auth=httpx.BasicAuth(user, password),
            transport=transport,
        )

    async def call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        payload = {
            "jsonrpc": "1.0",
            "id": "lnurlgate",
            "method": method,
            "params": params or [],
        }
        # bitcoind answers RPC errors with HTTP 500 and a JSON-RPC body
        data = await self._http.request_json(
            "POST", "/", json=payload, accept_error_body=True
        )
        if not isinstance(data, dict):
            raise UpstreamError("Unexpected Bitcoin RPC response")
        error = data.get("error")
        if error:
            message = error.get("message") if isinstance(error, dict) else error
            raise UpstreamError(f"Bitcoin RPC error: {message}")
        if "result" not in data:
            raise UpstreamError(f"Bitcoin RPC {method} returned no result")
        return data["result"]

    async def get_block_count(self) -> int:
        result = await self.call("getblockcount")
        try:
            return int(result)
        except (TypeError, ValueError) as e:
            raise UpstreamError("Bitcoin RPC returned a non-integer block count") from e

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "BitcoinRpcClient":
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        await self.aclose()
