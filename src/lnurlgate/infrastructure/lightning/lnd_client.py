"""LND REST client."""

from __future__ import annotations

import base64
import logging
import os
import re
import ssl
from typing import Any, Dict, Optional, Type, TypeVar, Union
from types import TracebackType

import httpx
from pydantic import BaseModel, ValidationError

from ...domain.errors import UpstreamError
from ...domain.node_clients import (
    ChannelPoint,
    CreatedInvoice,
    DecodedInvoice,
    InvoiceStatus,
    NodeInfo,
    PaymentResult,
)
from ..http.http_client import AsyncHttpClient

logger = logging.getLogger(__name__)

_HEX32_RE = re.compile(r"^[0-9a-fA-F]{64}$")

ModelT = TypeVar("ModelT", bound=BaseModel)


def _build(model: Type[ModelT], call: str, **fields: Any) -> ModelT:
    try:
        return model.model_validate(fields)
    except ValidationError as e:
        raise UpstreamError(f"LND returned a malformed {call} response") from e


def _b64_to_hex(value: Optional[str]) -> Optional[str]:
    """LND REST encodes byte fields (r_hash, payment_hash, preimage) as base64."""
    if not value:
        return None
    if not isinstance(value, str):
        raise UpstreamError(f"LND returned a malformed hash: {value!r}")
    if _HEX32_RE.fullmatch(value):
        return value.lower()
    try:
        return base64.b64decode(value, validate=True).hex()
    except ValueError as e:
        raise UpstreamError(f"LND returned a malformed hash: {value!r}") from e


def _tls_verify(tls_cert_path: Optional[str]) -> Union[bool, ssl.SSLContext]:
    if tls_cert_path and os.path.exists(tls_cert_path):
        return ssl.create_default_context(cafile=tls_cert_path)
    if tls_cert_path:
        logger.warning(
            "LND TLS cert %s not found; certificate verification disabled",
            tls_cert_path,
        )
    return False


class LndRestClient:
    """Asynchronous client for the LND REST API.

    The macaroon is read from disk on first use, so a node that is not yet
    provisioned only fails the calls that need it.
    """

    def __init__(
        self,
        host: str,
        port: int,
        macaroon_path: Optional[str] = None,
        tls_cert_path: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._macaroon_path = macaroon_path
        self._macaroon_hex: Optional[str] = None
        self._http = AsyncHttpClient(
            "LND REST",
            f"https://{host}:{port}",
            timeout=timeout,
            verify=_tls_verify(tls_cert_path),
            transport=transport,
        )

    def _macaroon(self) -> str:
        if self._macaroon_hex is None:
            if not self._macaroon_path:
                raise UpstreamError("LND macaroon path is not configured")
            try:
                with open(self._macaroon_path, "rb") as f:
                    self._macaroon_hex = f.read().hex()
            except OSError as e:
                raise UpstreamError(f"Could not read LND macaroon: {e}") from e
        return self._macaroon_hex

    async def _request(
        self, method: str, path: str, body: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        data = await self._http.request_json(
            method,
            path,
            json=body,
            headers={"Grpc-Metadata-macaroon": self._macaroon()},
        )
        if not isinstance(data, dict):
            raise UpstreamError("Unexpected LND response")
        return data

    async def get_info(self) -> NodeInfo:
        data = await self._request("GET", "/v1/getinfo")
        return _build(
            NodeInfo,
            "getinfo",
            identity_pubkey=data.get("identity_pubkey"),
            alias=data.get("alias") or "",
            uris=data.get("uris") or [],
            block_height=data.get("block_height"),
            synced_to_chain=data.get("synced_to_chain"),
        )

    async def create_invoice(
        self, amount_sats: int, memo: str, expiry_seconds: int
    ) -> CreatedInvoice:
        data = await self._request(
            "POST",
            "/v1/invoices",
            {"value": str(amount_sats), "memo": memo, "expiry": str(expiry_seconds)},
        )
        payment_request = data.get("payment_request")
        payment_hash = data.get("r_hash_str") or _b64_to_hex(data.get("r_hash"))
        if not payment_request or not payment_hash:
            raise UpstreamError("LND did not return an invoice")
        return _build(
            CreatedInvoice,
            "invoice",
            payment_request=payment_request,
            payment_hash=payment_hash,
        )

    async def decode_invoice(self, payment_request: str) -> DecodedInvoice:
        data = await self._request("GET", f"/v1/payreq/{payment_request}")
        try:
            amount_sats = int(data.get("num_satoshis") or 0)
            amount_msat = int(data.get("num_msat") or amount_sats * 1000)
        except (TypeError, ValueError) as e:
            raise UpstreamError("LND returned a malformed invoice amount") from e
        return _build(
            DecodedInvoice,
            "payreq",
            amount_sats=amount_sats,
            amount_msat=amount_msat,
            payment_hash=data.get("payment_hash"),
            description=data.get("description"),
        )

    async def pay_invoice(self, payment_request: str) -> PaymentResult:
        data = await self._request(
            "POST", "/v1/channels/transactions", {"payment_request": payment_request}
        )
        # Routing failures come back as 200 with payment_error set
        if data.get("payment_error"):
            raise UpstreamError(str(data["payment_error"]))
        return _build(
            PaymentResult,
            "payment",
            payment_hash=_b64_to_hex(data.get("payment_hash")),
            payment_preimage=_b64_to_hex(data.get("payment_preimage")),
        )

    async def get_invoice_status(self, payment_hash: str) -> InvoiceStatus:
        data = await self._request("GET", f"/v1/invoice/{payment_hash}")
        state = data.get("state")
        return _build(
            InvoiceStatus,
            "invoice lookup",
            settled=bool(data.get("settled")) or state == "SETTLED",
            state=state,
        )

    async def open_channel(
        self, remote_pubkey: str, capacity_sats: int, private: bool
    ) -> ChannelPoint:
        data = await self._request(
            "POST",
            "/v1/channels",
            {
                "node_pubkey_string": remote_pubkey,
                "local_funding_amount": str(capacity_sats),
                "private": private,
            },
        )
        funding_txid = data.get("funding_txid_str")
        if not funding_txid and data.get("funding_txid_bytes"):
            raw = _b64_to_hex(data["funding_txid_bytes"])
            # txid bytes are little-endian
            funding_txid = bytes.fromhex(raw)[::-1].hex() if raw else None
        return _build(
            ChannelPoint,
            "open channel",
            funding_txid=funding_txid,
            output_index=data.get("output_index"),
        )

    async def new_onchain_address(self) -> str:
        data = await self._request("GET", "/v1/newaddress")
        address = data.get("address")
        if not address:
            raise UpstreamError("LND did not return an address")
        return address

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "LndRestClient":
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        await self.aclose()
