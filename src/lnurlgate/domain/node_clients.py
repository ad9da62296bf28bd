"""Protocol interfaces for the external Lightning and chain node clients.

Services depend on these protocols rather than on the concrete LND/bitcoind
clients, so tests can hand in deterministic doubles. Every method either
returns a result or raises ``UpstreamError``; implementations bound each call
with a timeout.
"""

from __future__ import annotations

from typing import List, Optional, Protocol

from pydantic import BaseModel, Field


class NodeInfo(BaseModel):
    identity_pubkey: str
    alias: str = ""
    uris: List[str] = Field(default_factory=list)
    block_height: Optional[int] = None
    synced_to_chain: Optional[bool] = None


class CreatedInvoice(BaseModel):
    payment_request: str
    payment_hash: str


class DecodedInvoice(BaseModel):
    amount_sats: int
    amount_msat: int
    payment_hash: Optional[str] = None
    description: Optional[str] = None


class PaymentResult(BaseModel):
    payment_hash: Optional[str] = None
    payment_preimage: Optional[str] = None


class InvoiceStatus(BaseModel):
    settled: bool
    state: Optional[str] = None


class ChannelPoint(BaseModel):
    funding_txid: Optional[str] = None
    output_index: Optional[int] = None


class LightningNodeClientProtocol(Protocol):
    """Operations the core needs from the Lightning node."""

    async def get_info(self) -> NodeInfo:
        """Node identity, listen URIs and chain sync state."""
        ...

    async def create_invoice(
        self, amount_sats: int, memo: str, expiry_seconds: int
    ) -> CreatedInvoice:
        """Issue an invoice; ``payment_hash`` is returned as hex."""
        ...

    async def decode_invoice(self, payment_request: str) -> DecodedInvoice:
        ...

    async def pay_invoice(self, payment_request: str) -> PaymentResult:
        """Pay an invoice. A routing failure is raised, not returned."""
        ...

    async def get_invoice_status(self, payment_hash: str) -> InvoiceStatus:
        ...

    async def open_channel(
        self, remote_pubkey: str, capacity_sats: int, private: bool
    ) -> ChannelPoint:
        ...

    async def new_onchain_address(self) -> str:
        ...


class ChainNodeClientProtocol(Protocol):
    """Operations the core needs from the chain node (health reporting only)."""

    async def get_block_count(self) -> int:
        ...
