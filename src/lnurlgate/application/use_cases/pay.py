"""LNURL-pay (LUD-06) and Lightning Address (LUD-16) flows."""

from __future__ import annotations

import json
import logging
import secrets
from datetime import datetime
from typing import Callable, Optional

from ...crypto.lnurl import payment_id_for_username
from ...domain.entities import InvoiceRecord, PaymentConfig, utcnow
from ...domain.errors import NotFoundError, UpstreamError, ValidationError
from ...domain.node_clients import LightningNodeClientProtocol
from ...domain.repositories import (
    InvoiceRecordRepository,
    PaymentConfigRepository,
    TransitionStatus,
)
from ..dtos import InvoiceResponseDTO, PayRequestDTO, PaymentStatusDTO
from ..validators import (
    parse_amount_msat,
    validate_comment,
    validate_payment_id,
    validate_sendable_bounds,
    validate_username,
)

logger = logging.getLogger(__name__)


class PayService:
    """Reusable pay configurations; every callback issues a fresh invoice."""

    def __init__(
        self,
        config_repository: PaymentConfigRepository,
        invoice_repository: InvoiceRecordRepository,
        lightning: LightningNodeClientProtocol,
        domain: str,
        min_sendable: int = 1000,
        max_sendable: int = 1_000_000_000,
        comment_allowed: int = 255,
        invoice_expiry_seconds: int = 3600,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.config_repository = config_repository
        self.invoice_repository = invoice_repository
        self.lightning = lightning
        self.domain = domain.rstrip("/")
        self.min_sendable = min_sendable
        self.max_sendable = max_sendable
        self.comment_allowed = comment_allowed
        self.invoice_expiry_seconds = invoice_expiry_seconds
        self.clock = clock

    @property
    def domain_host(self) -> str:
        return self.domain.split("://", 1)[-1]

    def pay_url(self, payment_id: str) -> str:
        return f"{self.domain}/pay/{payment_id}"

    async def generate(
        self,
        min_sendable: Optional[int] = None,
        max_sendable: Optional[int] = None,
        comment_allowed: Optional[int] = None,
    ) -> PaymentConfig:
        """Persist a new pay configuration, falling back to the default limits."""
        config_min = self.min_sendable if min_sendable is None else min_sendable
        config_max = self.max_sendable if max_sendable is None else max_sendable
        config_comment = (
            self.comment_allowed if comment_allowed is None else comment_allowed
        )
        validate_sendable_bounds(config_min, config_max, config_comment)

        config = PaymentConfig(
            payment_id=secrets.token_hex(16),
            min_sendable=config_min,
            max_sendable=config_max,
            comment_allowed=config_comment,
            created_at=self.clock(),
        )
        created = await self.config_repository.create(config)
        logger.info(
            "Payment config %s created (%d-%d msat)",
            created.payment_id,
            created.min_sendable,
            created.max_sendable,
        )
        return created

    async def request(self, payment_id: str) -> PayRequestDTO:
        payment_id = validate_payment_id(payment_id)
        config = await self.config_repository.get(payment_id)
        if config is None:
            raise NotFoundError("Payment configuration not found")
        return self._pay_request(config)

    async def callback(
        self, payment_id: str, amount: Optional[str], comment: Optional[str] = None
    ) -> InvoiceResponseDTO:
        payment_id = validate_payment_id(payment_id)
        amount_msat = parse_amount_msat(amount)

        config = await self.config_repository.get(payment_id)
        if config is None:
            raise NotFoundError("Payment configuration not found")
        if not config.accepts_amount(amount_msat):
            raise ValidationError(
                f"Amount must be between {config.min_sendable} and "
                f"{config.max_sendable} millisatoshis"
            )
        amount_sats = amount_msat // 1000
        if amount_sats == 0:
            raise ValidationError("Amount must be at least 1 satoshi")
        comment = validate_comment(comment, config.comment_allowed)

        description = f"LNURL Payment {payment_id}"
        memo = f"{description} - {comment}" if comment else description
        invoice = await self.lightning.create_invoice(
            amount_sats, memo, self.invoice_expiry_seconds
        )

        record = InvoiceRecord(
            id=secrets.token_hex(16),
            payment_id=payment_id,
            amount_sats=amount_sats,
            payment_hash=invoice.payment_hash,
            payment_request=invoice.payment_request,
            description=description,
            comment=comment,
            created_at=self.clock(),
        )
        await self.invoice_repository.create(record)
        logger.info(
            "Invoice %s issued for payment %s: %d sats", record.id, payment_id, amount_sats
        )
        return InvoiceResponseDTO(pr=invoice.payment_request)

    async def resolve_address(self, username: str) -> PayRequestDTO:
        """Resolve ``username@domain`` to a payRequest. Idempotent per username."""
        username = validate_username(username)
        address = f"{username}@{self.domain_host}"
        config = await self.config_repository.create_if_absent(
            PaymentConfig(
                payment_id=payment_id_for_username(username),
                min_sendable=self.min_sendable,
                max_sendable=self.max_sendable,
                comment_allowed=self.comment_allowed,
                lightning_address=address,
                created_at=self.clock(),
            )
        )
        return self._pay_request(config)

    async def payment_status(self, record_id: str) -> PaymentStatusDTO:
        """Report an invoice record, syncing it with the node when still unpaid."""
        record_id = validate_payment_id(record_id)
        record = await self.invoice_repository.get(record_id)
        if record is None:
            raise NotFoundError("Payment not found")
        if record.paid:
            return self._status(record)

        try:
            status = await self.lightning.get_invoice_status(record.payment_hash)
        except UpstreamError as e:
            logger.error("Error checking invoice %s status: %s", record.id, e.reason)
            return self._status(record, error="Could not verify payment status")

        if not status.settled:
            return self._status(record)

        result, updated = await self.invoice_repository.mark_paid(record.id, self.clock())
        if result == TransitionStatus.APPLIED:
            logger.info("Invoice %s marked paid", record.id)
        return self._status(updated or record)

    def _pay_request(self, config: PaymentConfig) -> PayRequestDTO:
        if config.lightning_address:
            entries = [
                ["text/plain", f"Payment to {config.lightning_address}"],
                ["text/identifier", config.lightning_address],
            ]
        else:
            entries = [["text/plain", f"Payment for {config.payment_id}"]]
        return PayRequestDTO(
            callback=f"{self.pay_url(config.payment_id)}/callback",
            min_sendable=config.min_sendable,
            max_sendable=config.max_sendable,
            metadata=json.dumps(entries, separators=(",", ":")),
            comment_allowed=config.comment_allowed,
        )

    @staticmethod
    def _status(record: InvoiceRecord, error: Optional[str] = None) -> PaymentStatusDTO:
        return PaymentStatusDTO(
            payment_id=record.id,
            paid=record.paid,
            amount_sats=record.amount_sats,
            description=record.description,
            comment=record.comment,
            created_at=record.created_at,
            settled_at=record.paid_at,
            error=error,
        )
