"""Repository interfaces for the persistent store."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from enum import IntEnum
from typing import Iterable, List, Optional

from .entities import (
    AuthSession,
    Challenge,
    ChallengeKind,
    ChallengeState,
    ChannelRequest,
    ChannelState,
    InvoiceRecord,
    PaymentConfig,
)


class TransitionStatus(IntEnum):
    """Outcome codes of the atomic store transitions (mirrors the Lua return codes)."""

    UNCHANGED = 0
    APPLIED = 1
    MISSING = 2
    EXPIRED = 3
    WRONG_KIND = 4


class ChallengeRepository(ABC):
    """Abstract repository for single-use challenges."""

    @abstractmethod
    async def create(self, challenge: Challenge) -> Challenge:
        """Persist a freshly minted challenge."""
        pass

    @abstractmethod
    async def get(self, k1: str) -> Optional[Challenge]:
        """Get a challenge by k1, whatever its state."""
        pass

    @abstractmethod
    async def claim(
        self,
        k1: str,
        kind: ChallengeKind,
        target: ChallengeState,
        now: datetime,
    ) -> tuple[TransitionStatus, Optional[Challenge]]:
        """
        Atomically move an unused, unexpired challenge of ``kind`` to ``target``.

        Returns:
          (APPLIED, challenge)   -> transitioned; record as it was before
          (UNCHANGED, challenge) -> already used or cancelled
          (EXPIRED, challenge)   -> past its expiry, left untouched
          (WRONG_KIND, None)     -> k1 belongs to another flow
          (MISSING, None)        -> no such k1
        """
        pass

    @abstractmethod
    async def claim_with_session(
        self, k1: str, session: AuthSession, now: datetime
    ) -> tuple[TransitionStatus, Optional[Challenge]]:
        """Claim an auth challenge and persist ``session`` in the same atomic step."""
        pass

    @abstractmethod
    async def set_amount(self, k1: str, amount_sats: int) -> Optional[Challenge]:
        """Record the final withdrawn amount on a challenge."""
        pass

    @abstractmethod
    async def get_by_kind(
        self, kind: ChallengeKind, skip: int = 0, limit: int = 100
    ) -> List[Challenge]:
        """List challenges of one flow, newest first."""
        pass

    @abstractmethod
    async def delete_expired(self, now: datetime) -> int:
        """Delete every challenge whose expiry is at or before ``now``."""
        pass


class PaymentConfigRepository(ABC):
    """Abstract repository for pay-flow configurations."""

    @abstractmethod
    async def create(self, config: PaymentConfig) -> PaymentConfig:
        pass

    @abstractmethod
    async def create_if_absent(self, config: PaymentConfig) -> PaymentConfig:
        """Store ``config`` unless its id exists; return whichever is stored."""
        pass

    @abstractmethod
    async def get(self, payment_id: str) -> Optional[PaymentConfig]:
        pass


class InvoiceRecordRepository(ABC):
    """Abstract repository for issued invoices."""

    @abstractmethod
    async def create(self, record: InvoiceRecord) -> InvoiceRecord:
        pass

    @abstractmethod
    async def get(self, record_id: str) -> Optional[InvoiceRecord]:
        pass

    @abstractmethod
    async def get_all(self, skip: int = 0, limit: int = 100) -> List[InvoiceRecord]:
        pass

    @abstractmethod
    async def get_unpaid(self) -> List[InvoiceRecord]:
        """All records whose settlement flag is still unpaid, oldest first."""
        pass

    @abstractmethod
    async def mark_paid(
        self, record_id: str, paid_at: datetime
    ) -> tuple[TransitionStatus, Optional[InvoiceRecord]]:
        """
        Atomically flip a record from unpaid to paid.

        Returns:
          (APPLIED, record)   -> marked paid now
          (UNCHANGED, record) -> was already paid
          (MISSING, None)     -> no such record
        """
        pass


class ChannelRequestRepository(ABC):
    """Abstract repository for channel-open requests."""

    @abstractmethod
    async def create(self, request: ChannelRequest) -> ChannelRequest:
        pass

    @abstractmethod
    async def get_by_k1(self, k1: str) -> Optional[ChannelRequest]:
        pass

    @abstractmethod
    async def get_all(self, skip: int = 0, limit: int = 100) -> List[ChannelRequest]:
        pass

    @abstractmethod
    async def transition(
        self,
        k1: str,
        from_states: Iterable[ChannelState],
        to_state: ChannelState,
        now: datetime,
        *,
        remote_id: Optional[str] = None,
        private: Optional[bool] = None,
    ) -> tuple[TransitionStatus, Optional[ChannelRequest]]:
        """
        Atomically move a request to ``to_state`` if its state is in ``from_states``.

        Returns (APPLIED, updated), (UNCHANGED, current) or (MISSING, None).
        """
        pass


class AuthSessionRepository(ABC):
    """Abstract repository for auth sessions."""

    @abstractmethod
    async def get(self, session_id: str) -> Optional[AuthSession]:
        pass

    @abstractmethod
    async def delete(self, session_id: str) -> bool:
        pass

    @abstractmethod
    async def delete_expired(self, now: datetime) -> int:
        pass
