"""Repository implementations over a KeyValueStore.

Keys:
  - challenge:{k1}                 -> Challenge JSON
  - challenges:all                 -> zset of k1 by created_at
  - challenges:by_kind:{kind}      -> zset of k1 by created_at
  - challenges:expiry              -> zset of k1 by expires_at (auth only)
  - payment_config:{id}            -> PaymentConfig JSON
  - payment_configs:all            -> zset of id by created_at
  - invoice_record:{id}            -> InvoiceRecord JSON
  - invoice_records:all            -> zset of id by created_at
  - invoice_records:unpaid         -> zset of id by created_at, pruned when paid
  - channel_request:{k1}           -> ChannelRequest JSON
  - channel_requests:all           -> zset of k1 by created_at
  - auth_session:{id}              -> AuthSession JSON
  - auth_sessions:expiry           -> zset of id by expires_at
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, List, Optional, Type, TypeVar

from pydantic import BaseModel

from ..domain.entities import (
    AuthSession,
    Challenge,
    ChallengeKind,
    ChallengeState,
    ChannelRequest,
    ChannelState,
    InvoiceRecord,
    PaymentConfig,
)
from ..domain.repositories import (
    AuthSessionRepository,
    ChallengeRepository,
    ChannelRequestRepository,
    InvoiceRecordRepository,
    PaymentConfigRepository,
    TransitionStatus,
)
from .scripts import LNURL_SCRIPTS
from .storage import KeyValueStore

ModelT = TypeVar("ModelT", bound=BaseModel)

CHALLENGE_EXPIRY_KEY = "challenges:expiry"
SESSION_EXPIRY_KEY = "auth_sessions:expiry"
UNPAID_INVOICES_KEY = "invoice_records:unpaid"


async def register_lnurl_scripts(store: KeyValueStore) -> None:
    """Load every Lua script into the store. Call once at startup."""
    for name, script in LNURL_SCRIPTS.items():
        await store.register_script(name, script)


def _parse_script_result(
    result: Any, model: Type[ModelT]
) -> tuple[TransitionStatus, Optional[ModelT]]:
    # result is a list-like: [code, json_or_empty]
    code = int(result[0]) if result and result[0] not in (None, "") else 2
    payload = result[1] if len(result) > 1 and result[1] not in (None, "") else None
    status = TransitionStatus(code)
    return status, model.model_validate_json(payload) if payload else None


async def _load_many(
    store: KeyValueStore, prefix: str, ids: List[str], model: Type[ModelT]
) -> List[ModelT]:
    raws = await store.mget([f"{prefix}{item_id}" for item_id in ids])
    return [model.model_validate_json(raw) for raw in raws if raw]


class ChallengeRepositoryImpl(ChallengeRepository):
    """Challenge repository using a KeyValueStore and the claim scripts."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    async def create(self, challenge: Challenge) -> Challenge:
        await self.store.set(f"challenge:{challenge.k1}", challenge.model_dump_json())

        created_ts = challenge.created_at.timestamp()
        await self.store.zadd("challenges:all", {challenge.k1: created_ts})
        await self.store.zadd(
            f"challenges:by_kind:{challenge.kind.value}", {challenge.k1: created_ts}
        )
        if challenge.expires_at is not None:
            await self.store.zadd(
                CHALLENGE_EXPIRY_KEY, {challenge.k1: challenge.expires_at.timestamp()}
            )
        return challenge

    async def get(self, k1: str) -> Optional[Challenge]:
        data = await self.store.get(f"challenge:{k1}")
        if not data:
            return None
        return Challenge.model_validate_json(data)

    async def claim(
        self,
        k1: str,
        kind: ChallengeKind,
        target: ChallengeState,
        now: datetime,
    ) -> tuple[TransitionStatus, Optional[Challenge]]:
        result = await self.store.run_script(
            "claim_challenge",
            keys=[f"challenge:{k1}", CHALLENGE_EXPIRY_KEY],
            args=[k1, kind.value, target.value, now.isoformat(), str(now.timestamp())],
        )
        return _parse_script_result(result, Challenge)

    async def claim_with_session(
        self, k1: str, session: AuthSession, now: datetime
    ) -> tuple[TransitionStatus, Optional[Challenge]]:
        result = await self.store.run_script(
            "claim_auth_and_create_session",
            keys=[
                f"challenge:{k1}",
                CHALLENGE_EXPIRY_KEY,
                f"auth_session:{session.id}",
                SESSION_EXPIRY_KEY,
            ],
            args=[
                k1,
                now.isoformat(),
                str(now.timestamp()),
                session.model_dump_json(),
                session.id,
                str(session.expires_at.timestamp()),
            ],
        )
        return _parse_script_result(result, Challenge)

    async def set_amount(self, k1: str, amount_sats: int) -> Optional[Challenge]:
        result = await self.store.run_script(
            "set_withdraw_amount",
            keys=[f"challenge:{k1}"],
            args=[str(amount_sats)],
        )
        _, challenge = _parse_script_result(result, Challenge)
        return challenge

    async def get_by_kind(
        self, kind: ChallengeKind, skip: int = 0, limit: int = 100
    ) -> List[Challenge]:
        ids = await self.store.zrevrange(
            f"challenges:by_kind:{kind.value}", skip, skip + limit - 1
        )
        return await _load_many(self.store, "challenge:", ids, Challenge)

    async def delete_expired(self, now: datetime) -> int:
        # Only auth challenges carry an expiry score
        result = await self.store.run_script(
            "purge_expired",
            keys=[
                CHALLENGE_EXPIRY_KEY,
                "challenges:all",
                f"challenges:by_kind:{ChallengeKind.AUTH.value}",
            ],
            args=[str(now.timestamp()), "challenge:"],
        )
        return int(result[1])


class PaymentConfigRepositoryImpl(PaymentConfigRepository):
    """PaymentConfig repository using a KeyValueStore."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    async def create(self, config: PaymentConfig) -> PaymentConfig:
        await self.store.set(
            f"payment_config:{config.payment_id}", config.model_dump_json()
        )
        await self.store.zadd(
            "payment_configs:all", {config.payment_id: config.created_at.timestamp()}
        )
        return config

    async def create_if_absent(self, config: PaymentConfig) -> PaymentConfig:
        key = f"payment_config:{config.payment_id}"
        written = await self.store.set_if_absent(key, config.model_dump_json())
        if not written:
            existing = await self.store.get(key)
            if existing:
                return PaymentConfig.model_validate_json(existing)
            # Lost a race with a delete; fall back to a plain write
            await self.store.set(key, config.model_dump_json())
        await self.store.zadd(
            "payment_configs:all", {config.payment_id: config.created_at.timestamp()}
        )
        return config

    async def get(self, payment_id: str) -> Optional[PaymentConfig]:
        data = await self.store.get(f"payment_config:{payment_id}")
        if not data:
            return None
        return PaymentConfig.model_validate_json(data)


class InvoiceRecordRepositoryImpl(InvoiceRecordRepository):
    """InvoiceRecord repository using a KeyValueStore."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    async def create(self, record: InvoiceRecord) -> InvoiceRecord:
        await self.store.set(f"invoice_record:{record.id}", record.model_dump_json())

        created_ts = record.created_at.timestamp()
        await self.store.zadd("invoice_records:all", {record.id: created_ts})
        if not record.paid:
            await self.store.zadd(UNPAID_INVOICES_KEY, {record.id: created_ts})
        return record

    async def get(self, record_id: str) -> Optional[InvoiceRecord]:
        data = await self.store.get(f"invoice_record:{record_id}")
        if not data:
            return None
        return InvoiceRecord.model_validate_json(data)

    async def get_all(self, skip: int = 0, limit: int = 100) -> List[InvoiceRecord]:
        ids = await self.store.zrevrange("invoice_records:all", skip, skip + limit - 1)
        return await _load_many(self.store, "invoice_record:", ids, InvoiceRecord)

    async def get_unpaid(self) -> List[InvoiceRecord]:
        ids = await self.store.zrange(UNPAID_INVOICES_KEY, 0, -1)
        return await _load_many(self.store, "invoice_record:", ids, InvoiceRecord)

    async def mark_paid(
        self, record_id: str, paid_at: datetime
    ) -> tuple[TransitionStatus, Optional[InvoiceRecord]]:
        result = await self.store.run_script(
            "mark_invoice_paid",
            keys=[f"invoice_record:{record_id}", UNPAID_INVOICES_KEY],
            args=[record_id, paid_at.isoformat()],
        )
        return _parse_script_result(result, InvoiceRecord)


class ChannelRequestRepositoryImpl(ChannelRequestRepository):
    """ChannelRequest repository keyed by the challenge k1."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    async def create(self, request: ChannelRequest) -> ChannelRequest:
        await self.store.set(f"channel_request:{request.k1}", request.model_dump_json())
        await self.store.zadd(
            "channel_requests:all", {request.k1: request.created_at.timestamp()}
        )
        return request

    async def get_by_k1(self, k1: str) -> Optional[ChannelRequest]:
        data = await self.store.get(f"channel_request:{k1}")
        if not data:
            return None
        return ChannelRequest.model_validate_json(data)

    async def get_all(self, skip: int = 0, limit: int = 100) -> List[ChannelRequest]:
        ids = await self.store.zrevrange("channel_requests:all", skip, skip + limit - 1)
        return await _load_many(self.store, "channel_request:", ids, ChannelRequest)

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
        private_arg = "" if private is None else ("1" if private else "0")
        result = await self.store.run_script(
            "transition_channel_request",
            keys=[f"channel_request:{k1}"],
            args=[
                ",".join(state.value for state in from_states),
                to_state.value,
                now.isoformat(),
                remote_id or "",
                private_arg,
            ],
        )
        return _parse_script_result(result, ChannelRequest)


class AuthSessionRepositoryImpl(AuthSessionRepository):
    """AuthSession repository. Sessions are written by the claim script."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    async def get(self, session_id: str) -> Optional[AuthSession]:
        data = await self.store.get(f"auth_session:{session_id}")
        if not data:
            return None
        return AuthSession.model_validate_json(data)

    async def delete(self, session_id: str) -> bool:
        deleted = await self.store.delete(f"auth_session:{session_id}")
        await self.store.zrem(SESSION_EXPIRY_KEY, session_id)
        return deleted > 0

    async def delete_expired(self, now: datetime) -> int:
        result = await self.store.run_script(
            "purge_expired",
            keys=[SESSION_EXPIRY_KEY],
            args=[str(now.timestamp()), "auth_session:"],
        )
        return int(result[1])
