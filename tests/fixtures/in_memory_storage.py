"""In-memory implementation of KeyValueStore for testing."""

from __future__ import annotations

import json
from typing import Any, List, Mapping, Optional

from lnurlgate.infrastructure.storage import KeyValueStore


class InMemoryKeyValueStore(KeyValueStore):
    """In-memory implementation of KeyValueStore for fast testing.

    Registered Lua scripts are executed by name with equivalent Python logic.
    No ``await`` happens inside a script, so each one is atomic with respect
    to other coroutines, as on a Redis server.
    """

    def __init__(self) -> None:
        self._data: dict[str, str] = {}
        self._sorted_sets: dict[str, dict[str, float]] = {}
        self._script_cache: dict[str, str] = {}
        self._script_sources: dict[str, str] = {}

    def clear(self) -> None:
        self._data.clear()
        self._sorted_sets.clear()

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def mget(self, keys: List[str]) -> List[Optional[str]]:
        return [self._data.get(key) for key in keys]

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def set_if_absent(self, key: str, value: str) -> bool:
        if key in self._data:
            return False
        self._data[key] = value
        return True

    async def delete(self, key: str) -> int:
        if key in self._data:
            del self._data[key]
            return 1
        return 0

    async def zadd(self, key: str, mapping: Mapping[str, float]) -> int:
        """Add members to sorted set. Returns how many were new."""
        members = self._sorted_sets.setdefault(key, {})
        added = sum(1 for member in mapping if member not in members)
        members.update(mapping)
        return added

    def _ordered(self, key: str) -> list[str]:
        members = self._sorted_sets.get(key, {})
        return [m for m, _ in sorted(members.items(), key=lambda x: (x[1], x[0]))]

    @staticmethod
    def _slice(members: list[str], start: int, end: int) -> list[str]:
        # Redis ranges are inclusive on both ends; -1 means the last member
        slice_end = None if end == -1 else end + 1
        return members[start:slice_end]

    async def zrange(self, key: str, start: int, end: int) -> list[str]:
        return self._slice(self._ordered(key), start, end)

    async def zrevrange(self, key: str, start: int, end: int) -> list[str]:
        return self._slice(list(reversed(self._ordered(key))), start, end)

    async def zrem(self, key: str, member: str) -> int:
        members = self._sorted_sets.get(key, {})
        if member in members:
            del members[member]
            return 1
        return 0

    def zscore(self, key: str, member: str) -> Optional[float]:
        return self._sorted_sets.get(key, {}).get(member)

    async def register_script(self, name: str, script: str) -> str:
        """Register a script (return mock SHA1)."""
        self._script_cache[name] = f"sha1_{name}"
        self._script_sources[name] = script
        return f"sha1_{name}"

    async def run_script(self, name: str, keys: List[str], args: List[str]) -> Any:
        """Execute script by name."""
        if name not in self._script_cache:
            raise ValueError(f"Script '{name}' not registered")
        return self._execute_script_logic(name, keys, args)

    def _execute_script_logic(
        self, script_name: str, keys: List[str], args: List[str]
    ) -> list[Any]:
        handlers = {
            "claim_challenge": self._execute_claim_challenge,
            "claim_auth_and_create_session": self._execute_claim_auth_and_create_session,
            "set_withdraw_amount": self._execute_set_withdraw_amount,
            "mark_invoice_paid": self._execute_mark_invoice_paid,
            "transition_channel_request": self._execute_transition_channel_request,
            "purge_expired": self._execute_purge_expired,
        }
        handler = handlers.get(script_name)
        if handler is None:
            raise NotImplementedError(f"Script not implemented: {script_name}")
        return handler(keys, args)

    def _claim(
        self,
        challenge_key: str,
        expiry_key: str,
        k1: str,
        expected_kind: str,
        target_state: str,
        consumed_at: str,
        now: float,
    ) -> list[Any]:
        raw = self._data.get(challenge_key)
        if raw is None:
            return [2, ""]

        challenge = json.loads(raw)
        if challenge["kind"] != expected_kind:
            return [4, ""]
        if challenge["state"] != "unused":
            return [0, raw]

        expiry = self.zscore(expiry_key, k1)
        if expiry is not None and expiry <= now:
            return [3, raw]

        challenge["state"] = target_state
        challenge["consumed_at"] = consumed_at
        self._data[challenge_key] = json.dumps(challenge)
        return [1, raw]

    def _execute_claim_challenge(self, keys: List[str], args: List[str]) -> list[Any]:
        challenge_key, expiry_key = keys
        k1, kind, target, consumed_at, now = args
        return self._claim(
            challenge_key, expiry_key, k1, kind, target, consumed_at, float(now)
        )

    def _execute_claim_auth_and_create_session(
        self, keys: List[str], args: List[str]
    ) -> list[Any]:
        challenge_key, expiry_key, session_key, session_expiry_key = keys
        k1, consumed_at, now, session_json, session_id, session_expires = args
        result = self._claim(
            challenge_key, expiry_key, k1, "auth", "used", consumed_at, float(now)
        )
        if result[0] == 1:
            self._data[session_key] = session_json
            self._sorted_sets.setdefault(session_expiry_key, {})[session_id] = float(
                session_expires
            )
        return result

    def _execute_set_withdraw_amount(
        self, keys: List[str], args: List[str]
    ) -> list[Any]:
        raw = self._data.get(keys[0])
        if raw is None:
            return [2, ""]
        challenge = json.loads(raw)
        challenge["amount_sats"] = int(args[0])
        updated = json.dumps(challenge)
        self._data[keys[0]] = updated
        return [1, updated]

    def _execute_mark_invoice_paid(
        self, keys: List[str], args: List[str]
    ) -> list[Any]:
        record_key, unpaid_key = keys
        record_id, paid_at = args
        raw = self._data.get(record_key)
        if raw is None:
            return [2, ""]
        record = json.loads(raw)
        if record["paid"] is True:
            return [0, raw]
        record["paid"] = True
        record["paid_at"] = paid_at
        updated = json.dumps(record)
        self._data[record_key] = updated
        self._sorted_sets.get(unpaid_key, {}).pop(record_id, None)
        return [1, updated]

    def _execute_transition_channel_request(
        self, keys: List[str], args: List[str]
    ) -> list[Any]:
        allowed_states, to_state, updated_at, remote_id, private = args
        raw = self._data.get(keys[0])
        if raw is None:
            return [2, ""]
        request = json.loads(raw)
        if request["state"] not in allowed_states.split(","):
            return [0, raw]
        request["state"] = to_state
        request["updated_at"] = updated_at
        if remote_id != "":
            request["remote_id"] = remote_id
        if private != "":
            request["private"] = private == "1"
        updated = json.dumps(request)
        self._data[keys[0]] = updated
        return [1, updated]

    def _execute_purge_expired(self, keys: List[str], args: List[str]) -> list[Any]:
        expiry_key, *index_keys = keys
        now, key_prefix = float(args[0]), args[1]
        expired = [
            m for m, score in self._sorted_sets.get(expiry_key, {}).items() if score <= now
        ]
        for member in expired:
            self._data.pop(f"{key_prefix}{member}", None)
            self._sorted_sets[expiry_key].pop(member, None)
            for index_key in index_keys:
                self._sorted_sets.get(index_key, {}).pop(member, None)
        return [1, len(expired)]
