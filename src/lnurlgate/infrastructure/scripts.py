"""Central registry for the Redis Lua scripts behind every exactly-once transition.

The scripts are registered once at startup (SCRIPT LOAD) and executed with
EVALSHA, so each check-and-update runs atomically on the Redis server.

Return Code Conventions:
    Every script returns a two-element array ``{code, payload}``:

    - 0: Unchanged - The record exists but its current state does not allow the
         transition (challenge already used or cancelled, invoice already paid,
         channel request not in an allowed state). The payload is the current
         record JSON.

    - 1: Applied - The transition was written. For the claim scripts the
         payload is the record as it was *before* the transition; for the
         other scripts it is the updated record JSON. ``purge_expired``
         returns the number of deleted records instead.

    - 2: Missing - The key does not exist. The payload is an empty string.

    - 3: Expired - The challenge is past its expiry score in the expiry index.
         The payload is the current record JSON.

    - 4: Wrong kind - The challenge belongs to another flow. The payload is an
         empty string.

    The codes map onto ``lnurlgate.domain.repositories.TransitionStatus``.
"""

LNURL_SCRIPTS = {
    "claim_challenge": """
        local challenge_key = KEYS[1]
        local expiry_key = KEYS[2]
        local k1 = ARGV[1]
        local expected_kind = ARGV[2]
        local target_state = ARGV[3]
        local consumed_at = ARGV[4]
        local now = tonumber(ARGV[5])

        local raw = redis.call('GET', challenge_key)
        if not raw then
            return {2, ''}
        end

        local challenge = cjson.decode(raw)
        if challenge.kind ~= expected_kind then
            return {4, ''}
        end
        if challenge.state ~= 'unused' then
            return {0, raw}
        end

        local expiry = redis.call('ZSCORE', expiry_key, k1)
        if expiry and tonumber(expiry) <= now then
            return {3, raw}
        end

        challenge.state = target_state
        challenge.consumed_at = consumed_at
        redis.call('SET', challenge_key, cjson.encode(challenge))
        return {1, raw}
    """,
    "claim_auth_and_create_session": """
        local challenge_key = KEYS[1]
        local expiry_key = KEYS[2]
        local session_key = KEYS[3]
        local session_expiry_key = KEYS[4]
        local k1 = ARGV[1]
        local consumed_at = ARGV[2]
        local now = tonumber(ARGV[3])
        local session_json = ARGV[4]
        local session_id = ARGV[5]
        local session_expires = tonumber(ARGV[6])

        local raw = redis.call('GET', challenge_key)
        if not raw then
            return {2, ''}
        end

        local challenge = cjson.decode(raw)
        if challenge.kind ~= 'auth' then
            return {4, ''}
        end
        if challenge.state ~= 'unused' then
            return {0, raw}
        end

        local expiry = redis.call('ZSCORE', expiry_key, k1)
        if expiry and tonumber(expiry) <= now then
            return {3, raw}
        end

        challenge.state = 'used'
        challenge.consumed_at = consumed_at
        redis.call('SET', challenge_key, cjson.encode(challenge))
        redis.call('SET', session_key, session_json)
        redis.call('ZADD', session_expiry_key, session_expires, session_id)
        return {1, raw}
    """,
    "set_withdraw_amount": """
        local challenge_key = KEYS[1]
        local amount = tonumber(ARGV[1])

        local raw = redis.call('GET', challenge_key)
        if not raw then
            return {2, ''}
        end

        local challenge = cjson.decode(raw)
        challenge.amount_sats = amount
        local updated = cjson.encode(challenge)
        redis.call('SET', challenge_key, updated)
        return {1, updated}
    """,
    "mark_invoice_paid": """
        local record_key = KEYS[1]
        local unpaid_key = KEYS[2]
        local record_id = ARGV[1]
        local paid_at = ARGV[2]

        local raw = redis.call('GET', record_key)
        if not raw then
            return {2, ''}
        end

        local record = cjson.decode(raw)
        if record.paid == true then
            return {0, raw}
        end

        record.paid = true
        record.paid_at = paid_at
        local updated = cjson.encode(record)
        redis.call('SET', record_key, updated)
        redis.call('ZREM', unpaid_key, record_id)
        return {1, updated}
    """,
    "transition_channel_request": """
        local request_key = KEYS[1]
        local allowed_states = ARGV[1]
        local to_state = ARGV[2]
        local updated_at = ARGV[3]
        local remote_id = ARGV[4]
        local private = ARGV[5]

        local raw = redis.call('GET', request_key)
        if not raw then
            return {2, ''}
        end

        local request = cjson.decode(raw)
        local allowed = false
        for state in string.gmatch(allowed_states, '[^,]+') do
            if state == request.state then
                allowed = true
            end
        end
        if not allowed then
            return {0, raw}
        end

        request.state = to_state
        request.updated_at = updated_at
        if remote_id ~= '' then
            request.remote_id = remote_id
        end
        if private ~= '' then
            request.private = (private == '1')
        end
        local updated = cjson.encode(request)
        redis.call('SET', request_key, updated)
        return {1, updated}
    """,
    "purge_expired": """
        -- KEYS[1] is the expiry index, any further KEYS are indexes to prune
        local expiry_key = KEYS[1]
        local now = ARGV[1]
        local key_prefix = ARGV[2]

        local expired = redis.call('ZRANGEBYSCORE', expiry_key, '-inf', now)
        for _, member in ipairs(expired) do
            redis.call('DEL', key_prefix .. member)
            redis.call('ZREM', expiry_key, member)
            for i = 2, #KEYS do
                redis.call('ZREM', KEYS[i], member)
            end
        end
        return {1, #expired}
    """,
}
