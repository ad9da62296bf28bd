"""Bech32 encoding of callback URLs into LNURL strings."""

from __future__ import annotations

import hashlib

from bech32 import CHARSET, bech32_encode, bech32_verify_checksum, convertbits

LNURL_HRP = "lnurl"


def encode_lnurl(url: str) -> str:
    """Encode a URL as an upper-case LNURL (bech32, hrp ``lnurl``).

    Upper case keeps QR codes in alphanumeric mode.
    """
    data = convertbits(url.encode("utf-8"), 8, 5)
    return bech32_encode(LNURL_HRP, data).upper()


def decode_lnurl(lnurl: str) -> str:
    """Decode an LNURL back to its URL.

    ``bech32.bech32_decode`` enforces the 90 character BIP-173 limit, which
    LNURLs exceed, so the checksum is verified here directly.
    """
    bech = lnurl.strip()
    if bech.lower().startswith("lightning:"):
        bech = bech[len("lightning:"):]
    if bech.lower() != bech and bech.upper() != bech:
        raise ValueError("Mixed-case LNURL")
    bech = bech.lower()

    pos = bech.rfind("1")
    hrp, payload = bech[:pos], bech[pos + 1 :]
    if pos < 1 or hrp != LNURL_HRP or len(payload) < 6:
        raise ValueError("Not an LNURL")
    if any(c not in CHARSET for c in payload):
        raise ValueError("Invalid bech32 character")

    data = [CHARSET.find(c) for c in payload]
    if not bech32_verify_checksum(hrp, data):
        raise ValueError("Invalid LNURL checksum")
    decoded = convertbits(data[:-6], 5, 8, False)
    if decoded is None:
        raise ValueError("Invalid LNURL padding")
    return bytes(decoded).decode("utf-8")


def payment_id_for_username(username: str) -> str:
    """Stable pay-config id for a Lightning address user (sha256 hex)."""
    return hashlib.sha256(username.encode("utf-8")).hexdigest()
