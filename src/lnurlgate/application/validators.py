"""Pure validation functions for LNURL request parameters.

These run before any store or node access and raise ``ValidationError`` with
the reason string returned to the wallet.
"""

from __future__ import annotations

import re
from typing import Optional

from ..domain.errors import ValidationError

K1_RE = re.compile(r"^[0-9a-fA-F]{64}$")
PAYMENT_REQUEST_RE = re.compile(r"^ln(bc|tb|bcrt)[0-9a-z]+$", re.IGNORECASE)
REMOTE_ID_RE = re.compile(r"^0[23][0-9a-fA-F]{64}$")
PAYMENT_ID_RE = re.compile(r"^[0-9a-fA-F]{1,64}$")
LINKING_KEY_RE = re.compile(r"^0[23][0-9a-fA-F]{64}$")
SIGNATURE_RE = re.compile(r"^(?:[0-9a-fA-F]{2}){8,72}$")
USERNAME_RE = re.compile(r"^[a-z0-9._-]{1,64}$", re.IGNORECASE)
AMOUNT_RE = re.compile(r"^[0-9]{1,18}$")

AUTH_ACTIONS = ("register", "login", "link", "auth")


def validate_k1(k1: Optional[str]) -> str:
    if not k1 or not K1_RE.fullmatch(k1):
        raise ValidationError("Invalid k1 parameter")
    return k1.lower()


def validate_payment_request(pr: Optional[str]) -> str:
    if not pr or not PAYMENT_REQUEST_RE.fullmatch(pr):
        raise ValidationError("Invalid payment request")
    return pr


def validate_remote_id(remote_id: Optional[str]) -> str:
    if not remote_id or not REMOTE_ID_RE.fullmatch(remote_id):
        raise ValidationError("Invalid remoteid parameter")
    return remote_id.lower()


def parse_private_flag(private: Optional[str]) -> bool:
    """``private`` is optional and otherwise must be ``0`` or ``1``."""
    if private is None or private == "":
        return False
    if private not in ("0", "1"):
        raise ValidationError("Invalid private parameter")
    return private == "1"


def validate_payment_id(payment_id: Optional[str]) -> str:
    if not payment_id or not PAYMENT_ID_RE.fullmatch(payment_id):
        raise ValidationError("Invalid payment ID")
    return payment_id


def parse_amount_msat(amount: Optional[str]) -> int:
    """Parse the pay callback ``amount``: a positive integer of millisatoshi."""
    if amount is None or not AMOUNT_RE.fullmatch(amount):
        raise ValidationError("Invalid amount parameter")
    value = int(amount)
    if value <= 0:
        raise ValidationError("Invalid amount parameter")
    return value


def validate_comment(comment: Optional[str], comment_allowed: int) -> Optional[str]:
    """Comments are optional; ``comment_allowed`` of 0 disables them."""
    if not comment:
        return None
    if len(comment) > comment_allowed:
        raise ValidationError("Comment too long")
    return comment


def validate_sendable_bounds(
    min_sendable: int, max_sendable: int, comment_allowed: int
) -> None:
    if min_sendable <= 0 or max_sendable <= 0:
        raise ValidationError("Sendable amounts must be positive")
    if min_sendable > max_sendable:
        raise ValidationError("minSendable cannot exceed maxSendable")
    if comment_allowed < 0:
        raise ValidationError("commentAllowed cannot be negative")


def validate_auth_action(action: Optional[str]) -> str:
    action = action or "login"
    if action not in AUTH_ACTIONS:
        raise ValidationError("Invalid action parameter")
    return action


def validate_auth_params(k1: str, sig: str, key: str) -> tuple[str, str, str]:
    """Hex format checks for an auth verification: k1, DER signature, compressed key."""
    if not K1_RE.fullmatch(k1) or not SIGNATURE_RE.fullmatch(sig) or not LINKING_KEY_RE.fullmatch(key):
        raise ValidationError("Invalid hex format for k1, sig, or key")
    return k1.lower(), sig.lower(), key.lower()


def validate_username(username: Optional[str]) -> str:
    if not username or not USERNAME_RE.fullmatch(username):
        raise ValidationError("Invalid username")
    return username.lower()
