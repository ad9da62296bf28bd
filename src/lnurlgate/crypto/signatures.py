"""secp256k1 ECDSA verification for LNURL-auth.

Wallets sign the raw 32 byte k1 (not a hash of it) with the linking key and
send the DER encoded signature plus the compressed public key, all hex.
"""

from __future__ import annotations

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, utils

from ..domain.errors import SignatureError

# Order of the secp256k1 group
SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141


def load_linking_key(key_hex: str) -> ec.EllipticCurvePublicKey:
    """Load a 33 byte compressed secp256k1 public key."""
    try:
        return ec.EllipticCurvePublicKey.from_encoded_point(
            ec.SECP256K1(), bytes.fromhex(key_hex)
        )
    except ValueError as e:
        raise SignatureError("Invalid linking key") from e


def normalize_der_signature(sig_hex: str) -> bytes:
    """Decode a DER signature and re-encode it with a low S value."""
    try:
        r, s = utils.decode_dss_signature(bytes.fromhex(sig_hex))
    except ValueError as e:
        raise SignatureError("Invalid DER signature") from e
    if not (0 < r < SECP256K1_N and 0 < s < SECP256K1_N):
        raise SignatureError("Invalid DER signature")
    if s > SECP256K1_N // 2:
        s = SECP256K1_N - s
    return utils.encode_dss_signature(r, s)


def verify_k1_signature(k1_hex: str, sig_hex: str, key_hex: str) -> None:
    """Verify ``sig`` over the raw k1 bytes. Raises ``SignatureError`` on any failure."""
    public_key = load_linking_key(key_hex)
    signature = normalize_der_signature(sig_hex)
    digest = bytes.fromhex(k1_hex)
    if len(digest) != 32:
        raise SignatureError("k1 must be 32 bytes")
    try:
        public_key.verify(signature, digest, ec.ECDSA(utils.Prehashed(hashes.SHA256())))
    except InvalidSignature as e:
        raise SignatureError("Invalid signature") from e
