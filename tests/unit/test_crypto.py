"""Tests for LNURL bech32 encoding and LNURL-auth signature verification."""

from __future__ import annotations

import hashlib

import pytest
from cryptography.hazmat.primitives.asymmetric import utils

from lnurlgate.crypto.lnurl import decode_lnurl, encode_lnurl, payment_id_for_username
from lnurlgate.crypto.signatures import (
    SECP256K1_N,
    normalize_der_signature,
    verify_k1_signature,
)
from lnurlgate.domain.errors import SignatureError
from tests.fixtures import LinkingWallet

K1 = "e2af6254a8df433264fa23f67eb8188635d15ce883e8fc020989d5f82ae6f11e"


class TestLnurlEncoding:
    def test_encode_is_uppercase_bech32_with_lnurl_prefix(self) -> None:
        lnurl = encode_lnurl("https://service.com/api?q=3fc3645b439ce8e7f2553a69e5267081")
        assert lnurl == lnurl.upper()
        # "https://" always encodes to the same leading characters
        assert lnurl.startswith("LNURL1DP68GURN8GHJ7")

    def test_decode_recovers_long_url(self) -> None:
        url = "https://lnurl.example.com/auth?tag=login&k1=" + K1 + "&action=login"
        lnurl = encode_lnurl(url)
        assert len(lnurl) > 90
        assert decode_lnurl(lnurl) == url
        assert decode_lnurl(lnurl.lower()) == url
        assert decode_lnurl("lightning:" + lnurl) == url

    def test_decode_rejects_corrupted_checksum(self) -> None:
        lnurl = encode_lnurl("https://lnurl.example.com/withdraw")
        corrupted = lnurl[:-1] + ("Q" if lnurl[-1] != "Q" else "P")
        with pytest.raises(ValueError):
            decode_lnurl(corrupted)

    def test_decode_rejects_other_hrp_and_mixed_case(self) -> None:
        lnurl = encode_lnurl("https://lnurl.example.com/withdraw")
        with pytest.raises(ValueError):
            decode_lnurl("bc1" + lnurl[6:])
        with pytest.raises(ValueError):
            decode_lnurl(lnurl[:10] + lnurl[10:].lower())

    def test_payment_id_for_username_is_sha256_hex(self) -> None:
        assert payment_id_for_username("alice") == hashlib.sha256(b"alice").hexdigest()


class TestK1Signatures:
    def test_valid_signature_verifies(self) -> None:
        wallet = LinkingWallet()
        verify_k1_signature(K1, wallet.sign(K1), wallet.key_hex)

    def test_high_s_signature_is_normalised(self) -> None:
        wallet = LinkingWallet()
        r, s = utils.decode_dss_signature(bytes.fromhex(wallet.sign(K1)))
        high_s = s if s > SECP256K1_N // 2 else SECP256K1_N - s
        sig = utils.encode_dss_signature(r, high_s).hex()

        _, normalised_s = utils.decode_dss_signature(normalize_der_signature(sig))
        assert normalised_s <= SECP256K1_N // 2
        verify_k1_signature(K1, sig, wallet.key_hex)

    def test_signature_over_other_k1_fails(self) -> None:
        wallet = LinkingWallet()
        other_k1 = K1[:-2] + "00"
        with pytest.raises(SignatureError, match="Invalid signature"):
            verify_k1_signature(other_k1, wallet.sign(K1), wallet.key_hex)

    def test_signature_from_other_key_fails(self) -> None:
        signer, other = LinkingWallet(), LinkingWallet()
        with pytest.raises(SignatureError, match="Invalid signature"):
            verify_k1_signature(K1, signer.sign(K1), other.key_hex)

    def test_malformed_der_is_rejected(self) -> None:
        wallet = LinkingWallet()
        with pytest.raises(SignatureError, match="Invalid DER signature"):
            verify_k1_signature(K1, "deadbeefdeadbeef", wallet.key_hex)
        with pytest.raises(SignatureError, match="Invalid DER signature"):
            verify_k1_signature(K1, "3006020100020101", wallet.key_hex)

    def test_point_not_on_curve_is_rejected(self) -> None:
        wallet = LinkingWallet()
        with pytest.raises(SignatureError, match="Invalid linking key"):
            verify_k1_signature(K1, wallet.sign(K1), "02" + "ff" * 32)
