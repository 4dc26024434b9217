"""
Tests for raw <-> DER signature conversion and low-S normalization.
"""

import os

import pytest
from cryptography.hazmat.primitives.asymmetric.utils import decode_dss_signature, encode_dss_signature

from enclavebox.crypto.ecc import P256, SECP256K1
from enclavebox.crypto.signatures import (
    der_signature_to_raw, der_to_raw, normalize_der_signature, normalize_low_s,
    raw_signature_to_der, raw_to_der,
)
from enclavebox.errors import MalformedDER


class TestRawToDer:
    def test_no_guard_bytes(self):
        r = s = b'\x01' * 32
        der = raw_to_der(r, s)
        assert der[0] == 0x30
        assert len(der) == 2 + (2 + 32) + (2 + 32) == 70
        assert der_to_raw(der) == (r, s)

    def test_guard_byte_when_high_bit_set(self):
        r = b'\x80' + b'\x00' * 31
        s = b'\x7f' + b'\xff' * 31
        der = raw_to_der(r, s)
        assert der[2:5] == bytes([0x02, 33, 0x00])
        assert der[37:39] == bytes([0x02, 32])

    def test_leading_zeros_stripped(self):
        r = b'\x00\x00\x05' + b'\x11' * 29
        s = b'\x00' * 31 + b'\x09'
        der = raw_to_der(r, s)
        assert der == bytes([0x30, 2 + 30 + 3]) + bytes([0x02, 30]) + r[2:] + bytes([0x02, 1, 0x09])

    def test_zero_integer(self):
        der = raw_to_der(b'\x00' * 32, b'\x01')
        assert der == bytes([0x30, 6, 0x02, 1, 0x00, 0x02, 1, 0x01])

    def test_matches_backend_encoding(self):
        for _ in range(20):
            r, s = os.urandom(32), os.urandom(32)
            expected = encode_dss_signature(int.from_bytes(r, 'big'), int.from_bytes(s, 'big'))
            assert raw_to_der(r, s) == expected

    def test_long_form_length(self):
        r = s = b'\x01' * 70
        der = raw_to_der(r, s)
        assert der[:3] == bytes([0x30, 0x81, 144])
        assert der_to_raw(der, width=70) == (r, s)

    def test_empty_rejected(self):
        with pytest.raises(ValueError):
            raw_to_der(b'', b'\x01')


class TestDerToRaw:
    def test_round_trip_random(self):
        for _ in range(50):
            r, s = os.urandom(32), os.urandom(32)
            assert der_to_raw(raw_to_der(r, s)) == (r, s)

    def test_backend_signature(self):
        r_int, s_int = 1 << 255, 12345
        r, s = der_to_raw(encode_dss_signature(r_int, s_int))
        assert int.from_bytes(r, 'big') == r_int
        assert s == (12345).to_bytes(32, 'big')

    def test_unminimized_integers_tolerated(self):
        r = b'\x00\x00\x01' + b'\x22' * 29
        der = bytes([0x30, 4 + 32 + 1, 0x02, 32]) + r + bytes([0x02, 1, 0x07])
        assert der_to_raw(der) == (r, b'\x00' * 31 + b'\x07')

    @pytest.mark.parametrize("der", [
        b'',
        bytes([0x31, 6, 0x02, 1, 0x01, 0x02, 1, 0x01]),       # wrong sequence tag
        bytes([0x30, 7, 0x02, 1, 0x01, 0x02, 1, 0x01]),       # sequence length mismatch
        bytes([0x30, 6, 0x03, 1, 0x01, 0x02, 1, 0x01]),       # wrong r tag
        bytes([0x30, 6, 0x02, 1, 0x01, 0x04, 1, 0x01]),       # wrong s tag
        bytes([0x30, 6, 0x02, 5, 0x01, 0x02, 1, 0x01]),       # r overruns
        bytes([0x30, 5, 0x02, 0, 0x02, 1, 0x01]),             # empty r
        bytes([0x30, 6, 0x02, 1, 0x81, 0x02, 1, 0x01]),       # negative r
        bytes([0x30, 9, 0x02, 1, 0x01, 0x02, 1, 0x01, 0x05, 0x00, 0x00]),  # trailing data
        bytes([0x30, 0x81, 6, 0x02, 1, 0x01, 0x02, 1, 0x01]),  # non-minimal length
        bytes([0x30, 0x85, 0, 0, 0, 0, 6]),                    # oversized length field
    ])
    def test_malformed(self, der):
        with pytest.raises(MalformedDER):
            der_to_raw(der)

    def test_too_wide(self):
        der = raw_to_der(b'\x01' * 33, b'\x01')
        with pytest.raises(MalformedDER):
            der_to_raw(der, width=32)

    def test_malformed_is_value_error(self):
        with pytest.raises(ValueError):
            der_to_raw(b'\x30')


class TestLowS:
    def test_high_s_flipped(self):
        r = b'\x05' * 32
        s = (P256.n - 1).to_bytes(32, 'big')
        r2, s2 = normalize_low_s(r, s)
        assert r2 == r
        assert int.from_bytes(s2, 'big') == 1

    def test_low_s_unchanged(self):
        r, s = b'\x05' * 32, (P256.n // 2).to_bytes(32, 'big')
        assert normalize_low_s(r, s) == (r, s)

    def test_idempotent(self):
        for _ in range(50):
            r, s = os.urandom(32), os.urandom(32)
            once = normalize_low_s(r, s)
            assert normalize_low_s(*once) == once

    def test_secp256k1_order(self):
        s = (SECP256K1.n - 2).to_bytes(32, 'big')
        _, s2 = normalize_low_s(b'\x01' * 32, s, SECP256K1.n)
        assert int.from_bytes(s2, 'big') == 2


class TestRawSignatureHelpers:
    def test_raw_signature_to_der_with_low_s(self):
        raw = b'\x01' * 32 + (P256.n - 3).to_bytes(32, 'big')
        r_int, s_int = decode_dss_signature(raw_signature_to_der(raw, low_s=True))
        assert s_int == 3
        assert r_int == int.from_bytes(b'\x01' * 32, 'big')

    def test_raw_signature_to_der_keeps_high_s_by_default(self):
        raw = b'\x01' * 32 + (P256.n - 3).to_bytes(32, 'big')
        _, s_int = decode_dss_signature(raw_signature_to_der(raw))
        assert s_int == P256.n - 3

    def test_raw_signature_wrong_length(self):
        with pytest.raises(ValueError):
            raw_signature_to_der(b'\x01' * 63)

    def test_der_signature_to_raw(self):
        raw = os.urandom(64)
        assert der_signature_to_raw(raw_signature_to_der(raw)) == raw

    def test_normalize_der_signature(self):
        der = encode_dss_signature(7, SECP256K1.n - 7)
        assert decode_dss_signature(normalize_der_signature(der, SECP256K1)) == (7, 7)
