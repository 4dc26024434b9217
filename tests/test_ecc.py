"""
Tests for SEC1 point compression and curve helpers.
"""

import pytest
from cryptography.hazmat.primitives.asymmetric import ec

from enclavebox.crypto.ecc import (
    P256, compress_point, decompress_point, decode_point, encode_point,
    extract_private_key_from_pkcs8, is_on_curve, normalize_public_key,
    point_multiply, private_key_to_public_key, public_key_bytes,
)
from enclavebox.errors import InvalidPointEncoding, NoSquareRootExists, PointOutOfRange

G_UNCOMPRESSED = b'\x04' + P256.gx.to_bytes(32, 'big') + P256.gy.to_bytes(32, 'big')
G_COMPRESSED = bytes.fromhex(
    "036b17d1f2e12c4247f8bce6e563a440f277037d812deb33a0f4a13945d898c296")


def random_point() -> bytes:
    return public_key_bytes(ec.generate_private_key(ec.SECP256R1()).public_key())


class TestCompress:
    def test_generator(self):
        assert compress_point(G_UNCOMPRESSED) == G_COMPRESSED

    def test_even_and_odd_prefix(self):
        even = b'\x04' + b'\x00' * 32 + b'\x11' * 31 + b'\x02'
        odd = even[:-1] + bytes([even[-1] ^ 0x01])

        assert compress_point(even) == b'\x02' + b'\x00' * 32
        assert compress_point(odd) == b'\x03' + b'\x00' * 32
        assert compress_point(even)[1:] == compress_point(odd)[1:]

    def test_wrong_length(self):
        with pytest.raises(InvalidPointEncoding):
            compress_point(G_UNCOMPRESSED[:-1])

    def test_wrong_prefix(self):
        with pytest.raises(InvalidPointEncoding):
            compress_point(b'\x05' + G_UNCOMPRESSED[1:])


class TestDecompress:
    def test_generator(self):
        assert decompress_point(G_COMPRESSED) == G_UNCOMPRESSED

    def test_round_trip_random_points(self):
        for _ in range(20):
            point = random_point()
            assert decompress_point(compress_point(point)) == point

    def test_compress_of_decompress(self):
        for _ in range(5):
            compressed = compress_point(random_point())
            assert compress_point(decompress_point(compressed)) == compressed

    def test_matches_backend(self):
        key = ec.generate_private_key(ec.SECP256R1()).public_key()
        compressed = public_key_bytes(key, compressed=True)
        assert decompress_point(compressed) == public_key_bytes(key)

    def test_invalid_prefix(self):
        with pytest.raises(InvalidPointEncoding):
            decompress_point(b'\x04' + G_COMPRESSED[1:])

    def test_invalid_length(self):
        with pytest.raises(InvalidPointEncoding):
            decompress_point(G_COMPRESSED + b'\x00')

    def test_x_out_of_range(self):
        with pytest.raises(PointOutOfRange):
            decompress_point(b'\x02' + b'\xff' * 32)

    def test_x_not_on_curve(self):
        # Scan for an x with no matching y; about half of all x values qualify
        for x in range(1, 50):
            try:
                decompress_point(b'\x02' + x.to_bytes(32, 'big'))
            except NoSquareRootExists:
                return
        pytest.fail("expected a non-residue among small x values")


class TestCurveHelpers:
    def test_generator_on_curve(self):
        assert is_on_curve(P256.generator)

    def test_off_curve(self):
        assert not is_on_curve((P256.gx, P256.gy + 1))
        assert not is_on_curve(None)

    def test_point_multiply_matches_backend(self):
        k = 0xC0FFEE
        private = ec.derive_private_key(k, ec.SECP256R1())
        assert encode_point(point_multiply(k)) == public_key_bytes(private.public_key())

    def test_order_times_generator_is_infinity(self):
        assert point_multiply(P256.n) is None

    def test_decode_point_either_form(self):
        assert decode_point(G_COMPRESSED) == P256.generator
        assert decode_point(G_UNCOMPRESSED) == P256.generator

    def test_decode_point_rejects_off_curve(self):
        bad = b'\x04' + P256.gx.to_bytes(32, 'big') + (P256.gy + 1).to_bytes(32, 'big')
        with pytest.raises(InvalidPointEncoding):
            decode_point(bad)

    def test_normalize_public_key(self):
        assert normalize_public_key(G_COMPRESSED) == G_UNCOMPRESSED
        assert normalize_public_key(G_UNCOMPRESSED) == G_UNCOMPRESSED
        with pytest.raises(InvalidPointEncoding):
            normalize_public_key(b'\x04' * 10)

    def test_private_key_to_public_key(self):
        one = (1).to_bytes(32, 'big')
        assert private_key_to_public_key(one) == G_COMPRESSED
        assert private_key_to_public_key(one, compressed=False) == G_UNCOMPRESSED

    def test_private_key_out_of_range(self):
        with pytest.raises(ValueError):
            private_key_to_public_key(b'\x00' * 32)

    def test_extract_private_key_from_pkcs8(self):
        # P-256 PKCS#8 export as the enclave emits it
        pkcs8 = bytes.fromhex(
            "308187020100301306072a8648ce3d020106082a8648ce3d030107046d306b0201010420"
            "01d95d256f744b2a855fe2036ec1074c726445f1382f53580a17ce3296cc2dec"
            "a1440342000440fa0a112351e0f5cdcc3edad914e7e3b911d3e83874d4ef55ff5639f4a3633e"
            "65087a8499c46a77f8e68c937203d85e6d38ade95d755a6cf88fa101091d5983")
        assert extract_private_key_from_pkcs8(pkcs8) == bytes.fromhex(
            "01d95d256f744b2a855fe2036ec1074c726445f1382f53580a17ce3296cc2dec")
        with pytest.raises(ValueError):
            extract_private_key_from_pkcs8(b'\x00' * 40)
