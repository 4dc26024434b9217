"""
Elliptic curve parameters and SEC1 point encoding.

Point compression/decompression for P-256 public keys, plus affine point
arithmetic used to validate public points. Like enclavebox.crypto.field,
the arithmetic here is for public values only; private keys are handled
by the cryptography backend.
"""

from typing import NamedTuple, Optional, Tuple

from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from enclavebox.constants import COMPRESSED_KEY_LEN, UNCOMPRESSED_KEY_LEN
from enclavebox.crypto.field import mod_inverse, mod_sqrt
from enclavebox.errors import InvalidPointEncoding, PointOutOfRange


class CurveParams(NamedTuple):
    """Short Weierstrass curve y^2 = x^3 + ax + b over GF(p) with order n"""
    name: str
    p: int
    a: int
    b: int
    n: int
    gx: int
    gy: int
    size: int  # coordinate / scalar width in bytes

    @property
    def generator(self) -> Tuple[int, int]:
        return (self.gx, self.gy)


# NIST P-256 (FIPS 186-4, D.1.2.3)
_P256_P = 0xFFFFFFFF00000001000000000000000000000000FFFFFFFFFFFFFFFFFFFFFFFF
P256 = CurveParams(
    name="P-256",
    p=_P256_P,
    a=_P256_P - 3,
    b=0x5AC635D8AA3A93E7B3EBBD55769886BC651D06B0CC53B0F63BCE3C3E27D2604B,
    n=0xFFFFFFFF00000000FFFFFFFFFFFFFFFFBCE6FAADA7179E84F3B9CAC2FC632551,
    gx=0x6B17D1F2E12C4247F8BCE6E563A440F277037D812DEB33A0F4A13945D898C296,
    gy=0x4FE342E2FE1A7F9B8EE7EB4A7C0F9E162BCE33576B315ECECBB6406837BF51F5,
    size=32,
)

# secp256k1, for low-S normalization of chain signatures
SECP256K1 = CurveParams(
    name="secp256k1",
    p=0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEFFFFFC2F,
    a=0,
    b=7,
    n=0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141,
    gx=0x79BE667EF9DCBBAC55A06295CE870B07029BFCDB2DCE28D959F2815B16F81798,
    gy=0x483ADA7726A3C4655DA4FBFC0E1108A8FD17B448A68554199C47D08FFB10D4B8,
    size=32,
)

ECPoint = Tuple[int, int]


def is_on_curve(point: Optional[ECPoint], curve: CurveParams = P256) -> bool:
    """Check y^2 = x^3 + ax + b (mod p) with both coordinates in range."""
    if point is None:
        return False
    x, y = point
    if not (0 <= x < curve.p and 0 <= y < curve.p):
        return False
    return (y * y - (x * x * x + curve.a * x + curve.b)) % curve.p == 0


def point_add(p1: Optional[ECPoint], p2: Optional[ECPoint],
              curve: CurveParams = P256) -> Optional[ECPoint]:
    """Add two affine points; None is the point at infinity."""
    if p1 is None:
        return p2
    if p2 is None:
        return p1

    x1, y1 = p1
    x2, y2 = p2
    p = curve.p

    if x1 == x2 and (y1 + y2) % p == 0:
        return None

    if x1 == x2:
        m = (3 * x1 * x1 + curve.a) * mod_inverse(2 * y1, p) % p
    else:
        m = (y2 - y1) * mod_inverse(x2 - x1, p) % p

    x3 = (m * m - x1 - x2) % p
    y3 = (m * (x1 - x3) - y1) % p
    return (x3, y3)


def point_multiply(k: int, point: Optional[ECPoint] = None,
                   curve: CurveParams = P256) -> Optional[ECPoint]:
    """Multiply a public point by a public scalar (double-and-add)."""
    if point is None:
        point = curve.generator

    result = None
    addend = point
    while k:
        if k & 1:
            result = point_add(result, addend, curve)
        addend = point_add(addend, addend, curve)
        k >>= 1
    return result


def compress_point(uncompressed: bytes) -> bytes:
    """
    Compress a 65-byte SEC1 point (0x04 || x || y) to 33 bytes.

    The prefix is 0x02 when y is even and 0x03 when y is odd, read from the
    last byte of y.
    """
    if len(uncompressed) != UNCOMPRESSED_KEY_LEN or uncompressed[0] != 0x04:
        raise InvalidPointEncoding(
            f"Expected {UNCOMPRESSED_KEY_LEN}-byte point starting with 0x04, "
            f"got {len(uncompressed)} bytes")
    x = uncompressed[1:33]
    prefix = b'\x02' if uncompressed[-1] % 2 == 0 else b'\x03'
    return prefix + x


def decompress_point(compressed: bytes, curve: CurveParams = P256) -> bytes:
    """
    Decompress a 33-byte SEC1 point to 0x04 || x || y.

    Solves y^2 = x^3 + ax + b for y and picks the root whose parity matches
    the prefix byte.
    """
    expected_len = 1 + curve.size
    if len(compressed) != expected_len or compressed[0] not in (0x02, 0x03):
        raise InvalidPointEncoding(
            f"Expected {expected_len}-byte point starting with 0x02 or 0x03, "
            f"got {len(compressed)} bytes")

    odd = compressed[0] == 0x03
    x = int.from_bytes(compressed[1:], 'big')
    p = curve.p
    if x >= p:
        raise PointOutOfRange("x is out of range")

    rhs = (x * x * x + curve.a * x + curve.b) % p
    y = mod_sqrt(rhs, p)
    if (y & 1) != odd:
        y = (p - y) % p

    if not 0 <= y < p:
        raise PointOutOfRange("y is out of range")

    return b'\x04' + x.to_bytes(curve.size, 'big') + y.to_bytes(curve.size, 'big')


def encode_point(point: ECPoint, compressed: bool = False,
                 curve: CurveParams = P256) -> bytes:
    """SEC1-encode an affine point"""
    x, y = point
    raw = b'\x04' + x.to_bytes(curve.size, 'big') + y.to_bytes(curve.size, 'big')
    return compress_point(raw) if compressed else raw


def decode_point(data: bytes, curve: CurveParams = P256) -> ECPoint:
    """Decode either SEC1 form to an affine point, rejecting off-curve points"""
    if len(data) == 1 + curve.size:
        data = decompress_point(data, curve)
    if len(data) != 1 + 2 * curve.size or data[0] != 0x04:
        raise InvalidPointEncoding(f"Invalid public key length {len(data)}")

    x = int.from_bytes(data[1:1 + curve.size], 'big')
    y = int.from_bytes(data[1 + curve.size:], 'big')
    if x >= curve.p or y >= curve.p:
        raise PointOutOfRange()
    if not is_on_curve((x, y), curve):
        raise InvalidPointEncoding("Point is not on the curve")
    return (x, y)


def normalize_public_key(data: bytes) -> bytes:
    """Return the 65-byte uncompressed form of a 33- or 65-byte P-256 key"""
    if len(data) == COMPRESSED_KEY_LEN:
        return decompress_point(data)
    if len(data) == UNCOMPRESSED_KEY_LEN and data[0] == 0x04:
        return data
    raise InvalidPointEncoding(f"Invalid public key length {len(data)}")


def load_public_key(data: bytes) -> ec.EllipticCurvePublicKey:
    """Load a SEC1 P-256 public key into the cryptography backend"""
    uncompressed = normalize_public_key(data)
    try:
        return ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256R1(), uncompressed)
    except ValueError as e:
        raise InvalidPointEncoding(f"Invalid P-256 public key: {e}") from e


def load_private_key(private_key: bytes) -> ec.EllipticCurvePrivateKey:
    """Load a raw 32-byte P-256 private scalar"""
    if len(private_key) != P256.size:
        raise ValueError(f"Private key must be {P256.size} bytes, got {len(private_key)}")
    k = int.from_bytes(private_key, 'big')
    if not 0 < k < P256.n:
        raise ValueError("Private key out of range")
    return ec.derive_private_key(k, ec.SECP256R1())


def public_key_bytes(public_key: ec.EllipticCurvePublicKey, compressed: bool = False) -> bytes:
    fmt = PublicFormat.CompressedPoint if compressed else PublicFormat.UncompressedPoint
    return public_key.public_bytes(Encoding.X962, fmt)


def private_key_to_public_key(private_key: bytes, compressed: bool = True) -> bytes:
    """Derive the SEC1 public key for a raw P-256 private key."""
    return public_key_bytes(load_private_key(private_key).public_key(), compressed)


def private_key_bytes(private_key: ec.EllipticCurvePrivateKey) -> bytes:
    return private_key.private_numbers().private_value.to_bytes(P256.size, 'big')


def extract_private_key_from_pkcs8(pkcs8: bytes) -> bytes:
    """
    Pull the raw scalar out of an enclave PKCS#8 P-256 export.

    The enclave's PKCS#8 layout places the 32-byte key at offset 36.
    """
    key = pkcs8[36:36 + P256.size]
    if len(key) != P256.size:
        raise ValueError(f"PKCS#8 blob too short ({len(pkcs8)} bytes)")
    return key
