"""
ECDSA signature encodings.

Conversion between fixed-width raw signatures (r || s, as produced by the
enclave and by WebCrypto-style signers) and ASN.1 DER
(SEQUENCE { INTEGER r, INTEGER s }), plus low-S canonicalization for chains
that reject malleable signatures.
"""

from typing import Tuple

from enclavebox.crypto.ecc import P256, CurveParams
from enclavebox.errors import MalformedDER

_TAG_SEQUENCE = 0x30
_TAG_INTEGER = 0x02


def _strip_leading_zeros(value: bytes) -> bytes:
    stripped = value.lstrip(b'\x00')
    return stripped or b'\x00'


def _encode_length(length: int) -> bytes:
    """DER length octets: short form below 128, long form otherwise"""
    if length < 0x80:
        return bytes([length])
    body = length.to_bytes((length.bit_length() + 7) // 8, 'big')
    return bytes([0x80 | len(body)]) + body


def _decode_length(der: bytes, idx: int) -> Tuple[int, int]:
    """Read DER length octets at idx, returns (length, next index)"""
    if idx >= len(der):
        raise MalformedDER("Truncated length")
    first = der[idx]
    idx += 1
    if first < 0x80:
        return first, idx
    num_bytes = first & 0x7F
    if num_bytes == 0 or num_bytes > 4:
        raise MalformedDER("Unsupported length encoding")
    if idx + num_bytes > len(der):
        raise MalformedDER("Truncated length")
    length = int.from_bytes(der[idx:idx + num_bytes], 'big')
    if length < 0x80 or der[idx] == 0:
        raise MalformedDER("Non-minimal length encoding")
    return length, idx + num_bytes


def _encode_integer(value: bytes) -> bytes:
    value = _strip_leading_zeros(value)
    if value[0] & 0x80:
        value = b'\x00' + value
    return bytes([_TAG_INTEGER]) + _encode_length(len(value)) + value


def _decode_integer(der: bytes, idx: int, name: str) -> Tuple[bytes, int]:
    if idx >= len(der) or der[idx] != _TAG_INTEGER:
        raise MalformedDER(f"Invalid tag for {name}")
    length, idx = _decode_length(der, idx + 1)
    if length == 0:
        raise MalformedDER(f"Empty integer for {name}")
    if idx + length > len(der):
        raise MalformedDER(f"Truncated integer for {name}")
    value = der[idx:idx + length]
    if value[0] & 0x80:
        raise MalformedDER(f"Negative integer for {name}")
    return value, idx + length


def raw_to_der(r: bytes, s: bytes) -> bytes:
    """
    Encode big-endian r and s as a DER ECDSA signature.

    Each integer is minimized, then given a single 0x00 guard byte if its
    high bit is set so it is not read as negative.
    """
    if not r or not s:
        raise ValueError("r and s must be non-empty")
    content = _encode_integer(r) + _encode_integer(s)
    return bytes([_TAG_SEQUENCE]) + _encode_length(len(content)) + content


def der_to_raw(der: bytes, width: int = P256.size) -> Tuple[bytes, bytes]:
    """
    Decode a DER ECDSA signature to (r, s), each left-padded to width bytes.

    Extra leading zero bytes inside an INTEGER are tolerated (some signers
    emit fixed-width integers); anything else that does not match the
    SEQUENCE/INTEGER/INTEGER layout exactly is rejected.
    """
    if not der or der[0] != _TAG_SEQUENCE:
        raise MalformedDER("Invalid tag for sequence")
    seq_len, idx = _decode_length(der, 1)
    if idx + seq_len != len(der):
        raise MalformedDER("Sequence length does not match signature length")

    r, idx = _decode_integer(der, idx, "r")
    s, idx = _decode_integer(der, idx, "s")
    if idx != len(der):
        raise MalformedDER("Trailing data after s")

    r = r.lstrip(b'\x00')
    s = s.lstrip(b'\x00')
    if len(r) > width or len(s) > width:
        raise MalformedDER(f"Integer wider than {width} bytes")
    return r.rjust(width, b'\x00'), s.rjust(width, b'\x00')


def normalize_low_s(r: bytes, s: bytes, order: int = P256.n) -> Tuple[bytes, bytes]:
    """
    Replace s with order - s when s > order / 2; r is returned unchanged.

    Caller-selected: only chains with strict verifiers need this.
    """
    s_int = int.from_bytes(s, 'big')
    if s_int > order // 2:
        s_int = order - s_int
        s = s_int.to_bytes(len(s), 'big')
    return r, s


def raw_signature_to_der(raw: bytes, low_s: bool = False, curve: CurveParams = P256) -> bytes:
    """Convert a 2N-byte r || s signature to DER, optionally low-S first"""
    if len(raw) != 2 * curve.size:
        raise ValueError(f"Raw signature must be {2 * curve.size} bytes, got {len(raw)}")
    r, s = raw[:curve.size], raw[curve.size:]
    if low_s:
        r, s = normalize_low_s(r, s, curve.n)
    return raw_to_der(r, s)


def der_signature_to_raw(der: bytes, width: int = P256.size) -> bytes:
    """Convert a DER signature to a 2N-byte r || s blob"""
    r, s = der_to_raw(der, width)
    return r + s


def normalize_der_signature(der: bytes, curve: CurveParams = P256) -> bytes:
    """Low-S normalize a DER signature, returning a new DER blob"""
    r, s = der_to_raw(der, curve.size)
    r, s = normalize_low_s(r, s, curve.n)
    return raw_to_der(r, s)


def signature_to_ints(r: bytes, s: bytes) -> Tuple[int, int]:
    return int.from_bytes(r, 'big'), int.from_bytes(s, 'big')
