import base64
import re

from enclavebox.crypto.hashing import sha256d
from enclavebox.errors import InvalidHex, InvalidBase58


B58_ALPHABET = '123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz'

_HEX_RE = re.compile(r'[0-9a-fA-F]*')


def encode_hex(data: bytes) -> str:
    """Lowercase hex, the wire form for keys, signatures and ciphertexts"""
    return data.hex()


def decode_hex(text: str, allow_prefix: bool = False) -> bytes:
    """
    Strict hex decode. Rejects odd length, whitespace and non-hex characters
    instead of best-effort parsing. A leading 0x is accepted only when
    allow_prefix is set.
    """
    if not isinstance(text, str):
        raise InvalidHex(f"Expected hex string, got {type(text).__name__}")
    if allow_prefix and text[:2] in ('0x', '0X'):
        text = text[2:]
    if len(text) % 2 != 0 or not _HEX_RE.fullmatch(text):
        raise InvalidHex(f"Invalid hex string of length {len(text)}")
    return bytes.fromhex(text)


def b58encode(data: bytes) -> str:
    """Base58 encode (no checksum)"""
    n = int.from_bytes(data, 'big')
    result = ''
    while n > 0:
        n, r = divmod(n, 58)
        result = B58_ALPHABET[r] + result
    for byte in data:
        if byte == 0:
            result = '1' + result
        else:
            break
    return result


def b58decode(text: str) -> bytes:
    """Base58 decode (no checksum), preserving leading zero bytes"""
    n = 0
    for c in text:
        idx = B58_ALPHABET.find(c)
        if idx < 0:
            raise InvalidBase58(f"Invalid base58 character {c!r}")
        n = n * 58 + idx
    body = n.to_bytes((n.bit_length() + 7) // 8, 'big') if n else b''
    leading = len(text) - len(text.lstrip('1'))
    return b'\x00' * leading + body


def b58check_encode(payload: bytes) -> str:
    """Base58Check encode: payload followed by 4-byte double-SHA256 checksum"""
    return b58encode(payload + sha256d(payload)[:4])


def b58check_decode(text: str) -> bytes:
    """Base58Check decode, returns the payload with the checksum verified"""
    data = b58decode(text)
    if len(data) < 4:
        raise InvalidBase58("Base58Check data too short")
    payload, checksum = data[:-4], data[-4:]
    if sha256d(payload)[:4] != checksum:
        raise InvalidBase58("Invalid Base58Check checksum")
    return payload


def b64url_encode(data: bytes) -> str:
    """Unpadded base64url"""
    return base64.urlsafe_b64encode(data).rstrip(b'=').decode('ascii')


def b64url_decode(text: str) -> bytes:
    """Base64url decode, tolerating missing padding"""
    padded = text + '=' * (-len(text) % 4)
    try:
        return base64.urlsafe_b64decode(padded.encode('ascii'))
    except (ValueError, UnicodeEncodeError) as e:
        raise ValueError(f"Invalid base64url data: {e}") from e
