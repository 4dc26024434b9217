"""
API key request stamping.

A stamp proves a request body was authorized by a P-256 API key: the body
is signed (ECDSA/SHA-256, DER) and the signature travels in the X-Stamp
header as base64url JSON alongside the compressed public key.
"""

import json
from dataclasses import dataclass

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import decode_dss_signature

from enclavebox.constants import STAMP_HEADER_NAME, STAMP_SCHEME_P256
from enclavebox.crypto.ecc import (
    load_private_key, private_key_to_public_key, P256,
)
from enclavebox.crypto.encoding import b64url_decode, b64url_encode, decode_hex, encode_hex
from enclavebox.crypto.signatures import normalize_low_s, raw_to_der


@dataclass(frozen=True)
class Stamp:
    header_name: str
    header_value: str


class ApiKeyStamper:
    """Signs request bodies with a P-256 API key"""

    def __init__(self, public_key: str, private_key: str):
        self._private_key = decode_hex(private_key)
        derived = encode_hex(private_key_to_public_key(self._private_key, compressed=True))
        if derived != public_key.lower():
            raise ValueError("API public key does not match private key")
        self.public_key = derived

    def sign(self, content: str, low_s: bool = False) -> str:
        """Hex DER signature over content. low_s canonicalizes s first."""
        key = load_private_key(self._private_key)
        der = key.sign(content.encode('utf-8'), ec.ECDSA(hashes.SHA256()))
        r_int, s_int = decode_dss_signature(der)
        r, s = r_int.to_bytes(P256.size, 'big'), s_int.to_bytes(P256.size, 'big')
        if low_s:
            r, s = normalize_low_s(r, s, P256.n)
        return encode_hex(raw_to_der(r, s))

    def stamp(self, content: str) -> Stamp:
        payload = {
            'publicKey': self.public_key,
            'scheme': STAMP_SCHEME_P256,
            'signature': self.sign(content),
        }
        return Stamp(
            header_name=STAMP_HEADER_NAME,
            header_value=b64url_encode(json.dumps(payload).encode('utf-8')),
        )


def decode_stamp(header_value: str) -> dict:
    """Decode an X-Stamp header value back to its JSON fields"""
    return json.loads(b64url_decode(header_value).decode('utf-8'))
