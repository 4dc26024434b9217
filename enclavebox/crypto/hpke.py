"""
Sealed-box encryption to a P-256 public key.

HPKE (RFC 9180) base mode, single shot:
    KEM  = DHKEM(P-256, HKDF-SHA256)
    KDF  = HKDF-SHA256
    AEAD = AES-256-GCM
with the fixed info string HPKE_INFO and associated data
encapsulated_key || recipient_public_key (both uncompressed), which binds
the ciphertext to both parties' keys.

Every seal generates a fresh ephemeral keypair and drops it on return.
"""

import json
import logging
from dataclasses import dataclass
from typing import Tuple, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDFExpand

from enclavebox.constants import (
    HPKE_VERSION, KEM_SUITE_ID, HPKE_SUITE_ID, HPKE_MODE_BASE, HPKE_INFO,
    AES_KEY_LEN, AES_NONCE_LEN, AES_TAG_LEN, COMPRESSED_KEY_LEN,
    UNCOMPRESSED_KEY_LEN,
)
from enclavebox.crypto.ecc import (
    compress_point, load_private_key, load_public_key,
    normalize_public_key, private_key_bytes, public_key_bytes,
)
from enclavebox.crypto.encoding import decode_hex, encode_hex
from enclavebox.crypto.hashing import hmac_sha256
from enclavebox.errors import DecryptionFailed, EnclaveBoxError, InvalidPointEncoding

logger = logging.getLogger(__name__)

_HASH_LEN = 32


@dataclass(frozen=True)
class SealedEnvelope:
    """KEM output plus AEAD ciphertext (tag appended)"""
    encapsulated_key: bytes
    ciphertext: bytes

    def to_bytes(self) -> bytes:
        """Compressed encapsulated key || ciphertext"""
        return compress_point(self.encapsulated_key) + self.ciphertext

    @classmethod
    def from_bytes(cls, data: bytes) -> 'SealedEnvelope':
        """
        Split an enc || ciphertext blob. The encapsulated key may be in
        either SEC1 form; its first byte decides which.
        """
        if not data:
            raise InvalidPointEncoding("Empty envelope")
        enc_len = UNCOMPRESSED_KEY_LEN if data[0] == 0x04 else COMPRESSED_KEY_LEN
        if len(data) < enc_len + AES_TAG_LEN:
            raise InvalidPointEncoding(
                f"Envelope of {len(data)} bytes is too short for a key and tag")
        return cls(
            encapsulated_key=normalize_public_key(data[:enc_len]),
            ciphertext=data[enc_len:],
        )

    def to_json(self) -> str:
        return json.dumps({
            'encappedPublic': encode_hex(self.encapsulated_key),
            'ciphertext': encode_hex(self.ciphertext),
        })

    @classmethod
    def from_json(cls, text: str) -> 'SealedEnvelope':
        data = json.loads(text)
        return cls.from_fields(data['encappedPublic'], data['ciphertext'])

    @classmethod
    def from_fields(cls, encapped_public: str, ciphertext: str) -> 'SealedEnvelope':
        return cls(
            encapsulated_key=normalize_public_key(decode_hex(encapped_public)),
            ciphertext=decode_hex(ciphertext),
        )


# =========================================================================
#                    HKDF WITH HPKE LABELS
# =========================================================================

def _extract(salt: bytes, ikm: bytes) -> bytes:
    # RFC 5869: an absent salt is HashLen zero bytes
    return hmac_sha256(salt or b'\x00' * _HASH_LEN, ikm)


def _expand(prk: bytes, info: bytes, length: int) -> bytes:
    return HKDFExpand(algorithm=hashes.SHA256(), length=length, info=info).derive(prk)


def _labeled_extract(suite_id: bytes, salt: bytes, label: bytes, ikm: bytes) -> bytes:
    return _extract(salt, HPKE_VERSION + suite_id + label + ikm)


def _labeled_expand(suite_id: bytes, prk: bytes, label: bytes, info: bytes, length: int) -> bytes:
    labeled_info = length.to_bytes(2, 'big') + HPKE_VERSION + suite_id + label + info
    return _expand(prk, labeled_info, length)


def _kem_shared_secret(dh: bytes, enc: bytes, recipient_pub: bytes) -> bytes:
    """DHKEM ExtractAndExpand over the raw ECDH x-coordinate"""
    kem_context = enc + recipient_pub
    eae_prk = _labeled_extract(KEM_SUITE_ID, b'', b"eae_prk", dh)
    return _labeled_expand(KEM_SUITE_ID, eae_prk, b"shared_secret", kem_context, _HASH_LEN)


def _key_schedule(shared_secret: bytes, info: bytes) -> Tuple[bytes, bytes]:
    """Base-mode key schedule, returns (aead key, base nonce)"""
    psk_id_hash = _labeled_extract(HPKE_SUITE_ID, b'', b"psk_id_hash", b'')
    info_hash = _labeled_extract(HPKE_SUITE_ID, b'', b"info_hash", info)
    context = bytes([HPKE_MODE_BASE]) + psk_id_hash + info_hash

    secret = _labeled_extract(HPKE_SUITE_ID, shared_secret, b"secret", b'')
    key = _labeled_expand(HPKE_SUITE_ID, secret, b"key", context, AES_KEY_LEN)
    nonce = _labeled_expand(HPKE_SUITE_ID, secret, b"base_nonce", context, AES_NONCE_LEN)
    return key, nonce


def build_associated_data(encapsulated_key: bytes, recipient_public_key: bytes) -> bytes:
    """encapsulated_key || recipient_public_key, both uncompressed"""
    return normalize_public_key(encapsulated_key) + normalize_public_key(recipient_public_key)


# =========================================================================
#                    SEAL / OPEN
# =========================================================================

def generate_keypair() -> Tuple[bytes, bytes]:
    """Fresh P-256 keypair as (32-byte private key, 65-byte public key)"""
    private_key = ec.generate_private_key(ec.SECP256R1())
    return private_key_bytes(private_key), public_key_bytes(private_key.public_key())


def seal(plaintext: bytes, recipient_public_key: Union[bytes, str],
         info: bytes = HPKE_INFO) -> SealedEnvelope:
    """
    Encrypt plaintext to recipient_public_key (33- or 65-byte SEC1, or hex).
    """
    if isinstance(recipient_public_key, str):
        recipient_public_key = decode_hex(recipient_public_key)
    recipient_pub = normalize_public_key(recipient_public_key)
    recipient = load_public_key(recipient_pub)

    ephemeral = ec.generate_private_key(ec.SECP256R1())
    enc = public_key_bytes(ephemeral.public_key())
    dh = ephemeral.exchange(ec.ECDH(), recipient)
    del ephemeral

    shared_secret = _kem_shared_secret(dh, enc, recipient_pub)
    key, nonce = _key_schedule(shared_secret, info)
    aad = build_associated_data(enc, recipient_pub)

    ciphertext = AESGCM(key).encrypt(nonce, plaintext, aad)
    return SealedEnvelope(encapsulated_key=enc, ciphertext=ciphertext)


def open(envelope: SealedEnvelope, recipient_private_key: Union[bytes, bytearray, str],
         info: bytes = HPKE_INFO) -> bytes:
    """
    Decrypt an envelope with the recipient's 32-byte private key (or hex).

    Any failure (bad key, bad encapsulated key, tag mismatch) raises
    DecryptionFailed with no further detail.
    """
    try:
        if isinstance(recipient_private_key, str):
            recipient_private_key = decode_hex(recipient_private_key)
        recipient = load_private_key(recipient_private_key)
        recipient_pub = public_key_bytes(recipient.public_key())

        enc = normalize_public_key(envelope.encapsulated_key)
        dh = recipient.exchange(ec.ECDH(), load_public_key(enc))

        shared_secret = _kem_shared_secret(dh, enc, recipient_pub)
        key, nonce = _key_schedule(shared_secret, info)
        aad = build_associated_data(enc, recipient_pub)

        return AESGCM(key).decrypt(nonce, envelope.ciphertext, aad)
    except (InvalidTag, EnclaveBoxError, ValueError):
        logger.info("Sealed envelope failed to open")
        raise DecryptionFailed() from None


def seal_to_bytes(plaintext: bytes, recipient_public_key: Union[bytes, str]) -> bytes:
    """Seal and frame as compressed enc || ciphertext"""
    return seal(plaintext, recipient_public_key).to_bytes()


def open_bytes(data: bytes, recipient_private_key: Union[bytes, bytearray, str]) -> bytes:
    """Open a compressed enc || ciphertext blob"""
    try:
        envelope = SealedEnvelope.from_bytes(data)
    except (EnclaveBoxError, ValueError):
        raise DecryptionFailed() from None
    return open(envelope, recipient_private_key)
