"""
Target keypairs and private key formats.

A TargetKeyPair is the short-lived client key an enclave seals export
material to. Its private half opens exactly one envelope and is zeroed
right after.
"""

import logging
from typing import Optional

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from enclavebox.constants import KEY_FORMAT_HEXADECIMAL, KEY_FORMAT_SOLANA
from enclavebox.crypto import hpke
from enclavebox.crypto.ecc import compress_point
from enclavebox.crypto.encoding import b58decode, b58encode, decode_hex, encode_hex
from enclavebox.crypto.hpke import SealedEnvelope
from enclavebox.errors import TargetKeyConsumed

logger = logging.getLogger(__name__)

SOLANA_KEYPAIR_LEN = 64
ED25519_KEY_LEN = 32


class TargetKeyPair:
    """
    Ephemeral P-256 keypair for receiving one sealed bundle.

    Example:
        with TargetKeyPair.generate() as target:
            bundle = service.export_wallet(wallet_id, target.public_key_hex)
            plaintext = target.open(envelope)
    """

    def __init__(self, private_key: bytes, public_key: bytes):
        self._private_key: Optional[bytearray] = bytearray(private_key)
        self.public_key = public_key

    @classmethod
    def generate(cls) -> 'TargetKeyPair':
        private_key, public_key = hpke.generate_keypair()
        return cls(private_key, public_key)

    @property
    def public_key_hex(self) -> str:
        """Uncompressed public key, the form sent to the enclave"""
        return encode_hex(self.public_key)

    @property
    def public_key_compressed_hex(self) -> str:
        return encode_hex(compress_point(self.public_key))

    @property
    def consumed(self) -> bool:
        return self._private_key is None

    def open(self, envelope: SealedEnvelope) -> bytes:
        """Open envelope with the private half, then discard it."""
        if self._private_key is None:
            raise TargetKeyConsumed()
        try:
            return hpke.open(envelope, self._private_key)
        finally:
            self.discard()

    def discard(self):
        """
        Zero and drop the private key.

        Best effort: the buffer is wiped in place, but the backend key object
        and Python ints derived from it are not reachable from here.
        """
        if self._private_key is not None:
            for i in range(len(self._private_key)):
                self._private_key[i] = 0
            self._private_key = None
            logger.debug("Discarded target key %s...", self.public_key_compressed_hex[:16])

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.discard()
        return False


def decode_private_key(private_key: str, key_format: str) -> bytes:
    """
    Decode a private key for import.

    HEXADECIMAL: hex, optional 0x prefix.
    SOLANA: base58 of a 64-byte keypair; the first 32 bytes are the seed.
    Unknown formats are treated as hexadecimal.
    """
    if key_format == KEY_FORMAT_SOLANA:
        decoded = b58decode(private_key)
        if len(decoded) != SOLANA_KEYPAIR_LEN:
            raise ValueError(
                f"invalid key length. Expected {SOLANA_KEYPAIR_LEN} bytes. Got {len(decoded)}.")
        return decoded[:ED25519_KEY_LEN]
    if key_format != KEY_FORMAT_HEXADECIMAL:
        logger.warning("invalid key format: %s. Defaulting to HEXADECIMAL.", key_format)
    return decode_hex(private_key, allow_prefix=True)


def encode_solana_keypair(seed: bytes) -> str:
    """Base58 of seed || ed25519 public key, the Solana keypair format"""
    if len(seed) != ED25519_KEY_LEN:
        raise ValueError(
            f"invalid private key length. Expected {ED25519_KEY_LEN} bytes. Got {len(seed)}.")
    public_key = Ed25519PrivateKey.from_private_bytes(seed).public_key().public_bytes(
        Encoding.Raw, PublicFormat.Raw)
    return b58encode(seed + public_key)
