"""
Custody service contract.

The remote enclave/custody service is an opaque request/response peer.
Implementations wrap whatever transport reaches it; bundle flows only rely
on the methods below returning hex-encoded bundles and signatures.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from enclavebox.crypto.ecc import P256, CurveParams
from enclavebox.crypto.encoding import decode_hex
from enclavebox.crypto.signatures import raw_signature_to_der

PAYLOAD_ENCODING_HEXADECIMAL = "PAYLOAD_ENCODING_HEXADECIMAL"
PAYLOAD_ENCODING_TEXT_UTF8 = "PAYLOAD_ENCODING_TEXT_UTF8"

HASH_FUNCTION_SHA256 = "HASH_FUNCTION_SHA256"
HASH_FUNCTION_KECCAK256 = "HASH_FUNCTION_KECCAK256"
HASH_FUNCTION_NO_OP = "HASH_FUNCTION_NO_OP"
HASH_FUNCTION_NOT_APPLICABLE = "HASH_FUNCTION_NOT_APPLICABLE"


@dataclass(frozen=True)
class SignRawPayloadRequest:
    sign_with: str
    payload: str
    encoding: str = PAYLOAD_ENCODING_HEXADECIMAL
    hash_function: str = HASH_FUNCTION_SHA256


@dataclass(frozen=True)
class RawSignature:
    """Enclave signing result: hex r, s and recovery id v"""
    r: str
    s: str
    v: str

    def to_bytes(self, curve: CurveParams = P256) -> bytes:
        width = 2 * curve.size
        return decode_hex(self.r.rjust(width, "0")) + decode_hex(self.s.rjust(width, "0"))

    def to_der(self, low_s: bool = False, curve: CurveParams = P256) -> bytes:
        """DER form for chains that want it; low_s for strict verifiers"""
        return raw_signature_to_der(self.to_bytes(curve), low_s=low_s, curve=curve)


class CustodyService(ABC):
    """Operations the bundle flows need from the custody service"""

    @abstractmethod
    def export_wallet(self, wallet_id: str, target_public_key: str) -> str:
        """Return an export bundle sealed to target_public_key"""

    @abstractmethod
    def export_private_key(self, private_key_id: str, target_public_key: str) -> str:
        """Return an export bundle sealed to target_public_key"""

    @abstractmethod
    def export_wallet_account(self, address: str, target_public_key: str) -> str:
        """Return an export bundle sealed to target_public_key"""

    @abstractmethod
    def init_import_private_key(self, user_id: str) -> str:
        """Return an attested import bundle carrying a fresh target key"""

    @abstractmethod
    def init_import_wallet(self, user_id: str) -> str:
        """Return an attested import bundle carrying a fresh target key"""

    @abstractmethod
    def import_private_key(self, user_id: str, encrypted_bundle: str, key_format: str) -> str:
        """Submit a sealed private key, return the new private key id"""

    @abstractmethod
    def import_wallet(self, user_id: str, encrypted_bundle: str) -> str:
        """Submit a sealed mnemonic, return the new wallet id"""

    @abstractmethod
    def sign_raw_payload(self, request: SignRawPayloadRequest) -> RawSignature:
        """Sign a payload with the key named by request.sign_with"""
