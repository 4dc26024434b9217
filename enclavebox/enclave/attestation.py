"""
Enclave attestation verification.

An enclave signs bundle data with its quorum key. Before anything in a
bundle is trusted, the claimed signer key must equal the pinned key AND
the ECDSA signature over SHA-256(payload) must verify. The pin check always
runs first: a relay that substitutes its own correctly-signed bundle is
rejected without ever reaching signature verification.
"""

import hmac
import json
import logging
from dataclasses import dataclass
from typing import Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import Prehashed, encode_dss_signature

from enclavebox.crypto.ecc import load_public_key, P256
from enclavebox.crypto.encoding import b64url_decode, decode_hex, encode_hex
from enclavebox.crypto.hashing import sha256, sha256d
from enclavebox.crypto.signatures import der_to_raw, signature_to_ints
from enclavebox.errors import (
    AuthenticationError, SignatureInvalid, UnexpectedSigner, MissingBundleField,
)

logger = logging.getLogger(__name__)

KeyInput = Union[bytes, str]


def _as_bytes(value: KeyInput) -> bytes:
    return decode_hex(value) if isinstance(value, str) else bytes(value)


def _short(key: bytes) -> str:
    return encode_hex(key[:8])


@dataclass(frozen=True)
class AttestedBundle:
    """Signed enclave data: {enclaveQuorumPublic, dataSignature, data}"""
    payload: bytes
    signature: bytes
    signer_public_key: bytes

    @classmethod
    def from_dict(cls, data: dict) -> 'AttestedBundle':
        for field in ('enclaveQuorumPublic', 'dataSignature', 'data'):
            if not data.get(field):
                raise MissingBundleField(f'missing "{field}" in bundle')
        return cls(
            payload=decode_hex(data['data']),
            signature=decode_hex(data['dataSignature']),
            signer_public_key=decode_hex(data['enclaveQuorumPublic']),
        )

    @classmethod
    def from_json(cls, text: str) -> 'AttestedBundle':
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise MissingBundleField(f"bundle is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise MissingBundleField("bundle is not a JSON object")
        return cls.from_dict(data)

    def signed_data(self) -> dict:
        """Decode the signed payload as JSON. Only call after verification."""
        try:
            data = json.loads(self.payload.decode('utf-8'))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise MissingBundleField(f"signed data is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise MissingBundleField("signed data is not a JSON object")
        return data


def _verify_digest(public_key: bytes, r: bytes, s: bytes, digest: bytes) -> None:
    key = load_public_key(public_key)
    signature = encode_dss_signature(*signature_to_ints(r, s))
    try:
        key.verify(signature, digest, ec.ECDSA(Prehashed(hashes.SHA256())))
    except InvalidSignature:
        logger.warning("Signature did not verify for key %s...", _short(public_key))
        raise SignatureInvalid() from None


class EnclaveAttestationVerifier:
    """
    Verifies data signed by a pinned enclave key.

    Example:
        verifier = EnclaveAttestationVerifier(pinned_key_hex)
        if verifier.verify(payload, signature_der, claimed_signer):
            ...
    """

    def __init__(self, pinned_public_key: KeyInput):
        self._pinned = _as_bytes(pinned_public_key)
        # Reject a malformed pin at construction rather than on first use
        load_public_key(self._pinned)

    @property
    def pinned_public_key(self) -> bytes:
        return self._pinned

    def _check_signer(self, claimed_signer_public_key: bytes) -> None:
        if not hmac.compare_digest(claimed_signer_public_key, self._pinned):
            logger.warning("Rejected bundle signed by unpinned key %s...",
                           _short(claimed_signer_public_key))
            raise UnexpectedSigner(
                f"expected signer key {encode_hex(self._pinned)} does not match "
                f"signer key from bundle: {encode_hex(claimed_signer_public_key)}")

    def attest(self, payload: bytes, signature_der: KeyInput,
               claimed_signer_public_key: KeyInput) -> None:
        """
        Raise unless payload was signed by the pinned key.

        Order is fixed: pin check, DER decode, key import, ECDSA verify.
        """
        claimed = _as_bytes(claimed_signer_public_key)
        self._check_signer(claimed)

        r, s = der_to_raw(_as_bytes(signature_der), P256.size)
        _verify_digest(claimed, r, s, sha256(payload))

    def verify(self, payload: bytes, signature_der: KeyInput,
               claimed_signer_public_key: KeyInput) -> bool:
        """
        True only if every attestation step succeeds.

        Signer mismatch and a bad signature return False; malformed
        encodings raise their typed errors.
        """
        try:
            self.attest(payload, signature_der, claimed_signer_public_key)
        except AuthenticationError:
            return False
        return True

    def verify_bundle(self, bundle: AttestedBundle) -> bool:
        return self.verify(bundle.payload, bundle.signature, bundle.signer_public_key)

    def attest_raw(self, digest: bytes, raw_signature: KeyInput,
                   claimed_signer_public_key: KeyInput) -> None:
        """
        Raw-signature path: raw_signature is fixed-width r || s and is never
        DER-decoded. digest is the 32-byte message digest.
        """
        claimed = _as_bytes(claimed_signer_public_key)
        self._check_signer(claimed)

        raw = _as_bytes(raw_signature)
        if len(raw) != 2 * P256.size:
            raise SignatureInvalid(f"Raw signature must be {2 * P256.size} bytes, got {len(raw)}")
        _verify_digest(claimed, raw[:P256.size], raw[P256.size:], digest)

    def verify_raw(self, digest: bytes, raw_signature: KeyInput,
                   claimed_signer_public_key: KeyInput) -> bool:
        try:
            self.attest_raw(digest, raw_signature, claimed_signer_public_key)
        except AuthenticationError:
            return False
        return True


def verify_session_jwt(jwt: str, verifier: EnclaveAttestationVerifier) -> bool:
    """
    Verify a session JWT signed by the notarizer key (ES256, raw r || s).

    The notarizer signs sha256(header.payload) with a signer that hashes
    once more, so the verified digest is sha256(sha256(header.payload)).
    """
    parts = jwt.split('.')
    if len(parts) != 3 or not parts[2]:
        raise ValueError("invalid JWT: need 3 parts")
    header_b64, payload_b64, signature_b64 = parts

    digest = sha256d(f"{header_b64}.{payload_b64}".encode('ascii'))
    signature = b64url_decode(signature_b64)
    return verifier.verify_raw(digest, signature, verifier.pinned_public_key)


def verify_stamp_signature(public_key: KeyInput, signature_der: KeyInput, signed_data: str) -> bool:
    """
    Verify an API-key stamp: DER ECDSA over SHA-256 of the request body.

    No pinning here; the caller supplies the key it expects.
    """
    key = _as_bytes(public_key)
    r, s = der_to_raw(_as_bytes(signature_der), P256.size)
    try:
        _verify_digest(key, r, s, sha256(signed_data.encode('utf-8')))
    except SignatureInvalid:
        return False
    return True
