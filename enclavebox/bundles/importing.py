"""
Import flow: client -> enclave.

The enclave publishes an attested import bundle whose signed data carries
a fresh target public key bound to an organization and user. The client
seals local key material to that target only after the attestation AND
both binding fields check out; skipping either lets a relay swap in its
own target key and capture the imported key.
"""

import logging

from enclavebox.constants import KEY_FORMAT_HEXADECIMAL
from enclavebox.bundles.export import check_organization, parse_attested_bundle
from enclavebox.bundles.keys import decode_private_key
from enclavebox.crypto import hpke
from enclavebox.crypto.encoding import decode_hex
from enclavebox.enclave.attestation import EnclaveAttestationVerifier
from enclavebox.enclave.service import CustodyService
from enclavebox.errors import BundleFieldMismatch, MissingBundleField

logger = logging.getLogger(__name__)


def _check_user(signed_data: dict, user_id: str):
    found = signed_data.get('userId')
    if not found or found != user_id:
        logger.warning("Import bundle user mismatch")
        raise BundleFieldMismatch(
            f"user id does not match expected value. Expected: {user_id}. Found: {found}.")


def verified_target_key(import_bundle: str, user_id: str, organization_id: str,
                        verifier: EnclaveAttestationVerifier) -> bytes:
    """
    Return the enclave target key from an import bundle.

    Raises on a bad attestation, a binding mismatch or a missing target.
    """
    bundle = parse_attested_bundle(import_bundle)
    verifier.attest(bundle.payload, bundle.signature, bundle.signer_public_key)

    signed_data = bundle.signed_data()
    check_organization(signed_data, organization_id)
    _check_user(signed_data, user_id)
    if not signed_data.get('targetPublic'):
        raise MissingBundleField('missing "targetPublic" in bundle signed data')
    return decode_hex(signed_data['targetPublic'])


def _seal_to_bundle(plaintext: bytes, import_bundle: str, user_id: str,
                    organization_id: str, verifier: EnclaveAttestationVerifier) -> str:
    target_key = verified_target_key(import_bundle, user_id, organization_id, verifier)
    return hpke.seal(plaintext, target_key).to_json()


def encrypt_private_key_to_bundle(private_key: str, key_format: str, import_bundle: str,
                                  user_id: str, organization_id: str,
                                  verifier: EnclaveAttestationVerifier) -> str:
    """
    Seal a private key to a verified import bundle.

    Returns {"encappedPublic", "ciphertext"} JSON ready to submit.
    """
    plaintext = decode_private_key(private_key, key_format)
    return _seal_to_bundle(plaintext, import_bundle, user_id, organization_id, verifier)


def encrypt_wallet_to_bundle(mnemonic: str, import_bundle: str, user_id: str,
                             organization_id: str, verifier: EnclaveAttestationVerifier) -> str:
    """Seal a mnemonic to a verified import bundle."""
    return _seal_to_bundle(mnemonic.encode('utf-8'), import_bundle, user_id,
                           organization_id, verifier)


class ImportFlow:
    """Fetches an import bundle, verifies it, seals and submits local keys"""

    def __init__(self, service: CustodyService, verifier: EnclaveAttestationVerifier,
                 organization_id: str, user_id: str):
        self.service = service
        self.verifier = verifier
        self.organization_id = organization_id
        self.user_id = user_id

    def import_private_key(self, private_key: str,
                           key_format: str = KEY_FORMAT_HEXADECIMAL) -> str:
        """Import a private key, returning the id the service assigned"""
        import_bundle = self.service.init_import_private_key(self.user_id)
        encrypted = encrypt_private_key_to_bundle(
            private_key, key_format, import_bundle, self.user_id,
            self.organization_id, self.verifier)
        return self.service.import_private_key(self.user_id, encrypted, key_format)

    def import_wallet(self, mnemonic: str) -> str:
        """Import a mnemonic wallet, returning the new wallet id"""
        import_bundle = self.service.init_import_wallet(self.user_id)
        encrypted = encrypt_wallet_to_bundle(
            mnemonic, import_bundle, self.user_id, self.organization_id, self.verifier)
        return self.service.import_wallet(self.user_id, encrypted)
