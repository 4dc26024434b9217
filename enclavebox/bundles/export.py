"""
Export flow: enclave -> client.

The client generates a TargetKeyPair, sends only its public half to the
enclave, and opens the returned bundle with the private half. Export
bundles are attested JSON; credential bundles (email/OAuth login) are a
base58check blob of compressed encapsulated key || ciphertext.
"""

import logging
from typing import Callable, Union

from enclavebox.constants import COMPRESSED_KEY_LEN, KEY_FORMAT_HEXADECIMAL, KEY_FORMAT_SOLANA
from enclavebox.bundles.keys import TargetKeyPair, encode_solana_keypair
from enclavebox.crypto import hpke
from enclavebox.crypto.encoding import b58check_decode, encode_hex
from enclavebox.crypto.hpke import SealedEnvelope
from enclavebox.enclave.attestation import AttestedBundle, EnclaveAttestationVerifier
from enclavebox.enclave.service import CustodyService
from enclavebox.errors import BundleError, BundleFieldMismatch, InvalidPointEncoding, MissingBundleField

logger = logging.getLogger(__name__)


def parse_attested_bundle(text: str) -> AttestedBundle:
    return AttestedBundle.from_json(text)


def check_organization(signed_data: dict, organization_id: str):
    found = signed_data.get('organizationId')
    if not found or found != organization_id:
        logger.warning("Bundle organization mismatch")
        raise BundleFieldMismatch(
            f"organization id does not match expected value. "
            f"Expected: {organization_id}. Found: {found}.")


def _format_plaintext(plaintext: bytes, key_format: str, return_mnemonic: bool) -> str:
    if key_format == KEY_FORMAT_SOLANA and not return_mnemonic:
        return encode_solana_keypair(plaintext)
    if return_mnemonic:
        try:
            return plaintext.decode('utf-8')
        except UnicodeDecodeError:
            raise BundleError("exported mnemonic is not valid UTF-8 text") from None
    return encode_hex(plaintext)


def open_export_bundle(export_bundle: str, organization_id: str,
                       verifier: EnclaveAttestationVerifier,
                       open_envelope: Callable[[SealedEnvelope], bytes]) -> bytes:
    """
    Verify an attested export bundle and open its envelope.

    Attestation, then organization binding, then decryption; nothing in
    the signed data is read before the signature checks out.
    """
    bundle = parse_attested_bundle(export_bundle)
    verifier.attest(bundle.payload, bundle.signature, bundle.signer_public_key)

    signed_data = bundle.signed_data()
    check_organization(signed_data, organization_id)
    if not signed_data.get('encappedPublic'):
        raise MissingBundleField('missing "encappedPublic" in bundle signed data')
    if not signed_data.get('ciphertext'):
        raise MissingBundleField('missing "ciphertext" in bundle signed data')

    envelope = SealedEnvelope.from_fields(signed_data['encappedPublic'], signed_data['ciphertext'])
    return open_envelope(envelope)


def decrypt_export_bundle(export_bundle: str, embedded_key: Union[bytes, str],
                          organization_id: str, verifier: EnclaveAttestationVerifier,
                          key_format: str = KEY_FORMAT_HEXADECIMAL,
                          return_mnemonic: bool = False) -> str:
    """
    Decrypt an export bundle with the embedded (target) private key.

    Returns the mnemonic text when return_mnemonic is set, a Solana base58
    keypair for SOLANA keys, otherwise lowercase hex.
    """
    plaintext = open_export_bundle(
        export_bundle, organization_id, verifier,
        lambda envelope: hpke.open(envelope, embedded_key))
    return _format_plaintext(plaintext, key_format, return_mnemonic)


def decrypt_credential_bundle(credential_bundle: str, embedded_key: Union[bytes, str]) -> str:
    """Decrypt a base58check credential bundle, returning the payload as hex"""
    bundle_bytes = b58check_decode(credential_bundle)
    if len(bundle_bytes) <= COMPRESSED_KEY_LEN:
        raise InvalidPointEncoding(
            f"Bundle size {len(bundle_bytes)} is too low. Expecting a compressed "
            f"public key ({COMPRESSED_KEY_LEN} bytes) and an encrypted credential.")
    envelope = SealedEnvelope.from_bytes(bundle_bytes)
    return encode_hex(hpke.open(envelope, embedded_key))


class ExportFlow:
    """
    Runs exports against a custody service with a fresh target key each time.

    The target keypair lives only for the duration of one call.
    """

    def __init__(self, service: CustodyService, verifier: EnclaveAttestationVerifier,
                 organization_id: str):
        self.service = service
        self.verifier = verifier
        self.organization_id = organization_id

    def _export(self, request: Callable[[str], str], key_format: str,
                return_mnemonic: bool) -> str:
        with TargetKeyPair.generate() as target:
            export_bundle = request(target.public_key_hex)
            plaintext = open_export_bundle(
                export_bundle, self.organization_id, self.verifier, target.open)
        return _format_plaintext(plaintext, key_format, return_mnemonic)

    def export_wallet(self, wallet_id: str) -> str:
        """Export a wallet, returning its mnemonic"""
        return self._export(
            lambda target: self.service.export_wallet(wallet_id, target),
            KEY_FORMAT_HEXADECIMAL, return_mnemonic=True)

    def export_private_key(self, private_key_id: str,
                           key_format: str = KEY_FORMAT_HEXADECIMAL) -> str:
        return self._export(
            lambda target: self.service.export_private_key(private_key_id, target),
            key_format, return_mnemonic=False)

    def export_wallet_account(self, address: str,
                              key_format: str = KEY_FORMAT_HEXADECIMAL) -> str:
        return self._export(
            lambda target: self.service.export_wallet_account(address, target),
            key_format, return_mnemonic=False)
