"""
Shared fixtures: an in-memory enclave that attests bundles with its own
quorum key, and verifiers pinned to it.
"""

import json

import pytest
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec

from enclavebox.crypto import hpke
from enclavebox.crypto.ecc import public_key_bytes
from enclavebox.crypto.hpke import SealedEnvelope
from enclavebox.enclave.attestation import EnclaveAttestationVerifier
from enclavebox.enclave.service import CustodyService, RawSignature
from enclavebox.crypto.signatures import der_to_raw

ORGANIZATION_ID = "org-7f3c"
USER_ID = "user-19ab"


def sign_der(private_key: ec.EllipticCurvePrivateKey, data: bytes) -> bytes:
    return private_key.sign(data, ec.ECDSA(hashes.SHA256()))


def attest(private_key: ec.EllipticCurvePrivateKey, signed_data: dict) -> str:
    """Build {enclaveQuorumPublic, dataSignature, data} the way the enclave does"""
    data = json.dumps(signed_data).encode('utf-8')
    return json.dumps({
        'version': 'v1.0.0',
        'enclaveQuorumPublic': public_key_bytes(private_key.public_key()).hex(),
        'dataSignature': sign_der(private_key, data).hex(),
        'data': data.hex(),
    })


class FakeEnclave(CustodyService):
    """Custody service double holding secrets in memory"""

    def __init__(self, quorum_key, organization_id=ORGANIZATION_ID):
        self.quorum_key = quorum_key
        self.organization_id = organization_id
        self.secrets = {}
        self.imported = {}
        self.seen_targets = []
        self._import_targets = {}
        self._signing_keys = {}

    def _export(self, secret_id, target_public_key):
        self.seen_targets.append(target_public_key)
        envelope = hpke.seal(self.secrets[secret_id], target_public_key)
        return attest(self.quorum_key, {
            'organizationId': self.organization_id,
            'encappedPublic': envelope.encapsulated_key.hex(),
            'ciphertext': envelope.ciphertext.hex(),
        })

    def export_wallet(self, wallet_id, target_public_key):
        return self._export(wallet_id, target_public_key)

    def export_private_key(self, private_key_id, target_public_key):
        return self._export(private_key_id, target_public_key)

    def export_wallet_account(self, address, target_public_key):
        return self._export(address, target_public_key)

    def _init_import(self, user_id):
        private_key, public_key = hpke.generate_keypair()
        self._import_targets[user_id] = private_key
        return attest(self.quorum_key, {
            'organizationId': self.organization_id,
            'userId': user_id,
            'targetPublic': public_key.hex(),
        })

    def init_import_private_key(self, user_id):
        return self._init_import(user_id)

    def init_import_wallet(self, user_id):
        return self._init_import(user_id)

    def _import(self, user_id, encrypted_bundle):
        target_private = self._import_targets.pop(user_id)
        plaintext = hpke.open(SealedEnvelope.from_json(encrypted_bundle), target_private)
        new_id = f"imported-{len(self.imported) + 1}"
        self.imported[new_id] = plaintext
        return new_id

    def import_private_key(self, user_id, encrypted_bundle, key_format):
        return self._import(user_id, encrypted_bundle)

    def import_wallet(self, user_id, encrypted_bundle):
        return self._import(user_id, encrypted_bundle)

    def sign_raw_payload(self, request):
        key = self._signing_keys.setdefault(
            request.sign_with, ec.generate_private_key(ec.SECP256R1()))
        r, s = der_to_raw(sign_der(key, bytes.fromhex(request.payload)))
        return RawSignature(r=r.hex(), s=s.hex(), v="00")


@pytest.fixture
def quorum_key():
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture
def quorum_public(quorum_key):
    return public_key_bytes(quorum_key.public_key())


@pytest.fixture
def verifier(quorum_public):
    return EnclaveAttestationVerifier(quorum_public)


@pytest.fixture
def enclave(quorum_key):
    return FakeEnclave(quorum_key)
