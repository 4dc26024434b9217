"""
enclavebox.enclave - trust anchors for the remote custody enclave.

Pinned-key attestation, key configuration, request stamping and the
custody service contract.
"""

from enclavebox.enclave.attestation import (
    AttestedBundle,
    EnclaveAttestationVerifier,
    verify_session_jwt,
    verify_stamp_signature,
)
from enclavebox.enclave.config import Config
from enclavebox.enclave.service import (
    CustodyService,
    RawSignature,
    SignRawPayloadRequest,
)
from enclavebox.enclave.stamp import ApiKeyStamper, Stamp, decode_stamp

__all__ = [
    "AttestedBundle",
    "EnclaveAttestationVerifier",
    "verify_session_jwt",
    "verify_stamp_signature",
    "Config",
    "CustodyService",
    "RawSignature",
    "SignRawPayloadRequest",
    "ApiKeyStamper",
    "Stamp",
    "decode_stamp",
]
