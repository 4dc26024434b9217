"""
Protocol constants for enclave bundle transport.

Error codes, HPKE suite identifiers, and wire-format labels shared with
the remote enclave. The HPKE values must match the enclave byte for byte.
"""

# Error codes
EB_OK = 0
EB_ERR_HEX = -1
EB_ERR_POINT_ENCODING = -2
EB_ERR_POINT_RANGE = -3
EB_ERR_MODULUS = -4
EB_ERR_NO_SQRT = -5
EB_ERR_DER = -6
EB_ERR_BASE58 = -7
EB_ERR_DECRYPT = -8
EB_ERR_SIGNATURE = -9
EB_ERR_SIGNER = -10
EB_ERR_FIELD_MISMATCH = -11
EB_ERR_FIELD_MISSING = -12
EB_ERR_TARGET_CONSUMED = -13
EB_ERR_CONFIG = -14

# HPKE (RFC 9180) suite: DHKEM(P-256, HKDF-SHA256), HKDF-SHA256, AES-256-GCM
HPKE_KEM_ID = 0x0010
HPKE_KDF_ID = 0x0001
HPKE_AEAD_ID = 0x0002
HPKE_MODE_BASE = 0x00

HPKE_VERSION = b"HPKE-v1"
KEM_SUITE_ID = b"KEM" + HPKE_KEM_ID.to_bytes(2, 'big')
HPKE_SUITE_ID = (b"HPKE" + HPKE_KEM_ID.to_bytes(2, 'big')
                 + HPKE_KDF_ID.to_bytes(2, 'big') + HPKE_AEAD_ID.to_bytes(2, 'big'))

# Domain separation info shared by every seal/open in the system
HPKE_INFO = b"turnkey_hpke"

AES_KEY_LEN = 32
AES_NONCE_LEN = 12
AES_TAG_LEN = 16

# SEC1 point encodings
COMPRESSED_KEY_LEN = 33
UNCOMPRESSED_KEY_LEN = 65

# API key stamps
STAMP_HEADER_NAME = "X-Stamp"
STAMP_SCHEME_P256 = "SIGNATURE_SCHEME_TK_API_P256"

# Private key formats accepted by import/export
KEY_FORMAT_HEXADECIMAL = "HEXADECIMAL"
KEY_FORMAT_SOLANA = "SOLANA"

# Error messages
_ERROR_MESSAGES = {
    EB_OK: "Success",
    EB_ERR_HEX: "Invalid hex string",
    EB_ERR_POINT_ENCODING: "Invalid point encoding",
    EB_ERR_POINT_RANGE: "Point coordinate out of range",
    EB_ERR_MODULUS: "Unsupported modulus",
    EB_ERR_NO_SQRT: "No square root exists",
    EB_ERR_DER: "Malformed DER signature",
    EB_ERR_BASE58: "Invalid base58 data",
    EB_ERR_DECRYPT: "Decryption failed",
    EB_ERR_SIGNATURE: "Signature verification failed",
    EB_ERR_SIGNER: "Unexpected signer key",
    EB_ERR_FIELD_MISMATCH: "Bundle field does not match expected value",
    EB_ERR_FIELD_MISSING: "Bundle field missing",
    EB_ERR_TARGET_CONSUMED: "Target key already used",
    EB_ERR_CONFIG: "Configuration error",
}
