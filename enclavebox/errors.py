"""
Error taxonomy for bundle transport.

Every error carries an integer code from enclavebox.constants. Encoding
errors are also ValueErrors so callers parsing wire input can catch them
the usual way.
"""

from enclavebox.constants import (
    _ERROR_MESSAGES,
    EB_ERR_HEX, EB_ERR_POINT_ENCODING, EB_ERR_POINT_RANGE, EB_ERR_MODULUS,
    EB_ERR_NO_SQRT, EB_ERR_DER, EB_ERR_BASE58, EB_ERR_DECRYPT,
    EB_ERR_SIGNATURE, EB_ERR_SIGNER, EB_ERR_FIELD_MISMATCH,
    EB_ERR_FIELD_MISSING, EB_ERR_TARGET_CONSUMED, EB_ERR_CONFIG,
)


class EnclaveBoxError(Exception):
    """Base exception for all enclavebox errors"""
    code = 0

    def __init__(self, message: str = None, code: int = None):
        if code is not None:
            self.code = code
        self.message = message or _ERROR_MESSAGES.get(self.code, f"Unknown error ({self.code})")
        super().__init__(self.message)


# Encoding errors: rejected before any crypto runs

class EncodingError(EnclaveBoxError, ValueError):
    pass


class InvalidHex(EncodingError):
    code = EB_ERR_HEX


class InvalidPointEncoding(EncodingError):
    code = EB_ERR_POINT_ENCODING


class MalformedDER(EncodingError):
    code = EB_ERR_DER


class InvalidBase58(EncodingError):
    code = EB_ERR_BASE58


# Authentication failures

class AuthenticationError(EnclaveBoxError):
    pass


class DecryptionFailed(AuthenticationError):
    code = EB_ERR_DECRYPT


class SignatureInvalid(AuthenticationError):
    code = EB_ERR_SIGNATURE


class UnexpectedSigner(AuthenticationError):
    code = EB_ERR_SIGNER


# Unsupported input: fatal, never retried

class UnsupportedInput(EnclaveBoxError):
    pass


class UnsupportedModulus(UnsupportedInput):
    code = EB_ERR_MODULUS


class NoSquareRootExists(UnsupportedInput):
    code = EB_ERR_NO_SQRT


class PointOutOfRange(UnsupportedInput):
    code = EB_ERR_POINT_RANGE


# Bundle protocol errors

class BundleError(EnclaveBoxError):
    pass


class BundleFieldMismatch(BundleError):
    code = EB_ERR_FIELD_MISMATCH


class MissingBundleField(BundleError):
    code = EB_ERR_FIELD_MISSING


class TargetKeyConsumed(BundleError):
    code = EB_ERR_TARGET_CONSUMED


class ConfigurationError(EnclaveBoxError):
    code = EB_ERR_CONFIG
