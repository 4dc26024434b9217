import hashlib
import hmac


def sha256(data: bytes) -> bytes:
    """Single SHA256 hash"""
    return hashlib.sha256(data).digest()


def sha256d(data: bytes) -> bytes:
    """Double SHA256 hash (base58check checksums, session token digests)"""
    return sha256(sha256(data))


def hmac_sha256(key: bytes, data: bytes) -> bytes:
    """HMAC-SHA256"""
    return hmac.new(key, data, hashlib.sha256).digest()
