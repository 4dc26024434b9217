"""
Pinned enclave key configuration.

Loads the enclave signer (quorum) key and the session notarizer key once
from the environment or a JSON config file. There are no built-in default
keys: a missing signer key is a hard error, never a silent fallback.
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional

from enclavebox.crypto.ecc import load_public_key
from enclavebox.crypto.encoding import decode_hex
from enclavebox.enclave.attestation import EnclaveAttestationVerifier
from enclavebox.errors import ConfigurationError, EncodingError, UnsupportedInput

logger = logging.getLogger(__name__)


class Config:
    """Enclave key configuration"""
    # Data directory for config files
    CONFIG_DIR = Path(os.environ.get('ENCLAVEBOX_CONFIG_DIR', Path.home() / ".enclavebox"))

    KEYS_FILE_NAME = "enclave_keys.json"

    SIGNER_ENV = "ENCLAVE_SIGNER_PUBLIC_KEY"
    NOTARIZER_ENV = "ENCLAVE_NOTARIZER_PUBLIC_KEY"

    @classmethod
    def keys_file(cls) -> Path:
        return cls.CONFIG_DIR / cls.KEYS_FILE_NAME

    @classmethod
    def _validate_key(cls, value: str, source: str) -> bytes:
        if not isinstance(value, str):
            raise ConfigurationError(
                f"Enclave public key in {source} must be a hex string, got {type(value).__name__}")
        try:
            key = decode_hex(value.strip())
            load_public_key(key)
        except (EncodingError, UnsupportedInput) as e:
            raise ConfigurationError(f"Invalid enclave public key in {source}: {e}") from e
        return key

    @classmethod
    def _load_key(cls, env_name: str, json_field: str) -> Optional[bytes]:
        """
        Key sources (checked in order):
        1. Environment variable (hex SEC1 public key)
        2. JSON config: CONFIG_DIR/enclave_keys.json
        """
        env_value = os.environ.get(env_name)
        if env_value:
            return cls._validate_key(env_value, env_name)

        json_file = cls.keys_file()
        if json_file.exists():
            try:
                data = json.loads(json_file.read_text())
            except (json.JSONDecodeError, OSError) as e:
                raise ConfigurationError(f"Unreadable key file {json_file}: {e}") from e
            value = data.get(json_field) if isinstance(data, dict) else None
            if value:
                return cls._validate_key(value, str(json_file))

        return None

    @classmethod
    def signer_public_key(cls) -> bytes:
        """Pinned enclave quorum key. Raises if not configured."""
        key = cls._load_key(cls.SIGNER_ENV, 'signer')
        if key is None:
            raise ConfigurationError(
                f"No enclave signer key configured. Set {cls.SIGNER_ENV} or add "
                f'"signer" to {cls.keys_file()} - refusing to trust unpinned bundles')
        return key

    @classmethod
    def notarizer_public_key(cls) -> bytes:
        """Pinned session notarizer key. Raises if not configured."""
        key = cls._load_key(cls.NOTARIZER_ENV, 'notarizer')
        if key is None:
            raise ConfigurationError(
                f"No notarizer key configured. Set {cls.NOTARIZER_ENV} or add "
                f'"notarizer" to {cls.keys_file()}')
        return key

    @classmethod
    def signer_verifier(cls) -> EnclaveAttestationVerifier:
        return EnclaveAttestationVerifier(cls.signer_public_key())

    @classmethod
    def notarizer_verifier(cls) -> EnclaveAttestationVerifier:
        return EnclaveAttestationVerifier(cls.notarizer_public_key())

    @classmethod
    def save_keys(cls, signer: str, notarizer: Optional[str] = None) -> Path:
        """Write pinned keys to the JSON config with owner-only permissions."""
        cls._validate_key(signer, 'signer')
        data = {'signer': signer.lower()}
        if notarizer:
            cls._validate_key(notarizer, 'notarizer')
            data['notarizer'] = notarizer.lower()

        cls.CONFIG_DIR.mkdir(parents=True, exist_ok=True)
        json_file = cls.keys_file()
        json_file.write_text(json.dumps(data, indent=2))
        try:
            json_file.chmod(0o600)
        except OSError:
            logger.warning("Could not restrict permissions on %s", json_file)
        return json_file
