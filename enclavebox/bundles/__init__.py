"""Export and import bundle flows"""

from enclavebox.bundles.keys import TargetKeyPair, decode_private_key, encode_solana_keypair
from enclavebox.bundles.export import (
    ExportFlow,
    decrypt_export_bundle,
    decrypt_credential_bundle,
    parse_attested_bundle,
)
from enclavebox.bundles.importing import (
    ImportFlow,
    encrypt_private_key_to_bundle,
    encrypt_wallet_to_bundle,
    verified_target_key,
)
