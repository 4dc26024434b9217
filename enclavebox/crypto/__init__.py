"""enclavebox cryptographic primitives"""

from enclavebox.crypto.hashing import sha256, sha256d, hmac_sha256

from enclavebox.crypto.encoding import (
    B58_ALPHABET,
    encode_hex,
    decode_hex,
    b58encode,
    b58decode,
    b58check_encode,
    b58check_decode,
    b64url_encode,
    b64url_decode,
)

from enclavebox.crypto.field import mod_pow, mod_sqrt, mod_inverse

from enclavebox.crypto.ecc import (
    CurveParams,
    P256,
    SECP256K1,
    is_on_curve,
    point_add,
    point_multiply,
    compress_point,
    decompress_point,
    encode_point,
    decode_point,
    normalize_public_key,
    load_public_key,
    private_key_to_public_key,
    extract_private_key_from_pkcs8,
)

from enclavebox.crypto.signatures import (
    raw_to_der,
    der_to_raw,
    normalize_low_s,
    raw_signature_to_der,
    der_signature_to_raw,
    normalize_der_signature,
)

from enclavebox.crypto.hpke import (
    SealedEnvelope,
    build_associated_data,
    generate_keypair,
    seal,
    open_bytes,
    seal_to_bytes,
)
