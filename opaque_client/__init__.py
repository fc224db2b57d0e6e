"""
OPAQUE client: registration phase

Client side of the registration (enrollment) phase of an OPAQUE-style
augmented PAKE. The password never leaves the client; the server only ever
sees a blinded OPRF element and, at the end, an envelope it cannot open.

Flow:
- start: generate a long-term X25519 keypair and blind the password (OPRF)
- register: unblind the server's evaluation into rwd, harden it with
  Argon2id, and seal {user public key, user secret key, server public key}
  with XChaCha20-Poly1305 under a fresh nonce

Every secret (password, OPRF blind, rwd, envelope key, secret key) lives in a
wipeable buffer that is zeroed on success and on failure.
"""

from .types import (
    KEY_LEN,
    X25519_PUBLIC_KEY_SIZE,
    X25519_PRIVATE_KEY_SIZE,
    OPRF_ELEMENT_SIZE,
    OPRF_SCALAR_SIZE,
    OPRF_OUTPUT_SIZE,
    NONCE_SIZE,
    MAC_SIZE,
    SALT_SIZE,
    OPS_LIMIT_MIN,
    MEM_LIMIT_MIN,
    ENVELOPE_PLAINTEXT_SIZE,
    ENVELOPE_CIPHERTEXT_SIZE,
    ClientConfig,
    ClientState,
    RegistrationRequest,
    RegistrationResponse,
    Envelope,
    RegistrationRecord,
)
from .crypto import (
    encrypt,
    decrypt,
    rand_bytes,
    zero_bytes,
    OsRandom,
    SecretBuffer,
    SecretArena,
    XChaCha20Poly1305Cipher,
)
from .kdf import harden, check_hardening_params, Argon2idHardener
from .keys import generate_x25519_keypair, x25519_public_key, X25519KeypairGenerator
from .oprf import blind, finalize, generate_key, evaluate, P256Oprf
from .interfaces import (
    KeypairGenerator,
    OprfProvider,
    HardeningFunction,
    AeadCipher,
    RandomGenerator,
)
from .envelope import (
    EnvelopeContents,
    pack_plaintext,
    unpack_plaintext,
    seal_envelope,
    open_envelope,
    recover_envelope_key,
)
from .client import RegistrationClient
from .error import (
    OpaqueError,
    ProtocolStateError,
    ValidationError,
    CryptoError,
    DecryptionFailed,
    ConfigError,
)

__version__ = "0.1.0"
__all__ = [
    # Constants
    "KEY_LEN",
    "X25519_PUBLIC_KEY_SIZE",
    "X25519_PRIVATE_KEY_SIZE",
    "OPRF_ELEMENT_SIZE",
    "OPRF_SCALAR_SIZE",
    "OPRF_OUTPUT_SIZE",
    "NONCE_SIZE",
    "MAC_SIZE",
    "SALT_SIZE",
    "OPS_LIMIT_MIN",
    "MEM_LIMIT_MIN",
    "ENVELOPE_PLAINTEXT_SIZE",
    "ENVELOPE_CIPHERTEXT_SIZE",
    # Types
    "ClientConfig",
    "ClientState",
    "RegistrationRequest",
    "RegistrationResponse",
    "Envelope",
    "RegistrationRecord",
    # Crypto
    "encrypt",
    "decrypt",
    "rand_bytes",
    "zero_bytes",
    "OsRandom",
    "SecretBuffer",
    "SecretArena",
    "XChaCha20Poly1305Cipher",
    # KDF
    "harden",
    "check_hardening_params",
    "Argon2idHardener",
    # Keys
    "generate_x25519_keypair",
    "x25519_public_key",
    "X25519KeypairGenerator",
    # OPRF
    "blind",
    "finalize",
    "generate_key",
    "evaluate",
    "P256Oprf",
    # Interfaces
    "KeypairGenerator",
    "OprfProvider",
    "HardeningFunction",
    "AeadCipher",
    "RandomGenerator",
    # Envelope
    "EnvelopeContents",
    "pack_plaintext",
    "unpack_plaintext",
    "seal_envelope",
    "open_envelope",
    "recover_envelope_key",
    # Client
    "RegistrationClient",
    # Error
    "OpaqueError",
    "ProtocolStateError",
    "ValidationError",
    "CryptoError",
    "DecryptionFailed",
    "ConfigError",
]
