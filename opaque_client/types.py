"""Constants and types for the OPAQUE registration client."""

import base64
import binascii
import enum
import json
from dataclasses import dataclass
from typing import Any, Dict

from .error import ConfigError, ValidationError


# Key length in bytes (AEAD key and hardened key)
KEY_LEN: int = 32

# X25519 key sizes
X25519_PUBLIC_KEY_SIZE: int = 32
X25519_PRIVATE_KEY_SIZE: int = 32

# OPRF over P-256: SEC1 compressed element, big-endian scalar, SHA-256 output
OPRF_ELEMENT_SIZE: int = 33
OPRF_SCALAR_SIZE: int = 32
OPRF_OUTPUT_SIZE: int = 32

# Domain separation tags for the OPRF
H2C_DST: bytes = b"OPAQUE-Client-P256-H2C"
FINALIZE_DST: bytes = b"OPAQUE-Client-P256-Finalize"

# XChaCha20-Poly1305
NONCE_SIZE: int = 24
MAC_SIZE: int = 16

# Argon2id, following libsodium crypto_pwhash conventions
SALT_SIZE: int = 16
OPS_LIMIT_MIN: int = 1
MEM_LIMIT_MIN: int = 8192  # bytes

# Envelope plaintext: user public key || user secret key || server public key
ENVELOPE_PLAINTEXT_SIZE: int = (
    X25519_PUBLIC_KEY_SIZE + X25519_PRIVATE_KEY_SIZE + X25519_PUBLIC_KEY_SIZE
)
ENVELOPE_CIPHERTEXT_SIZE: int = ENVELOPE_PLAINTEXT_SIZE + MAC_SIZE


class ClientState(enum.Enum):
    """Registration attempt lifecycle."""

    CREATED = "created"
    STARTED = "started"
    REGISTERED = "registered"
    FAILED = "failed"


@dataclass
class ClientConfig:
    """Limits applied to server-chosen parameters."""

    max_ops_limit: int = 16
    max_mem_limit: int = 1 << 30  # 1 GiB
    # Only covers failures caught before any cryptographic work in register
    allow_retry_after_validation_error: bool = True

    @classmethod
    def strict(cls) -> "ClientConfig":
        """Return a profile that invalidates the attempt on any register failure."""
        return cls(allow_retry_after_validation_error=False)

    def validate(self) -> None:
        """Validate the configuration, raises ConfigError if invalid."""
        if self.max_ops_limit < OPS_LIMIT_MIN:
            raise ConfigError(f"max_ops_limit must be >= {OPS_LIMIT_MIN}")
        if self.max_mem_limit < MEM_LIMIT_MIN:
            raise ConfigError(f"max_mem_limit must be >= {MEM_LIMIT_MIN}")


def b64e(data: bytes) -> str:
    return base64.b64encode(bytes(data)).decode("ascii")


def b64d(value: Any, field: str) -> bytes:
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a base64 string", field)
    try:
        return base64.b64decode(value.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError):
        raise ValidationError(f"{field} is not valid base64", field) from None


def _load(data: bytes) -> Dict[str, Any]:
    try:
        d = json.loads(data)
    except (ValueError, UnicodeDecodeError):
        raise ValidationError("message is not valid JSON") from None
    if not isinstance(d, dict):
        raise ValidationError("message must be a JSON object")
    return d


def _get(d: Dict[str, Any], key: str) -> Any:
    if key not in d:
        raise ValidationError(f"missing field {key}", key)
    return d[key]


def _get_str(d: Dict[str, Any], key: str) -> str:
    value = _get(d, key)
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string", key)
    return value


def _get_int(d: Dict[str, Any], key: str) -> int:
    value = _get(d, key)
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValidationError(f"{key} must be an integer", key)
    return value


@dataclass
class RegistrationRequest:
    """Registration-start message sent to the server."""

    username: str
    challenge: bytes  # Blinded OPRF element

    def to_json(self) -> bytes:
        return json.dumps({
            "username": self.username,
            "challenge": b64e(self.challenge),
        }).encode()

    @classmethod
    def from_json(cls, data: bytes) -> "RegistrationRequest":
        d = _load(data)
        return cls(
            username=_get_str(d, "username"),
            challenge=b64d(_get(d, "challenge"), "challenge"),
        )


@dataclass
class RegistrationResponse:
    """Server reply to a registration-start message."""

    response: bytes  # Evaluated OPRF element
    oprf_public_key: bytes
    server_public_key: bytes  # Server's X25519 key-exchange public key
    hash_ops_limit: int
    hash_mem_limit: int  # bytes
    hash_salt: bytes

    def to_json(self) -> bytes:
        return json.dumps({
            "response": b64e(self.response),
            "oprfPublicKey": b64e(self.oprf_public_key),
            "serverPublicKey": b64e(self.server_public_key),
            "hashOpsLimit": self.hash_ops_limit,
            "hashMemLimit": self.hash_mem_limit,
            "hashSalt": b64e(self.hash_salt),
        }).encode()

    @classmethod
    def from_json(cls, data: bytes) -> "RegistrationResponse":
        d = _load(data)
        return cls(
            response=b64d(_get(d, "response"), "response"),
            oprf_public_key=b64d(_get(d, "oprfPublicKey"), "oprfPublicKey"),
            server_public_key=b64d(_get(d, "serverPublicKey"), "serverPublicKey"),
            hash_ops_limit=_get_int(d, "hashOpsLimit"),
            hash_mem_limit=_get_int(d, "hashMemLimit"),
            hash_salt=b64d(_get(d, "hashSalt"), "hashSalt"),
        )


@dataclass
class Envelope:
    """Encrypted keypair and server public key."""

    ciphertext: bytes  # Includes the Poly1305 tag
    nonce: bytes

    def to_dict(self) -> Dict[str, str]:
        return {
            "ciphertext": b64e(self.ciphertext),
            "nonce": b64e(self.nonce),
        }

    @classmethod
    def from_dict(cls, d: Any) -> "Envelope":
        if not isinstance(d, dict):
            raise ValidationError("envelope must be a JSON object", "envelope")
        return cls(
            ciphertext=b64d(_get(d, "ciphertext"), "ciphertext"),
            nonce=b64d(_get(d, "nonce"), "nonce"),
        )


@dataclass
class RegistrationRecord:
    """Registration-finish message handed to transport or storage."""

    username: str
    public_key: bytes
    envelope: Envelope

    def to_json(self) -> bytes:
        return json.dumps({
            "username": self.username,
            "publicKey": b64e(self.public_key),
            "envelope": self.envelope.to_dict(),
        }).encode()

    @classmethod
    def from_json(cls, data: bytes) -> "RegistrationRecord":
        d = _load(data)
        return cls(
            username=_get_str(d, "username"),
            public_key=b64d(_get(d, "publicKey"), "publicKey"),
            envelope=Envelope.from_dict(_get(d, "envelope")),
        )
