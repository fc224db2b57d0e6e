"""Envelope plaintext layout, sealing and opening."""

from dataclasses import dataclass
from typing import Optional, Union

from .crypto import (
    OsRandom,
    SecretArena,
    SecretBuffer,
    XChaCha20Poly1305Cipher,
    constant_time_equal,
)
from .error import CryptoError, DecryptionFailed, OpaqueError
from .kdf import Argon2idHardener
from .keys import x25519_public_key
from .oprf import P256Oprf
from .types import (
    ENVELOPE_PLAINTEXT_SIZE,
    X25519_PRIVATE_KEY_SIZE,
    X25519_PUBLIC_KEY_SIZE,
    Envelope,
    RegistrationResponse,
)

BytesLike = Union[bytes, bytearray]


@dataclass
class EnvelopeContents:
    """Opened envelope. The secret key stays in a wipeable buffer."""

    user_public_key: bytes
    user_secret_key: SecretBuffer
    server_public_key: bytes

    def wipe(self) -> None:
        self.user_secret_key.wipe()


def pack_plaintext(
    arena: SecretArena,
    user_public_key: bytes,
    user_secret_key: BytesLike,
    server_public_key: bytes,
) -> SecretBuffer:
    """
    Lay out the envelope plaintext inside the arena.

    userPublicKey(32) || userSecretKey(32) || serverPublicKey(32)
    """
    if len(user_public_key) != X25519_PUBLIC_KEY_SIZE:
        raise CryptoError("user public key has wrong length")
    if len(user_secret_key) != X25519_PRIVATE_KEY_SIZE:
        raise CryptoError("user secret key has wrong length")
    if len(server_public_key) != X25519_PUBLIC_KEY_SIZE:
        raise CryptoError("server public key has wrong length")

    plaintext = arena.alloc(ENVELOPE_PLAINTEXT_SIZE)
    data = plaintext.data
    pk_end = X25519_PUBLIC_KEY_SIZE
    sk_end = pk_end + X25519_PRIVATE_KEY_SIZE
    data[:pk_end] = user_public_key
    data[pk_end:sk_end] = user_secret_key
    data[sk_end:] = server_public_key
    return plaintext


def unpack_plaintext(plaintext: BytesLike) -> EnvelopeContents:
    if len(plaintext) != ENVELOPE_PLAINTEXT_SIZE:
        raise DecryptionFailed("Envelope plaintext has wrong length")
    pk_end = X25519_PUBLIC_KEY_SIZE
    sk_end = pk_end + X25519_PRIVATE_KEY_SIZE
    return EnvelopeContents(
        user_public_key=bytes(plaintext[:pk_end]),
        user_secret_key=SecretBuffer.adopt(bytearray(plaintext[pk_end:sk_end])),
        server_public_key=bytes(plaintext[sk_end:]),
    )


def seal_envelope(key: SecretBuffer, plaintext: SecretBuffer, cipher=None, rng=None) -> Envelope:
    """
    Encrypt the plaintext under a freshly generated nonce.

    Raises:
        CryptoError: If the cipher output length is not plaintext + MAC
    """
    cipher = cipher or XChaCha20Poly1305Cipher()
    rng = rng or OsRandom()

    nonce = bytearray(cipher.nonce_size)
    rng.fill(nonce)
    ciphertext = cipher.encrypt(key.data, nonce, plaintext.data)
    if len(ciphertext) != len(plaintext) + cipher.mac_size:
        raise CryptoError("AEAD output has unexpected length")
    return Envelope(ciphertext=bytes(ciphertext), nonce=bytes(nonce))


def open_envelope(
    envelope: Envelope,
    key: Union[SecretBuffer, BytesLike],
    cipher=None,
    expected_public_key: Optional[bytes] = None,
) -> EnvelopeContents:
    """
    Decrypt an envelope and split it into its keys.

    When expected_public_key is given, the recovered user public key and the
    public half of the recovered secret key must both match it.

    Raises:
        DecryptionFailed: If authentication or the consistency check fails
    """
    cipher = cipher or XChaCha20Poly1305Cipher()
    raw_key = key.data if isinstance(key, SecretBuffer) else key

    with SecretBuffer.adopt(cipher.decrypt(raw_key, envelope.nonce, envelope.ciphertext)) as plaintext:
        contents = unpack_plaintext(plaintext.data)

    if expected_public_key is not None:
        derived = x25519_public_key(contents.user_secret_key.data)
        if not (constant_time_equal(contents.user_public_key, expected_public_key)
                and constant_time_equal(derived, expected_public_key)):
            contents.wipe()
            raise DecryptionFailed("Envelope keys do not match the registered public key")
    return contents


def recover_envelope_key(
    password: BytesLike,
    response: RegistrationResponse,
    r: BytesLike,
    oprf=None,
    hardener=None,
) -> SecretBuffer:
    """
    Re-derive the envelope key from a password and a server reply.

    r must come from the challenge the server evaluated into response.
    """
    oprf = oprf or P256Oprf()
    hardener = hardener or Argon2idHardener()

    with SecretArena() as arena:
        try:
            rwd = arena.adopt(oprf.finalize(password, response.response, response.oprf_public_key, r))
            return SecretBuffer.adopt(hardener.derive(
                rwd.data,
                response.hash_salt,
                response.hash_ops_limit,
                response.hash_mem_limit,
            ))
        except OpaqueError:
            raise
        except Exception as e:
            raise CryptoError("envelope key derivation failed") from e
