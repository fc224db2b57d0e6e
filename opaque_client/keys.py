"""Long-term X25519 key generation."""

from typing import Tuple

from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey

from .error import CryptoError
from .types import X25519_PRIVATE_KEY_SIZE, X25519_PUBLIC_KEY_SIZE


def generate_x25519_keypair() -> Tuple[bytes, bytearray]:
    """
    Generate a new X25519 key pair.

    Returns:
        Tuple of (public_key, private_key); the private key is a bytearray
        the caller owns and should wipe
    """
    private_key = X25519PrivateKey.generate()
    public_key = private_key.public_key()
    return (
        public_key.public_bytes_raw(),
        bytearray(private_key.private_bytes_raw())
    )


def x25519_public_key(our_priv: bytes) -> bytes:
    """Recompute the public half of an X25519 private key."""
    private_key = X25519PrivateKey.from_private_bytes(bytes(our_priv))
    return private_key.public_key().public_bytes_raw()


class X25519KeypairGenerator:
    """Keypair collaborator producing crypto_kx compatible keys."""

    public_key_size = X25519_PUBLIC_KEY_SIZE
    secret_key_size = X25519_PRIVATE_KEY_SIZE

    def generate(self) -> Tuple[bytes, bytearray]:
        try:
            return generate_x25519_keypair()
        except Exception as e:
            raise CryptoError("keypair generation failed") from e
