"""Capability interfaces for the primitives the registration client consumes."""

from typing import Protocol, Tuple, Union, runtime_checkable

BytesLike = Union[bytes, bytearray]


@runtime_checkable
class KeypairGenerator(Protocol):
    """Long-term asymmetric keypair source."""

    public_key_size: int
    secret_key_size: int

    def generate(self) -> Tuple[bytes, BytesLike]:
        """Return (public_key, secret_key); raise CryptoError on entropy failure."""
        ...


@runtime_checkable
class OprfProvider(Protocol):
    """Client half of an oblivious PRF."""

    element_size: int
    scalar_size: int
    output_size: int

    def challenge(self, password: BytesLike) -> Tuple[bytes, BytesLike]:
        """Blind the password. Returns (challenge, r)."""
        ...

    def finalize(
        self,
        password: BytesLike,
        response: bytes,
        oprf_public_key: bytes,
        r: BytesLike,
    ) -> BytesLike:
        """
        Unblind the server response into rwd.

        Requires the r returned by the matching challenge call.
        """
        ...


@runtime_checkable
class HardeningFunction(Protocol):
    """Memory-hard key derivation, deterministic for fixed inputs."""

    key_size: int

    def derive(self, rwd: BytesLike, salt: bytes, ops_limit: int, mem_limit: int) -> BytesLike:
        ...


@runtime_checkable
class AeadCipher(Protocol):
    """Authenticated encryption; len(ciphertext) == len(plaintext) + mac_size."""

    key_size: int
    nonce_size: int
    mac_size: int

    def encrypt(self, key: BytesLike, nonce: BytesLike, plaintext: BytesLike) -> bytes:
        ...

    def decrypt(self, key: BytesLike, nonce: BytesLike, ciphertext: BytesLike) -> BytesLike:
        ...


@runtime_checkable
class RandomGenerator(Protocol):
    """Cryptographically secure randomness."""

    def fill(self, buffer: bytearray) -> None:
        ...
