"""Randomness, secret buffers and XChaCha20-Poly1305 envelope encryption."""

import hmac
import os
from typing import List, Union

from Crypto.Cipher import ChaCha20_Poly1305

from .error import CryptoError, DecryptionFailed
from .types import KEY_LEN, MAC_SIZE, NONCE_SIZE

BytesLike = Union[bytes, bytearray, memoryview]


def rand_bytes(n: int) -> bytes:
    """Generate n random bytes using OS-provided secure random."""
    return os.urandom(n)


def zero_bytes(data: Union[bytearray, memoryview]) -> None:
    """
    Securely zero a bytearray to prevent sensitive data from lingering in memory.
    Note: Python doesn't guarantee memory clearing, but we overwrite anyway.
    """
    for i in range(len(data)):
        data[i] = 0


class OsRandom:
    """Random generator backed by the operating system CSPRNG."""

    def fill(self, buffer: bytearray) -> None:
        try:
            buffer[:] = rand_bytes(len(buffer))
        except (OSError, NotImplementedError) as e:
            raise CryptoError("random generation failed") from e


class SecretBuffer:
    """
    Owned, wipeable secret bytes.

    The buffer is zeroed when wiped explicitly, when used as a context
    manager, or when garbage collected. Values handed to third-party
    primitives are copied to ``bytes`` and cannot be wiped.
    """

    __slots__ = ("_data", "_wiped")

    def __init__(self, size: int = 0):
        self._data = bytearray(size)
        self._wiped = False

    @classmethod
    def adopt(cls, data: BytesLike) -> "SecretBuffer":
        """Take ownership of a bytearray, or copy any other bytes-like value."""
        buf = cls()
        buf._data = data if isinstance(data, bytearray) else bytearray(data)
        return buf

    @classmethod
    def copy_of(cls, data: BytesLike) -> "SecretBuffer":
        """Copy data into a new buffer, leaving the caller's copy untouched."""
        buf = cls()
        buf._data = bytearray(data)
        return buf

    @property
    def data(self) -> bytearray:
        if self._wiped:
            raise CryptoError("secret buffer already wiped")
        return self._data

    @property
    def wiped(self) -> bool:
        return self._wiped

    def wipe(self) -> None:
        if self._wiped:
            return
        zero_bytes(self._data)
        self._wiped = True

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"<SecretBuffer len={len(self._data)} wiped={self._wiped}>"

    def __enter__(self) -> "SecretBuffer":
        return self

    def __exit__(self, *exc) -> None:
        self.wipe()

    def __del__(self):
        if hasattr(self, "_data"):
            self.wipe()


class SecretArena:
    """Scope owning several secret buffers, all wiped together on exit."""

    def __init__(self):
        self._buffers: List[SecretBuffer] = []

    def alloc(self, size: int) -> SecretBuffer:
        return self.track(SecretBuffer(size))

    def adopt(self, data: BytesLike) -> SecretBuffer:
        return self.track(SecretBuffer.adopt(data))

    def track(self, buf: SecretBuffer) -> SecretBuffer:
        self._buffers.append(buf)
        return buf

    def wipe(self) -> None:
        for buf in self._buffers:
            buf.wipe()
        self._buffers.clear()

    def __len__(self) -> int:
        return len(self._buffers)

    def __enter__(self) -> "SecretArena":
        return self

    def __exit__(self, *exc) -> None:
        self.wipe()


def encrypt(key: BytesLike, nonce: BytesLike, pt: BytesLike) -> bytes:
    """
    Encrypt plaintext using XChaCha20-Poly1305.

    Args:
        key: Envelope key (32 bytes)
        nonce: Random nonce (24 bytes), never reused with the same key
        pt: Plaintext

    Returns:
        Ciphertext with authentication tag appended

    Note: The caller is responsible for zeroing the key after use.
    """
    if len(key) != KEY_LEN:
        raise CryptoError("AEAD key has wrong length")
    if len(nonce) != NONCE_SIZE:
        raise CryptoError("AEAD nonce has wrong length")

    cipher = ChaCha20_Poly1305.new(key=bytes(key), nonce=bytes(nonce))
    ciphertext, tag = cipher.encrypt_and_digest(bytes(pt))
    return ciphertext + tag


def decrypt(key: BytesLike, nonce: BytesLike, ct: BytesLike) -> bytearray:
    """
    Decrypt ciphertext using XChaCha20-Poly1305.

    Returns:
        Decrypted plaintext as a bytearray the caller should wipe

    Raises:
        DecryptionFailed: If decryption or authentication fails
    """
    if len(key) != KEY_LEN:
        raise CryptoError("AEAD key has wrong length")
    if len(nonce) != NONCE_SIZE:
        raise DecryptionFailed("Nonce has wrong length")
    if len(ct) < MAC_SIZE:
        raise DecryptionFailed("Ciphertext too short")

    ct = bytes(ct)
    cipher = ChaCha20_Poly1305.new(key=bytes(key), nonce=bytes(nonce))

    try:
        return bytearray(cipher.decrypt_and_verify(ct[:-MAC_SIZE], ct[-MAC_SIZE:]))
    except ValueError:
        raise DecryptionFailed("Decryption failed: authentication tag mismatch") from None


class XChaCha20Poly1305Cipher:
    """AEAD collaborator wrapping :func:`encrypt` and :func:`decrypt`."""

    key_size = KEY_LEN
    nonce_size = NONCE_SIZE
    mac_size = MAC_SIZE

    def encrypt(self, key: BytesLike, nonce: BytesLike, plaintext: BytesLike) -> bytes:
        return encrypt(key, nonce, plaintext)

    def decrypt(self, key: BytesLike, nonce: BytesLike, ciphertext: BytesLike) -> bytearray:
        return decrypt(key, nonce, ciphertext)


def constant_time_equal(a: BytesLike, b: BytesLike) -> bool:
    return hmac.compare_digest(bytes(a), bytes(b))
