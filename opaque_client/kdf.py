"""Password hardening using Argon2id."""

from typing import Union

from argon2.exceptions import HashingError
from argon2.low_level import Type, hash_secret_raw

from .error import CryptoError, ValidationError
from .types import KEY_LEN, MEM_LIMIT_MIN, OPS_LIMIT_MIN, SALT_SIZE, ClientConfig

# libsodium crypto_pwhash uses a single lane
ARGON2_PARALLELISM: int = 1


def check_hardening_params(
    ops_limit: int,
    mem_limit: int,
    salt: bytes,
    config: ClientConfig,
) -> None:
    """
    Validate server-chosen hardening parameters.

    Raises:
        ValidationError: naming the offending field
    """
    if not isinstance(ops_limit, int) or isinstance(ops_limit, bool):
        raise ValidationError("hashOpsLimit must be an integer", "hashOpsLimit")
    if not isinstance(mem_limit, int) or isinstance(mem_limit, bool):
        raise ValidationError("hashMemLimit must be an integer", "hashMemLimit")
    if not OPS_LIMIT_MIN <= ops_limit <= config.max_ops_limit:
        raise ValidationError("hashOpsLimit out of range", "hashOpsLimit")
    if not MEM_LIMIT_MIN <= mem_limit <= config.max_mem_limit:
        raise ValidationError("hashMemLimit out of range", "hashMemLimit")
    if len(salt) != SALT_SIZE:
        raise ValidationError("hashSalt has wrong length", "hashSalt")


def harden(
    rwd: Union[bytes, bytearray],
    salt: bytes,
    ops_limit: int,
    mem_limit: int,
    length: int = KEY_LEN,
) -> bytearray:
    """
    Derive a symmetric key from the OPRF output (Argon2id v1.3).

    Args:
        rwd: Randomized password
        salt: Server-chosen salt (16 bytes)
        ops_limit: Argon2 time cost
        mem_limit: Memory cost in bytes, as in libsodium
        length: Output length

    Returns:
        Derived key as a bytearray the caller should wipe
    """
    try:
        key = hash_secret_raw(
            secret=bytes(rwd),
            salt=bytes(salt),
            time_cost=ops_limit,
            memory_cost=mem_limit // 1024,
            parallelism=ARGON2_PARALLELISM,
            hash_len=length,
            type=Type.ID,
        )
    except HashingError as e:
        raise CryptoError("password hardening failed") from e
    return bytearray(key)


class Argon2idHardener:
    """Hardening collaborator backed by argon2-cffi."""

    key_size = KEY_LEN

    def derive(self, rwd: Union[bytes, bytearray], salt: bytes, ops_limit: int, mem_limit: int) -> bytearray:
        return harden(rwd, salt, ops_limit, mem_limit, self.key_size)
