"""Deterministic collaborator fakes for RegistrationClient tests."""

import hashlib
import os

import pytest

from opaque_client import RegistrationClient, XChaCha20Poly1305Cipher


class FakeKeypairGenerator:
    public_key_size = 32
    secret_key_size = 32

    def __init__(self, fail=False):
        self.fail = fail
        self.calls = 0
        self.secret_keys = []

    def generate(self):
        self.calls += 1
        if self.fail:
            raise OSError("entropy source exhausted")
        sk = bytearray(b"\x5a" * 32)
        self.secret_keys.append(sk)
        return b"\xa5" * 32, sk


class FakeOprf:
    """Blinds with fresh randomness; finalize ignores r so outputs are reproducible."""

    element_size = 33
    scalar_size = 32
    output_size = 32

    def __init__(self, fail_challenge=False, fail_finalize=False):
        self.fail_challenge = fail_challenge
        self.fail_finalize = fail_finalize
        self.challenge_calls = 0
        self.finalize_calls = 0
        self.scalars = []
        self.outputs = []

    def challenge(self, password):
        self.challenge_calls += 1
        if self.fail_challenge:
            raise RuntimeError("blinding failed")
        r = bytearray(os.urandom(32))
        self.scalars.append(r)
        challenge = b"\x02" + hashlib.sha256(bytes(password) + bytes(r)).digest()
        return challenge, r

    def finalize(self, password, response, oprf_public_key, r):
        self.finalize_calls += 1
        if self.fail_finalize:
            raise RuntimeError("finalize failed")
        rwd = bytearray(hashlib.sha256(b"rwd" + bytes(password) + response + oprf_public_key).digest())
        self.outputs.append(rwd)
        return rwd


class FakeHardener:
    key_size = 32

    def __init__(self, fail=False):
        self.fail = fail
        self.calls = 0
        self.keys = []
        self.derived = []

    def derive(self, rwd, salt, ops_limit, mem_limit):
        self.calls += 1
        if self.fail:
            raise MemoryError("hardening memory limit exceeded")
        h = hashlib.sha256(b"key" + bytes(rwd) + salt)
        h.update(ops_limit.to_bytes(8, "big") + mem_limit.to_bytes(8, "big"))
        key = bytearray(h.digest())
        self.keys.append(key)
        self.derived.append(bytes(key))
        return key


class CountingCipher(XChaCha20Poly1305Cipher):
    def __init__(self, fail=False):
        self.fail = fail
        self.encrypt_calls = 0

    def encrypt(self, key, nonce, plaintext):
        self.encrypt_calls += 1
        if self.fail:
            raise ValueError("cipher backend failure")
        return super().encrypt(key, nonce, plaintext)


class CountingRandom:
    def __init__(self, fail=False):
        self.fail = fail
        self.calls = 0

    def fill(self, buffer):
        self.calls += 1
        if self.fail:
            raise OSError("entropy source exhausted")
        buffer[:] = os.urandom(len(buffer))


class Fakes:
    """Bundle of fakes wired into a client."""

    def __init__(self, **kwargs):
        self.keypair_generator = kwargs.pop("keypair_generator", FakeKeypairGenerator())
        self.oprf = kwargs.pop("oprf", FakeOprf())
        self.hardener = kwargs.pop("hardener", FakeHardener())
        self.cipher = kwargs.pop("cipher", CountingCipher())
        self.rng = kwargs.pop("rng", CountingRandom())
        self.config = kwargs.pop("config", None)

    def client(self):
        return RegistrationClient(
            keypair_generator=self.keypair_generator,
            oprf=self.oprf,
            hardener=self.hardener,
            cipher=self.cipher,
            rng=self.rng,
            config=self.config,
        )

    def crypto_calls(self):
        return (
            self.keypair_generator.calls,
            self.oprf.challenge_calls,
            self.oprf.finalize_calls,
            self.hardener.calls,
            self.cipher.encrypt_calls,
            self.rng.calls,
        )


@pytest.fixture
def fakes():
    return Fakes()


@pytest.fixture
def make_fakes():
    return Fakes


@pytest.fixture
def server_reply():
    """Well-formed register() arguments for the fake suite."""
    return dict(
        response=b"\x02" + b"\x11" * 32,
        oprf_public_key=b"\x03" + b"\x22" * 32,
        server_public_key=b"\x33" * 32,
        hash_ops_limit=2,
        hash_mem_limit=1 << 16,
        hash_salt=bytes(16),
    )


@pytest.fixture
def fake_oprf_cls():
    return FakeOprf


@pytest.fixture
def fake_keypair_cls():
    return FakeKeypairGenerator


@pytest.fixture
def fake_hardener_cls():
    return FakeHardener


@pytest.fixture
def counting_cipher_cls():
    return CountingCipher


@pytest.fixture
def counting_random_cls():
    return CountingRandom
