"""Tests for the P-256 oblivious PRF."""

import pytest

from opaque_client import CryptoError, ValidationError, blind, evaluate, finalize, generate_key
from opaque_client.oprf import (
    N,
    P,
    _curve_rhs,
    _sqrt,
    decode_element,
    encode_element,
    generator,
    hash_to_curve,
    random_scalar,
)

PASSWORD = b"correct horse battery staple"


def prf(password, key, public_key):
    """Run blind / evaluate / finalize once."""
    challenge, r = blind(password)
    return finalize(password, evaluate(key, challenge), public_key, r)


def test_generator_encoding():
    """Compressed encoding of the P-256 base point."""
    expected = bytes.fromhex(
        "036b17d1f2e12c4247f8bce6e563a440f277037d812deb33a0f4a13945d898c296"
    )
    assert encode_element(generator()) == expected
    assert encode_element(decode_element(expected)) == expected


def test_output_is_independent_of_blind():
    key, public_key = generate_key()
    assert prf(PASSWORD, key, public_key) == prf(PASSWORD, key, public_key)


def test_output_depends_on_password_and_key():
    key, public_key = generate_key()
    other_key, other_public = generate_key()

    out = prf(PASSWORD, key, public_key)
    assert len(out) == 32
    assert prf(b"correct horse battery stapler", key, public_key) != out
    assert prf(PASSWORD, other_key, other_public) != out


def test_challenges_are_blinded():
    challenge_a, r_a = blind(PASSWORD)
    challenge_b, r_b = blind(PASSWORD)

    assert challenge_a != challenge_b
    assert r_a != r_b
    assert encode_element(hash_to_curve(PASSWORD)) not in (challenge_a, challenge_b)


def test_mismatched_scalar_changes_output():
    key, public_key = generate_key()
    challenge, r = blind(PASSWORD)
    _other_challenge, other_r = blind(PASSWORD)
    response = evaluate(key, challenge)

    assert finalize(PASSWORD, response, public_key, r) != finalize(PASSWORD, response, public_key, other_r)


def test_hash_to_curve_is_deterministic():
    assert encode_element(hash_to_curve(PASSWORD)) == encode_element(hash_to_curve(bytearray(PASSWORD)))
    assert encode_element(hash_to_curve(PASSWORD)) != encode_element(hash_to_curve(b"other"))


def test_decode_rejects_malformed_elements():
    valid = encode_element(generator())

    with pytest.raises(ValidationError):
        decode_element(valid[:-1])
    with pytest.raises(ValidationError):
        decode_element(b"\x04" + valid[1:])
    with pytest.raises(ValidationError):
        decode_element(b"\x02" + b"\xff" * 32)

    x = 1
    while _sqrt(_curve_rhs(x)) is not None:
        x += 1
    assert x < P
    with pytest.raises(ValidationError) as excinfo:
        decode_element(b"\x02" + x.to_bytes(32, "big"), "response")
    assert excinfo.value.field == "response"


def test_encoding_round_trips_hashed_points():
    """Compressed points keep both coordinates, including the y parity."""
    for password in (b"a", b"b", b"c"):
        point = hash_to_curve(password)
        encoded = encode_element(point)

        assert len(encoded) == 33
        assert encoded[0] == 2 + (int(point.xy[1]) & 1)
        assert decode_element(encoded).xy == point.xy
        negated = point * (N - 1)
        assert decode_element(encode_element(negated)).xy == negated.xy


def test_evaluate_rejects_invalid_challenge():
    key, _public_key = generate_key()
    with pytest.raises(ValidationError):
        evaluate(key, b"\x02" * 33 + b"\x00")


def test_finalize_rejects_bad_scalar():
    key, public_key = generate_key()
    challenge, _r = blind(PASSWORD)
    response = evaluate(key, challenge)

    with pytest.raises(CryptoError):
        finalize(PASSWORD, response, public_key, bytes(32))
    with pytest.raises(CryptoError):
        finalize(PASSWORD, response, public_key, bytes(31))


def test_random_scalar_uses_supplied_generator():
    class CountingRandom:
        calls = 0

        def fill(self, buffer):
            CountingRandom.calls += 1
            buffer[:] = bytes(range(len(buffer)))

    scalar = random_scalar(CountingRandom())
    assert len(scalar) == 32
    assert CountingRandom.calls == 1


def test_random_scalar_wipes_buffer_on_failure():
    seen = []

    class FailingRandom:
        def fill(self, buffer):
            buffer[:] = b"\x77" * len(buffer)
            seen.append(buffer)
            raise OSError("entropy source exhausted")

    with pytest.raises(OSError):
        random_scalar(FailingRandom())
    assert seen[0] == bytearray(len(seen[0]))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
