"""2HashDH oblivious PRF over NIST P-256."""

from typing import Optional, Tuple, Union

from Crypto.Hash import SHA256
from Crypto.PublicKey import ECC
from Crypto.PublicKey.ECC import EccPoint

from .crypto import OsRandom, zero_bytes
from .error import CryptoError, ValidationError
from .types import (
    FINALIZE_DST,
    H2C_DST,
    OPRF_ELEMENT_SIZE,
    OPRF_OUTPUT_SIZE,
    OPRF_SCALAR_SIZE,
)

Secret = Union[bytes, bytearray]

# P-256 domain parameters (FIPS 186-4, D.1.2.3)
P = 0xFFFFFFFF00000001000000000000000000000000FFFFFFFFFFFFFFFFFFFFFFFF
B = 0x5AC635D8AA3A93E7B3EBBD55769886BC651D06B0CC53B0F63BCE3C3E27D2604B
N = 0xFFFFFFFF00000000FFFFFFFFFFFFFFFFBCE6FAADA7179E84F3B9CAC2FC632551
GX = 0x6B17D1F2E12C4247F8BCE6E563A440F277037D812DEB33A0F4A13945D898C296
GY = 0x4FE342E2FE1A7F9B8EE7EB4A7C0F9E162BCE33576B315ECECBB6406837BF51F5

CURVE = "p256"
CURVE_NAME = "P-256"

# Every candidate is evaluated so the attempt count does not depend on the password
H2C_ATTEMPTS = 32


def _curve_rhs(x: int) -> int:
    return (pow(x, 3, P) - 3 * x + B) % P


def _sqrt(a: int) -> Optional[int]:
    # P = 3 mod 4
    y = pow(a, (P + 1) // 4, P)
    if y * y % P != a:
        return None
    return y


def generator() -> EccPoint:
    return EccPoint(GX, GY, curve=CURVE)


def encode_element(point: EccPoint) -> bytes:
    """Serialize a point in SEC1 compressed form (33 bytes)."""
    if point.is_point_at_infinity():
        raise CryptoError("cannot encode the identity element")
    x, y = point.xy
    key = ECC.construct(curve=CURVE_NAME, point_x=x, point_y=y)
    return key.export_key(format="SEC1", compress=True)


def decode_element(data: bytes, field: str = "element") -> EccPoint:
    """
    Parse a SEC1 compressed point.

    Raises:
        ValidationError: If data is not a valid non-identity P-256 point
    """
    if len(data) != OPRF_ELEMENT_SIZE:
        raise ValidationError(f"{field} has wrong length", field)
    if data[0] not in (2, 3):
        raise ValidationError(f"{field} is not a compressed point", field)
    # Coordinates must be reduced
    if int.from_bytes(data[1:], "big") >= P:
        raise ValidationError(f"{field} is not on the curve", field)

    try:
        point = ECC.import_key(bytes(data), curve_name=CURVE_NAME).pointQ
    except ValueError:
        raise ValidationError(f"{field} is not on the curve", field) from None
    if point.is_point_at_infinity():
        raise ValidationError(f"{field} is the identity element", field)
    return point


def hash_to_curve(data: Secret) -> EccPoint:
    """Map input to a P-256 point by try-and-increment over SHA-256."""
    found = None
    for ctr in range(H2C_ATTEMPTS):
        h = SHA256.new()
        h.update(H2C_DST)
        h.update(bytes([ctr]))
        h.update(data)
        x = int.from_bytes(h.digest(), "big") % P
        y = _sqrt(_curve_rhs(x))
        if y is not None and found is None:
            found = (x, y if y & 1 == 0 else P - y)

    if found is None:
        raise CryptoError("hash to curve failed")
    return EccPoint(found[0], found[1], curve=CURVE)


def random_scalar(rng=None) -> bytearray:
    """Return a uniformly random non-zero scalar as 32 big-endian bytes."""
    rng = rng or OsRandom()
    buf = bytearray(OPRF_SCALAR_SIZE + 16)
    try:
        while True:
            rng.fill(buf)
            k = int.from_bytes(buf, "big") % N
            if k != 0:
                return bytearray(k.to_bytes(OPRF_SCALAR_SIZE, "big"))
    finally:
        zero_bytes(buf)


def _scalar(data: Secret, field: str) -> int:
    if len(data) != OPRF_SCALAR_SIZE:
        raise CryptoError(f"{field} has wrong length")
    k = int.from_bytes(data, "big")
    if not 0 < k < N:
        raise CryptoError(f"{field} is out of range")
    return k


def blind(password: Secret, rng=None) -> Tuple[bytes, bytearray]:
    """
    Blind a password for the server (client side).

    Returns:
        Tuple of (challenge, r); r is a bytearray the caller owns and must
        wipe after finalize
    """
    r = random_scalar(rng)
    blinded = hash_to_curve(password) * _scalar(r, "r")
    return encode_element(blinded), r


def finalize(
    password: Secret,
    response: bytes,
    oprf_public_key: bytes,
    r: Secret,
) -> bytearray:
    """
    Unblind the server's evaluation and hash it into the randomized password.

    rwd = SHA256(DST || len(password) || password || oprf_public_key || r^-1 * response)
    """
    evaluated = decode_element(response, "response")
    decode_element(oprf_public_key, "oprfPublicKey")
    r_inv = pow(_scalar(r, "r"), -1, N)
    unblinded = evaluated * r_inv

    h = SHA256.new()
    h.update(FINALIZE_DST)
    h.update(len(password).to_bytes(4, "big"))
    h.update(password)
    h.update(oprf_public_key)
    h.update(encode_element(unblinded))
    return bytearray(h.digest())


def generate_key(rng=None) -> Tuple[bytearray, bytes]:
    """Generate an OPRF key pair (server side). Returns (secret_key, public_key)."""
    k = random_scalar(rng)
    return k, encode_element(generator() * _scalar(k, "oprf key"))


def evaluate(key: Secret, challenge: bytes) -> bytes:
    """Evaluate a blinded element under the OPRF key (server side)."""
    blinded = decode_element(challenge, "challenge")
    return encode_element(blinded * _scalar(key, "oprf key"))


class P256Oprf:
    """OPRF collaborator for the registration client."""

    element_size = OPRF_ELEMENT_SIZE
    scalar_size = OPRF_SCALAR_SIZE
    output_size = OPRF_OUTPUT_SIZE

    def __init__(self, rng=None):
        self._rng = rng or OsRandom()

    def challenge(self, password: Secret) -> Tuple[bytes, bytearray]:
        return blind(password, self._rng)

    def finalize(self, password: Secret, response: bytes, oprf_public_key: bytes, r: Secret) -> bytearray:
        return finalize(password, response, oprf_public_key, r)
