"""Client-side registration state machine for the OPAQUE protocol."""

import logging
import threading
from typing import Callable, Optional, TypeVar, Union

from .crypto import OsRandom, SecretArena, SecretBuffer, XChaCha20Poly1305Cipher
from .envelope import pack_plaintext, seal_envelope
from .error import CryptoError, OpaqueError, ProtocolStateError, ValidationError
from .interfaces import AeadCipher, HardeningFunction, KeypairGenerator, OprfProvider, RandomGenerator
from .kdf import Argon2idHardener, check_hardening_params
from .keys import X25519KeypairGenerator
from .oprf import P256Oprf
from .types import (
    ClientConfig,
    ClientState,
    RegistrationRecord,
    RegistrationRequest,
    RegistrationResponse,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

Password = Union[str, bytes, bytearray, memoryview]


def _call(step: str, fn: Callable[..., T], *args) -> T:
    """Run a collaborator, reporting foreign failures as CryptoError."""
    try:
        return fn(*args)
    except OpaqueError:
        raise
    except Exception as e:
        raise CryptoError(f"{step} failed") from e


def _check_length(value, size: int, field: str) -> None:
    if not isinstance(value, (bytes, bytearray)):
        raise ValidationError(f"{field} must be bytes", field)
    if len(value) != size:
        raise ValidationError(f"{field} has wrong length", field)


class RegistrationClient:
    """
    One registration attempt: ``start`` then ``register``.

    Instances are single use and must not be shared between threads. All
    secrets (password, OPRF blind, secret key) are owned by the instance and
    wiped when the attempt completes, fails, or is closed.
    """

    def __init__(
        self,
        keypair_generator: Optional[KeypairGenerator] = None,
        oprf: Optional[OprfProvider] = None,
        hardener: Optional[HardeningFunction] = None,
        cipher: Optional[AeadCipher] = None,
        rng: Optional[RandomGenerator] = None,
        config: Optional[ClientConfig] = None,
    ):
        """
        Create a new registration attempt.

        Args:
            keypair_generator: Long-term keypair source (X25519 by default)
            oprf: OPRF provider (P-256 2HashDH by default)
            hardener: Hardening function (Argon2id by default)
            cipher: AEAD cipher (XChaCha20-Poly1305 by default)
            rng: Random generator used for the envelope nonce
            config: Limits applied to server-chosen parameters
        """
        config = config or ClientConfig()
        config.validate()

        self._lock = threading.Lock()
        self._config = config

        self._keypair_generator = keypair_generator or X25519KeypairGenerator()
        self._rng = rng or OsRandom()
        self._oprf = oprf or P256Oprf(self._rng)
        self._hardener = hardener or Argon2idHardener()
        self._cipher = cipher or XChaCha20Poly1305Cipher()

        self._state = ClientState.CREATED
        self._username: Optional[str] = None
        self._public_key: Optional[bytes] = None

        self._secrets = SecretArena()
        self._secret_key: Optional[SecretBuffer] = None
        self._password: Optional[SecretBuffer] = None
        self._r: Optional[SecretBuffer] = None

    @property
    def state(self) -> ClientState:
        with self._lock:
            return self._state

    @property
    def username(self) -> Optional[str]:
        with self._lock:
            return self._username

    @property
    def public_key(self) -> Optional[bytes]:
        with self._lock:
            return self._public_key

    def _require(self, expected: ClientState, operation: str) -> None:
        if self._state is not expected:
            raise ProtocolStateError(f"{operation} not allowed in state {self._state.value}")

    def _fail(self) -> None:
        self._secrets.wipe()
        self._state = ClientState.FAILED
        logger.debug("Registration attempt for %s invalidated", self._username)

    def start(self, username: str, password: Password) -> RegistrationRequest:
        """
        Begin registration: generate the keypair and blind the password.

        Args:
            username: Non-empty identifier
            password: Non-empty password; str values are UTF-8 encoded

        Returns:
            Message for the server; contains no password-derived secret

        Raises:
            ProtocolStateError: If the attempt was already started
            ValidationError: If username or password is empty
            CryptoError: If keypair generation or blinding fails
        """
        with self._lock:
            self._require(ClientState.CREATED, "start")

            if not isinstance(username, str) or not username:
                raise ValidationError("username must be a non-empty string", "username")
            if isinstance(password, str):
                password = password.encode("utf-8")
            if not isinstance(password, (bytes, bytearray, memoryview)) or len(password) == 0:
                raise ValidationError("password must be a non-empty byte sequence", "password")

            arena = SecretArena()
            try:
                public_key, secret_key = _call("keypair generation", self._keypair_generator.generate)
                secret_key = arena.adopt(secret_key)
                if len(public_key) != self._keypair_generator.public_key_size:
                    raise CryptoError("keypair generation returned a mis-sized key")

                pw = arena.track(SecretBuffer.copy_of(password))

                challenge, r = _call("oprf challenge", self._oprf.challenge, pw.data)
                r = arena.adopt(r)
                if len(r) != self._oprf.scalar_size:
                    raise CryptoError("oprf challenge returned a mis-sized scalar")
            except Exception:
                arena.wipe()
                raise

            self._secrets = arena
            self._username = username
            self._public_key = bytes(public_key)
            self._secret_key = secret_key
            self._password = pw
            self._r = r
            self._state = ClientState.STARTED
            logger.debug("Registration started for %s", username)

            return RegistrationRequest(username=username, challenge=bytes(challenge))

    def register(
        self,
        response: bytes,
        oprf_public_key: bytes,
        server_public_key: bytes,
        hash_ops_limit: int,
        hash_mem_limit: int,
        hash_salt: bytes,
    ) -> RegistrationRecord:
        """
        Finish registration and produce the envelope.

        Args:
            response: Server's evaluation of the challenge
            oprf_public_key: Server's OPRF public key
            server_public_key: Server's key-exchange public key
            hash_ops_limit: Hardening time cost
            hash_mem_limit: Hardening memory cost in bytes
            hash_salt: Hardening salt

        Returns:
            Record holding the username, public key and envelope

        Raises:
            ProtocolStateError: If not in the started state
            ValidationError: If any input is malformed or mis-sized
            CryptoError: If a primitive fails
        """
        with self._lock:
            self._require(ClientState.STARTED, "register")

            try:
                _check_length(response, self._oprf.element_size, "response")
                _check_length(oprf_public_key, self._oprf.element_size, "oprfPublicKey")
                _check_length(server_public_key, self._keypair_generator.public_key_size, "serverPublicKey")
                if not isinstance(hash_salt, (bytes, bytearray)):
                    raise ValidationError("hashSalt must be bytes", "hashSalt")
                check_hardening_params(hash_ops_limit, hash_mem_limit, hash_salt, self._config)
            except ValidationError as e:
                logger.warning("Rejected registration input field %s", e.field)
                if not self._config.allow_retry_after_validation_error:
                    self._fail()
                raise

            try:
                record = self._finish(
                    response,
                    oprf_public_key,
                    server_public_key,
                    hash_ops_limit,
                    hash_mem_limit,
                    hash_salt,
                )
            except Exception:
                self._fail()
                raise
            finally:
                self._secrets.wipe()

            self._state = ClientState.REGISTERED
            logger.debug("Registration finished for %s", self._username)
            return record

    def _finish(
        self,
        response: bytes,
        oprf_public_key: bytes,
        server_public_key: bytes,
        hash_ops_limit: int,
        hash_mem_limit: int,
        hash_salt: bytes,
    ) -> RegistrationRecord:
        with SecretArena() as arena:
            rwd = arena.adopt(_call(
                "oprf finalize",
                self._oprf.finalize,
                self._password.data,
                bytes(response),
                bytes(oprf_public_key),
                self._r.data,
            ))
            # r is single use
            self._r.wipe()
            self._password.wipe()
            if len(rwd) != self._oprf.output_size:
                raise CryptoError("oprf finalize returned a mis-sized output")

            key = arena.adopt(_call(
                "password hardening",
                self._hardener.derive,
                rwd.data,
                bytes(hash_salt),
                hash_ops_limit,
                hash_mem_limit,
            ))
            rwd.wipe()
            if len(key) != self._cipher.key_size:
                raise CryptoError("password hardening returned a mis-sized key")

            plaintext = pack_plaintext(arena, self._public_key, self._secret_key.data, bytes(server_public_key))
            self._secret_key.wipe()

            envelope = _call("envelope encryption", seal_envelope, key, plaintext, self._cipher, self._rng)

        return RegistrationRecord(
            username=self._username,
            public_key=self._public_key,
            envelope=envelope,
        )

    def register_response(self, message: RegistrationResponse) -> RegistrationRecord:
        """Finish registration from a decoded server reply."""
        return self.register(
            response=message.response,
            oprf_public_key=message.oprf_public_key,
            server_public_key=message.server_public_key,
            hash_ops_limit=message.hash_ops_limit,
            hash_mem_limit=message.hash_mem_limit,
            hash_salt=message.hash_salt,
        )

    def close(self) -> None:
        """Wipe all secrets and invalidate an unfinished attempt."""
        with self._lock:
            self._secrets.wipe()
            if self._state in (ClientState.CREATED, ClientState.STARTED):
                self._fail()

    def __enter__(self) -> "RegistrationClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
