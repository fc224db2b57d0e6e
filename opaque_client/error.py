"""OPAQUE client error types."""


class OpaqueError(Exception):
    """Base exception for OPAQUE registration errors."""
    pass


class ProtocolStateError(OpaqueError):
    """Operation invoked out of sequence."""
    pass


class ValidationError(OpaqueError):
    """Malformed or mis-sized input, usually from the server."""

    def __init__(self, message: str, field: str = ""):
        super().__init__(message)
        self.field = field


class CryptoError(OpaqueError):
    """Underlying primitive failure."""
    pass


class DecryptionFailed(CryptoError):
    """AEAD decryption failed."""
    pass


class ConfigError(OpaqueError):
    """Configuration error."""
    pass
