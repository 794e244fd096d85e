"""Error taxonomy for envelope signing and verification.

Every error raised by envelopecore derives from EnvelopeError so callers
can catch the whole family at once. Errors raised by a provider's sign
operation are not wrapped; they propagate unchanged.
"""

from __future__ import annotations


class EnvelopeError(Exception):
    """Base class for envelopecore errors."""
    pass


class NoSignersError(EnvelopeError):
    """A signer or verifier was constructed without providers."""

    def __init__(self, message: str = "no signers provided") -> None:
        super().__init__(message)


class NoSignatureError(EnvelopeError):
    """Verification was attempted on an envelope with no signatures."""

    def __init__(self, message: str = "no signature found") -> None:
        super().__init__(message)


class UnknownKeyError(EnvelopeError):
    """A provider does not recognize the claimed key identifier.

    Raised by providers as a routing signal: the verifier moves on to the
    next provider. Surfaced to the caller only when no provider claims
    the signature.
    """

    def __init__(self, keyid: str = "") -> None:
        self.keyid = keyid
        super().__init__(f"unknown key: {keyid!r}" if keyid else "unknown key")


class VerificationFailedError(EnvelopeError):
    """A provider recognized the key but the signature did not validate."""

    def __init__(self, message: str = "signature verification failed", keyid: str = "") -> None:
        self.keyid = keyid
        super().__init__(message)


class CorruptEncodingError(EnvelopeError):
    """Malformed base64 in a payload or signature field."""

    def __init__(self, offset: int) -> None:
        self.offset = offset
        super().__init__(f"illegal base64 data at input byte {offset}")


class MalformedEnvelopeError(EnvelopeError):
    """Wire record is missing a field or a field has the wrong type."""
    pass


class SigningError(EnvelopeError):
    """A bundled provider could not produce a signature."""
    pass


class ConfigError(EnvelopeError):
    """Invalid configuration value."""
    pass
