"""Signed payload envelopes (DSSE v1).

Binds a payload to its declared type with a length-prefixed
pre-authentication encoding, signs it with any number of providers, and
verifies every signature against a registered provider set.
"""

from __future__ import annotations

__version__ = "0.1.0"

from envelopecore.codec import b64_decode, b64_encode, pae
from envelopecore.envelope import Envelope, Signature
from envelopecore.errors import (
    ConfigError,
    CorruptEncodingError,
    EnvelopeError,
    MalformedEnvelopeError,
    NoSignatureError,
    NoSignersError,
    SigningError,
    UnknownKeyError,
    VerificationFailedError,
)
from envelopecore.signer import EnvelopeSigner, SignerVerifier
from envelopecore.verifier import (
    AcceptedKey,
    EnvelopeVerifier,
    Outcome,
    VerificationResult,
    Verifier,
)

__all__ = [
    "__version__",
    "pae",
    "b64_encode",
    "b64_decode",
    "Envelope",
    "Signature",
    "EnvelopeSigner",
    "EnvelopeVerifier",
    "SignerVerifier",
    "Verifier",
    "Outcome",
    "AcceptedKey",
    "VerificationResult",
    "EnvelopeError",
    "NoSignersError",
    "NoSignatureError",
    "UnknownKeyError",
    "VerificationFailedError",
    "CorruptEncodingError",
    "MalformedEnvelopeError",
    "SigningError",
    "ConfigError",
]
