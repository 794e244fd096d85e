"""Envelope verification against a fixed set of providers.

Key ids are caller-supplied and unauthenticated, so they are never used to
pick a provider. Every signature is offered to every registered provider
in registration order until one accepts it. A signature nobody accepts
fails the whole envelope, but the remaining signatures are still checked
so all providers are consulted.

When a signature is unverified, the error raised is the last genuine
failure reported for it. An UnknownKeyError is raised only when every
provider disowned the key. With several unverified signatures the error
for the last one wins.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

from envelopecore.codec import b64_decode, pae
from envelopecore.envelope import Envelope
from envelopecore.errors import (
    NoSignatureError,
    NoSignersError,
    UnknownKeyError,
    VerificationFailedError,
)

logger = logging.getLogger(__name__)


class Verifier(Protocol):
    """Verifying half of the provider contract."""

    def verify(self, keyid: str, message: bytes, signature: bytes) -> None:
        """Return if signature is valid for message.

        Raises:
            UnknownKeyError: keyid does not belong to this provider
            VerificationFailedError: signature does not match
        """
        ...

    def key_id(self) -> str:
        """Own key identifier. May raise if unsupported."""
        ...


class Outcome(Enum):
    """Classification of a single provider verify call."""

    VERIFIED = "verified"
    KEY_MISMATCH = "key_mismatch"
    SIGNATURE_INVALID = "signature_invalid"


@dataclass(frozen=True)
class Attempt:
    """Result of offering one signature to one provider."""

    outcome: Outcome
    error: Exception | None = None


@dataclass(frozen=True)
class AcceptedKey:
    """A signature and the provider that accepted it."""

    keyid: str
    provider_index: int
    provider_key_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "keyid": self.keyid,
            "provider_index": self.provider_index,
            "provider_key_id": self.provider_key_id,
        }


@dataclass
class VerificationResult:
    """Successful verification of every signature in an envelope."""

    payload_type: str
    accepted: list[AcceptedKey] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return bool(self.accepted)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "valid": self.valid,
            "payload_type": self.payload_type,
            "accepted": [a.to_dict() for a in self.accepted],
        }


def collect_providers(providers: Iterable[Any]) -> tuple[Any, ...]:
    """Freeze a provider list, dropping absent entries.

    Raises:
        NoSignersError: If nothing is left
    """
    collected = tuple(p for p in providers if p is not None)
    if not collected:
        raise NoSignersError()
    return collected


def attempt_verify(provider: Verifier, keyid: str, message: bytes, signature: bytes) -> Attempt:
    """Offer a signature to one provider and classify the answer.

    A provider that returns False instead of raising is treated as a
    signature mismatch.
    """
    try:
        accepted = provider.verify(keyid, message, signature)
    except UnknownKeyError as e:
        return Attempt(Outcome.KEY_MISMATCH, e)
    except Exception as e:
        return Attempt(Outcome.SIGNATURE_INVALID, e)

    if accepted is False:
        return Attempt(Outcome.SIGNATURE_INVALID, VerificationFailedError(keyid=keyid))
    return Attempt(Outcome.VERIFIED)


def _own_key_id(provider: Verifier) -> str | None:
    try:
        return provider.key_id()
    except Exception as e:
        logger.debug("Provider %r does not report a key id: %s", provider, e)
        return None


class EnvelopeVerifier:
    """Verifies envelopes against an ordered, immutable provider list."""

    def __init__(self, *providers: Verifier) -> None:
        self._providers = collect_providers(providers)

    @property
    def providers(self) -> tuple[Verifier, ...]:
        return self._providers

    def verify(self, envelope: Envelope) -> VerificationResult:
        """Verify every signature in the envelope.

        Args:
            envelope: Envelope to verify

        Returns:
            VerificationResult naming the provider that accepted each signature

        Raises:
            NoSignatureError: If the envelope carries no signatures
            CorruptEncodingError: If the payload or a signature is not base64
            UnknownKeyError: If no provider recognized a signature's key
            Exception: The failure a provider reported for an unverified
                signature, as raised by that provider
        """
        if not envelope.signatures:
            raise NoSignatureError()

        message = pae(envelope.payload_type, b64_decode(envelope.payload))

        result = VerificationResult(payload_type=envelope.payload_type)
        failure: Exception | None = None

        for signature in envelope.signatures:
            sig_bytes = b64_decode(signature.sig)

            accepted, error = self._verify_signature(signature.keyid, message, sig_bytes)
            if accepted is None:
                logger.warning("No provider accepted signature with keyid %r: %s", signature.keyid, error)
                failure = error
                continue

            result.accepted.append(accepted)

        if failure is not None:
            raise failure

        return result

    def _verify_signature(
        self,
        keyid: str,
        message: bytes,
        sig_bytes: bytes,
    ) -> tuple[AcceptedKey | None, Exception | None]:
        """Try every provider until one accepts the signature."""
        last_mismatch: Exception | None = None
        last_invalid: Exception | None = None

        for index, provider in enumerate(self._providers):
            attempt = attempt_verify(provider, keyid, message, sig_bytes)
            logger.debug("Provider %d answered %s for keyid %r", index, attempt.outcome.value, keyid)

            if attempt.outcome is Outcome.VERIFIED:
                return AcceptedKey(keyid, index, _own_key_id(provider)), None
            if attempt.outcome is Outcome.KEY_MISMATCH:
                last_mismatch = attempt.error
            else:
                last_invalid = attempt.error

        if last_invalid is not None:
            return None, last_invalid
        return None, last_mismatch
