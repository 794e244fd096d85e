"""Multi-signer envelope construction."""

from __future__ import annotations

import logging
from typing import Protocol

from envelopecore.codec import b64_encode, pae
from envelopecore.envelope import Envelope, Signature
from envelopecore.verifier import EnvelopeVerifier, VerificationResult, Verifier, collect_providers

logger = logging.getLogger(__name__)


class SignerVerifier(Verifier, Protocol):
    """Full provider contract: a Verifier that can also sign."""

    def sign(self, message: bytes) -> tuple[bytes, str]:
        """Sign message, returning (signature bytes, key id)."""
        ...


class EnvelopeSigner:
    """Signs payloads with every registered provider.

    Signing is all or nothing: the first provider that raises aborts the
    call and its exception propagates unchanged.
    """

    def __init__(self, *providers: SignerVerifier) -> None:
        self._providers = collect_providers(providers)
        self._verifier = EnvelopeVerifier(*self._providers)

    @property
    def providers(self) -> tuple[SignerVerifier, ...]:
        return self._providers

    def sign_payload(self, payload_type: str, payload: bytes) -> Envelope:
        """Sign payload bound to payload_type.

        Args:
            payload_type: Type string covered by every signature
            payload: Raw payload bytes

        Returns:
            Envelope with one signature per provider, in provider order
        """
        message = pae(payload_type, payload)

        signatures = []
        for index, provider in enumerate(self._providers):
            sig_bytes, keyid = provider.sign(message)
            logger.debug("Provider %d signed %d bytes as keyid %r", index, len(message), keyid)
            signatures.append(Signature(keyid=keyid, sig=b64_encode(sig_bytes)))

        return Envelope(
            payload=b64_encode(payload),
            payload_type=payload_type,
            signatures=tuple(signatures),
        )

    def verify(self, envelope: Envelope) -> VerificationResult:
        """Verify envelope against this signer's providers."""
        return self._verifier.verify(envelope)
