"""Key-backed signing providers.

Ed25519 and ECDSA P-256 providers built on the cryptography library. Each
holds one key and plugs into EnvelopeSigner / EnvelopeVerifier through the
provider contract (sign, verify, key_id). A provider built from a public
key alone is verify-only.

Key ids default to the first 16 hex characters of the SHA-256 of the DER
SubjectPublicKeyInfo, so the same public key always gets the same id.

Environment:
- ENVELOPE_SIGNING_PRIVATE_KEY: Base64-encoded PEM private key (optional)
"""

from __future__ import annotations

import hashlib
import os
from pathlib import Path
from typing import Any

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey
from cryptography.hazmat.primitives.asymmetric.utils import (
    decode_dss_signature,
    encode_dss_signature,
)

from envelopecore.codec import b64_decode
from envelopecore.errors import (
    ConfigError,
    CorruptEncodingError,
    SigningError,
    UnknownKeyError,
    VerificationFailedError,
)

ENV_PRIVATE_KEY = "ENVELOPE_SIGNING_PRIVATE_KEY"

# P-256 scalars are 32 bytes; raw signatures are r || s
_P256_SCALAR_SIZE = 32


def compute_keyid(public_key: Any) -> str:
    """Derive a stable key id from a public key."""
    der = public_key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return hashlib.sha256(der).hexdigest()[:16]


class KeyProvider:
    """Common plumbing for single-key providers."""

    algorithm = ""

    def __init__(
        self,
        private_key: Any = None,
        public_key: Any = None,
        keyid: str | None = None,
    ) -> None:
        if private_key is None and public_key is None:
            raise SigningError("No key material provided")

        self._private_key = private_key
        self._public_key = public_key if public_key is not None else private_key.public_key()
        self._keyid = keyid if keyid is not None else compute_keyid(self._public_key)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(keyid={self._keyid!r})"

    def key_id(self) -> str:
        return self._keyid

    def can_sign(self) -> bool:
        return self._private_key is not None

    def sign(self, message: bytes) -> tuple[bytes, str]:
        """Sign message.

        Raises:
            SigningError: If this provider holds no private key
        """
        if self._private_key is None:
            raise SigningError(f"No private key configured for {self._keyid}")
        return self._sign(message), self._keyid

    def verify(self, keyid: str, message: bytes, signature: bytes) -> None:
        """Verify signature over message.

        An empty keyid is accepted as addressed to any provider.

        Raises:
            UnknownKeyError: If keyid names a different key
            VerificationFailedError: If the signature does not match
        """
        if keyid and keyid != self._keyid:
            raise UnknownKeyError(keyid)

        try:
            self._verify(message, signature)
        except InvalidSignature:
            raise VerificationFailedError(keyid=self._keyid) from None

    def public_pem(self) -> bytes:
        return self._public_key.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )

    def private_pem(self) -> bytes:
        if self._private_key is None:
            raise SigningError(f"No private key configured for {self._keyid}")
        return self._private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )

    def _sign(self, message: bytes) -> bytes:
        raise NotImplementedError

    def _verify(self, message: bytes, signature: bytes) -> None:
        raise NotImplementedError


class Ed25519Provider(KeyProvider):
    """Ed25519 over the full PAE message."""

    algorithm = "ed25519"

    def __init__(
        self,
        private_key: Ed25519PrivateKey | None = None,
        public_key: Ed25519PublicKey | None = None,
        keyid: str | None = None,
    ) -> None:
        super().__init__(private_key, public_key, keyid)

    @classmethod
    def generate(cls, keyid: str | None = None) -> Ed25519Provider:
        return cls(private_key=Ed25519PrivateKey.generate(), keyid=keyid)

    def _sign(self, message: bytes) -> bytes:
        return self._private_key.sign(message)

    def _verify(self, message: bytes, signature: bytes) -> None:
        self._public_key.verify(signature, message)


class EcdsaProvider(KeyProvider):
    """ECDSA P-256 with SHA-256, raw r || s signatures."""

    algorithm = "ecdsa"

    def __init__(
        self,
        private_key: ec.EllipticCurvePrivateKey | None = None,
        public_key: ec.EllipticCurvePublicKey | None = None,
        keyid: str | None = None,
    ) -> None:
        super().__init__(private_key, public_key, keyid)
        if not isinstance(self._public_key.curve, ec.SECP256R1):
            raise SigningError(f"Unsupported curve: {self._public_key.curve.name}")

    @classmethod
    def generate(cls, keyid: str | None = None) -> EcdsaProvider:
        return cls(private_key=ec.generate_private_key(ec.SECP256R1()), keyid=keyid)

    def _sign(self, message: bytes) -> bytes:
        der = self._private_key.sign(message, ec.ECDSA(hashes.SHA256()))
        r, s = decode_dss_signature(der)
        return r.to_bytes(_P256_SCALAR_SIZE, "big") + s.to_bytes(_P256_SCALAR_SIZE, "big")

    def _verify(self, message: bytes, signature: bytes) -> None:
        if len(signature) != 2 * _P256_SCALAR_SIZE:
            raise InvalidSignature()
        r = int.from_bytes(signature[:_P256_SCALAR_SIZE], "big")
        s = int.from_bytes(signature[_P256_SCALAR_SIZE:], "big")
        self._public_key.verify(encode_dss_signature(r, s), message, ec.ECDSA(hashes.SHA256()))


ALGORITHMS: dict[str, type[KeyProvider]] = {
    Ed25519Provider.algorithm: Ed25519Provider,
    EcdsaProvider.algorithm: EcdsaProvider,
}


def generate_provider(algorithm: str = "ed25519", keyid: str | None = None) -> KeyProvider:
    """Create a provider around a freshly generated key."""
    try:
        provider_cls = ALGORITHMS[algorithm]
    except KeyError:
        raise ConfigError(f"Unsupported algorithm: {algorithm}") from None
    return provider_cls.generate(keyid=keyid)


def provider_from_pem(data: bytes, keyid: str | None = None) -> KeyProvider:
    """Build a provider from PEM key bytes, private or public."""
    try:
        if b"PRIVATE KEY" in data:
            private_key = serialization.load_pem_private_key(data, password=None)
            public_key = private_key.public_key()
        else:
            private_key = None
            public_key = serialization.load_pem_public_key(data)
    except (ValueError, TypeError) as e:
        raise ConfigError(f"Unreadable PEM key: {e}") from e

    if isinstance(public_key, Ed25519PublicKey):
        return Ed25519Provider(private_key=private_key, public_key=public_key, keyid=keyid)
    if isinstance(public_key, ec.EllipticCurvePublicKey):
        return EcdsaProvider(private_key=private_key, public_key=public_key, keyid=keyid)
    raise ConfigError(f"Unsupported key type: {type(public_key).__name__}")


def load_provider(path: Path, keyid: str | None = None) -> KeyProvider:
    """Load a provider from a PEM key file."""
    with open(path, "rb") as f:
        return provider_from_pem(f.read(), keyid=keyid)


def provider_from_env() -> KeyProvider | None:
    """Build a signing provider from ENVELOPE_SIGNING_PRIVATE_KEY, if set."""
    encoded = os.environ.get(ENV_PRIVATE_KEY)
    if not encoded:
        return None

    try:
        pem = b64_decode(encoded)
    except CorruptEncodingError as e:
        raise ConfigError(f"Invalid base64 in {ENV_PRIVATE_KEY}") from e

    return provider_from_pem(pem)
