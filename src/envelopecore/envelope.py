"""Signed envelope data types and their JSON wire form.

Wire record:

    {
      "payload": "<base64 payload>",
      "payloadType": "<type string>",
      "signatures": [{"keyid": "<key id>", "sig": "<base64 signature>"}]
    }

Signature order is the order the signers ran. It carries no meaning for
verification but is preserved through serialization.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from envelopecore.codec import b64_decode, pae
from envelopecore.errors import MalformedEnvelopeError


@dataclass(frozen=True)
class Signature:
    """One signature over an envelope's PAE bytes.

    keyid is an unauthenticated hint naming the key that produced sig.
    """

    keyid: str
    sig: str

    def to_dict(self) -> dict[str, str]:
        """Convert to wire record."""
        return {"keyid": self.keyid, "sig": self.sig}

    @classmethod
    def from_dict(cls, data: Any) -> Signature:
        """Create from wire record.

        Accepts "keyID" as an alias for "keyid". A missing or null key
        id reads as the empty string.
        """
        if not isinstance(data, dict):
            raise MalformedEnvelopeError("signature entry must be an object")

        keyid = data.get("keyid", data.get("keyID"))
        if keyid is None:
            keyid = ""
        sig = data.get("sig")
        if not isinstance(keyid, str):
            raise MalformedEnvelopeError("signature keyid must be a string")
        if not isinstance(sig, str):
            raise MalformedEnvelopeError("signature sig must be a string")

        return cls(keyid=keyid, sig=sig)


@dataclass(frozen=True)
class Envelope:
    """A payload bound to its type and protected by signatures."""

    payload: str
    payload_type: str
    signatures: tuple[Signature, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        # Freeze the sequence so the envelope cannot change after signing
        object.__setattr__(self, "signatures", tuple(self.signatures))

    def decoded_payload(self) -> bytes:
        """Raw payload bytes.

        Raises:
            CorruptEncodingError: If payload is not valid base64
        """
        return b64_decode(self.payload)

    def pae(self) -> bytes:
        """The bytes every signature in this envelope covers."""
        return pae(self.payload_type, self.decoded_payload())

    @property
    def keyids(self) -> list[str]:
        return [s.keyid for s in self.signatures]

    def to_dict(self) -> dict[str, Any]:
        """Convert to wire record."""
        return {
            "payload": self.payload,
            "payloadType": self.payload_type,
            "signatures": [s.to_dict() for s in self.signatures],
        }

    @classmethod
    def from_dict(cls, data: Any) -> Envelope:
        """Create from wire record.

        Raises:
            MalformedEnvelopeError: If a field is missing or mistyped
        """
        if not isinstance(data, dict):
            raise MalformedEnvelopeError("envelope must be a JSON object")

        payload = data.get("payload")
        payload_type = data.get("payloadType")
        signatures = data.get("signatures", [])

        if not isinstance(payload, str):
            raise MalformedEnvelopeError("envelope payload must be a string")
        if not isinstance(payload_type, str):
            raise MalformedEnvelopeError("envelope payloadType must be a string")
        if signatures is None:
            signatures = []
        if not isinstance(signatures, list):
            raise MalformedEnvelopeError("envelope signatures must be a list")

        return cls(
            payload=payload,
            payload_type=payload_type,
            signatures=tuple(Signature.from_dict(s) for s in signatures),
        )

    def to_json(self, indent: int | None = None) -> str:
        """Serialize to JSON text."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, text: str | bytes) -> Envelope:
        """Parse JSON text into an envelope."""
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise MalformedEnvelopeError(f"invalid envelope JSON: {e}") from e
        return cls.from_dict(data)

    def write_json(self, path: Path) -> None:
        """Write to JSON file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(self.to_json(indent=2))
            f.write("\n")

    @classmethod
    def read_json(cls, path: Path) -> Envelope:
        """Load from JSON file."""
        with open(path, encoding="utf-8") as f:
            return cls.from_json(f.read())
