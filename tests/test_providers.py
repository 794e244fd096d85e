"""Tests for the key-backed providers."""

from __future__ import annotations

import base64
from pathlib import Path

import pytest
from cryptography.hazmat.primitives.asymmetric import ec

from envelopecore.codec import pae
from envelopecore.envelope import Envelope, Signature
from envelopecore.errors import (
    ConfigError,
    SigningError,
    UnknownKeyError,
    VerificationFailedError,
)
from envelopecore.providers import (
    EcdsaProvider,
    Ed25519Provider,
    compute_keyid,
    generate_provider,
    load_provider,
    provider_from_env,
    provider_from_pem,
)
from envelopecore.signer import EnvelopeSigner
from envelopecore.verifier import EnvelopeVerifier

PAYLOAD_TYPE = "http://example.com/HelloWorld"
PAYLOAD = b"hello world"

# P-256 key from the DSSE protocol test vector
VECTOR_X = 46950820868899156662930047687818585632848591499744589407958293238635476079160
VECTOR_Y = 5640078356564379163099075877009565129882514886557779369047442380624545832820
VECTOR_D = 97358161215184420915383655311931858321456579547487070936769975997791359926199
VECTOR_SIG = "A3JqsQGtVsJ2O2xqrI5IcnXip5GToJ3F+FnZ+O88SjtR6rDAajabZKciJTfUiHqJPcIAriEGAHTVeCUjW2JIZA=="


def vector_public_key() -> ec.EllipticCurvePublicKey:
    return ec.EllipticCurvePublicNumbers(VECTOR_X, VECTOR_Y, ec.SECP256R1()).public_key()


@pytest.fixture(params=["ed25519", "ecdsa"])
def provider(request):
    return generate_provider(request.param)


class TestKeyProvider:
    """Behaviour shared by both algorithms."""

    def test_sign_and_verify(self, provider):
        """Test a raw message roundtrip."""
        signature, keyid = provider.sign(b"message")

        assert keyid == provider.key_id()
        provider.verify(keyid, b"message", signature)

    def test_verify_wrong_message(self, provider):
        """Test a signature over other bytes is rejected."""
        signature, keyid = provider.sign(b"original message")

        with pytest.raises(VerificationFailedError):
            provider.verify(keyid, b"different message", signature)

    def test_unknown_keyid(self, provider):
        """Test a foreign keyid is disowned before checking bytes."""
        signature, _ = provider.sign(b"message")

        with pytest.raises(UnknownKeyError):
            provider.verify("someone-else", b"message", signature)

    def test_empty_keyid_accepted(self, provider):
        """Test an empty keyid is checked against this key."""
        signature, _ = provider.sign(b"message")
        provider.verify("", b"message", signature)

    def test_default_keyid(self, provider):
        """Test the default keyid is derived from the public key."""
        assert len(provider.key_id()) == 16
        assert provider.key_id() == compute_keyid(provider._public_key)

    def test_explicit_keyid(self):
        """Test an explicit keyid overrides the derived one."""
        provider = generate_provider("ed25519", keyid="release-key")
        assert provider.key_id() == "release-key"
        assert provider.sign(b"m")[1] == "release-key"

    def test_verify_only(self, provider):
        """Test a public-key provider cannot sign."""
        public_only = provider_from_pem(provider.public_pem())

        assert public_only.can_sign() is False
        assert public_only.key_id() == provider.key_id()
        with pytest.raises(SigningError):
            public_only.sign(b"message")
        with pytest.raises(SigningError):
            public_only.private_pem()

    def test_envelope_roundtrip(self, provider):
        """Test signing and verifying a full envelope."""
        signer = EnvelopeSigner(provider)
        envelope = signer.sign_payload(PAYLOAD_TYPE, PAYLOAD)

        verifier = EnvelopeVerifier(provider_from_pem(provider.public_pem()))
        result = verifier.verify(envelope)
        assert result.accepted[0].keyid == provider.key_id()

    def test_no_key_material(self):
        """Test a provider needs at least a public key."""
        with pytest.raises(SigningError):
            Ed25519Provider()


class TestEcdsaProvider:
    """ECDSA specific tests."""

    def test_protocol_vector(self):
        """Test the published DSSE protocol signature verifies."""
        provider = EcdsaProvider(public_key=vector_public_key(), keyid="test key 123")
        envelope = Envelope(
            payload="aGVsbG8gd29ybGQ=",
            payload_type=PAYLOAD_TYPE,
            signatures=[Signature(keyid="test key 123", sig=VECTOR_SIG)],
        )

        result = EnvelopeVerifier(provider).verify(envelope)
        assert result.accepted[0].provider_key_id == "test key 123"

    def test_protocol_vector_raw(self):
        """Test raw r || s verification of the vector over the PAE bytes."""
        provider = EcdsaProvider(public_key=vector_public_key(), keyid="test key 123")
        provider.verify("test key 123", pae(PAYLOAD_TYPE, PAYLOAD), base64.b64decode(VECTOR_SIG))

    def test_vector_key_signs(self):
        """Test the vector private key produces verifiable signatures."""
        private_key = ec.derive_private_key(VECTOR_D, ec.SECP256R1())
        signer = EnvelopeSigner(EcdsaProvider(private_key=private_key, keyid="test key 123"))

        envelope = signer.sign_payload(PAYLOAD_TYPE, PAYLOAD)
        assert envelope.payload == "aGVsbG8gd29ybGQ="
        assert len(base64.b64decode(envelope.signatures[0].sig)) == 64

        verifier = EnvelopeVerifier(EcdsaProvider(public_key=vector_public_key(), keyid="test key 123"))
        verifier.verify(envelope)

    def test_wrong_length_signature(self):
        """Test malformed raw signatures are rejected."""
        provider = generate_provider("ecdsa")
        with pytest.raises(VerificationFailedError):
            provider.verify(provider.key_id(), b"m", b"\x01" * 10)

    def test_unsupported_curve(self):
        """Test only P-256 is accepted."""
        with pytest.raises(SigningError):
            EcdsaProvider(private_key=ec.generate_private_key(ec.SECP384R1()))


class TestMixedProviders:
    """Test envelopes signed by keys of different algorithms."""

    def test_two_algorithms(self):
        """Test an Ed25519 and an ECDSA signature on one envelope."""
        ed = generate_provider("ed25519")
        ecdsa = generate_provider("ecdsa")
        envelope = EnvelopeSigner(ed, ecdsa).sign_payload(PAYLOAD_TYPE, PAYLOAD)

        result = EnvelopeVerifier(ecdsa, ed).verify(envelope)
        assert [a.provider_index for a in result.accepted] == [1, 0]

    def test_missing_verifier_fails(self):
        """Test every signature needs a registered verifier."""
        ed = generate_provider("ed25519")
        ecdsa = generate_provider("ecdsa")
        envelope = EnvelopeSigner(ed, ecdsa).sign_payload(PAYLOAD_TYPE, PAYLOAD)

        with pytest.raises(UnknownKeyError):
            EnvelopeVerifier(ed).verify(envelope)


class TestLoading:
    """Test key loading helpers."""

    def test_load_private_and_public(self, tmp_path: Path, provider):
        """Test loading PEM files."""
        priv_path = tmp_path / "key.pem"
        pub_path = tmp_path / "key.pem.pub"
        priv_path.write_bytes(provider.private_pem())
        pub_path.write_bytes(provider.public_pem())

        loaded_private = load_provider(priv_path)
        loaded_public = load_provider(pub_path)

        assert type(loaded_private) is type(provider)
        assert loaded_private.can_sign() is True
        assert loaded_public.can_sign() is False
        assert loaded_public.key_id() == provider.key_id()

    def test_garbage_pem(self):
        """Test unreadable key data."""
        with pytest.raises(ConfigError):
            provider_from_pem(b"-----BEGIN PUBLIC KEY-----\nnope\n-----END PUBLIC KEY-----\n")

    def test_unsupported_algorithm(self):
        """Test unknown algorithm names."""
        with pytest.raises(ConfigError):
            generate_provider("rsa")

    def test_provider_from_env(self, monkeypatch, provider):
        """Test loading a signing key from the environment."""
        encoded = base64.b64encode(provider.private_pem()).decode("ascii")
        monkeypatch.setenv("ENVELOPE_SIGNING_PRIVATE_KEY", encoded)

        loaded = provider_from_env()
        assert loaded is not None
        assert loaded.key_id() == provider.key_id()

    def test_provider_from_env_unset(self, monkeypatch):
        """Test no provider when the variable is unset."""
        monkeypatch.delenv("ENVELOPE_SIGNING_PRIVATE_KEY", raising=False)
        assert provider_from_env() is None

    def test_provider_from_env_bad_base64(self, monkeypatch):
        """Test invalid base64 in the environment."""
        monkeypatch.setenv("ENVELOPE_SIGNING_PRIVATE_KEY", "not base64!")
        with pytest.raises(ConfigError):
            provider_from_env()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
