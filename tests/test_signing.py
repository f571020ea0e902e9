"""
Test suite for key management and claim signing.
"""

import os
import shutil
import stat
import tempfile

import pytest

from artifact_provenance.errors import ArtifactIOError, SigningError, ValidationError
from artifact_provenance.models import Claim
from artifact_provenance.signing import (
    ClaimSigner,
    HashAlgorithm,
    KeyManager,
    SignatureVerifier,
    public_key_to_pem,
)


def make_claim():
    return Claim(instance_id="urn:c2pa:claim", claim_generator_info="test")


class TestKeyManager:

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()
        self.key_manager = KeyManager()

    def teardown_method(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_key_pair_files(self):
        private_path = os.path.join(self.temp_dir, "keys", "private.pem")
        public_path = os.path.join(self.temp_dir, "keys", "public.pem")
        self.key_manager.create_key_pair_files('RSA', private_path, public_path)

        assert stat.S_IMODE(os.stat(private_path).st_mode) == 0o600
        private_key = self.key_manager.load_private_key(private_path)
        public_key = self.key_manager.load_public_key(public_path)
        assert public_key_to_pem(private_key.public_key()) == public_key_to_pem(public_key)

    def test_encrypted_private_key(self):
        private_path = os.path.join(self.temp_dir, "private.pem")
        private_key, _ = self.key_manager.generate_key_pair('ECDSA')
        self.key_manager.save_private_key(private_key, private_path, password=b"secret")

        assert self.key_manager.load_private_key(private_path, password=b"secret")
        with pytest.raises(SigningError):
            self.key_manager.load_private_key(private_path)

    def test_missing_key_file(self):
        with pytest.raises(ArtifactIOError):
            self.key_manager.load_private_key(os.path.join(self.temp_dir, "missing.pem"))

    def test_malformed_key_file(self):
        path = os.path.join(self.temp_dir, "bad.pem")
        with open(path, 'w') as f:
            f.write("not a key")
        with pytest.raises(SigningError):
            self.key_manager.load_private_key(path)
        with pytest.raises(SigningError):
            self.key_manager.load_public_key(path)

    def test_unsupported_parameters(self):
        with pytest.raises(SigningError):
            self.key_manager.generate_key_pair('DSA')
        with pytest.raises(SigningError):
            self.key_manager.generate_key_pair('ECDSA', curve_name='brainpool')
        with pytest.raises(SigningError):
            self.key_manager.generate_key_pair('RSA', key_size=1024)


class TestClaimSigning:

    @pytest.mark.parametrize("key_type", ['RSA', 'ECDSA', 'ED25519'])
    def test_sign_and_verify(self, key_type):
        private_key, public_key = KeyManager().generate_key_pair(key_type)
        signed = ClaimSigner(private_key=private_key).sign_claim(make_claim())

        assert signed.signature
        assert SignatureVerifier().verify_claim(signed, public_key)
        assert SignatureVerifier().verify_claim(signed, public_key_to_pem(public_key))

    def test_original_claim_unchanged(self):
        private_key, _ = KeyManager().generate_key_pair('ED25519')
        claim = make_claim()
        ClaimSigner(private_key=private_key).sign_claim(claim)
        assert claim.signature is None

    def test_tampered_claim(self):
        private_key, public_key = KeyManager().generate_key_pair('ECDSA')
        signed = ClaimSigner(private_key=private_key).sign_claim(make_claim())
        tampered = signed.model_copy(update={"claim_generator_info": "forged"})
        assert not SignatureVerifier().verify_claim(tampered, public_key)

    def test_wrong_key(self):
        private_key, _ = KeyManager().generate_key_pair('ED25519')
        _, other_public = KeyManager().generate_key_pair('ED25519')
        signed = ClaimSigner(private_key=private_key).sign_claim(make_claim())
        assert not SignatureVerifier().verify_claim(signed, other_public)

    def test_digest_mismatch(self):
        private_key, public_key = KeyManager().generate_key_pair('RSA')
        signed = ClaimSigner(private_key=private_key, algorithm="sha256").sign_claim(make_claim())
        assert SignatureVerifier("sha256").verify_claim(signed, public_key)
        assert not SignatureVerifier("sha512").verify_claim(signed, public_key)

    def test_unsigned_and_malformed(self):
        _, public_key = KeyManager().generate_key_pair('ED25519')
        assert not SignatureVerifier().verify_claim(make_claim(), public_key)

        claim = make_claim()
        claim.signature = "%%%not-base64%%%"
        assert not SignatureVerifier().verify_claim(claim, public_key)

    def test_signer_requires_key(self):
        with pytest.raises(SigningError):
            ClaimSigner()


class TestHashAlgorithm:

    def test_parse(self):
        assert HashAlgorithm.parse("sha256") == HashAlgorithm.SHA256
        assert HashAlgorithm.parse("SHA-384") == HashAlgorithm.SHA384
        assert HashAlgorithm.parse(HashAlgorithm.SHA512) == HashAlgorithm.SHA512

    def test_parse_invalid(self):
        with pytest.raises(ValidationError) as exc_info:
            HashAlgorithm.parse("md5")
        assert "Invalid hash algorithm" in str(exc_info.value)
