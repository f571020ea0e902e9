"""
Claim Signer Module

Signs manifest claims. The signed payload is the canonical CBOR encoding of
the claim with its ``signature`` field removed, so the signature commits to
every other field byte for byte.
"""

import base64
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, padding, rsa

from ..errors import SigningError, ValidationError
from ..models import Claim
from .key_manager import KeyManager, PrivateKey


class HashAlgorithm(str, Enum):
    """Digest used with RSA and ECDSA signatures."""

    SHA256 = "sha256"
    SHA384 = "sha384"
    SHA512 = "sha512"

    def to_hash(self) -> hashes.HashAlgorithm:
        return {
            HashAlgorithm.SHA256: hashes.SHA256,
            HashAlgorithm.SHA384: hashes.SHA384,
            HashAlgorithm.SHA512: hashes.SHA512,
        }[self]()

    @classmethod
    def parse(cls, value: Union[str, "HashAlgorithm"]) -> "HashAlgorithm":
        if isinstance(value, HashAlgorithm):
            return value
        normalized = value.lower().replace("-", "")
        for alg in cls:
            if alg.value == normalized:
                return alg
        raise ValidationError(
            f"Invalid hash algorithm '{value}'. Valid options are: sha256, sha384, sha512"
        )


DEFAULT_HASH_ALGORITHM = HashAlgorithm.SHA384


def sign_data(data: bytes,
              private_key: PrivateKey,
              algorithm: Union[str, HashAlgorithm] = DEFAULT_HASH_ALGORITHM) -> bytes:
    """
    Sign raw bytes with the given private key.

    Args:
        data: Payload to sign
        private_key: RSA, EC or Ed25519 private key
        algorithm: Digest for RSA/ECDSA; ignored for Ed25519

    Returns:
        Raw signature bytes
    """
    digest = HashAlgorithm.parse(algorithm).to_hash()

    try:
        if isinstance(private_key, rsa.RSAPrivateKey):
            return private_key.sign(data, padding.PKCS1v15(), digest)
        elif isinstance(private_key, ec.EllipticCurvePrivateKey):
            return private_key.sign(data, ec.ECDSA(digest))
        elif isinstance(private_key, ed25519.Ed25519PrivateKey):
            return private_key.sign(data)
    except ValueError as e:
        raise SigningError(f"Signing failed: {e}") from e

    raise SigningError(f"Unsupported key type: {type(private_key).__name__}")


class ClaimSigner:
    """Attaches base64 signatures to claims."""

    def __init__(self,
                 private_key_path: Optional[Union[str, Path]] = None,
                 private_key: Optional[PrivateKey] = None,
                 algorithm: Union[str, HashAlgorithm] = DEFAULT_HASH_ALGORITHM):
        """
        Initialize the claim signer.

        Args:
            private_key_path: Path to a PEM private key
            private_key: Pre-loaded private key object
            algorithm: Digest algorithm (default SHA-384)
        """
        self.algorithm = HashAlgorithm.parse(algorithm)

        if private_key is not None:
            self.private_key = private_key
        elif private_key_path is not None:
            self.private_key = KeyManager().load_private_key(private_key_path)
        else:
            raise SigningError("Either private_key_path or private_key must be provided")

    def sign_claim(self, claim: Claim) -> Claim:
        """
        Sign a claim.

        Args:
            claim: Fully assembled claim

        Returns:
            Copy of the claim with ``signature`` populated
        """
        signature = sign_data(claim.signing_payload(), self.private_key, self.algorithm)
        return claim.model_copy(update={
            "signature": base64.b64encode(signature).decode('utf-8')
        })
