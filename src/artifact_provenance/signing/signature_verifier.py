"""
Signature Verifier Module

Verifies claim signatures produced by ``ClaimSigner``.
"""

import base64
import binascii
import logging
from typing import Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, padding, rsa

from ..errors import SigningError
from ..models import Claim
from .claim_signer import DEFAULT_HASH_ALGORITHM, HashAlgorithm
from .key_manager import KeyManager, PublicKey

logger = logging.getLogger(__name__)


def verify_signature(data: bytes,
                     signature: bytes,
                     public_key: PublicKey,
                     algorithm: Union[str, HashAlgorithm] = DEFAULT_HASH_ALGORITHM) -> bool:
    """
    Verify a signature over raw bytes.

    Returns:
        True if the signature is valid, False otherwise
    """
    digest = HashAlgorithm.parse(algorithm).to_hash()

    try:
        if isinstance(public_key, rsa.RSAPublicKey):
            public_key.verify(signature, data, padding.PKCS1v15(), digest)
        elif isinstance(public_key, ec.EllipticCurvePublicKey):
            public_key.verify(signature, data, ec.ECDSA(digest))
        elif isinstance(public_key, ed25519.Ed25519PublicKey):
            public_key.verify(signature, data)
        else:
            raise SigningError(f"Unsupported public key type: {type(public_key).__name__}")
    except InvalidSignature:
        return False

    return True


class SignatureVerifier:
    """Checks the signature attached to a claim."""

    def __init__(self, algorithm: Union[str, HashAlgorithm] = DEFAULT_HASH_ALGORITHM):
        self.algorithm = HashAlgorithm.parse(algorithm)
        self.key_manager = KeyManager()

    def verify_claim(self, claim: Claim, public_key: Union[PublicKey, str, bytes]) -> bool:
        """
        Verify a claim signature.

        Args:
            claim: Claim carrying a base64 ``signature``
            public_key: Key object or PEM text

        Returns:
            True if the claim is signed and the signature checks out
        """
        if isinstance(public_key, (str, bytes)):
            public_key = self.key_manager.load_public_key_from_string(public_key)

        if not claim.signature:
            logger.warning("Claim %s carries no signature", claim.instance_id)
            return False

        try:
            signature = base64.b64decode(claim.signature, validate=True)
        except (binascii.Error, ValueError):
            logger.warning("Claim %s has a malformed signature", claim.instance_id)
            return False

        return verify_signature(claim.signing_payload(), signature, public_key, self.algorithm)
