"""
Signing Gateway

Key management, claim signing and signature verification.
"""

from .key_manager import KeyManager, public_key_to_pem
from .claim_signer import ClaimSigner, HashAlgorithm, DEFAULT_HASH_ALGORITHM, sign_data
from .signature_verifier import SignatureVerifier, verify_signature

__all__ = [
    'KeyManager',
    'public_key_to_pem',
    'ClaimSigner',
    'HashAlgorithm',
    'DEFAULT_HASH_ALGORITHM',
    'sign_data',
    'SignatureVerifier',
    'verify_signature',
]
