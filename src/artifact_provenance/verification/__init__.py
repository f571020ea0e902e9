"""
Verification Module

Manifest-kind inference and multi-stage manifest verification.
"""

from .kind_inference import infer_kind
from .manifest_verifier import (
    ManifestVerifier,
    VerificationStatus,
    validate_manifest,
    verify_manifest,
)

__all__ = [
    'infer_kind',
    'ManifestVerifier',
    'VerificationStatus',
    'validate_manifest',
    'verify_manifest',
]
