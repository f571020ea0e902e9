"""
Errors Module

Typed exceptions raised across manifest creation, storage, signing and
verification. Every failure is reported to the caller as one of these; the
library never terminates the process.
"""

from typing import Optional


class ProvenanceError(Exception):
    """Base class for all provenance errors."""

    prefix = "Provenance error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.prefix}: {self.message}"


class ArtifactIOError(ProvenanceError):
    """Filesystem or network failure while reading an artifact."""

    prefix = "IO error"


class StorageError(ProvenanceError):
    """Backend-specific storage failure (connection refused, bad reply, ...)."""

    prefix = "Storage error"


class ManifestNotFoundError(StorageError):
    """The requested manifest id is not present in the backend."""

    def __init__(self, manifest_id: str, message: Optional[str] = None):
        super().__init__(message or f"Manifest not found: {manifest_id}")
        self.manifest_id = manifest_id


class ValidationError(ProvenanceError):
    """Schema or semantic rule violation."""

    prefix = "Validation error"


class VerificationError(ValidationError):
    """A verification stage failed.

    Carries enough context to diagnose the break without re-running the
    whole pipeline.
    """

    def __init__(self,
                 message: str,
                 stage: str,
                 subject: Optional[str] = None,
                 expected: Optional[str] = None,
                 computed: Optional[str] = None):
        super().__init__(message)
        self.stage = stage
        self.subject = subject
        self.expected = expected
        self.computed = computed


class SerializationError(ProvenanceError):
    """JSON or CBOR encode/decode failure."""

    prefix = "Serialization error"


class SigningError(ProvenanceError):
    """Key loading or cryptographic operation failure."""

    prefix = "Signing error"


class AttestationError(ProvenanceError):
    """Confidential-computing platform detection or report retrieval failure."""

    prefix = "CC Attestation error"


class HexDecodeError(ProvenanceError):
    """Malformed hex digest string."""

    prefix = "Hex decode error"


def format_error(error: ProvenanceError) -> str:
    """Format an error for display to the user."""
    return str(error)
