"""
Manifest Verifier Module

Re-derives everything the write path computed for a stored manifest and
compares it against the persisted values. Stages run in order and the first
failure stops the chain:

1. structure
2. signature (only when a public key is supplied)
3. ingredient hashes
4. cross-references
5. kind-specific completeness
"""

import hashlib
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

import requests

from .. import hashing
from ..errors import ProvenanceError, ValidationError, VerificationError
from ..models import Claim, Manifest, ManifestType
from ..signing import DEFAULT_HASH_ALGORITHM, HashAlgorithm, SignatureVerifier
from .kind_inference import (
    CREATIVE_TYPES,
    has_creative_type,
    has_software_parameters,
    infer_kind,
)

logger = logging.getLogger(__name__)

FILE_URL_PREFIX = "file://"
_HEX_DIGEST = re.compile(r'^[0-9a-fA-F]{64}$')


class VerificationStatus:
    """Outcome of verifying one manifest."""

    def __init__(self,
                 manifest_id: str,
                 is_valid: bool,
                 checks_performed: List[str],
                 messages: List[str],
                 stage: Optional[str] = None):
        self.manifest_id = manifest_id
        self.is_valid = is_valid
        self.checks_performed = checks_performed
        self.messages = messages
        self.stage = stage
        self.verified_at = datetime.now(timezone.utc).isoformat()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'manifest_id': self.manifest_id,
            'is_valid': self.is_valid,
            'checks_performed': self.checks_performed,
            'messages': self.messages,
            'stage': self.stage,
            'verified_at': self.verified_at
        }


def _check_claim(claim: Claim, slot: str) -> None:
    if not claim.instance_id:
        raise ValidationError(f"{slot} has no instance_id")
    if not claim.claim_generator_info:
        raise ValidationError(f"{slot} has no claim_generator_info")


def validate_manifest(manifest: Manifest) -> None:
    """
    Check manifest-level schema invariants the type model does not enforce.

    Raises:
        ValidationError: describing the first violation found
    """
    if not manifest.instance_id:
        raise ValidationError("Manifest has no instance_id")
    if not manifest.title:
        raise ValidationError("Manifest has no title")
    if not manifest.claim_generator:
        raise ValidationError("Manifest has no claim_generator")

    for ingredient in manifest.ingredients:
        if not ingredient.title:
            raise ValidationError("Ingredient has no title")
        if not ingredient.document_id or not ingredient.instance_id:
            raise ValidationError(f"Ingredient {ingredient.title} is missing an identifier")
        if ingredient.data.alg != hashing.HASH_ALGORITHM:
            raise ValidationError(
                f"Ingredient {ingredient.title} uses unsupported hash algorithm {ingredient.data.alg}"
            )
        if not _HEX_DIGEST.match(ingredient.data.hash):
            raise ValidationError(f"Ingredient {ingredient.title} has a malformed hash")

    for cross_ref in manifest.cross_references:
        if not cross_ref.manifest_url:
            raise ValidationError("Cross-reference has no manifest_url")
        if not _HEX_DIGEST.match(cross_ref.manifest_hash):
            raise ValidationError(
                f"Cross-reference to {cross_ref.manifest_url} has a malformed hash"
            )

    _check_claim(manifest.claim, "claim")
    if manifest.claim_v2 is not None:
        _check_claim(manifest.claim_v2, "claim_v2")


class ManifestVerifier:
    """Verifies stored manifests against their artifacts and references."""

    def __init__(self,
                 storage,
                 public_key=None,
                 hash_alg: Union[str, HashAlgorithm] = DEFAULT_HASH_ALGORITHM,
                 session: Optional[requests.Session] = None,
                 timeout: float = 30):
        """
        Initialize the verifier.

        Args:
            storage: Backend to read manifests from
            public_key: Key object or PEM text; enables the signature stage
            hash_alg: Digest the claims were signed with
            session: HTTP session for remote ingredient URLs
            timeout: Per-request timeout in seconds
        """
        self.storage = storage
        self.public_key = public_key
        self.signature_verifier = SignatureVerifier(hash_alg)
        self.session = session or requests.Session()
        self.timeout = timeout

    def verify(self, manifest_id: str) -> VerificationStatus:
        """
        Run every verification stage.

        Returns:
            A valid VerificationStatus listing the stages performed

        Raises:
            VerificationError: from the first stage that fails
            StorageError: if the manifest itself cannot be retrieved
        """
        logger.info("Verifying manifest with ID: %s", manifest_id)
        manifest = self.storage.retrieve_manifest(manifest_id)

        checks: List[str] = []
        messages: List[str] = []

        self._verify_structure(manifest)
        checks.append("structure")

        if self.public_key is not None:
            self._verify_signature(manifest)
            checks.append("signature")
            messages.append("Claim signature verified")

        messages.extend(self._verify_ingredients(manifest))
        checks.append("ingredients")

        messages.extend(self._verify_cross_references(manifest))
        checks.append("cross_references")

        kind = self._verify_kind_requirements(manifest)
        checks.append("kind_requirements")
        messages.append(f"{kind.value} manifest requirements satisfied")

        logger.info("Manifest verification successful: %s", manifest_id)
        return VerificationStatus(manifest_id, True, checks, messages)

    def check(self, manifest_id: str) -> VerificationStatus:
        """Like ``verify`` but reports failure as an invalid status."""
        try:
            return self.verify(manifest_id)
        except VerificationError as e:
            return VerificationStatus(manifest_id, False, [], [str(e)], stage=e.stage)
        except ProvenanceError as e:
            return VerificationStatus(manifest_id, False, [], [str(e)], stage="retrieve")

    def _verify_structure(self, manifest: Manifest) -> None:
        try:
            validate_manifest(manifest)
        except ValidationError as e:
            raise VerificationError(e.message, stage="structure",
                                    subject=manifest.instance_id) from e

    def _verify_signature(self, manifest: Manifest) -> None:
        """Every distinct claim the manifest carries must bear a valid signature."""
        verified = []
        for claim in manifest.claims():
            if claim in verified:
                continue
            if not self.signature_verifier.verify_claim(claim, self.public_key):
                raise VerificationError(
                    f"Signature verification failed for claim {claim.instance_id}",
                    stage="signature",
                    subject=claim.instance_id,
                )
            verified.append(claim)

    def _remote_digest(self, url: str) -> str:
        hasher = hashlib.sha256()
        try:
            with self.session.get(url, timeout=self.timeout, stream=True) as response:
                response.raise_for_status()
                for chunk in response.iter_content(chunk_size=hashing.CHUNK_SIZE):
                    hasher.update(chunk)
        except requests.RequestException as e:
            raise ProvenanceError(f"Could not fetch {url}: {e}") from e
        return hasher.hexdigest()

    def _verify_ingredients(self, manifest: Manifest) -> List[str]:
        messages = []
        for ingredient in manifest.ingredients:
            title = ingredient.title
            url = ingredient.data.url
            expected = ingredient.data.hash
            logger.info("Verifying ingredient: %s", title)

            if url.startswith(FILE_URL_PREFIX):
                try:
                    computed = hashing.digest_file(url[len(FILE_URL_PREFIX):])
                except ProvenanceError as e:
                    raise VerificationError(
                        f"Could not verify ingredient {title}: {e}",
                        stage="ingredients", subject=title, expected=expected,
                    ) from e
            else:
                try:
                    if url.startswith(("http://", "https://")):
                        computed = self._remote_digest(url)
                    else:
                        computed = hashing.digest_file(url)
                except ProvenanceError as e:
                    logger.warning("Could not verify hash for component %s at %s: %s", title, url, e)
                    messages.append(f"Skipped unverifiable component: {title}")
                    continue

            if computed != expected:
                raise VerificationError(
                    f"Hash verification failed for ingredient: {title}. "
                    f"Expected {expected}, calculated {computed}",
                    stage="ingredients", subject=title, expected=expected, computed=computed,
                )
            messages.append(f"Successfully verified hash for component: {title}")
        return messages

    def _verify_cross_references(self, manifest: Manifest) -> List[str]:
        messages = []
        for cross_ref in manifest.cross_references:
            target_id = cross_ref.manifest_url
            try:
                linked = self.storage.retrieve_manifest(target_id)
            except ProvenanceError as e:
                raise VerificationError(
                    f"Could not retrieve cross-referenced manifest {target_id}: {e}",
                    stage="cross_references", subject=target_id,
                    expected=cross_ref.manifest_hash,
                ) from e

            computed = hashing.digest(linked.canonical_json())
            if computed != cross_ref.manifest_hash:
                raise VerificationError(
                    f"Cross-reference verification failed for linked manifest: {target_id}. "
                    f"Hash mismatch: stored={cross_ref.manifest_hash}, calculated={computed}",
                    stage="cross_references", subject=target_id,
                    expected=cross_ref.manifest_hash, computed=computed,
                )
            messages.append(f"Verified cross-reference to manifest: {target_id}")
        return messages

    def _verify_kind_requirements(self, manifest: Manifest) -> ManifestType:
        kind = infer_kind(manifest)

        def fail(message: str) -> VerificationError:
            return VerificationError(message, stage="kind_requirements",
                                     subject=manifest.instance_id)

        if kind != ManifestType.EVALUATION and not manifest.ingredients:
            raise fail("Manifest must contain at least one ingredient")

        if kind == ManifestType.UNKNOWN:
            return kind

        creative_type = CREATIVE_TYPES[kind]
        satisfied = has_creative_type(manifest, creative_type)
        requirement = f"a {creative_type} creative work assertion"
        if kind == ManifestType.SOFTWARE:
            satisfied = satisfied or has_software_parameters(manifest)
            requirement += " or software_type parameter"

        if not satisfied:
            logger.warning("%s manifest doesn't contain %s", kind.value, requirement)
            raise fail(f"{kind.value} manifest must contain {requirement}")

        if kind == ManifestType.EVALUATION:
            self._verify_evaluation_references(manifest, fail)
        return kind

    def _verify_evaluation_references(self, manifest: Manifest, fail) -> None:
        referenced = set()
        for cross_ref in manifest.cross_references:
            try:
                linked = self.storage.retrieve_manifest(cross_ref.manifest_url)
            except ProvenanceError as e:
                raise fail(
                    f"Failed to retrieve referenced manifest {cross_ref.manifest_url}: {e}"
                ) from e
            referenced.add(infer_kind(linked))

        if ManifestType.MODEL not in referenced:
            raise fail("Evaluation manifest must reference a model")
        if ManifestType.DATASET not in referenced:
            raise fail("Evaluation manifest must reference a dataset")


def verify_manifest(manifest_id: str, storage, public_key=None) -> VerificationStatus:
    """Verify a stored manifest, raising VerificationError on the first failed stage."""
    return ManifestVerifier(storage, public_key=public_key).verify(manifest_id)
