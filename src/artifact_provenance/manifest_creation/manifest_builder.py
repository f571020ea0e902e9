"""
Manifest Builder Module

Entry points that create model, dataset, software and evaluation manifests:
ingredients, claim, optional signature, cross-references, then output or
storage.
"""

import copy
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .. import __version__
from ..config import ProvenanceConfig
from ..errors import ValidationError
from ..models import AssetKind, Manifest, ManifestMetadata, ManifestType, to_canonical_cbor
from ..signing import ClaimSigner, DEFAULT_HASH_ALGORITHM, HashAlgorithm
from .claim_assembler import GENERATOR_NAME, ClaimAssembler, new_claim_id, parse_metrics
from .ingredient_builder import build_ingredients
from .manifest_linker import link_manifest, link_manifests

logger = logging.getLogger(__name__)

OUTPUT_FORMATS = ("json", "cbor")

__all__ = [
    'ManifestCreationConfig',
    'create_manifest',
    'create_model_manifest',
    'create_dataset_manifest',
    'create_software_manifest',
    'create_evaluation_manifest',
    'render_manifest',
    'list_manifests',
    'link_manifest',
    'deactivate_manifest',
]


class ManifestCreationConfig:
    """Inputs for creating one manifest."""

    def __init__(self,
                 paths: List[Union[str, Path]],
                 name: str,
                 ingredient_names: Optional[List[str]] = None,
                 author_org: Optional[str] = None,
                 author_name: Optional[str] = None,
                 description: Optional[str] = None,
                 linked_manifests: Optional[List[str]] = None,
                 storage=None,
                 print_manifest: bool = False,
                 output_format: str = "json",
                 key_path: Optional[Union[str, Path]] = None,
                 hash_alg: Union[str, HashAlgorithm] = DEFAULT_HASH_ALGORITHM,
                 with_cc: bool = False,
                 software_type: Optional[str] = None,
                 version: Optional[str] = None,
                 custom_fields: Optional[Dict[str, Any]] = None,
                 show_progress: bool = False):
        self.paths = list(paths)
        self.name = name
        self.ingredient_names = ingredient_names
        self.author_org = author_org
        self.author_name = author_name
        self.description = description
        self.linked_manifests = linked_manifests
        self.storage = storage
        self.print_manifest = print_manifest
        self.output_format = output_format
        self.key_path = key_path
        self.hash_alg = hash_alg
        self.with_cc = with_cc
        self.software_type = software_type
        self.version = version
        self.custom_fields = custom_fields
        self.show_progress = show_progress

    @classmethod
    def from_config(cls, settings: ProvenanceConfig, paths: List[Union[str, Path]], name: str,
                    **kwargs) -> "ManifestCreationConfig":
        """
        Build creation inputs from runtime settings.

        Signing key, digest, content-credentials flag and progress reporting
        come from ``settings``; explicit keyword arguments take precedence.
        """
        defaults = {
            "key_path": settings.key_path,
            "hash_alg": settings.hash_alg,
            "with_cc": settings.with_cc,
            "show_progress": settings.show_progress,
        }
        defaults.update(kwargs)
        return cls(paths=paths, name=name, **defaults)


def _output_format(output_format: str) -> str:
    normalized = output_format.lower()
    if normalized not in OUTPUT_FORMATS:
        raise ValidationError(
            f"Invalid output format '{output_format}'. Valid options are: "
            + ", ".join(OUTPUT_FORMATS)
        )
    return normalized


def render_manifest(manifest: Manifest, output_format: str = "json") -> str:
    """
    Render a manifest for display.

    Args:
        manifest: Manifest to render
        output_format: 'json' (pretty-printed) or 'cbor' (hex), any case

    Returns:
        Rendered text
    """
    if _output_format(output_format) == "cbor":
        return to_canonical_cbor(manifest.to_dict()).hex()
    return manifest.to_json()


def create_manifest(config: ManifestCreationConfig, kind: AssetKind) -> Manifest:
    """
    Create a manifest for the configured artifact files.

    Nothing is stored unless every ingredient was hashed and the claim was
    assembled (and signed, when a key is configured). With ``print_manifest``
    the manifest is rendered to stdout instead of stored; storage is still
    consulted to resolve linked manifests.

    Args:
        config: Creation inputs
        kind: Asset kind of the manifest

    Returns:
        The created manifest
    """
    output_format = _output_format(config.output_format)

    ingredients = build_ingredients(config.paths, config.ingredient_names, kind,
                                    show_progress=config.show_progress)

    assembler = ClaimAssembler(
        kind=kind,
        name=config.name,
        description=config.description,
        author_org=config.author_org,
        author_name=config.author_name,
    )
    evaluation = (config.custom_fields or {}).get("evaluation")
    claim = assembler.assemble(
        ingredients,
        with_cc=config.with_cc,
        software_type=config.software_type,
        version=config.version,
        evaluation=evaluation,
    )

    if config.key_path:
        signer = ClaimSigner(private_key_path=config.key_path, algorithm=config.hash_alg)
        claim = signer.sign_claim(claim)

    manifest = Manifest(
        claim_generator=f"{GENERATOR_NAME}/{__version__}",
        title=config.name,
        instance_id=new_claim_id(),
        ingredients=ingredients,
        claim=claim,
        claim_v2=claim,
    )

    link_manifests(manifest, config.linked_manifests, config.storage)

    if config.print_manifest or config.storage is None:
        print(render_manifest(manifest, output_format))
    else:
        manifest_id = config.storage.store_manifest(manifest)
        logger.info("Manifest stored successfully with ID: %s", manifest_id)

    return manifest


def create_model_manifest(config: ManifestCreationConfig) -> Manifest:
    return create_manifest(config, AssetKind.MODEL)


def create_dataset_manifest(config: ManifestCreationConfig) -> Manifest:
    return create_manifest(config, AssetKind.DATASET)


def create_software_manifest(config: ManifestCreationConfig,
                             software_type: str,
                             version: Optional[str] = None) -> Manifest:
    """
    Create a software manifest.

    The software type and version are recorded as action parameters and
    folded into the description.
    """
    config = copy.copy(config)
    config.software_type = software_type
    config.version = version

    if config.description and version:
        config.description = f"{config.description} (Type: {software_type}, Version: {version})"
    elif config.description:
        config.description = f"{config.description} (Type: {software_type})"
    elif version:
        config.description = f"Type: {software_type}, Version: {version}"
    else:
        config.description = f"Type: {software_type}"

    return create_manifest(config, AssetKind.SOFTWARE)


def create_evaluation_manifest(config: ManifestCreationConfig,
                               model_id: str,
                               dataset_id: str,
                               metrics: Optional[List[str]] = None) -> Manifest:
    """
    Create an evaluation result manifest.

    Args:
        config: Creation inputs; the result files are the ingredients
        model_id: Id of the evaluated model's manifest
        dataset_id: Id of the evaluation dataset's manifest
        metrics: ``key=value`` strings

    Returns:
        The created manifest, cross-referencing the model and dataset when
        they can be resolved
    """
    metrics_map = parse_metrics(metrics)

    config = copy.copy(config)
    if config.description:
        config.description = f"{config.description} (Model: {model_id}, Dataset: {dataset_id})"
    else:
        config.description = f"Evaluation of Model: {model_id} on Dataset: {dataset_id}"

    linked = list(config.linked_manifests or [])
    for manifest_id in (model_id, dataset_id):
        if manifest_id not in linked:
            linked.append(manifest_id)
    config.linked_manifests = linked

    custom_fields = dict(config.custom_fields or {})
    custom_fields["evaluation"] = {
        "model_id": model_id,
        "dataset_id": dataset_id,
        "metrics": metrics_map,
    }
    config.custom_fields = custom_fields

    return create_manifest(config, AssetKind.EVALUATION)


def list_manifests(storage, kind: Optional[Union[AssetKind, ManifestType, str]] = None) -> List[ManifestMetadata]:
    """List stored manifests, optionally only those inferred as ``kind``."""
    manifests = storage.list_manifests()
    if kind is None:
        return manifests
    wanted = kind.value if isinstance(kind, (AssetKind, ManifestType)) else kind
    return [m for m in manifests if m.manifest_type.value.lower() == wanted.lower()]


def deactivate_manifest(storage, manifest_id: str) -> Manifest:
    """Mark a stored manifest as superseded."""
    manifest = storage.retrieve_manifest(manifest_id)
    manifest.is_active = False
    storage.store_manifest(manifest)
    logger.info("Deactivated manifest %s", manifest_id)
    return manifest
