"""
Manifest Creation Module

Builds provenance manifests for models, datasets, software and evaluation
results.
"""

from .asset_classifier import classify
from .ingredient_builder import create_ingredient_from_path, build_ingredients
from .claim_assembler import ClaimAssembler, parse_metrics
from .manifest_linker import link_manifests, link_manifest, manifest_digest
from .manifest_builder import (
    ManifestCreationConfig,
    create_manifest,
    create_model_manifest,
    create_dataset_manifest,
    create_software_manifest,
    create_evaluation_manifest,
    render_manifest,
    list_manifests,
    deactivate_manifest,
)

__all__ = [
    'classify',
    'create_ingredient_from_path',
    'build_ingredients',
    'ClaimAssembler',
    'parse_metrics',
    'link_manifests',
    'link_manifest',
    'manifest_digest',
    'ManifestCreationConfig',
    'create_manifest',
    'create_model_manifest',
    'create_dataset_manifest',
    'create_software_manifest',
    'create_evaluation_manifest',
    'render_manifest',
    'list_manifests',
    'deactivate_manifest',
]
