"""
Manifest Kind Inference

Derives a manifest's kind from its content. The kind is never stored; it is
recomputed on every read so it cannot drift from what the manifest says.
"""

from typing import Iterator

from ..models import (
    ActionAssertion,
    CreativeWorkAssertion,
    Manifest,
    ManifestType,
)

EVALUATION_CREATIVE_TYPE = "EvaluationResult"

# ManifestType -> creative_type carried by that kind's creative-work assertion
CREATIVE_TYPES = {
    ManifestType.MODEL: "Model",
    ManifestType.DATASET: "Dataset",
    ManifestType.SOFTWARE: "Software",
    ManifestType.EVALUATION: EVALUATION_CREATIVE_TYPE,
}


def _assertions(manifest: Manifest) -> Iterator:
    for claim in manifest.claims():
        yield from claim.created_assertions


def has_creative_type(manifest: Manifest, creative_type: str) -> bool:
    """True if either claim carries a creative-work assertion of this type."""
    return any(
        isinstance(a, CreativeWorkAssertion) and a.creative_type == creative_type
        for a in _assertions(manifest)
    )


def has_software_parameters(manifest: Manifest) -> bool:
    """True if any action in either claim has a ``software_type`` parameter."""
    for assertion in _assertions(manifest):
        if isinstance(assertion, ActionAssertion):
            for action in assertion.actions:
                if action.parameters and "software_type" in action.parameters:
                    return True
    return False


def _has_ingredient_tag(manifest: Manifest, tag: str) -> bool:
    return any(
        getattr(data_type, tag)
        for ingredient in manifest.ingredients
        for data_type in ingredient.data.data_types
    )


def is_evaluation_manifest(manifest: Manifest) -> bool:
    return has_creative_type(manifest, EVALUATION_CREATIVE_TYPE)


def is_dataset_manifest(manifest: Manifest) -> bool:
    if is_evaluation_manifest(manifest):
        return False
    return has_creative_type(manifest, "Dataset") or _has_ingredient_tag(manifest, "is_dataset")


def is_software_manifest(manifest: Manifest) -> bool:
    return (has_creative_type(manifest, "Software")
            or has_software_parameters(manifest)
            or _has_ingredient_tag(manifest, "is_software"))


def is_model_manifest(manifest: Manifest) -> bool:
    return has_creative_type(manifest, "Model") or _has_ingredient_tag(manifest, "is_model")


def infer_kind(manifest: Manifest) -> ManifestType:
    """
    Classify a manifest.

    Precedence is Evaluation, Dataset, Software, Model. A manifest that
    matches none of them is ``Unknown``; it is never defaulted to Model.

    Args:
        manifest: Manifest to classify

    Returns:
        The inferred ManifestType
    """
    if is_evaluation_manifest(manifest):
        return ManifestType.EVALUATION
    if is_dataset_manifest(manifest):
        return ManifestType.DATASET
    if is_software_manifest(manifest):
        return ManifestType.SOFTWARE
    if is_model_manifest(manifest):
        return ManifestType.MODEL
    return ManifestType.UNKNOWN
