#!/usr/bin/env python3
"""
Basic Usage Example for AI Artifact Provenance

This example demonstrates a small provenance chain:
1. Creating signed dataset and model manifests
2. Linking the model to its training dataset
3. Recording an evaluation of the model on the dataset
4. Verifying the chain, then detecting a tampered artifact
"""

import json
import logging
import os
import sys
import tempfile

from artifact_provenance import format_error, ProvenanceError
from artifact_provenance.manifest_creation import (
    ManifestCreationConfig,
    create_dataset_manifest,
    create_evaluation_manifest,
    create_model_manifest,
    list_manifests,
)
from artifact_provenance.manifest_storage import create_storage
from artifact_provenance.signing import KeyManager
from artifact_provenance.verification import ManifestVerifier


def create_sample_artifacts(work_dir):
    """Create sample AI artifacts for demonstration."""
    print("📦 Creating sample AI artifacts...")

    dataset_path = os.path.join(work_dir, "customers.csv")
    with open(dataset_path, 'w') as f:
        f.write("age,income,churned\n34,52000,0\n51,61000,1\n")

    model_path = os.path.join(work_dir, "classifier.onnx")
    with open(model_path, 'wb') as f:
        f.write(b"\x08\x07onnx-demo-weights")

    results_path = os.path.join(work_dir, "results.json")
    with open(results_path, 'w') as f:
        json.dump({"accuracy": 0.94, "f1": 0.91}, f)

    return dataset_path, model_path, results_path


def build_chain(work_dir, storage, key_path):
    """Create dataset, model and evaluation manifests."""
    print("\n🔍 Creating manifests...")
    dataset_path, model_path, results_path = create_sample_artifacts(work_dir)

    dataset = create_dataset_manifest(ManifestCreationConfig(
        paths=[dataset_path],
        name="customer-churn-dataset",
        author_org="AI Trust Demo",
        storage=storage,
        key_path=key_path,
    ))
    print(f"✅ Dataset manifest: {dataset.instance_id}")

    model = create_model_manifest(ManifestCreationConfig(
        paths=[model_path],
        name="churn-classifier",
        ingredient_names=["Classifier weights"],
        author_org="AI Trust Demo",
        description="Gradient-boosted churn classifier",
        linked_manifests=[dataset.instance_id],
        storage=storage,
        key_path=key_path,
    ))
    print(f"✅ Model manifest: {model.instance_id}")
    print(f"   Linked to: {[ref.manifest_url for ref in model.cross_references]}")

    evaluation = create_evaluation_manifest(
        ManifestCreationConfig(paths=[results_path], name="churn-evaluation",
                               storage=storage, key_path=key_path),
        model.instance_id,
        dataset.instance_id,
        ["accuracy=0.94", "f1=0.91"],
    )
    print(f"✅ Evaluation manifest: {evaluation.instance_id}")

    return model_path, model, evaluation


def demonstrate_verification(work_dir, storage, key_path, public_key):
    """Verify the chain, then tamper with the model weights."""
    model_path, model, evaluation = build_chain(work_dir, storage, key_path)
    verifier = ManifestVerifier(storage, public_key=public_key)

    print("\n✅ Verifying manifests...")
    for manifest in (model, evaluation):
        status = verifier.check(manifest.instance_id)
        print(f"{manifest.title}: {'✅ VALID' if status.is_valid else '❌ INVALID'}")
        print(f"  Checks: {', '.join(status.checks_performed)}")

    print("\n🔧 Tampering with model weights...")
    with open(model_path, 'ab') as f:
        f.write(b"backdoor")

    status = verifier.check(model.instance_id)
    print(f"{model.title}: {'✅ VALID' if status.is_valid else '❌ INVALID'}")
    print(f"  Failed stage: {status.stage}")
    for message in status.messages:
        print(f"  {message}")

    print("\n📊 Stored manifests:")
    for metadata in list_manifests(storage):
        print(f"   • {metadata.manifest_type}: {metadata.name} ({metadata.id})")


def main():
    """Run the provenance chain demonstration."""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    print("🚀 AI Artifact Provenance - Basic Usage Demo")
    print("=" * 70)

    try:
        with tempfile.TemporaryDirectory() as work_dir:
            storage = create_storage("local-fs", os.path.join(work_dir, "manifests"))

            key_manager = KeyManager()
            private_key_path, public_key_path = key_manager.create_key_pair_files(
                'ECDSA',
                os.path.join(work_dir, "keys", "private.pem"),
                os.path.join(work_dir, "keys", "public.pem"),
            )
            print("✅ Generated temporary ECDSA key pair")

            demonstrate_verification(
                work_dir, storage, private_key_path,
                key_manager.load_public_key(public_key_path),
            )

        print("\n✨ Demo completed successfully!")
        return 0

    except ProvenanceError as e:
        print(f"❌ {format_error(e)}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
