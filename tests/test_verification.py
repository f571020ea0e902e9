"""
Test suite for manifest verification.
"""

import os
import shutil
import tempfile

import pytest

from artifact_provenance.errors import VerificationError
from artifact_provenance.manifest_creation import (
    ManifestCreationConfig,
    create_dataset_manifest,
    create_evaluation_manifest,
    create_model_manifest,
)
from artifact_provenance.manifest_storage import FilesystemStorage
from artifact_provenance.models import CreativeWorkAssertion, IngredientData
from artifact_provenance.signing import KeyManager
from artifact_provenance.verification import ManifestVerifier, validate_manifest, verify_manifest


class TestManifestVerifier:

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()
        self.storage = FilesystemStorage(os.path.join(self.temp_dir, "store"))

    def teardown_method(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def create_test_file(self, filename, content="content"):
        file_path = os.path.join(self.temp_dir, filename)
        with open(file_path, 'w') as f:
            f.write(content)
        return file_path

    def config(self, paths, **kwargs):
        return ManifestCreationConfig(paths=paths, name="artifact", storage=self.storage, **kwargs)

    def test_round_trip(self):
        paths = [self.create_test_file("a.onnx", "one"), self.create_test_file("b.onnx", "two")]
        manifest = create_model_manifest(self.config(paths))

        status = verify_manifest(manifest.instance_id, self.storage)
        assert status.is_valid
        assert status.checks_performed == [
            "structure", "ingredients", "cross_references", "kind_requirements"
        ]

    def test_modified_ingredient(self):
        path = self.create_test_file("a.onnx", "original")
        manifest = create_model_manifest(self.config([path], ingredient_names=["weights"]))

        with open(path, 'w') as f:
            f.write("tampered")

        with pytest.raises(VerificationError) as exc_info:
            verify_manifest(manifest.instance_id, self.storage)
        error = exc_info.value
        assert error.stage == "ingredients"
        assert error.subject == "weights"
        assert "Hash verification failed" in str(error)
        assert error.expected != error.computed

    def test_missing_ingredient_file(self):
        path = self.create_test_file("a.onnx")
        manifest = create_model_manifest(self.config([path], ingredient_names=["weights"]))
        os.remove(path)

        with pytest.raises(VerificationError) as exc_info:
            verify_manifest(manifest.instance_id, self.storage)
        assert "Could not verify ingredient weights" in str(exc_info.value)

    def test_unverifiable_remote_ingredient_is_a_warning(self):
        path = self.create_test_file("a.onnx")
        manifest = create_model_manifest(self.config([path]))
        data = manifest.ingredients[0].data
        manifest.ingredients[0].data = IngredientData(
            url="s3://bucket/a.onnx", hash=data.hash, data_types=data.data_types
        )
        self.storage.store_manifest(manifest)

        status = verify_manifest(manifest.instance_id, self.storage)
        assert status.is_valid
        assert any("Skipped unverifiable" in m for m in status.messages)

    def test_cross_reference_tamper(self):
        dataset = create_dataset_manifest(self.config([self.create_test_file("d.csv")]))
        model = create_model_manifest(self.config(
            [self.create_test_file("m.onnx")], linked_manifests=[dataset.instance_id]
        ))
        assert len(model.cross_references) == 1
        assert verify_manifest(model.instance_id, self.storage).is_valid

        stored = self.storage.retrieve_manifest(dataset.instance_id)
        stored.title = "renamed"
        self.storage.store_manifest(stored)

        with pytest.raises(VerificationError) as exc_info:
            verify_manifest(model.instance_id, self.storage)
        error = exc_info.value
        assert error.stage == "cross_references"
        assert error.subject == dataset.instance_id
        assert "Hash mismatch" in str(error)

    def test_dangling_cross_reference(self):
        dataset = create_dataset_manifest(self.config([self.create_test_file("d.csv")]))
        model = create_model_manifest(self.config(
            [self.create_test_file("m.onnx")], linked_manifests=[dataset.instance_id]
        ))
        self.storage.delete_manifest(dataset.instance_id)

        assert self.storage.retrieve_manifest(model.instance_id).cross_references
        with pytest.raises(VerificationError) as exc_info:
            verify_manifest(model.instance_id, self.storage)
        assert exc_info.value.stage == "cross_references"

    def test_evaluation(self):
        model = create_model_manifest(self.config([self.create_test_file("m.onnx")]))
        dataset = create_dataset_manifest(self.config([self.create_test_file("d.csv")]))
        evaluation = create_evaluation_manifest(
            self.config([self.create_test_file("results.json", "{}")]),
            model.instance_id, dataset.instance_id, ["accuracy=0.9"]
        )
        assert verify_manifest(evaluation.instance_id, self.storage).is_valid

    def test_evaluation_missing_model(self):
        dataset = create_dataset_manifest(self.config([self.create_test_file("d.csv")]))
        evaluation = create_evaluation_manifest(
            self.config([self.create_test_file("results.json", "{}")]),
            "urn:c2pa:missing-model", dataset.instance_id, []
        )
        assert [c.manifest_url for c in evaluation.cross_references] == [dataset.instance_id]

        with pytest.raises(VerificationError) as exc_info:
            verify_manifest(evaluation.instance_id, self.storage)
        assert exc_info.value.stage == "kind_requirements"
        assert "must reference a model" in str(exc_info.value)

    def test_missing_creative_work_assertion(self):
        manifest = create_dataset_manifest(self.config([self.create_test_file("d.csv")]))
        for claim in manifest.claims():
            claim.created_assertions = [
                a for a in claim.created_assertions if not isinstance(a, CreativeWorkAssertion)
            ]
        self.storage.store_manifest(manifest)

        with pytest.raises(VerificationError) as exc_info:
            verify_manifest(manifest.instance_id, self.storage)
        assert "Dataset manifest must contain a Dataset creative work assertion" in str(exc_info.value)

    def test_structure_failure(self):
        manifest = create_model_manifest(self.config([self.create_test_file("m.onnx")]))
        manifest.ingredients[0].data.hash = "xyz"
        self.storage.store_manifest(manifest)

        with pytest.raises(VerificationError) as exc_info:
            verify_manifest(manifest.instance_id, self.storage)
        assert exc_info.value.stage == "structure"

    def test_check_reports_status(self):
        path = self.create_test_file("a.onnx", "original")
        manifest = create_model_manifest(self.config([path]))
        with open(path, 'w') as f:
            f.write("tampered")

        status = ManifestVerifier(self.storage).check(manifest.instance_id)
        assert not status.is_valid
        assert status.stage == "ingredients"
        assert status.to_dict()["is_valid"] is False

    def test_check_unknown_manifest(self):
        status = ManifestVerifier(self.storage).check("urn:c2pa:missing")
        assert not status.is_valid
        assert status.stage == "retrieve"

    def test_signature_stage(self):
        key_manager = KeyManager()
        private_path = os.path.join(self.temp_dir, "keys", "private.pem")
        public_path = os.path.join(self.temp_dir, "keys", "public.pem")
        key_manager.create_key_pair_files('ECDSA', private_path, public_path)

        manifest = create_model_manifest(self.config(
            [self.create_test_file("m.onnx")], key_path=private_path
        ))
        public_key = key_manager.load_public_key(public_path)

        status = verify_manifest(manifest.instance_id, self.storage, public_key=public_key)
        assert "signature" in status.checks_performed

        manifest.claim_v2.claim_generator_info = "forged"
        self.storage.store_manifest(manifest)
        with pytest.raises(VerificationError) as exc_info:
            verify_manifest(manifest.instance_id, self.storage, public_key=public_key)
        assert exc_info.value.stage == "signature"

    def test_forged_legacy_claim_fails_signature_stage(self):
        key_manager = KeyManager()
        private_path = os.path.join(self.temp_dir, "keys", "private.pem")
        public_path = os.path.join(self.temp_dir, "keys", "public.pem")
        key_manager.create_key_pair_files('ECDSA', private_path, public_path)
        public_key = key_manager.load_public_key(public_path)

        manifest = create_model_manifest(self.config(
            [self.create_test_file("m.onnx")], key_path=private_path
        ))
        manifest.claim = manifest.claim_v2.model_copy(
            update={"claim_generator_info": "forged"}, deep=True
        )
        self.storage.store_manifest(manifest)

        with pytest.raises(VerificationError) as exc_info:
            verify_manifest(manifest.instance_id, self.storage, public_key=public_key)
        assert exc_info.value.stage == "signature"

        manifest.claim = manifest.claim_v2.model_copy(deep=True)
        self.storage.store_manifest(manifest)
        status = verify_manifest(manifest.instance_id, self.storage, public_key=public_key)
        assert "signature" in status.checks_performed

    def test_unsigned_claim_fails_signature_stage(self):
        _, public_key = KeyManager().generate_key_pair('ED25519')
        manifest = create_model_manifest(self.config([self.create_test_file("m.onnx")]))
        with pytest.raises(VerificationError):
            verify_manifest(manifest.instance_id, self.storage, public_key=public_key)

    def test_validate_manifest_accepts_created_manifest(self):
        manifest = create_model_manifest(self.config([self.create_test_file("m.onnx")]))
        validate_manifest(manifest)
