"""
Test suite for manifest creation.
"""

import json
import logging
import os
import shutil
import tempfile

import cbor2
import pytest

from artifact_provenance import hashing
from artifact_provenance.config import ProvenanceConfig
from artifact_provenance.errors import StorageError, ValidationError
from artifact_provenance.manifest_creation import (
    ManifestCreationConfig,
    create_dataset_manifest,
    create_evaluation_manifest,
    create_model_manifest,
    create_software_manifest,
    deactivate_manifest,
    link_manifest,
    list_manifests,
    manifest_digest,
    parse_metrics,
    render_manifest,
)
from artifact_provenance.manifest_storage import FilesystemStorage
from artifact_provenance.models import (
    ActionAssertion,
    AssetType,
    CreativeWorkAssertion,
    CustomAssertion,
    ManifestType,
)


class ManifestTestCase:
    """Shared fixtures: a temp directory with artifacts and a filesystem store."""

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

    def config(self, paths, name="artifact", **kwargs):
        kwargs.setdefault("storage", self.storage)
        return ManifestCreationConfig(paths=paths, name=name, **kwargs)


class TestParseMetrics:

    def test_valid(self):
        assert parse_metrics(["accuracy=0.95", "f1=0.9"]) == {"accuracy": "0.95", "f1": "0.9"}

    def test_missing_separator(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_metrics(["accuracy"])
        assert "accuracy" in str(exc_info.value)
        assert "Expected format: key=value" in str(exc_info.value)

    def test_too_many_separators(self):
        with pytest.raises(ValidationError):
            parse_metrics(["a=b=c"])

    def test_empty(self):
        assert parse_metrics(None) == {}


class TestModelManifest(ManifestTestCase):

    def test_ingredients(self):
        path = self.create_test_file("model.onnx", "weights")
        manifest = create_model_manifest(self.config([path], ingredient_names=["Main model"]))

        assert manifest.instance_id.startswith("urn:c2pa:")
        assert len(manifest.ingredients) == 1
        ingredient = manifest.ingredients[0]
        assert ingredient.title == "Main model"
        assert ingredient.format == "application/onnx"
        assert ingredient.relationship == "componentOf"
        assert ingredient.document_id.startswith("uuid:")
        assert ingredient.data.url == f"file://{os.path.abspath(path)}"
        assert ingredient.data.hash == hashing.digest(b"weights")
        assert ingredient.data.data_types == [AssetType.MODEL_ONNX]

    def test_assertions(self):
        path = self.create_test_file("model.pt")
        manifest = create_model_manifest(self.config(
            [path], author_org="Acme", description="A model"
        ))

        creative, action = manifest.claim.created_assertions
        assert isinstance(creative, CreativeWorkAssertion)
        assert creative.creative_type == "Model"
        assert [(a.author_type, a.name) for a in creative.author] == [
            ("Organization", "Acme"), ("Person", "Unknown")
        ]
        assert isinstance(action, ActionAssertion)
        assert action.actions[0].action == "c2pa.created"
        assert action.actions[0].digital_source_type == (
            "http://cv.iptc.org/newscodes/digitalsourcetype/algorithmicMedia"
        )
        assert action.actions[0].parameters["description"] == "A model"
        assert manifest.claim_v2 == manifest.claim
        assert manifest.claim.signature is None

    def test_stored(self):
        path = self.create_test_file("model.onnx")
        manifest = create_model_manifest(self.config([path]))
        assert self.storage.retrieve_manifest(manifest.instance_id) == manifest

    def test_single_name_reused(self):
        paths = [self.create_test_file("a.onnx"), self.create_test_file("b.onnx")]
        manifest = create_model_manifest(self.config(paths, ingredient_names=["shard"]))
        assert [i.title for i in manifest.ingredients] == ["shard", "shard"]

    def test_name_count_mismatch(self):
        paths = [self.create_test_file("a.onnx"), self.create_test_file("b.onnx")]
        with pytest.raises(ValidationError):
            create_model_manifest(self.config(paths, ingredient_names=["a", "b", "c"]))

    def test_missing_extension_stores_nothing(self):
        good = self.create_test_file("a.onnx")
        bad = self.create_test_file("noext")
        with pytest.raises(ValidationError):
            create_model_manifest(self.config([good, bad]))
        assert self.storage.list_manifests() == []

    def test_invalid_output_format(self):
        path = self.create_test_file("a.onnx")
        with pytest.raises(ValidationError) as exc_info:
            create_model_manifest(self.config([path], output_format="xml"))
        assert "xml" in str(exc_info.value)

    def test_print_without_storage(self, capsys):
        path = self.create_test_file("a.onnx")
        manifest = create_model_manifest(self.config([path], storage=None))
        printed = json.loads(capsys.readouterr().out)
        assert printed["instance_id"] == manifest.instance_id

    def test_print_replaces_storing(self, capsys):
        path = self.create_test_file("a.onnx")
        manifest = create_model_manifest(self.config([path], print_manifest=True))
        printed = json.loads(capsys.readouterr().out)
        assert printed["instance_id"] == manifest.instance_id
        assert self.storage.list_manifests() == []

    def test_show_progress_logs_each_file(self, caplog):
        paths = [self.create_test_file("a.onnx"), self.create_test_file("b.onnx")]
        with caplog.at_level(logging.INFO):
            create_model_manifest(self.config(paths, show_progress=True))
        assert "Hashing ingredient 1/2" in caplog.text
        assert "Hashing ingredient 2/2" in caplog.text

    def test_quiet_by_default(self, caplog):
        path = self.create_test_file("a.onnx")
        with caplog.at_level(logging.INFO):
            create_model_manifest(self.config([path]))
        assert "Hashing ingredient" not in caplog.text


class TestConfigFromSettings(ManifestTestCase):

    def test_settings_applied(self):
        settings = ProvenanceConfig(key_path="/keys/private.pem", hash_alg="sha512",
                                    with_cc=True, show_progress=True)
        config = ManifestCreationConfig.from_config(settings, ["a.onnx"], "model",
                                                    storage=self.storage)
        assert config.key_path == "/keys/private.pem"
        assert config.hash_alg == "sha512"
        assert config.with_cc is True
        assert config.show_progress is True
        assert config.storage is self.storage
        assert config.name == "model"

    def test_keyword_overrides_settings(self):
        settings = ProvenanceConfig(hash_alg="sha512", with_cc=True)
        config = ManifestCreationConfig.from_config(settings, ["a.onnx"], "model",
                                                    with_cc=False)
        assert config.with_cc is False
        assert config.hash_alg == "sha512"

    def test_env_settings_reach_creation(self, caplog):
        settings = ProvenanceConfig().with_env_overrides({"PROVENANCE_SHOW_PROGRESS": "true"})
        path = self.create_test_file("a.onnx")
        config = ManifestCreationConfig.from_config(settings, [path], "model",
                                                    storage=self.storage)
        with caplog.at_level(logging.INFO):
            manifest = create_model_manifest(config)
        assert "Hashing ingredient 1/1" in caplog.text
        assert manifest.claim.signature is None


class TestOtherKinds(ManifestTestCase):

    def test_dataset(self):
        path = self.create_test_file("train.csv")
        manifest = create_dataset_manifest(self.config([path]))
        creative = manifest.claim.created_assertions[0]
        assert creative.creative_type == "Dataset"
        assert manifest.ingredients[0].data.data_types == [AssetType.DATASET]

    def test_software_description(self):
        path = self.create_test_file("train.py")
        manifest = create_software_manifest(
            self.config([path], description="Trainer"), "script", "1.2"
        )
        params = manifest.claim.created_assertions[1].actions[0].parameters
        assert params["software_type"] == "script"
        assert params["version"] == "1.2"
        assert params["description"] == "Trainer (Type: script, Version: 1.2)"
        assert manifest.ingredients[0].data.data_types == [AssetType.GENERATOR]

    def test_software_description_variants(self):
        path = self.create_test_file("train.py")
        cases = [
            ("Trainer", None, "Trainer (Type: script)"),
            (None, "2.0", "Type: script, Version: 2.0"),
            (None, None, "Type: script"),
        ]
        for description, version, expected in cases:
            manifest = create_software_manifest(
                self.config([path], description=description), "script", version
            )
            params = manifest.claim.created_assertions[1].actions[0].parameters
            assert params["description"] == expected

    def test_evaluation(self):
        model = create_model_manifest(self.config([self.create_test_file("m.onnx")]))
        dataset = create_dataset_manifest(self.config([self.create_test_file("d.csv")]))
        results = self.create_test_file("results.json", "{}")

        manifest = create_evaluation_manifest(
            self.config([results]), model.instance_id, dataset.instance_id, ["accuracy=0.95"]
        )

        action = manifest.claim.created_assertions[1].actions[0]
        assert action.action == "c2pa.evaluation"
        assert action.parameters["model_id"] == model.instance_id
        assert action.parameters["dataset_id"] == dataset.instance_id
        assert action.parameters["metrics"] == {"accuracy": "0.95"}
        assert action.parameters["description"] == (
            f"Evaluation of Model: {model.instance_id} on Dataset: {dataset.instance_id}"
        )
        assert [c.manifest_url for c in manifest.cross_references] == [
            model.instance_id, dataset.instance_id
        ]
        assert manifest.cross_references[0].manifest_hash == manifest_digest(
            self.storage.retrieve_manifest(model.instance_id)
        )

    def test_evaluation_bad_metric(self):
        results = self.create_test_file("results.json")
        with pytest.raises(ValidationError):
            create_evaluation_manifest(self.config([results]), "m", "d", ["accuracy"])
        assert self.storage.list_manifests() == []

    def test_evaluation_result_without_extension(self):
        results = self.create_test_file("results", "accuracy 0.95")
        manifest = create_evaluation_manifest(self.config([results]), "m", "d", ["accuracy=0.95"])
        assert manifest.ingredients[0].data.data_types == [AssetType.DATASET]
        assert self.storage.manifest_exists(manifest.instance_id)

    def test_unresolvable_links_are_skipped(self):
        path = self.create_test_file("a.onnx")
        manifest = create_model_manifest(self.config([path], linked_manifests=["urn:c2pa:missing"]))
        assert manifest.cross_references == []
        assert self.storage.manifest_exists(manifest.instance_id)

    def test_with_cc_attestation(self):
        path = self.create_test_file("a.onnx")
        manifest = create_model_manifest(self.config([path], with_cc=True))
        custom = manifest.claim.created_assertions[-1]
        assert isinstance(custom, CustomAssertion)
        assert custom.label in ("unsupported", "tdx-linux")


class TestRenderAndManage(ManifestTestCase):

    def test_render_json(self):
        manifest = create_model_manifest(self.config([self.create_test_file("a.onnx")]))
        assert json.loads(render_manifest(manifest, "JSON"))["title"] == "artifact"

    def test_render_cbor(self):
        manifest = create_model_manifest(self.config([self.create_test_file("a.onnx")]))
        decoded = cbor2.loads(bytes.fromhex(render_manifest(manifest, "cbor")))
        assert decoded["instance_id"] == manifest.instance_id

    def test_render_invalid(self):
        manifest = create_model_manifest(self.config([self.create_test_file("a.onnx")]))
        with pytest.raises(ValidationError) as exc_info:
            render_manifest(manifest, "yaml")
        assert "Valid options are: json, cbor" in str(exc_info.value)

    def test_list_by_kind(self):
        model = create_model_manifest(self.config([self.create_test_file("a.onnx")]))
        create_dataset_manifest(self.config([self.create_test_file("d.csv")]))

        models = list_manifests(self.storage, ManifestType.MODEL)
        assert [m.id for m in models] == [model.instance_id]
        assert len(list_manifests(self.storage)) == 2

    def test_link_manifest(self):
        model = create_model_manifest(self.config([self.create_test_file("a.onnx")]))
        dataset = create_dataset_manifest(self.config([self.create_test_file("d.csv")]))

        updated = link_manifest(self.storage, model.instance_id, dataset.instance_id)
        stored = self.storage.retrieve_manifest(model.instance_id)
        assert stored == updated
        assert stored.cross_references[0].manifest_url == dataset.instance_id

    def test_link_manifest_missing_target(self):
        model = create_model_manifest(self.config([self.create_test_file("a.onnx")]))
        with pytest.raises(StorageError):
            link_manifest(self.storage, model.instance_id, "urn:c2pa:missing")

    def test_deactivate(self):
        model = create_model_manifest(self.config([self.create_test_file("a.onnx")]))
        deactivate_manifest(self.storage, model.instance_id)
        assert self.storage.retrieve_manifest(model.instance_id).is_active is False
