"""
Manifest Data Model

Pydantic models for ingredients, assertions, claims, cross-references and
manifests, plus the canonical JSON/CBOR encodings used as hashing and
signing input.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

import cbor2
from pydantic import BaseModel, Field

from .errors import SerializationError, ValidationError

IPTC_SOURCE_TYPE_BASE = "http://cv.iptc.org/newscodes/digitalsourcetype/"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AssetType(str, Enum):
    """C2PA-style asset type tags carried in ``IngredientData.data_types``."""

    MODEL = "c2pa.types.model"
    MODEL_ONNX = "c2pa.types.model.onnx"
    MODEL_TENSORFLOW = "c2pa.types.model.tensorflow"
    MODEL_PYTORCH = "c2pa.types.model.pytorch"
    MODEL_OPENVINO = "c2pa.types.model.openvino"
    MODEL_KERAS = "c2pa.types.model.keras"
    MODEL_JAX = "c2pa.types.model.jax"
    MODEL_MLNET = "c2pa.types.model.mlnet"
    MODEL_MXNET = "c2pa.types.model.mxnet"
    DATASET = "c2pa.types.dataset"
    DATASET_ONNX = "c2pa.types.dataset.onnx"
    DATASET_TENSORFLOW = "c2pa.types.dataset.tensorflow"
    DATASET_PYTORCH = "c2pa.types.dataset.pytorch"
    DATASET_OPENVINO = "c2pa.types.dataset.openvino"
    DATASET_KERAS = "c2pa.types.dataset.keras"
    DATASET_JAX = "c2pa.types.dataset.jax"
    DATASET_MLNET = "c2pa.types.dataset.mlnet"
    DATASET_MXNET = "c2pa.types.dataset.mxnet"
    GENERATOR = "c2pa.types.generator"
    FORMAT_NUMPY = "c2pa.types.format.numpy"
    FORMAT_PROTOBUF = "c2pa.types.format.protobuf"
    FORMAT_PICKLE = "c2pa.types.format.pickle"

    @property
    def is_model(self) -> bool:
        return self.value.startswith("c2pa.types.model")

    @property
    def is_dataset(self) -> bool:
        return self.value.startswith("c2pa.types.dataset")

    @property
    def is_software(self) -> bool:
        return self is AssetType.GENERATOR


class AssetKind(str, Enum):
    """Semantic category of the artifact a manifest is created for."""

    MODEL = "Model"
    DATASET = "Dataset"
    SOFTWARE = "Software"
    EVALUATION = "Evaluation"


class ManifestType(str, Enum):
    """Kind of a stored manifest, derived from its content on read."""

    MODEL = "Model"
    DATASET = "Dataset"
    SOFTWARE = "Software"
    EVALUATION = "Evaluation"
    UNKNOWN = "Unknown"

    def __str__(self) -> str:
        return self.value


def parse_manifest_type(type_str: str) -> ManifestType:
    """Case-insensitive parse of a manifest type name."""
    for manifest_type in ManifestType:
        if manifest_type.value.lower() == type_str.strip().lower():
            return manifest_type
    valid = ", ".join(t.value.lower() for t in ManifestType)
    raise ValidationError(f"Invalid manifest type '{type_str}'. Valid options are: {valid}")


class IngredientData(BaseModel):
    url: str
    alg: str = "sha256"
    hash: str
    data_types: List[AssetType] = Field(min_length=1)
    linked_ingredient_url: Optional[str] = None
    linked_ingredient_hash: Optional[str] = None


class LinkedIngredient(BaseModel):
    url: str
    hash: str
    media_type: Optional[str] = None


class Ingredient(BaseModel):
    title: str
    format: str
    relationship: str = "componentOf"
    document_id: str
    instance_id: str
    data: IngredientData
    linked_ingredient: Optional[LinkedIngredient] = None
    public_key: Optional[str] = None


class Author(BaseModel):
    author_type: str
    name: str


class CreativeWorkAssertion(BaseModel):
    assertion_type: Literal["creative_work"] = "creative_work"
    context: str = "http://schema.org/"
    creative_type: str
    author: List[Author] = Field(default_factory=list)


class Action(BaseModel):
    action: str
    software_agent: Optional[str] = None
    parameters: Optional[Dict[str, Any]] = None
    digital_source_type: Optional[str] = None
    instance_id: Optional[str] = None


class ActionAssertion(BaseModel):
    assertion_type: Literal["action"] = "action"
    actions: List[Action] = Field(default_factory=list)


class CustomAssertion(BaseModel):
    assertion_type: Literal["custom"] = "custom"
    label: str
    data: Any = None


Assertion = Annotated[
    Union[CreativeWorkAssertion, ActionAssertion, CustomAssertion],
    Field(discriminator="assertion_type"),
]


class Claim(BaseModel):
    instance_id: str
    ingredients: List[Ingredient] = Field(default_factory=list)
    created_assertions: List[Assertion] = Field(default_factory=list)
    claim_generator_info: str
    signature: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)

    def signing_payload(self) -> bytes:
        """Canonical CBOR of the claim with the signature field left out."""
        data = self.model_dump(mode="json")
        data.pop("signature", None)
        return to_canonical_cbor(data)


class CrossReference(BaseModel):
    manifest_url: str
    manifest_hash: str
    media_type: Optional[str] = None


class Manifest(BaseModel):
    claim_generator: str
    title: str
    instance_id: str
    ingredients: List[Ingredient] = Field(default_factory=list)
    claim: Claim
    claim_v2: Optional[Claim] = None
    created_at: datetime = Field(default_factory=utc_now)
    cross_references: List[CrossReference] = Field(default_factory=list)
    is_active: bool = True

    def claims(self) -> List[Claim]:
        """Claims to inspect for assertions: ``claim_v2`` first, then the legacy slot."""
        if self.claim_v2 is not None:
            return [self.claim_v2, self.claim]
        return [self.claim]

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def canonical_json(self) -> bytes:
        return to_canonical_json(self.to_dict())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Manifest":
        try:
            return cls.model_validate(data)
        except ValueError as e:
            raise SerializationError(f"Invalid manifest document: {e}") from e

    @classmethod
    def from_json(cls, text: Union[str, bytes]) -> "Manifest":
        try:
            data = json.loads(text)
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Invalid manifest JSON: {e}") from e
        return cls.from_dict(data)


class ManifestMetadata(BaseModel):
    """Projection of a stored manifest used for listings."""

    id: str
    name: str
    manifest_type: ManifestType
    created_at: str


def to_canonical_json(data: Any) -> bytes:
    """Deterministic JSON encoding (sorted keys, no whitespace)."""
    try:
        return json.dumps(data, sort_keys=True, separators=(',', ':')).encode('utf-8')
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Failed to encode JSON: {e}") from e


def to_canonical_cbor(data: Any) -> bytes:
    """Deterministic CBOR encoding."""
    try:
        return cbor2.dumps(data, canonical=True)
    except (TypeError, ValueError, cbor2.CBOREncodeError) as e:
        raise SerializationError(f"Failed to encode CBOR: {e}") from e
