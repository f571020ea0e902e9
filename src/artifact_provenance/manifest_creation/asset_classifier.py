"""
Asset Classifier Module

Maps artifact file paths to asset type tags and media types by extension.
"""

from pathlib import Path
from typing import Dict, Optional, Tuple, Union

from ..errors import ValidationError
from ..models import AssetKind, AssetType

MODEL_TYPES: Dict[str, AssetType] = {
    'pb': AssetType.MODEL_TENSORFLOW,
    'savedmodel': AssetType.MODEL_TENSORFLOW,
    'tf': AssetType.MODEL_TENSORFLOW,
    'pt': AssetType.MODEL_PYTORCH,
    'pth': AssetType.MODEL_PYTORCH,
    'pytorch': AssetType.MODEL_PYTORCH,
    'onnx': AssetType.MODEL_ONNX,
    'bin': AssetType.MODEL_OPENVINO,
    'xml': AssetType.MODEL_OPENVINO,
    'h5': AssetType.MODEL_KERAS,
    'keras': AssetType.MODEL_KERAS,
    'hdf5': AssetType.MODEL_KERAS,
    'jax': AssetType.MODEL_JAX,
    'mlnet': AssetType.MODEL_MLNET,
    'zip': AssetType.MODEL_MLNET,
    'params': AssetType.MODEL_MXNET,
    'json': AssetType.MODEL_MXNET,
    'mxnet': AssetType.MODEL_MXNET,
    'npy': AssetType.FORMAT_NUMPY,
    'npz': AssetType.FORMAT_NUMPY,
    'protobuf': AssetType.FORMAT_PROTOBUF,
    'proto': AssetType.FORMAT_PROTOBUF,
    'pkl': AssetType.FORMAT_PICKLE,
    'pickle': AssetType.FORMAT_PICKLE,
}

DATASET_TYPES: Dict[str, AssetType] = {
    'tfrecord': AssetType.DATASET_TENSORFLOW,
    'tfrec': AssetType.DATASET_TENSORFLOW,
    'pb': AssetType.DATASET_TENSORFLOW,
    'proto': AssetType.DATASET_TENSORFLOW,
    'tf': AssetType.DATASET_TENSORFLOW,
    'pt': AssetType.DATASET_PYTORCH,
    'pth': AssetType.DATASET_PYTORCH,
    'pytorch': AssetType.DATASET_PYTORCH,
    'onnx': AssetType.DATASET_ONNX,
    'bin': AssetType.DATASET_OPENVINO,
    'xml': AssetType.DATASET_OPENVINO,
    'h5': AssetType.DATASET_KERAS,
    'hdf5': AssetType.DATASET_KERAS,
    'keras': AssetType.DATASET_KERAS,
    'jax': AssetType.DATASET_JAX,
    'mlnet': AssetType.DATASET_MLNET,
    'zip': AssetType.DATASET_MLNET,
    'rec': AssetType.DATASET_MXNET,
    'idx': AssetType.DATASET_MXNET,
    'params': AssetType.DATASET_MXNET,
    'lst': AssetType.DATASET_MXNET,
    'mxnet': AssetType.DATASET_MXNET,
}

MEDIA_TYPES: Dict[str, str] = {
    'pb': 'application/x-protobuf',
    'savedmodel': 'application/x-tensorflow',
    'tf': 'application/x-tensorflow',
    'pt': 'application/x-pytorch',
    'pth': 'application/x-pytorch',
    'pytorch': 'application/x-pytorch',
    'onnx': 'application/onnx',
    'bin': 'application/x-openvino',
    'xml': 'application/x-openvino',
    'h5': 'application/x-hdf5',
    'keras': 'application/x-hdf5',
    'hdf5': 'application/x-hdf5',
    'jax': 'application/x-jax',
    'mlnet': 'application/x-mlnet',
    'zip': 'application/zip',
    'params': 'application/x-mxnet',
    'mxnet': 'application/x-mxnet',
    'json': 'application/json',
    'npy': 'application/x-numpy',
    'npz': 'application/x-numpy',
    'protobuf': 'application/x-protobuf',
    'proto': 'application/x-protobuf',
    'pkl': 'application/x-pickle',
    'pickle': 'application/x-pickle',
}

DEFAULT_MEDIA_TYPE = 'application/octet-stream'


def _extension(path: Union[str, Path]) -> Optional[str]:
    suffix = Path(path).suffix
    return suffix[1:].lower() if suffix else None


def determine_model_type(path: Union[str, Path]) -> AssetType:
    ext = _extension(path)
    if ext is None:
        raise ValidationError("Unsupported model format: file has no extension")
    return MODEL_TYPES.get(ext, AssetType.MODEL)


def determine_dataset_type(path: Union[str, Path]) -> AssetType:
    ext = _extension(path)
    if ext is None:
        raise ValidationError("Unsupported dataset format: file has no extension")
    return DATASET_TYPES.get(ext, AssetType.DATASET)


def determine_software_type(path: Union[str, Path]) -> AssetType:
    """Every software artifact (scripts, notebooks, configs, ...) is a generator."""
    return AssetType.GENERATOR


def determine_format(path: Union[str, Path]) -> str:
    ext = _extension(path)
    return MEDIA_TYPES.get(ext, DEFAULT_MEDIA_TYPE) if ext else DEFAULT_MEDIA_TYPE


def classify(path: Union[str, Path], kind: AssetKind) -> Tuple[AssetType, str]:
    """
    Classify an artifact file.

    Args:
        path: Path to the artifact
        kind: Asset kind of the manifest being built. Evaluation result
            files are always plain datasets, whatever their extension.

    Returns:
        Tuple of (asset_type, media_type)
    """
    if kind == AssetKind.MODEL:
        asset_type = determine_model_type(path)
    elif kind == AssetKind.SOFTWARE:
        asset_type = determine_software_type(path)
    elif kind == AssetKind.EVALUATION:
        asset_type = AssetType.DATASET
    else:
        asset_type = determine_dataset_type(path)
    return asset_type, determine_format(path)
