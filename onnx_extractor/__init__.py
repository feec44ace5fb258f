"""
ONNX Extractor - A lightweight parser for extracting tensors, operations and
execution orderings from ONNX models.
"""

import os

import onnx

from onnx_extractor.version import __version__

from onnx_extractor.model import OnnxModel, ModelConfig
from onnx_extractor.core.types import DataType, StorageField
from onnx_extractor.core.tensor import OnnxTensor, TensorData, TensorDataKind, DataLocation
from onnx_extractor.core.attribute import AttributeType, AttributeValue
from onnx_extractor.core.operation import OnnxOperation
from onnx_extractor.core.external_data import ExternalDataInfo, ExternalDataLoader
from onnx_extractor.core.errors import (
    OnnxExtractorError,
    ModelIOError,
    DecodeError,
    Utf8Error,
    InvalidModelError,
    MissingFieldError,
    UnsupportedError,
    DataConversionError,
)


def load_model(path_or_model, **kwargs) -> OnnxModel:
    """
    Load an ONNX model from a path, serialized bytes or a ModelProto.

    Keyword arguments are forwarded to the matching OnnxModel constructor.
    """
    if isinstance(path_or_model, onnx.ModelProto):
        return OnnxModel.from_proto(path_or_model, **kwargs)
    if isinstance(path_or_model, (bytes, bytearray, memoryview)):
        return OnnxModel.load_from_bytes(path_or_model, **kwargs)
    if isinstance(path_or_model, (str, os.PathLike)):
        return OnnxModel.load_from_file(path_or_model, **kwargs)
    raise TypeError("path_or_model must be a file path, bytes or an onnx.ModelProto object")
