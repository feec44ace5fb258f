"""
Operator attributes for ONNX Extractor.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional

import onnx

from onnx_extractor.core.errors import MissingFieldError, UnsupportedError, Utf8Error
from onnx_extractor.core.tensor import OnnxTensor


class AttributeType(Enum):
    """Attribute kinds understood by the parser, valued by their ONNX tag."""
    FLOAT = onnx.AttributeProto.FLOAT
    INT = onnx.AttributeProto.INT
    STRING = onnx.AttributeProto.STRING
    TENSOR = onnx.AttributeProto.TENSOR
    FLOATS = onnx.AttributeProto.FLOATS
    INTS = onnx.AttributeProto.INTS
    STRINGS = onnx.AttributeProto.STRINGS


@dataclass(frozen=True)
class AttributeValue:
    """A typed attribute value; ``value`` holds the Python form of ``kind``."""
    kind: AttributeType
    value: Any

    def as_int(self) -> Optional[int]:
        return self.value if self.kind is AttributeType.INT else None

    def as_float(self) -> Optional[float]:
        return self.value if self.kind is AttributeType.FLOAT else None

    def as_string(self) -> Optional[str]:
        return self.value if self.kind is AttributeType.STRING else None

    def as_tensor(self) -> Optional[OnnxTensor]:
        return self.value if self.kind is AttributeType.TENSOR else None

    def as_ints(self) -> Optional[List[int]]:
        return list(self.value) if self.kind is AttributeType.INTS else None

    def as_floats(self) -> Optional[List[float]]:
        return list(self.value) if self.kind is AttributeType.FLOATS else None

    def as_strings(self) -> Optional[List[str]]:
        return list(self.value) if self.kind is AttributeType.STRINGS else None


def _decode(raw: bytes, attr_name: str) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise Utf8Error(f"attribute '{attr_name}': {e}") from e


def parse_attribute(attr: onnx.AttributeProto) -> AttributeValue:
    """
    Convert an ONNX AttributeProto into an AttributeValue.

    Tensor attributes are parsed without an external data loader, so an
    inline tensor that declares external data is rejected.

    Args:
        attr: ONNX AttributeProto

    Returns:
        Parsed attribute value

    Raises:
        UnsupportedError: If the attribute type is not supported
        Utf8Error: If a string payload is not valid UTF-8
        MissingFieldError: If a tensor attribute has no tensor
    """
    attr_type = attr.type

    if attr_type == onnx.AttributeProto.FLOAT:
        return AttributeValue(AttributeType.FLOAT, attr.f)
    elif attr_type == onnx.AttributeProto.INT:
        return AttributeValue(AttributeType.INT, attr.i)
    elif attr_type == onnx.AttributeProto.STRING:
        return AttributeValue(AttributeType.STRING, _decode(attr.s, attr.name))
    elif attr_type == onnx.AttributeProto.TENSOR:
        if not attr.HasField("t"):
            raise MissingFieldError(f"tensor attribute data for '{attr.name}'")
        return AttributeValue(AttributeType.TENSOR, OnnxTensor.from_onnx_tensor(attr.t))
    elif attr_type == onnx.AttributeProto.FLOATS:
        return AttributeValue(AttributeType.FLOATS, tuple(attr.floats))
    elif attr_type == onnx.AttributeProto.INTS:
        return AttributeValue(AttributeType.INTS, tuple(attr.ints))
    elif attr_type == onnx.AttributeProto.STRINGS:
        return AttributeValue(AttributeType.STRINGS,
                              tuple(_decode(s, attr.name) for s in attr.strings))
    else:
        raise UnsupportedError(f"attribute type: {attr_type}")
