"""
Operation class for ONNX Extractor.
"""

from collections import OrderedDict
from typing import Dict, List, Optional

import onnx

from onnx_extractor.core.attribute import AttributeValue, parse_attribute
from onnx_extractor.core.tensor import OnnxTensor


class OnnxOperation:
    """Represents one node of an ONNX graph."""

    def __init__(self,
                 name: str = "",
                 op_type: str = "",
                 inputs: Optional[List[str]] = None,
                 outputs: Optional[List[str]] = None,
                 attributes: Optional[Dict[str, AttributeValue]] = None,
                 domain: str = ""):
        """
        Initialize an operation.

        Args:
            name: Node name, may be empty or repeated within a graph
            op_type: Operator type
            inputs: Input tensor names, empty strings mark unused optional inputs
            outputs: Output tensor names
            attributes: Attribute values by name
            domain: Operator domain (empty for ai.onnx)
        """
        self.name = name
        self.op_type = op_type
        self.inputs: List[str] = list(inputs or [])
        self.outputs: List[str] = list(outputs or [])
        self.attributes: Dict[str, AttributeValue] = OrderedDict(attributes or {})
        self.domain = domain

    @classmethod
    def from_onnx(cls, node_proto: onnx.NodeProto) -> "OnnxOperation":
        """
        Create an OnnxOperation from an ONNX NodeProto.

        Attributes with an empty name are dropped after parsing.

        Args:
            node_proto: ONNX NodeProto object

        Returns:
            New OnnxOperation instance
        """
        attributes = OrderedDict()
        for attr in node_proto.attribute:
            value = parse_attribute(attr)
            if attr.name:
                attributes[attr.name] = value

        return cls(
            name=node_proto.name,
            op_type=node_proto.op_type,
            inputs=list(node_proto.input),
            outputs=list(node_proto.output),
            attributes=attributes,
            domain=node_proto.domain,
        )

    def get_attribute(self, name: str) -> Optional[AttributeValue]:
        return self.attributes.get(name)

    def get_int_attribute(self, name: str) -> Optional[int]:
        attr = self.get_attribute(name)
        return attr.as_int() if attr is not None else None

    def get_float_attribute(self, name: str) -> Optional[float]:
        attr = self.get_attribute(name)
        return attr.as_float() if attr is not None else None

    def get_string_attribute(self, name: str) -> Optional[str]:
        attr = self.get_attribute(name)
        return attr.as_string() if attr is not None else None

    def get_tensor_attribute(self, name: str) -> Optional[OnnxTensor]:
        attr = self.get_attribute(name)
        return attr.as_tensor() if attr is not None else None

    def get_ints_attribute(self, name: str) -> Optional[List[int]]:
        attr = self.get_attribute(name)
        return attr.as_ints() if attr is not None else None

    def get_floats_attribute(self, name: str) -> Optional[List[float]]:
        attr = self.get_attribute(name)
        return attr.as_floats() if attr is not None else None

    def get_strings_attribute(self, name: str) -> Optional[List[str]]:
        attr = self.get_attribute(name)
        return attr.as_strings() if attr is not None else None

    def has_attribute(self, name: str) -> bool:
        return name in self.attributes

    def attribute_names(self) -> List[str]:
        return list(self.attributes.keys())

    def input_count(self) -> int:
        return len(self.inputs)

    def output_count(self) -> int:
        return len(self.outputs)

    def is_op_type(self, op_type: str) -> bool:
        return self.op_type == op_type

    def __repr__(self) -> str:
        return (f"OnnxOperation(name='{self.name}', op_type='{self.op_type}', "
                f"inputs={len(self.inputs)}, outputs={len(self.outputs)})")
