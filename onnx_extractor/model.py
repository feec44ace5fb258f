"""
Top-level model class for ONNX Extractor.
"""

import os
from collections import Counter
from typing import Dict, Iterable, List, Optional, Set, Union

import networkx as nx
import onnx
from google.protobuf.message import DecodeError as ProtobufDecodeError

from onnx_extractor.core.errors import DecodeError, InvalidModelError, ModelIOError
from onnx_extractor.core.external_data import ExternalDataLoader
from onnx_extractor.core.operation import OnnxOperation
from onnx_extractor.core.tensor import OnnxTensor
from onnx_extractor.graph import ordering
from onnx_extractor.utils.logging import get_logger

logger = get_logger(__name__)

PathLike = Union[str, "os.PathLike[str]"]


class ModelConfig:
    """Configuration for OnnxModel."""

    def __init__(self,
                 external_data_dir: Optional[str] = None,
                 load_external_data: bool = True,
                 verbose: bool = False):
        """
        Initialize model configuration.

        Args:
            external_data_dir: Base directory for external data files,
                overrides the directory of the model file
            load_external_data: Whether tensors may reference external files
            verbose: Log the load summary at INFO instead of DEBUG
        """
        self.external_data_dir = external_data_dir
        self.load_external_data = load_external_data
        self.verbose = verbose

    def make_loader(self, base_dir: Optional[str]) -> Optional[ExternalDataLoader]:
        """Create the external data loader for a model, if one is allowed."""
        if not self.load_external_data:
            return None
        model_dir = self.external_data_dir or base_dir
        if model_dir is None:
            return None
        return ExternalDataLoader(model_dir)


class OnnxModel:
    """
    Parsed ONNX model: tensor registry, operations and graph boundary.

    ``operations`` keeps graph declaration order; use ``topological_order``
    or ``execution_order`` for a schedule.
    """

    def __init__(self):
        self.tensors: Dict[str, OnnxTensor] = {}
        self.operations: List[OnnxOperation] = []
        self.inputs: List[str] = []
        self.outputs: List[str] = []
        self.ir_version = 0
        self.model_version = 0
        self.producer_name = ""
        self.producer_version = ""
        self.domain = ""
        self.doc_string = ""
        self.opset_imports: Dict[str, int] = {}
        self.external_data_loader: Optional[ExternalDataLoader] = None

    @classmethod
    def load_from_file(cls, path: PathLike, config: Optional[ModelConfig] = None) -> "OnnxModel":
        """
        Load a model from a file.

        External data is resolved relative to the directory of ``path``.

        Args:
            path: Model file path
            config: Model configuration

        Returns:
            Parsed model
        """
        path = os.fspath(path)
        try:
            with open(path, "rb") as f:
                data = f.read()
        except OSError as e:
            raise ModelIOError(f"Failed to read model file '{path}': {e}", path=path) from e

        logger.debug(f"Read {len(data)} bytes from {path}")
        base_dir = os.path.dirname(os.path.abspath(path))
        return cls.load_from_bytes(data, base_dir=base_dir, config=config)

    @classmethod
    def load_from_bytes(cls,
                        data: Union[bytes, bytearray, memoryview],
                        base_dir: Optional[str] = None,
                        config: Optional[ModelConfig] = None) -> "OnnxModel":
        """
        Load a model from serialized bytes.

        Args:
            data: Serialized ModelProto
            base_dir: Directory for external data files
            config: Model configuration

        Returns:
            Parsed model
        """
        try:
            model_proto = onnx.load_model_from_string(bytes(data))
        except ProtobufDecodeError as e:
            raise DecodeError(str(e)) from e

        return cls.from_proto(model_proto, base_dir=base_dir, config=config)

    @classmethod
    def from_proto(cls,
                   model_proto: onnx.ModelProto,
                   base_dir: Optional[str] = None,
                   config: Optional[ModelConfig] = None) -> "OnnxModel":
        """
        Build a model from a decoded ONNX ModelProto.

        Args:
            model_proto: ONNX ModelProto object
            base_dir: Directory for external data files
            config: Model configuration

        Returns:
            Parsed model

        Raises:
            InvalidModelError: If the model has no graph or a tensor is malformed
        """
        config = config or ModelConfig()
        if not model_proto.HasField("graph"):
            raise InvalidModelError("No graph found in model")

        model = cls()
        model.ir_version = model_proto.ir_version
        model.model_version = model_proto.model_version
        model.producer_name = model_proto.producer_name
        model.producer_version = model_proto.producer_version
        model.domain = model_proto.domain
        model.doc_string = model_proto.doc_string
        model.opset_imports = {opset.domain: opset.version for opset in model_proto.opset_import}
        model.external_data_loader = config.make_loader(base_dir)

        model._ingest_graph(model_proto.graph)

        log = logger.info if config.verbose else logger.debug
        log(f"Model loaded: {len(model.operations)} operations, {len(model.tensors)} tensors, "
            f"{len(model.inputs)} inputs, {len(model.outputs)} outputs")
        return model

    def _ingest_graph(self, graph: onnx.GraphProto) -> None:
        initializer_names: Set[str] = {t.name for t in graph.initializer if t.name}

        # Initializers double as inputs with default values
        self.inputs = [inp.name for inp in graph.input
                       if inp.name and inp.name not in initializer_names]
        self.outputs = [out.name for out in graph.output]

        for tensor_proto in graph.initializer:
            tensor = OnnxTensor.from_onnx_tensor(tensor_proto, self.external_data_loader)
            if tensor.name:
                self.tensors[tensor.name] = tensor

        for value_infos in (graph.value_info, graph.input, graph.output):
            self._add_declared_tensors(value_infos)

        for node_proto in graph.node:
            self.operations.append(OnnxOperation.from_onnx(node_proto))

    def _add_declared_tensors(self, value_infos: Iterable[onnx.ValueInfoProto]) -> None:
        for value_info in value_infos:
            name = value_info.name
            if not name:
                continue
            if value_info.type.WhichOneof("value") != "tensor_type":
                logger.debug(f"Skipping non-tensor value info '{name}'")
                continue

            existing = self.tensors.get(name)
            if existing is not None and existing.has_data():
                # A shape-only declaration never replaces initializer data
                logger.debug(f"Keeping data-bearing tensor '{name}' over its type declaration")
                continue

            self.tensors[name] = OnnxTensor.from_onnx_type(name, value_info.type.tensor_type)

    def get_tensor(self, name: str) -> Optional[OnnxTensor]:
        return self.tensors.get(name)

    def get_operation(self, name: str) -> Optional[OnnxOperation]:
        """First operation with the given name, None if absent."""
        for op in self.operations:
            if op.name == name:
                return op
        return None

    def get_operations_by_type(self, op_type: str) -> List[OnnxOperation]:
        return [op for op in self.operations if op.op_type == op_type]

    def tensor_names(self) -> List[str]:
        return list(self.tensors.keys())

    def operation_types(self) -> List[str]:
        """Sorted unique operation types."""
        return sorted({op.op_type for op in self.operations})

    def count_operations_by_type(self) -> Dict[str, int]:
        return dict(Counter(op.op_type for op in self.operations))

    def get_input_tensors(self) -> List[OnnxTensor]:
        return [self.tensors[name] for name in self.inputs if name in self.tensors]

    def get_output_tensors(self) -> List[OnnxTensor]:
        return [self.tensors[name] for name in self.outputs if name in self.tensors]

    def get_weight_tensors(self) -> List[OnnxTensor]:
        """Tensors that carry data (initializers/weights)."""
        return [tensor for tensor in self.tensors.values() if tensor.has_data()]

    def topological_order(self) -> List[OnnxOperation]:
        """
        Operations in plain topological order (Kahn's algorithm).

        Raises:
            InvalidModelError: If the graph has cycles or unresolved dependencies
        """
        return [self.operations[i] for i in ordering.topological_order(self.operations)]

    def execution_order(self) -> List[OnnxOperation]:
        """
        Operations in topological order, favouring those that consume model inputs.

        Raises:
            InvalidModelError: If the graph has cycles or unresolved dependencies
        """
        return [self.operations[i] for i in ordering.execution_order(self.operations, self.inputs)]

    def dependency_graph(self) -> nx.DiGraph:
        """Producer -> consumer graph over operation indices."""
        return ordering.dependency_graph(self.operations)

    def __repr__(self) -> str:
        return (f"OnnxModel(operations={len(self.operations)}, tensors={len(self.tensors)}, "
                f"inputs={len(self.inputs)}, outputs={len(self.outputs)})")
