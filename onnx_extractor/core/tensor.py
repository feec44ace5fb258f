"""
Tensor classes for ONNX Extractor.

An ``OnnxTensor`` is built once during ingestion, either from an initializer
(``TensorProto``, may carry data) or from a type declaration
(``TypeProto.Tensor``, never carries data), and is never mutated afterwards.

Payload bytes are exposed as read-only ``memoryview`` objects. Slicing a
memoryview shares the underlying buffer, so raw tensor bytes and external
file contents are handed out without copying. All multi-byte
reinterpretation assumes a little-endian IEEE-754 host; no byte swapping
is performed.
"""

from enum import Enum
from typing import List, Optional, Sequence

import numpy as np
import onnx
from onnx import numpy_helper

from onnx_extractor.core.errors import (
    DataConversionError,
    InvalidModelError,
    MissingFieldError,
    UnsupportedError,
)
from onnx_extractor.core.external_data import ExternalDataInfo, ExternalDataLoader
from onnx_extractor.core.types import DataType, Shape, StorageField
from onnx_extractor.utils.logging import get_logger

logger = get_logger(__name__)

# Typed TensorProto fields whose presence marks a tensor as carrying inline data
_TYPED_FIELDS = tuple(field.value for field in StorageField)

# Packed types whose element count cannot be derived from the byte length
_PACKED_TYPES = frozenset([DataType.UINT4, DataType.INT4, DataType.FLOAT4E2M1])


class DataLocation(Enum):
    """Where a tensor's payload lives."""
    NONE = "none"
    INTERNAL = "internal"
    EXTERNAL = "external"


class TensorDataKind(Enum):
    """Backing representation of a TensorData view."""
    RAW = "raw"
    NUMERIC = "numeric"
    STRINGS = "strings"


class TensorData:
    """
    Uniform view over one of the mutually exclusive payload encodings.

    RAW wraps the literal encoded bytes, NUMERIC wraps the bytes of a typed
    numeric array and STRINGS holds one bytes object per string element.
    """

    def __init__(self,
                 kind: TensorDataKind,
                 buffer: Optional[memoryview] = None,
                 strings: Optional[Sequence[bytes]] = None):
        self.kind = kind
        self._buffer = buffer
        self._strings = tuple(strings) if strings is not None else None
        self._joined: Optional[bytes] = None

    @classmethod
    def raw(cls, buffer) -> "TensorData":
        """Wrap an immutable byte buffer without copying."""
        view = buffer if isinstance(buffer, memoryview) else memoryview(buffer)
        if not view.readonly:
            view = view.toreadonly()
        return cls(TensorDataKind.RAW, buffer=view)

    @classmethod
    def numeric(cls, array: np.ndarray) -> "TensorData":
        """Wrap the bytes of a one-dimensional numeric array."""
        array = np.ascontiguousarray(array).reshape(-1)
        array.flags.writeable = False
        return cls(TensorDataKind.NUMERIC, buffer=memoryview(array.view(np.uint8)))

    @classmethod
    def from_strings(cls, items: Sequence[bytes]) -> "TensorData":
        return cls(TensorDataKind.STRINGS, strings=items)

    @property
    def strings(self) -> List[bytes]:
        """Per-element byte strings. Only valid for STRINGS data."""
        if self._strings is None:
            raise MissingFieldError(f"string elements of {self.kind.value} tensor data")
        return list(self._strings)

    def as_bytes(self) -> memoryview:
        """
        Byte view of the payload.

        String elements are concatenated on first request and the result is
        reused afterwards.
        """
        if self._buffer is not None:
            return self._buffer
        if self._joined is None:
            self._joined = b"".join(self._strings)
        return memoryview(self._joined)

    def to_bytes(self) -> bytes:
        """Owned copy of the payload bytes."""
        return self.as_bytes().tobytes()

    def __len__(self) -> int:
        return self.as_bytes().nbytes

    def __repr__(self) -> str:
        if self.kind is TensorDataKind.STRINGS:
            return f"TensorData(kind=strings, elements={len(self._strings)})"
        return f"TensorData(kind={self.kind.value}, bytes={self._buffer.nbytes})"


class OnnxTensor:
    """Represents a tensor of an ONNX graph: name, shape, type and optional payload."""

    def __init__(self,
                 name: str,
                 shape: Optional[Shape] = None,
                 data_type: DataType = DataType.UNDEFINED,
                 proto: Optional[onnx.TensorProto] = None,
                 external_info: Optional[ExternalDataInfo] = None):
        """
        Initialize a tensor.

        Args:
            name: Tensor name
            shape: Dimension sizes, negative for dynamic dimensions
            data_type: Element type
            proto: TensorProto carrying inline data
            external_info: Location of data kept in an external file
        """
        if proto is not None and external_info is not None:
            raise ValueError("A tensor holds either inline or external data, not both")

        self._name = name
        self._shape = list(shape or [])
        self._data_type = data_type
        self._proto = proto
        self._external = external_info
        self._data: Optional[TensorData] = None

    @classmethod
    def from_onnx_tensor(cls,
                         tensor: onnx.TensorProto,
                         external_data_loader: Optional[ExternalDataLoader] = None) -> "OnnxTensor":
        """
        Create an OnnxTensor from an ONNX TensorProto.

        Args:
            tensor: ONNX TensorProto object
            external_data_loader: Loader for tensors stored in external files

        Returns:
            New OnnxTensor instance

        Raises:
            InvalidModelError: If the tensor references external data that
                cannot be resolved
        """
        name = tensor.name
        shape = list(tensor.dims)
        data_type = DataType.from_onnx_type(tensor.data_type)

        if len(tensor.external_data) > 0:
            if external_data_loader is None:
                raise InvalidModelError(
                    f"Tensor '{name}' has external data but no external data loader was provided"
                )
            info = ExternalDataInfo.from_key_value_pairs(tensor.external_data, external_data_loader)
            return cls(name, shape, data_type, external_info=info)

        if tensor.HasField("raw_data") or any(len(getattr(tensor, f)) for f in _TYPED_FIELDS):
            return cls(name, shape, data_type, proto=tensor)

        return cls(name, shape, data_type)

    @classmethod
    def from_onnx_type(cls, name: str, tensor_type: onnx.TypeProto.Tensor) -> "OnnxTensor":
        """
        Create a data-less OnnxTensor from a tensor type declaration.

        A missing shape gives an empty dimension list; a dimension without a
        literal value becomes -1.

        Args:
            name: Tensor name
            tensor_type: ONNX TypeProto.Tensor object

        Returns:
            New OnnxTensor instance
        """
        shape = []
        if tensor_type.HasField("shape"):
            for dim in tensor_type.shape.dim:
                if dim.HasField("dim_value"):
                    shape.append(dim.dim_value)
                else:
                    shape.append(-1)

        return cls(name, shape, DataType.from_onnx_type(tensor_type.elem_type))

    @property
    def name(self) -> str:
        return self._name

    @property
    def shape(self) -> Shape:
        return list(self._shape)

    @property
    def data_type(self) -> DataType:
        return self._data_type

    @property
    def data_location(self) -> DataLocation:
        if self._external is not None:
            return DataLocation.EXTERNAL
        if self._proto is not None:
            return DataLocation.INTERNAL
        return DataLocation.NONE

    @property
    def external_info(self) -> Optional[ExternalDataInfo]:
        return self._external

    def is_external(self) -> bool:
        return self._external is not None

    def has_data(self) -> bool:
        """Check whether the tensor carries a payload, without loading it."""
        return self.data_location is not DataLocation.NONE

    def tensor_data(self) -> TensorData:
        """
        Resolve the tensor payload.

        Raw bytes take precedence over typed fields. Otherwise the typed
        field matching the data type's storage bucket is used.

        Returns:
            TensorData view of the payload

        Raises:
            MissingFieldError: If the tensor has no data
            InvalidModelError: If the data type is UNDEFINED
        """
        location = self.data_location
        if location is DataLocation.NONE:
            raise MissingFieldError(f"tensor data for '{self._name}'")

        if location is DataLocation.EXTERNAL:
            return TensorData.raw(self._external.load_data())

        if self._data is None:
            self._data = self._resolve_internal()
        return self._data

    def _resolve_internal(self) -> TensorData:
        proto = self._proto
        if proto.HasField("raw_data"):
            if any(len(getattr(proto, f)) for f in _TYPED_FIELDS):
                logger.debug(f"Tensor '{self._name}' has raw_data and typed data, using raw_data")
            return TensorData.raw(proto.raw_data)

        field = self._data_type.storage_field()
        if field is None:
            raise InvalidModelError(
                f"Cannot resolve data of tensor '{self._name}' with undefined data type"
            )

        values = getattr(proto, field.value)
        if len(values) == 0:
            raise MissingFieldError(f"{field.value} of tensor '{self._name}'")

        if field is StorageField.STRING_DATA:
            return TensorData.from_strings(list(values))
        return TensorData.numeric(np.asarray(values, dtype=field.numpy_dtype))

    def data(self) -> memoryview:
        """Read-only byte view of the tensor payload."""
        return self.tensor_data().as_bytes()

    def to_bytes(self) -> bytes:
        """Owned copy of the tensor payload bytes."""
        return self.tensor_data().to_bytes()

    def string_data(self) -> List[bytes]:
        """String elements of a STRING tensor."""
        if self._data_type is not DataType.STRING:
            raise InvalidModelError(
                f"Tensor '{self._name}' has type {self._data_type.name}, not STRING"
            )
        return self.tensor_data().strings

    def data_size_bytes(self) -> Optional[int]:
        """Size of the payload in bytes, None if the tensor has no data."""
        if not self.has_data():
            return None
        return self.data().nbytes

    def copy_data_as(self, dtype) -> np.ndarray:
        """
        Reinterpret the payload bytes as an array of ``dtype``.

        The byte length must be an exact multiple of the element size. The
        result is freshly allocated, so the alignment of the source buffer
        does not matter.

        Args:
            dtype: Any numpy dtype-like fixed-width type

        Returns:
            One-dimensional array of ``len(bytes) // itemsize`` elements

        Raises:
            DataConversionError: If the byte length is not a multiple of the element size
            InvalidModelError: If ``dtype`` has zero size
        """
        target = np.dtype(dtype)
        if target.hasobject:
            raise UnsupportedError(f"reinterpreting tensor data as {target}")

        width = target.itemsize
        if width == 0:
            raise InvalidModelError(f"Cannot reinterpret tensor data as zero-size type {target}")

        view = self.data()
        length = view.nbytes
        if length % width != 0:
            raise DataConversionError(length, width, str(target))

        if length == 0:
            return np.empty(0, dtype=target)
        return np.frombuffer(view, dtype=target).copy()

    def to_numpy(self) -> np.ndarray:
        """
        Get the payload as a numpy array shaped like the tensor.

        Returns:
            New numpy array

        Raises:
            MissingFieldError: If the tensor has no data
            UnsupportedError: If numpy has no counterpart for the data type
            DataConversionError: If the payload does not match the shape
        """
        if not self.has_data():
            raise MissingFieldError(f"tensor data for '{self._name}'")
        if self._data_type is DataType.UNDEFINED:
            raise InvalidModelError(
                f"Cannot convert tensor '{self._name}' with undefined data type"
            )

        if self.data_location is DataLocation.INTERNAL:
            try:
                return numpy_helper.to_array(self._proto)
            except (ValueError, TypeError) as e:
                raise DataConversionError(
                    self.data().nbytes, self._data_type.size_in_bytes() or 0, self._data_type.name,
                    message=f"cannot convert tensor '{self._name}' to numpy: {e}",
                ) from e

        np_dtype = self._data_type.to_numpy()
        if np_dtype is None or self._data_type in _PACKED_TYPES:
            raise UnsupportedError(f"numpy conversion of {self._data_type.name} external data")

        array = self.copy_data_as(np_dtype)
        expected = self.element_count()
        if array.size != expected:
            raise DataConversionError(
                array.nbytes, np_dtype.itemsize, str(np_dtype),
                message=(f"tensor '{self._name}' holds {array.size} elements "
                         f"but shape {self._shape} needs {expected}"),
            )
        return array.reshape(self._shape)

    def element_count(self) -> int:
        """Number of elements, counting only positive dimensions."""
        count = 1
        for dim in self._shape:
            if dim > 0:
                count *= dim
        return count

    def rank(self) -> int:
        return len(self._shape)

    def is_scalar(self) -> bool:
        return len(self._shape) == 0

    def is_vector(self) -> bool:
        return len(self._shape) == 1

    def has_dynamic_shape(self) -> bool:
        return any(dim < 0 for dim in self._shape)

    def __repr__(self) -> str:
        return (f"OnnxTensor(name='{self._name}', dtype={self._data_type.name}, "
                f"shape={self._shape}, data={self.data_location.value})")
