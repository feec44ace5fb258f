"""
Core type definitions for ONNX Extractor.
"""

from enum import Enum
from typing import Dict, List, Optional

import numpy as np
from onnx import helper


class StorageField(Enum):
    """TensorProto field that holds the typed payload of a data type."""
    FLOAT_DATA = "float_data"
    DOUBLE_DATA = "double_data"
    INT32_DATA = "int32_data"
    INT64_DATA = "int64_data"
    UINT64_DATA = "uint64_data"
    STRING_DATA = "string_data"

    @property
    def numpy_dtype(self) -> Optional[np.dtype]:
        """Little-endian element type of the field, None for strings."""
        return _FIELD_DTYPES.get(self)


_FIELD_DTYPES = {
    StorageField.FLOAT_DATA: np.dtype("<f4"),
    StorageField.DOUBLE_DATA: np.dtype("<f8"),
    StorageField.INT32_DATA: np.dtype("<i4"),
    StorageField.INT64_DATA: np.dtype("<i8"),
    StorageField.UINT64_DATA: np.dtype("<u8"),
}


class DataType(Enum):
    """Enum of ONNX data types."""
    UNDEFINED = 0
    FLOAT = 1
    UINT8 = 2
    INT8 = 3
    UINT16 = 4
    INT16 = 5
    INT32 = 6
    INT64 = 7
    STRING = 8
    BOOL = 9
    FLOAT16 = 10
    DOUBLE = 11
    UINT32 = 12
    UINT64 = 13
    COMPLEX64 = 14
    COMPLEX128 = 15
    BFLOAT16 = 16
    FLOAT8E4M3FN = 17
    FLOAT8E4M3FNUZ = 18
    FLOAT8E5M2 = 19
    FLOAT8E5M2FNUZ = 20
    UINT4 = 21
    INT4 = 22
    FLOAT4E2M1 = 23
    FLOAT8E8M0 = 24

    @classmethod
    def from_onnx_type(cls, data_type: int) -> "DataType":
        """Map an ONNX elem_type integer to a DataType, UNDEFINED if unknown."""
        try:
            return cls(data_type)
        except ValueError:
            return cls.UNDEFINED

    def size_in_bytes(self) -> Optional[int]:
        """Size of one element in bytes, None for strings and UNDEFINED."""
        return _SIZES.get(self)

    def is_float(self) -> bool:
        return self in _FLOAT_TYPES

    def is_integer(self) -> bool:
        return self in _INTEGER_TYPES

    def storage_field(self) -> Optional[StorageField]:
        """
        Typed TensorProto field used for this type when raw_data is absent.

        ONNX packs every sub-32-bit numeric type into int32_data and both
        unsigned 32/64-bit types into uint64_data.
        """
        if self is DataType.UNDEFINED:
            return None
        return _STORAGE.get(self, StorageField.INT32_DATA)

    def to_numpy(self) -> Optional[np.dtype]:
        """Numpy dtype for this type, None when numpy has no counterpart."""
        if self in (DataType.UNDEFINED, DataType.STRING):
            return None
        try:
            return np.dtype(helper.tensor_dtype_to_np_dtype(self.value))
        except (KeyError, TypeError, ValueError):
            return None


_SIZES = {
    DataType.FLOAT: 4,
    DataType.INT32: 4,
    DataType.UINT32: 4,
    DataType.DOUBLE: 8,
    DataType.INT64: 8,
    DataType.UINT64: 8,
    DataType.FLOAT16: 2,
    DataType.BFLOAT16: 2,
    DataType.INT16: 2,
    DataType.UINT16: 2,
    DataType.INT8: 1,
    DataType.UINT8: 1,
    DataType.BOOL: 1,
    DataType.COMPLEX64: 8,
    DataType.COMPLEX128: 16,
    DataType.FLOAT8E4M3FN: 1,
    DataType.FLOAT8E4M3FNUZ: 1,
    DataType.FLOAT8E5M2: 1,
    DataType.FLOAT8E5M2FNUZ: 1,
    DataType.FLOAT8E8M0: 1,
    DataType.UINT4: 1,
    DataType.INT4: 1,
    DataType.FLOAT4E2M1: 1,
}

_FLOAT_TYPES = frozenset([
    DataType.FLOAT16,
    DataType.FLOAT,
    DataType.DOUBLE,
    DataType.BFLOAT16,
    DataType.FLOAT8E4M3FN,
    DataType.FLOAT8E4M3FNUZ,
    DataType.FLOAT8E5M2,
    DataType.FLOAT8E5M2FNUZ,
    DataType.FLOAT8E8M0,
    DataType.FLOAT4E2M1,
])

_INTEGER_TYPES = frozenset([
    DataType.INT8,
    DataType.INT16,
    DataType.INT32,
    DataType.INT64,
    DataType.UINT8,
    DataType.UINT16,
    DataType.UINT32,
    DataType.UINT64,
    DataType.UINT4,
    DataType.INT4,
])

_STORAGE = {
    DataType.FLOAT: StorageField.FLOAT_DATA,
    DataType.COMPLEX64: StorageField.FLOAT_DATA,
    DataType.DOUBLE: StorageField.DOUBLE_DATA,
    DataType.COMPLEX128: StorageField.DOUBLE_DATA,
    DataType.INT64: StorageField.INT64_DATA,
    DataType.UINT32: StorageField.UINT64_DATA,
    DataType.UINT64: StorageField.UINT64_DATA,
    DataType.STRING: StorageField.STRING_DATA,
}

# Type aliases
Shape = List[int]
TensorDict = Dict[str, "OnnxTensor"]
