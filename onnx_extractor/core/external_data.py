"""
External tensor data for ONNX Extractor.

Large models keep their weights in sibling files. A tensor points at such
a file through ``external_data`` key/value entries; the loader reads each
referenced file once and hands out slices of the cached buffer.
"""

import os
import threading
from typing import Dict, Iterable, Optional

from onnx import StringStringEntryProto

from onnx_extractor.core.errors import InvalidModelError, ModelIOError
from onnx_extractor.utils.logging import get_logger

logger = get_logger(__name__)


def _parse_size(value: str) -> Optional[int]:
    # Only plain non-negative decimal strings count; anything else is unset
    if value.isascii() and value.isdigit():
        return int(value)
    return None


class ExternalDataInfo:
    """Location and byte range of one tensor's external payload."""

    def __init__(self,
                 location: str,
                 loader: "ExternalDataLoader",
                 offset: Optional[int] = None,
                 length: Optional[int] = None):
        self.location = location
        self.offset = offset
        self.length = length
        self.loader = loader

    @classmethod
    def from_key_value_pairs(cls,
                             pairs: Iterable[StringStringEntryProto],
                             loader: "ExternalDataLoader") -> "ExternalDataInfo":
        """
        Parse external data metadata from TensorProto.external_data.

        Args:
            pairs: Key/value entries of the tensor
            loader: Loader that resolves the location

        Returns:
            New ExternalDataInfo instance

        Raises:
            InvalidModelError: If the 'location' key is missing
        """
        location = None
        offset = None
        length = None

        for pair in pairs:
            if pair.key == "location":
                location = pair.value
            elif pair.key == "offset":
                offset = _parse_size(pair.value)
            elif pair.key == "length":
                length = _parse_size(pair.value)

        if location is None:
            raise InvalidModelError("External data missing required 'location' field")

        return cls(location, loader, offset, length)

    def load_data(self) -> memoryview:
        """Load the referenced byte range through the owning loader."""
        return self.loader.load_data(self)

    def __repr__(self) -> str:
        return (f"ExternalDataInfo(location='{self.location}', "
                f"offset={self.offset}, length={self.length})")


class ExternalDataLoader:
    """Lazily loads and caches external data files relative to a model directory."""

    def __init__(self, model_dir: str):
        """
        Initialize the loader.

        Args:
            model_dir: Directory that external locations are relative to
        """
        self.model_dir = model_dir
        self._cache: Dict[str, bytes] = {}
        self._lock = threading.Lock()

    @property
    def cached_files(self) -> int:
        """Number of distinct files loaded so far."""
        return len(self._cache)

    def load_data(self, info: ExternalDataInfo) -> memoryview:
        """
        Return the byte range described by ``info``.

        The whole file is read on first access and cached by location; every
        later request for the same location slices the cached buffer.

        Args:
            info: External data metadata

        Returns:
            Read-only view sharing the cached file buffer

        Raises:
            ModelIOError: If the file cannot be opened or read
            InvalidModelError: If the range exceeds the file size
        """
        with self._lock:
            data = self._cache.get(info.location)
            if data is None:
                data = self.load_file(os.path.join(self.model_dir, info.location))
                self._cache[info.location] = data
            else:
                logger.debug(f"External data cache hit for '{info.location}'")

        return self.slice_data(data, info)

    def load_file(self, path: str) -> bytes:
        """
        Read an entire file into memory.

        Args:
            path: File path

        Returns:
            File contents
        """
        try:
            with open(path, "rb") as f:
                data = f.read()
        except OSError as e:
            raise ModelIOError(
                f"Failed to read external data file '{path}': {e}", path=path
            ) from e

        logger.debug(f"Loaded external data file {path} ({len(data)} bytes)")
        return data

    @staticmethod
    def slice_data(data: bytes, info: ExternalDataInfo) -> memoryview:
        """
        Slice ``data`` according to the offset and length of ``info``.

        Raises:
            InvalidModelError: If the offset or the range end exceeds the data size
        """
        size = len(data)
        start = info.offset or 0
        end = start + info.length if info.length is not None else size

        if start > size:
            raise InvalidModelError(
                f"External data offset {start} exceeds file size {size}"
            )
        if end > size:
            raise InvalidModelError(
                f"External data range {start}..{end} exceeds file size {size}"
            )

        return memoryview(data)[start:end]

    def __repr__(self) -> str:
        return f"ExternalDataLoader(model_dir='{self.model_dir}', cached_files={self.cached_files})"
