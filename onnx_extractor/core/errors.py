"""
Error types raised by ONNX Extractor.

Every failure the library reports is an ``OnnxExtractorError``; the
subclasses form a closed set of error kinds so callers can dispatch on
the kind without parsing messages.
"""

from typing import Optional


class OnnxExtractorError(Exception):
    """Base class for all ONNX Extractor errors."""

    label = "Error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.label}: {self.message}"


class ModelIOError(OnnxExtractorError):
    """Reading a model or external data file failed."""

    label = "I/O error"

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class DecodeError(OnnxExtractorError):
    """The model bytes are not a valid protobuf message."""

    label = "Protobuf decode error"


class Utf8Error(OnnxExtractorError):
    """A string payload is not valid UTF-8."""

    label = "UTF-8 conversion error"


class InvalidModelError(OnnxExtractorError):
    """The model violates a structural requirement."""

    label = "Invalid model"


class MissingFieldError(OnnxExtractorError):
    """A required value is absent."""

    label = "Missing required field"

    def __init__(self, field: str):
        super().__init__(field)
        self.field = field


class UnsupportedError(OnnxExtractorError):
    """A recognised schema feature that is not implemented."""

    label = "Unsupported feature"

    def __init__(self, feature: str):
        super().__init__(feature)
        self.feature = feature


class DataConversionError(OnnxExtractorError):
    """A byte buffer cannot be reinterpreted as the requested element type."""

    label = "Data conversion error"

    def __init__(self, byte_length: int, element_size: int, dtype: str,
                 message: Optional[str] = None):
        super().__init__(
            message or
            f"data length {byte_length} is not a multiple of {element_size} "
            f"(element size of {dtype})"
        )
        self.byte_length = byte_length
        self.element_size = element_size
        self.dtype = dtype
