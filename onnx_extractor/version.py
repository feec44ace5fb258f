"""
Version information for ONNX Extractor.
"""

__version__ = "0.4.0"
