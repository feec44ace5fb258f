"""
Utility helpers for ONNX Extractor.
"""
