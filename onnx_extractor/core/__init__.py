"""
Core domain types: tensors, operations, attributes and errors.
"""
