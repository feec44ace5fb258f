"""
Graph ordering algorithms.
"""
