"""
Stateful components exercised by the harness.

- SparseEncoder: Competitive sparse encoder with learned permanences
"""

from .sparse_encoder import SparseEncoder

__all__ = ["SparseEncoder"]
