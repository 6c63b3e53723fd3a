"""
System Identification Module

Consumes the determined model orders:
- NARX regressor windows sized by (inorder, outorder)
- Regressor arrays and torch datasets for a downstream network
"""

from .narx import (
    NARXWindow,
    WindowCapacityError,
    build_narx_arrays,
    to_tensor_dataset,
    make_narx_loader
)

__all__ = [
    'NARXWindow',
    'WindowCapacityError',
    'build_narx_arrays',
    'to_tensor_dataset',
    'make_narx_loader'
]
