"""
Data Collection Module

Provides input/output data for order determination:
- Excitation signals for persistent excitation
- Dataset management with noise injection and splitting
- Loading from .npz and MATLAB .mat files
"""

from .excitation_signals import (
    ExcitationSignal,
    RandomExcitation,
    SinusoidalExcitation,
    PRBSExcitation,
    create_rich_excitation
)

from .dataset import (
    IODataset,
    ARXSystem,
    POSE_OUTPUT_KEYS,
    collect_data,
    load_dataset,
    load_mat
)

__all__ = [
    'ExcitationSignal',
    'RandomExcitation',
    'SinusoidalExcitation',
    'PRBSExcitation',
    'create_rich_excitation',
    'IODataset',
    'ARXSystem',
    'POSE_OUTPUT_KEYS',
    'collect_data',
    'load_dataset',
    'load_mat'
]
