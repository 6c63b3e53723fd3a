"""
FARNN - Model Order Determination for NARX System Identification

Determines how many past inputs and past outputs a neural regressor must
see to model a dynamical system, from input/output data alone, using
Lipschitz quotients (He & Asada).
"""

from .config import (
    OrderConfig,
    PipelineConfig,
    create_config,
)
from .order import (
    OrderDeterminationError,
    InsufficientDataError,
    DegenerateDataError,
    OrderSearchExhaustedError,
    RegressorSet,
    build_regressors,
    LipschitzQuotientEngine,
    RankedQuotients,
    CurvePoint,
    OrderResult,
    OrderSearch,
    QuickOrderEstimator,
    compute_q,
    compute_qn,
)
from .data_collection import (
    IODataset,
    ARXSystem,
    collect_data,
    load_dataset,
)
from .system_id import (
    NARXWindow,
    WindowCapacityError,
    build_narx_arrays,
)
from .pipeline import (
    OrderDeterminationPipeline,
    PipelineResult,
    create_pipeline,
    setup_logging,
)

__version__ = "0.1.0"

__all__ = [
    # Configuration
    "OrderConfig",
    "PipelineConfig",
    "create_config",
    # Order determination
    "OrderDeterminationError",
    "InsufficientDataError",
    "DegenerateDataError",
    "OrderSearchExhaustedError",
    "RegressorSet",
    "build_regressors",
    "LipschitzQuotientEngine",
    "RankedQuotients",
    "CurvePoint",
    "OrderResult",
    "OrderSearch",
    "QuickOrderEstimator",
    "compute_q",
    "compute_qn",
    # Data
    "IODataset",
    "ARXSystem",
    "collect_data",
    "load_dataset",
    # Consumers
    "NARXWindow",
    "WindowCapacityError",
    "build_narx_arrays",
    # Pipeline
    "OrderDeterminationPipeline",
    "PipelineResult",
    "create_pipeline",
    "setup_logging",
]
