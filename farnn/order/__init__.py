"""
Model Order Determination Module

Determines NARX input/output orders from data with Lipschitz quotients:
- Regressor construction for candidate orders
- Pairwise Lipschitz quotients and their top-fraction index
- Two-phase order search (computeq) and quick estimate (computeqn)
"""

from .errors import (
    OrderDeterminationError,
    InsufficientDataError,
    DegenerateDataError,
    OrderSearchExhaustedError
)

from .regressors import (
    RegressorSet,
    build_regressors,
    first_valid_index
)

from .lipschitz import (
    LipschitzQuotientEngine,
    RankedQuotients
)

from .search import (
    CurvePoint,
    OrderResult,
    OrderSearch,
    QuickOrderEstimator,
    compute_q,
    compute_qn
)

__all__ = [
    'OrderDeterminationError',
    'InsufficientDataError',
    'DegenerateDataError',
    'OrderSearchExhaustedError',
    'RegressorSet',
    'build_regressors',
    'first_valid_index',
    'LipschitzQuotientEngine',
    'RankedQuotients',
    'CurvePoint',
    'OrderResult',
    'OrderSearch',
    'QuickOrderEstimator',
    'compute_q',
    'compute_qn'
]
