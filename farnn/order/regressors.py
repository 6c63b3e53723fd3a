"""
Regressor Construction

Builds the lagged regressor vectors

    x_{L,M}(t) = [y(t-1), ..., y(t-M), u(t-1-tau), ..., u(t-L-tau)]

that form the reconstructed state space of a NARX model. Indices are
0-based, so x(t) exists for t >= max(M, L + tau).
"""

import numpy as np
from dataclasses import dataclass
from typing import Tuple

from .errors import InsufficientDataError


def as_sequence(values, name: str) -> np.ndarray:
    """Return a read-only 1-D float copy of a sequence.

    Column vectors of shape (N, 1) are flattened.
    """
    arr = np.array(values, dtype=float)
    if arr.ndim == 2 and arr.shape[1] == 1:
        arr = arr[:, 0]
    if arr.ndim != 1:
        raise ValueError(f"{name} must be one-dimensional, got shape {arr.shape}")
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True)
class RegressorSet:
    """Regressor vectors for one candidate order.

    Attributes:
        indices: Valid sample indices t, ascending, shape (P,)
        vectors: Regressor x(t) for each index, shape (P, L + M)
        in_order: Number of past inputs L
        out_order: Number of past outputs M
        tau: Input delay
    """
    indices: np.ndarray
    vectors: np.ndarray
    in_order: int
    out_order: int
    tau: int

    @property
    def n_regressors(self) -> int:
        return len(self.indices)

    @property
    def dimension(self) -> int:
        return self.in_order + self.out_order

    @property
    def order(self) -> Tuple[int, int]:
        """Candidate order as (L, M)."""
        return self.in_order, self.out_order

    def vector_at(self, t: int) -> np.ndarray:
        """Regressor for sample index t."""
        start = self.indices[0] if len(self.indices) else 0
        k = t - start
        if k < 0 or k >= len(self.indices):
            raise KeyError(f"No regressor at t={t} for order {self.order}")
        return self.vectors[k]

    def targets(self, y) -> np.ndarray:
        """Outputs y(t) aligned with the regressor rows."""
        return np.asarray(y, dtype=float)[self.indices]


def first_valid_index(in_order: int, out_order: int, tau: int) -> int:
    """Smallest 0-based t for which x_{L,M}(t) is defined."""
    return max(out_order, in_order + tau)


def build_regressors(
    u,
    y,
    in_order: int,
    out_order: int,
    tau: int = 1,
    min_regressors: int = 1
) -> RegressorSet:
    """Build regressor vectors for candidate order (L, M).

    Args:
        u: Input sequence, length N
        y: Output sequence, length N
        in_order: Number of past inputs L
        out_order: Number of past outputs M
        tau: Input delay
        min_regressors: Fewest valid regressors accepted

    Returns:
        RegressorSet with one row per valid sample index

    Raises:
        InsufficientDataError: If fewer than min_regressors exist
    """
    if in_order < 0 or out_order < 0:
        raise ValueError(f"Orders must be non-negative, got L={in_order}, M={out_order}")
    if in_order + out_order == 0:
        raise ValueError("At least one of L, M must be positive")
    if tau < 0:
        raise ValueError(f"tau must be non-negative, got {tau}")

    u = np.asarray(u, dtype=float)
    y = np.asarray(y, dtype=float)
    if len(u) != len(y):
        raise ValueError(f"u and y must be aligned, got lengths {len(u)} and {len(y)}")

    N = len(y)
    start = first_valid_index(in_order, out_order, tau)
    P = N - start
    if P < max(min_regressors, 1):
        raise InsufficientDataError(
            f"{N} samples cannot support order (L={in_order}, M={out_order}, tau={tau}): "
            f"need at least {start + max(min_regressors, 1)}",
            n_samples=N,
            required=start + max(min_regressors, 1)
        )

    indices = np.arange(start, N)
    columns = [y[start - k:N - k] for k in range(1, out_order + 1)]
    columns += [u[start - k - tau:N - k - tau] for k in range(1, in_order + 1)]
    vectors = np.column_stack(columns)

    indices.setflags(write=False)
    vectors.setflags(write=False)
    return RegressorSet(
        indices=indices,
        vectors=vectors,
        in_order=in_order,
        out_order=out_order,
        tau=tau
    )
