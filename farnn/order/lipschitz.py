"""
Lipschitz Quotient Engine

For a candidate regressor set, the Lipschitz quotient of two samples is

    q(i, j) = |y(i) - y(j)| / ||x(i) - x(j)||_2

Large quotients mean two nearby regressors map to very different outputs,
i.e. the regressor is missing state information. The index of a candidate
order is the mean of its largest quotients, scaled by sqrt(L + M) so that
redundant regressors do not keep lowering it (He & Asada, 1993).

Pairs with identical regressors have no quotient and are skipped.

The pairwise step is O(P^2) and is computed in row blocks. Each block keeps
its own top-k list; the lists are merged at the end, so any block size and
worker count give the same result.
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np
from joblib import Parallel, delayed
from scipy.spatial.distance import cdist

from .errors import DegenerateDataError
from .regressors import RegressorSet

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RankedQuotients:
    """Quotients of all informative pairs, largest first.

    Attributes:
        pairs: Sample indices (t_i, t_j) with t_i < t_j, shape (K, 2)
        values: Quotient of each pair, descending, shape (K,)
        n_regressors: Number of regressors P the pairs were drawn from
    """
    pairs: np.ndarray
    values: np.ndarray
    n_regressors: int

    def __len__(self) -> int:
        return len(self.values)

    @property
    def n_possible(self) -> int:
        """P * (P - 1) / 2, the count before zero-distance pairs are dropped."""
        return self.n_regressors * (self.n_regressors - 1) // 2

    @property
    def n_excluded(self) -> int:
        return self.n_possible - len(self.values)

    def head(self, n: int = 5) -> List[Tuple[Tuple[int, int], float]]:
        """First n ranked (pair, quotient) entries."""
        return [
            ((int(i), int(j)), float(v))
            for (i, j), v in zip(self.pairs[:n], self.values[:n])
        ]


class LipschitzQuotientEngine:
    """Computes Lipschitz quotients and their top-fraction index."""

    def __init__(
        self,
        top_fraction: float = 0.05,
        min_top: int = 1,
        scale_by_dimension: bool = True,
        aggregate: str = "mean",
        block_size: int = 512,
        n_jobs: int = 1
    ):
        """
        Args:
            top_fraction: Fraction of the largest quotients averaged
            min_top: Floor on the number of averaged quotients
            scale_by_dimension: Multiply the index by sqrt(L + M)
            aggregate: "mean" or "geometric"
            block_size: Regressor rows per pairwise block
            n_jobs: joblib workers for the pairwise blocks
        """
        if not 0.0 < top_fraction <= 1.0:
            raise ValueError(f"top_fraction must be in (0, 1], got {top_fraction}")
        if aggregate not in ("mean", "geometric"):
            raise ValueError(f"Unknown aggregate {aggregate!r}")
        self.top_fraction = top_fraction
        self.min_top = max(1, min_top)
        self.scale_by_dimension = scale_by_dimension
        self.aggregate_method = aggregate
        self.block_size = max(1, block_size)
        self.n_jobs = n_jobs

    @classmethod
    def from_config(cls, config) -> "LipschitzQuotientEngine":
        """Create an engine from an OrderConfig."""
        return cls(
            top_fraction=config.top_fraction,
            min_top=config.min_top,
            scale_by_dimension=config.scale_by_dimension,
            aggregate=config.aggregate,
            block_size=config.block_size,
            n_jobs=config.n_jobs
        )

    def n_top(self, count: int) -> int:
        """Number of largest quotients averaged out of count."""
        return min(count, max(self.min_top, math.ceil(self.top_fraction * count)))

    # ------------------------------------------------------------------
    # Pairwise blocks
    # ------------------------------------------------------------------

    @staticmethod
    def _block(
        X: np.ndarray,
        targets: np.ndarray,
        start: int,
        stop: int
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Quotients for rows start..stop-1 against every later row.

        Returns:
            (rows, cols, values) with row/col positions into X
        """
        dist = cdist(X[start:stop], X[start + 1:])
        diff = np.abs(targets[start:stop, None] - targets[None, start + 1:])

        # column c is row start + 1 + c; keep it only when it follows row start + r
        later = np.triu(np.ones(dist.shape, dtype=bool))
        mask = later & (dist > 0)

        r, c = np.nonzero(mask)
        values = diff[r, c] / dist[r, c]
        return r + start, c + start + 1, values

    def _block_top(
        self,
        X: np.ndarray,
        targets: np.ndarray,
        start: int,
        stop: int,
        k: int
    ) -> Tuple[int, int, np.ndarray]:
        _, _, values = self._block(X, targets, start, stop)
        if values.size > k:
            top = np.partition(values, values.size - k)[values.size - k:]
        else:
            top = values
        return values.size, int(np.count_nonzero(values)), top

    def _blocks(self, n_rows: int) -> List[Tuple[int, int]]:
        # the last row has no later partner
        return [
            (start, min(start + self.block_size, n_rows - 1))
            for start in range(0, n_rows - 1, self.block_size)
        ]

    def _prepare(self, regressors: RegressorSet, y) -> Tuple[np.ndarray, np.ndarray]:
        y = np.asarray(y, dtype=float)
        if y.ndim != 1:
            raise ValueError(f"y must be a single output channel, got shape {y.shape}")
        if len(regressors.indices) and regressors.indices[-1] >= len(y):
            raise ValueError("Regressor indices exceed the output sequence")
        return regressors.vectors, regressors.targets(y)

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def quotients(self, regressors: RegressorSet, y) -> RankedQuotients:
        """All informative quotients, sorted descending.

        Args:
            regressors: Regressor set of one candidate order
            y: Full output sequence the regressors were built from

        Returns:
            RankedQuotients; ties are ordered by pair

        Raises:
            DegenerateDataError: If no pair has a non-zero quotient
        """
        X, targets = self._prepare(regressors, y)
        P = len(X)

        rows, cols, values = [], [], []
        for start, stop in self._blocks(P):
            r, c, v = self._block(X, targets, start, stop)
            rows.append(r)
            cols.append(c)
            values.append(v)

        if values:
            rows = np.concatenate(rows)
            cols = np.concatenate(cols)
            values = np.concatenate(values)
        else:
            rows = cols = np.array([], dtype=int)
            values = np.array([], dtype=float)

        self._check_informative(values.size, int(np.count_nonzero(values)), regressors)

        order = np.lexsort((cols, rows, -values))
        pairs = np.column_stack([
            regressors.indices[rows[order]],
            regressors.indices[cols[order]]
        ])
        return RankedQuotients(pairs=pairs, values=values[order], n_regressors=P)

    def aggregate(self, values: Sequence[float], dimension: Optional[int] = None) -> float:
        """Index of a set of quotients.

        Args:
            values: Quotients, in any order
            dimension: Regressor dimension L + M, used for sqrt scaling

        Returns:
            Mean (or geometric mean) of the largest n_top(len(values)) values.
            The geometric mean skips zero quotients.

        Raises:
            DegenerateDataError: If there is nothing positive to aggregate
        """
        values = np.asarray(values, dtype=float)
        if values.size == 0:
            raise DegenerateDataError("No quotients to aggregate")
        k = self.n_top(values.size)
        top = np.sort(values)[::-1][:k]
        return self._summarize(top, dimension)

    def _summarize(self, top: np.ndarray, dimension: Optional[int]) -> float:
        if self.aggregate_method == "geometric":
            # zero quotients come from pairs with equal outputs; the log runs over the rest
            positive = top[top > 0]
            if positive.size == 0:
                raise DegenerateDataError("All of the largest quotients are zero")
            value = float(np.exp(np.mean(np.log(positive))))
        else:
            value = float(np.mean(top))
        if self.scale_by_dimension and dimension:
            value *= math.sqrt(dimension)
        return value

    def index(self, regressors: RegressorSet, y) -> float:
        """Index of one candidate order without ranking every pair.

        Raises:
            DegenerateDataError: If no pair has a non-zero quotient
        """
        X, targets = self._prepare(regressors, y)
        P = len(X)
        k_max = self.n_top(P * (P - 1) // 2)

        blocks = self._blocks(P)
        partial = Parallel(n_jobs=self.n_jobs, prefer="threads")(
            delayed(self._block_top)(X, targets, start, stop, k_max)
            for start, stop in blocks
        )

        count = sum(p[0] for p in partial)
        nonzero = sum(p[1] for p in partial)
        self._check_informative(count, nonzero, regressors)

        merged = np.sort(np.concatenate([p[2] for p in partial]))[::-1]
        k = self.n_top(count)
        value = self._summarize(merged[:k], regressors.dimension)

        if not value > 0:
            raise DegenerateDataError(
                f"Index vanished at order {regressors.order}: the largest quotients are zero",
                order=regressors.order
            )

        logger.debug(
            f"Order (L={regressors.in_order}, M={regressors.out_order}): "
            f"{count} pairs, top {k}, index {value:.6g}"
        )
        return value

    @staticmethod
    def _check_informative(count: int, nonzero: int, regressors: RegressorSet) -> None:
        if count == 0:
            raise DegenerateDataError(
                f"All {regressors.n_regressors} regressors coincide at order {regressors.order}",
                order=regressors.order
            )
        if nonzero == 0:
            raise DegenerateDataError(
                f"Output is constant across all distinct regressors at order {regressors.order}",
                order=regressors.order
            )
