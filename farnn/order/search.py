"""
Model Order Search

Determines the input order L (inorder) and output order M (outorder) of a
NARX model from input/output data, after He & Asada:

Phase 1 (output order): hold L at a small constant and raise M = 1, 2, ...
Phase 2 (input order): hold M = outorder and raise L = 1, 2, ...

At each step the relative decrease of the Lipschitz index is compared to
the phase threshold (m_eps, then l_eps). An order is committed once the
decrease stays at or below the threshold for two consecutive increments,
so a single noisy dip cannot end the search. The committed order is the
one the plateau started from. A threshold of zero asks for exact
stabilization, and then a rising index does not count as stable.

Reference: X. He and H. Asada, "A new method for identifying orders of
input-output models for nonlinear dynamic systems", ACC 1993.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from ..config import CONFIRMATION_STEPS, OrderConfig
from .errors import (
    DegenerateDataError,
    InsufficientDataError,
    OrderSearchExhaustedError,
)
from .lipschitz import LipschitzQuotientEngine
from .regressors import as_sequence, build_regressors

logger = logging.getLogger(__name__)

OUTPUT_PHASE = "output"
INPUT_PHASE = "input"


@dataclass(frozen=True)
class CurvePoint:
    """Index of one evaluated candidate order."""
    phase: str
    in_order: int
    out_order: int
    value: float

    @property
    def order_index(self) -> int:
        """Regressor dimension L + M."""
        return self.in_order + self.out_order


@dataclass(frozen=True)
class OrderResult:
    """
    Result of an order search.

    `curve` lists every evaluated candidate in evaluation order: the
    output-order phase first, then the input-order phase.

    `max_order` is the ceiling on evaluated orders. Two confirming
    increments must follow a committed order, so inorder and outorder
    are at most max_order - 2.
    """
    inorder: int
    outorder: int
    curve: Tuple[CurvePoint, ...] = field(default_factory=tuple)
    channel: Optional[int] = None
    max_order: int = 0

    @property
    def system_order(self) -> int:
        """Regressor size needed downstream, inorder + outorder."""
        return self.inorder + self.outorder

    def curve_values(self) -> List[Tuple[int, float]]:
        """(order_index, value) pairs of the curve."""
        return [(p.order_index, p.value) for p in self.curve]

    def phase_curve(self, phase: str) -> List[CurvePoint]:
        return [p for p in self.curve if p.phase == phase]

    def head(self, n: int = 5) -> List[CurvePoint]:
        """First n curve entries."""
        return list(self.curve[:n])

    def to_dict(self) -> Dict[str, Any]:
        """Export result to dictionary."""
        return {
            "channel": self.channel,
            "inorder": self.inorder,
            "outorder": self.outorder,
            "system_order": self.system_order,
            "max_order": self.max_order,
            "curve": [
                {
                    "phase": p.phase,
                    "in_order": p.in_order,
                    "out_order": p.out_order,
                    "value": p.value,
                }
                for p in self.curve
            ],
        }


class OrderSearch:
    """Two-phase Lipschitz-quotient order search (computeq)."""

    def __init__(
        self,
        config: Optional[OrderConfig] = None,
        engine: Optional[LipschitzQuotientEngine] = None
    ):
        """
        Args:
            config: Search parameters
            engine: Quotient engine (built from config if omitted)
        """
        self.config = config or OrderConfig()
        self.config.validate()
        self.engine = engine or LipschitzQuotientEngine.from_config(self.config)

    def search(self, u, y, channel: Optional[int] = None) -> OrderResult:
        """Determine (inorder, outorder) for one output channel.

        Args:
            u: Input sequence, length N
            y: Output sequence, length N
            channel: Channel number reported in results and errors

        Returns:
            OrderResult with the committed orders and the full curve

        Raises:
            InsufficientDataError: Sequences too short for the first candidate
            DegenerateDataError: No informative pair at some candidate
            OrderSearchExhaustedError: No stabilization before max_order
        """
        u = as_sequence(u, "u")
        y = as_sequence(y, "y")
        if len(u) != len(y):
            raise ValueError(f"u and y must be aligned, got lengths {len(u)} and {len(y)}")

        max_order = self.config.resolve_max_order(len(y))
        curve: List[CurvePoint] = []

        logger.info(
            f"Order search{self._channel_label(channel)}: N={len(y)}, tau={self.config.tau}, "
            f"max_order={max_order}"
        )

        outorder = self._phase(
            u, y, OUTPUT_PHASE, self.config.initial_inorder,
            self.config.m_eps, max_order, curve, channel
        )
        logger.info(f"Output order{self._channel_label(channel)}: {outorder}")

        inorder = self._phase(
            u, y, INPUT_PHASE, outorder,
            self.config.l_eps, max_order, curve, channel
        )
        logger.info(f"Input order{self._channel_label(channel)}: {inorder}")

        return OrderResult(
            inorder=inorder,
            outorder=outorder,
            curve=tuple(curve),
            channel=channel,
            max_order=max_order
        )

    def search_channels(self, u, y) -> List[OrderResult]:
        """Run the search independently for every column of y."""
        y = np.asarray(y, dtype=float)
        if y.ndim == 1:
            return [self.search(u, y, channel=0)]
        if y.ndim != 2:
            raise ValueError(f"y must be 1-D or 2-D, got shape {y.shape}")
        return [self.search(u, y[:, c], channel=c) for c in range(y.shape[1])]

    def _phase(
        self,
        u: np.ndarray,
        y: np.ndarray,
        phase: str,
        fixed: int,
        eps: float,
        max_order: int,
        curve: List[CurvePoint],
        channel: Optional[int]
    ) -> int:
        previous = None
        stable = 0

        for order in range(1, max_order + 1):
            in_order, out_order = (fixed, order) if phase == OUTPUT_PHASE else (order, fixed)

            try:
                regressors = build_regressors(
                    u, y, in_order, out_order, self.config.tau, min_regressors=2
                )
            except InsufficientDataError as e:
                if order == 1:
                    e.channel = channel
                    raise
                logger.warning(
                    f"{phase} phase{self._channel_label(channel)} stopped at order {order}: {e}"
                )
                break

            try:
                value = self.engine.index(regressors, y)
            except DegenerateDataError as e:
                raise DegenerateDataError(
                    f"{e}{self._channel_label(channel)}",
                    order=(in_order, out_order),
                    channel=channel
                ) from e

            curve.append(CurvePoint(phase, in_order, out_order, value))

            if previous is not None:
                decrease = (previous - value) / previous
                stable = stable + 1 if self._is_stable(decrease, eps) else 0
                logger.debug(
                    f"{phase} order {order}: index {value:.6g}, "
                    f"relative decrease {decrease:.4f} (eps {eps}), stable {stable}"
                )
            previous = value

            if stable >= CONFIRMATION_STEPS:
                return order - CONFIRMATION_STEPS

        raise OrderSearchExhaustedError(
            f"{phase} order did not stabilize{self._channel_label(channel)} "
            f"within max_order={max_order} (eps={eps})",
            phase=phase,
            max_order=max_order,
            curve=curve,
            channel=channel
        )

    @staticmethod
    def _is_stable(decrease: float, eps: float) -> bool:
        """Whether one increment leaves the index stabilized.

        A rise of the index counts as stable unless eps is zero, which
        asks for exact stabilization.
        """
        if eps == 0:
            return decrease == 0
        return decrease <= eps

    @staticmethod
    def _channel_label(channel: Optional[int]) -> str:
        return "" if channel is None else f" (channel {channel})"


class QuickOrderEstimator:
    """Single-pass diagnostic bound on the regressor count (computeqn).

    Uses output-only regressors of a fixed small order; the authoritative
    orders come from OrderSearch.
    """

    def __init__(
        self,
        config: Optional[OrderConfig] = None,
        engine: Optional[LipschitzQuotientEngine] = None
    ):
        self.config = config or OrderConfig()
        self.config.validate()
        self.engine = engine or LipschitzQuotientEngine.from_config(self.config)

    def estimate(self, u, y) -> float:
        """Index of the output-only regressor of order quick_order."""
        u = as_sequence(u, "u")
        y = as_sequence(y, "y")
        if len(u) != len(y):
            raise ValueError(f"u and y must be aligned, got lengths {len(u)} and {len(y)}")

        regressors = build_regressors(
            u, y, 0, self.config.quick_order, self.config.tau, min_regressors=2
        )
        qn = self.engine.index(regressors, y)
        logger.info(f"qn: {qn:.6g}")
        return qn

    @staticmethod
    def suggested_regressors(qn: float) -> int:
        """Rounded-up qn, reported as the number of input variables."""
        return math.ceil(qn)


def compute_q(u, y, config: Optional[OrderConfig] = None) -> OrderResult:
    """Determine (inorder, outorder) for a single output channel."""
    return OrderSearch(config).search(u, y)


def compute_qn(u, y, config: Optional[OrderConfig] = None) -> float:
    """Quick diagnostic estimate for a single output channel."""
    return QuickOrderEstimator(config).estimate(u, y)
