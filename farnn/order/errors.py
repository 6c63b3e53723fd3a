"""
Order Determination Errors

All failures of the order-determination engine are terminal for the
search call that raised them. The engine never substitutes a default
order or a NaN when one of these occurs; the caller decides whether to
relax thresholds, shorten the lag ceiling, or reject the dataset.
"""

from typing import Optional, Sequence, Tuple


class OrderDeterminationError(Exception):
    """Base class for order-determination failures."""

    def __init__(self, message: str, channel: Optional[int] = None):
        super().__init__(message)
        self.channel = channel


class InsufficientDataError(OrderDeterminationError):
    """
    Raised when the sequences are too short for a candidate order.

    No valid regressor exists when N <= max(M, L + tau).
    """

    def __init__(
        self,
        message: str,
        n_samples: int = 0,
        required: int = 0,
        channel: Optional[int] = None
    ):
        super().__init__(message, channel=channel)
        self.n_samples = n_samples
        self.required = required


class DegenerateDataError(OrderDeterminationError):
    """
    Raised when no informative regressor pair remains.

    Either every pair of regressors coincides, or the output does not
    change between any two distinct regressors. `order` is the (L, M)
    candidate at which this happened, when known.
    """

    def __init__(
        self,
        message: str,
        order: Optional[Tuple[int, int]] = None,
        channel: Optional[int] = None
    ):
        super().__init__(message, channel=channel)
        self.order = order


class OrderSearchExhaustedError(OrderDeterminationError):
    """
    Raised when the quotient never stabilizes before the order ceiling.

    The curve computed up to the ceiling is attached for diagnosis.
    """

    def __init__(
        self,
        message: str,
        phase: str = "",
        max_order: int = 0,
        curve: Sequence = (),
        channel: Optional[int] = None
    ):
        super().__init__(message, channel=channel)
        self.phase = phase
        self.max_order = max_order
        self.curve = tuple(curve)
