"""
NARX Regressor Windows

Turns the orders found by the order search into the regressor windows a
NARX network is trained on:

    y(t) = f( y(t-1), ..., y(t-M), u(t-1-tau), ..., u(t-L-tau) )

The network itself lives outside this package. This module only sizes the
window, builds the (regressor, target) arrays with the same construction
the order search used, and hands them over as a torch TensorDataset.

An order is a lower bound on the window: a consumer with a fixed input
width that is too small must fail, never truncate.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np
import torch
from torch.utils.data import DataLoader, TensorDataset

from ..order.regressors import as_sequence, build_regressors
from ..order.search import OrderResult

logger = logging.getLogger(__name__)


class WindowCapacityError(Exception):
    """
    Raised when a consumer cannot fit the required regressor window.
    """

    def __init__(self, message: str, required: int = 0, available: int = 0):
        super().__init__(message)
        self.required = required
        self.available = available


@dataclass(frozen=True)
class NARXWindow:
    """Regressor window of a NARX model.

    Attributes:
        inorder: Number of past inputs L
        outorder: Number of past outputs M
        tau: Input delay
    """
    inorder: int
    outorder: int
    tau: int = 1

    def __post_init__(self):
        if self.inorder < 0 or self.outorder < 0:
            raise ValueError(
                f"Orders must be non-negative, got inorder={self.inorder}, outorder={self.outorder}"
            )
        if self.inorder + self.outorder == 0:
            raise ValueError("Window must contain at least one regressor")

    @classmethod
    def from_orders(cls, result: OrderResult, tau: int = 1) -> "NARXWindow":
        """Window sized by an order-search result."""
        return cls(inorder=result.inorder, outorder=result.outorder, tau=tau)

    @property
    def size(self) -> int:
        """Number of regressors, inorder + outorder."""
        return self.inorder + self.outorder

    @property
    def warmup(self) -> int:
        """Samples consumed before the first full window."""
        return max(self.outorder, self.inorder + self.tau)

    def check_capacity(self, n_inputs: int) -> None:
        """Raise if a consumer with n_inputs inputs cannot hold the window.

        Raises:
            WindowCapacityError: If n_inputs < size
        """
        if n_inputs < self.size:
            raise WindowCapacityError(
                f"Regressor needs {self.size} inputs "
                f"(inorder={self.inorder}, outorder={self.outorder}), consumer has {n_inputs}",
                required=self.size,
                available=n_inputs
            )

    def feature_names(self) -> List[str]:
        """Column labels of the regressor matrix."""
        names = [f"y(t-{k})" for k in range(1, self.outorder + 1)]
        names += [f"u(t-{k + self.tau})" for k in range(1, self.inorder + 1)]
        return names


def build_narx_arrays(
    u,
    y,
    window: NARXWindow,
    n_inputs: Optional[int] = None
) -> Tuple[np.ndarray, np.ndarray]:
    """Build regressor matrix and targets for one output channel.

    Args:
        u: Input sequence
        y: Output sequence
        window: Regressor window
        n_inputs: Fixed input width of the consumer, checked if given

    Returns:
        (X, targets) with shapes (P, window.size) and (P,)
    """
    if n_inputs is not None:
        window.check_capacity(n_inputs)

    u = as_sequence(u, "u")
    y = as_sequence(y, "y")
    regressors = build_regressors(u, y, window.inorder, window.outorder, window.tau)
    return np.array(regressors.vectors), regressors.targets(y)


def to_tensor_dataset(X: np.ndarray, targets: np.ndarray) -> TensorDataset:
    """Wrap regressor arrays in a TensorDataset of float32 tensors."""
    X_t = torch.FloatTensor(np.asarray(X, dtype=np.float32))
    y_t = torch.FloatTensor(np.asarray(targets, dtype=np.float32)).reshape(-1, 1)
    return TensorDataset(X_t, y_t)


def make_narx_loader(
    u,
    y,
    window: NARXWindow,
    batch_size: int = 6,
    shuffle: bool = False,
    n_inputs: Optional[int] = None
) -> DataLoader:
    """DataLoader over the NARX regressor windows of one channel.

    The default batch size of 6 matches the FARNN training setup.
    """
    X, targets = build_narx_arrays(u, y, window, n_inputs=n_inputs)
    logger.info(f"NARX windows: {len(X)} samples of {window.size} regressors")
    return DataLoader(to_tensor_dataset(X, targets), batch_size=batch_size, shuffle=shuffle)
