"""
Input/Output Dataset Management

Provides utilities for loading, storing, and splitting the input/output
sequences that order determination works on.

Key classes:
- IODataset: Container for an input sequence u and output channels y
- ARXSystem: Known-order system used to generate synthetic data
- Functions for data collection and loading (.npz, MATLAB .mat)
"""

import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Sequence, Tuple

import numpy as np
from scipy.io import loadmat

logger = logging.getLogger(__name__)

# Output channels of the pose data files
POSE_OUTPUT_KEYS = ("xn", "yn", "zn", "rolln", "pitchn", "yawn")


@dataclass
class IODataset:
    """Dataset container for order determination.

    Attributes:
        inputs: Input sequence u, shape (N,)
        outputs: Output channels y, shape (N, n_outputs)
        times: Sample indices or time stamps, shape (N,)
        output_names: Name of each output channel
    """
    inputs: np.ndarray
    outputs: np.ndarray
    times: np.ndarray = field(default_factory=lambda: np.array([]))
    output_names: Tuple[str, ...] = ()

    def __post_init__(self):
        """Validate data shapes."""
        self.inputs = np.asarray(self.inputs, dtype=float)
        if self.inputs.ndim == 2 and self.inputs.shape[1] == 1:
            self.inputs = self.inputs[:, 0]
        if self.inputs.ndim != 1:
            raise ValueError(f"inputs must be a single sequence, got shape {self.inputs.shape}")

        self.outputs = np.asarray(self.outputs, dtype=float)
        if self.outputs.ndim == 1:
            self.outputs = self.outputs[:, None]
        if len(self.outputs) != len(self.inputs):
            raise ValueError(
                f"inputs and outputs must have the same length, "
                f"got {len(self.inputs)} and {len(self.outputs)}"
            )

        self.times = np.asarray(self.times)
        if len(self.times) == 0:
            self.times = np.arange(len(self.inputs))

        if not self.output_names:
            self.output_names = tuple(f"y{i}" for i in range(self.n_outputs))
        self.output_names = tuple(self.output_names)
        if len(self.output_names) != self.n_outputs:
            raise ValueError(
                f"Expected {self.n_outputs} output names, got {len(self.output_names)}"
            )

    @property
    def n_samples(self) -> int:
        """Number of data samples."""
        return len(self.inputs)

    @property
    def n_outputs(self) -> int:
        """Number of output channels."""
        return self.outputs.shape[1]

    def output(self, channel) -> np.ndarray:
        """Output sequence of one channel, by index or name."""
        if isinstance(channel, str):
            channel = self.output_names.index(channel)
        return self.outputs[:, channel]

    def split(self, train_fraction: float = 0.6) -> Tuple['IODataset', 'IODataset']:
        """Split chronologically into training and testing sets.

        The first ceil(train_fraction * N) samples form the training set.

        Args:
            train_fraction: Fraction of data for training

        Returns:
            (train_dataset, test_dataset)
        """
        if not 0.0 < train_fraction <= 1.0:
            raise ValueError(f"train_fraction must be in (0, 1], got {train_fraction}")

        off = math.ceil(train_fraction * self.n_samples)
        return self._slice(slice(0, off)), self._slice(slice(off, None))

    def _slice(self, index) -> 'IODataset':
        return IODataset(
            inputs=self.inputs[index].copy(),
            outputs=self.outputs[index].copy(),
            times=self.times[index].copy(),
            output_names=self.output_names
        )

    def add_noise(
        self,
        input_noise_std: float = 0.0,
        output_noise_std: float = 0.0,
        seed: Optional[int] = None
    ) -> 'IODataset':
        """Add Gaussian noise to the dataset.

        Args:
            input_noise_std: Std dev of noise added to the input
            output_noise_std: Std dev of noise added to every output channel
            seed: Random seed

        Returns:
            New IODataset with added noise
        """
        rng = np.random.default_rng(seed)

        noisy_inputs = self.inputs + rng.normal(
            0, input_noise_std, self.inputs.shape
        ) if input_noise_std > 0 else self.inputs.copy()

        noisy_outputs = self.outputs + rng.normal(
            0, output_noise_std, self.outputs.shape
        ) if output_noise_std > 0 else self.outputs.copy()

        return IODataset(
            inputs=noisy_inputs,
            outputs=noisy_outputs,
            times=self.times.copy(),
            output_names=self.output_names
        )

    def scale_output(self, channel, factor: float) -> 'IODataset':
        """Return a copy with one output channel multiplied by factor."""
        if isinstance(channel, str):
            channel = self.output_names.index(channel)
        outputs = self.outputs.copy()
        outputs[:, channel] *= factor
        return IODataset(
            inputs=self.inputs.copy(),
            outputs=outputs,
            times=self.times.copy(),
            output_names=self.output_names
        )

    def save(self, filepath: str):
        """Save dataset to file.

        Args:
            filepath: Path to save file (.npz)
        """
        np.savez(
            filepath,
            inputs=self.inputs,
            outputs=self.outputs,
            times=self.times,
            output_names=np.array(self.output_names)
        )

    @classmethod
    def load(cls, filepath: str) -> 'IODataset':
        """Load dataset from file.

        Args:
            filepath: Path to .npz file

        Returns:
            Loaded IODataset
        """
        data = np.load(filepath)
        return cls(
            inputs=data['inputs'],
            outputs=data['outputs'],
            times=data['times'],
            output_names=tuple(str(n) for n in data['output_names'])
        )


def load_mat(
    filepath: str,
    input_key: str = "in",
    output_keys: Sequence[str] = POSE_OUTPUT_KEYS
) -> IODataset:
    """Load a single-input, multi-output dataset from a MATLAB file.

    Args:
        filepath: Path to .mat file
        input_key: Variable holding the input sequence
        output_keys: Variables holding the output channels, in order

    Returns:
        IODataset with one output channel per key

    Raises:
        KeyError: If a variable is missing from the file
    """
    data = loadmat(filepath)

    missing = [k for k in (input_key, *output_keys) if k not in data]
    if missing:
        raise KeyError(f"{filepath} is missing variables: {missing}")

    inputs = np.asarray(data[input_key], dtype=float).reshape(-1)
    outputs = np.column_stack([
        np.asarray(data[k], dtype=float).reshape(-1) for k in output_keys
    ])

    logger.info(f"Loaded {len(inputs)} samples, {len(output_keys)} outputs from {filepath}")
    return IODataset(inputs=inputs, outputs=outputs, output_names=tuple(output_keys))


def load_dataset(filepath: str, **kwargs) -> IODataset:
    """Load a dataset from .npz or .mat, chosen by extension."""
    suffix = Path(filepath).suffix.lower()
    if suffix == ".npz":
        return IODataset.load(filepath)
    if suffix == ".mat":
        return load_mat(filepath, **kwargs)
    raise ValueError(f"Unsupported data file type: {suffix or filepath}")


@dataclass
class ARXSystem:
    """Discrete system with known input/output orders.

    Model:
        y(t) = f( sum_k a_k y(t-k) + sum_k b_k u(t-k-tau) )

    so outorder = len(a) and inorder = len(b).
    """
    a: Sequence[float]
    b: Sequence[float]
    tau: int = 0
    nonlinearity: Optional[Callable[[float], float]] = None

    @property
    def outorder(self) -> int:
        return len(self.a)

    @property
    def inorder(self) -> int:
        return len(self.b)

    def simulate(
        self,
        u: np.ndarray,
        y0: Optional[Sequence[float]] = None,
        noise_std: float = 0.0,
        seed: Optional[int] = None
    ) -> np.ndarray:
        """Simulate the output for an input sequence.

        Args:
            u: Input sequence
            y0: Initial outputs (zeros if None)
            noise_std: Std dev of measurement noise added to the result
            seed: Random seed

        Returns:
            Output sequence, same length as u
        """
        u = np.asarray(u, dtype=float)
        N = len(u)
        start = max(self.outorder, self.inorder + self.tau)

        y = np.zeros(N)
        if y0 is not None:
            y0 = np.asarray(y0, dtype=float)
            y[:len(y0)] = y0[:N]

        for t in range(start, N):
            value = sum(a * y[t - k] for k, a in enumerate(self.a, start=1))
            value += sum(b * u[t - k - self.tau] for k, b in enumerate(self.b, start=1))
            y[t] = self.nonlinearity(value) if self.nonlinearity else value

        if noise_std > 0:
            y = y + np.random.default_rng(seed).normal(0, noise_std, N)
        return y


def collect_data(
    system: ARXSystem,
    excitation_signal,
    n_samples: int,
    noise_std: float = 0.0,
    seed: Optional[int] = None
) -> IODataset:
    """Collect data from a system driven by an excitation signal.

    Args:
        system: ARXSystem to simulate
        excitation_signal: ExcitationSignal object
        n_samples: Number of samples
        noise_std: Std dev of output measurement noise
        seed: Random seed for noise

    Returns:
        IODataset with a single output channel
    """
    u = excitation_signal.generate(n_samples)
    y = system.simulate(u, noise_std=noise_std, seed=seed)
    return IODataset(inputs=u, outputs=y)
