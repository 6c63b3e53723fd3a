"""
Excitation Signals for Order Determination

Provides persistently exciting input sequences for collecting informative
data. The Lipschitz-quotient search can only resolve an input order if the
input actually varies across the lags being tested, so the input must be
rich enough to separate them.

Signals are indexed by sample, not by time:
- Random (uniform/Gaussian, zero-order hold)
- Sinusoidal (multi-frequency)
- PRBS (Pseudo-Random Binary Sequence)
"""

import numpy as np
from abc import ABC, abstractmethod
from typing import Optional, Sequence


class ExcitationSignal(ABC):
    """Base class for scalar excitation signals."""

    def __init__(self, seed: Optional[int] = None):
        """
        Args:
            seed: Random seed for reproducibility
        """
        self.seed = seed

    @abstractmethod
    def generate(self, n_samples: int) -> np.ndarray:
        """Generate n_samples of the signal.

        Returns:
            Input sequence of shape (n_samples,)
        """
        pass


class RandomExcitation(ExcitationSignal):
    """Random excitation signal (uniform or Gaussian).

    Provides basic persistent excitation through random inputs.
    """

    def __init__(
        self,
        amplitude: float = 1.0,
        distribution: str = 'uniform',
        hold: int = 1,
        seed: Optional[int] = None
    ):
        """
        Args:
            amplitude: Max amplitude
            distribution: 'uniform' or 'gaussian'
            hold: Samples to hold each random value (zero-order hold)
            seed: Random seed
        """
        super().__init__(seed)
        if distribution not in ('uniform', 'gaussian'):
            raise ValueError(f"Unknown distribution {distribution!r}")
        if hold < 1:
            raise ValueError(f"hold must be at least 1, got {hold}")
        self.amplitude = amplitude
        self.distribution = distribution
        self.hold = hold

    def generate(self, n_samples: int) -> np.ndarray:
        rng = np.random.default_rng(self.seed)
        n_values = -(-n_samples // self.hold)

        if self.distribution == 'uniform':
            values = rng.uniform(-self.amplitude, self.amplitude, n_values)
        else:
            values = np.clip(
                rng.normal(scale=self.amplitude * 0.5, size=n_values),
                -self.amplitude, self.amplitude
            )

        return np.repeat(values, self.hold)[:n_samples]


class SinusoidalExcitation(ExcitationSignal):
    """Multi-frequency sinusoidal excitation.

    Sum of sinusoids provides rich spectral content while staying smooth.
    """

    def __init__(
        self,
        amplitudes: Sequence[float],
        frequencies: Sequence[float],
        phases: Optional[Sequence[float]] = None,
        seed: Optional[int] = None
    ):
        """
        Args:
            amplitudes: Amplitude per frequency
            frequencies: Frequencies in cycles per sample
            phases: Phase offsets, random if None
            seed: Random seed
        """
        super().__init__(seed)
        self.amplitudes = np.atleast_1d(np.asarray(amplitudes, dtype=float))
        self.frequencies = np.atleast_1d(np.asarray(frequencies, dtype=float))
        if self.amplitudes.shape != self.frequencies.shape:
            raise ValueError("amplitudes and frequencies must have the same length")

        if phases is None:
            phases = np.random.default_rng(seed).uniform(0, 2*np.pi, self.frequencies.shape)
        self.phases = np.asarray(phases, dtype=float)

    def generate(self, n_samples: int) -> np.ndarray:
        t = np.arange(n_samples)[:, None]
        return np.sum(
            self.amplitudes * np.sin(2 * np.pi * self.frequencies * t + self.phases),
            axis=1
        )


class PRBSExcitation(ExcitationSignal):
    """Pseudo-Random Binary Sequence (PRBS) excitation.

    Binary signal switching between +/- amplitude.
    """

    def __init__(
        self,
        amplitude: float = 1.0,
        switch_probability: float = 0.5,
        seed: Optional[int] = None
    ):
        """
        Args:
            amplitude: Signal switches between +/- amplitude
            switch_probability: Probability of switching per sample
            seed: Random seed
        """
        super().__init__(seed)
        self.amplitude = amplitude
        self.switch_probability = switch_probability

    def generate(self, n_samples: int) -> np.ndarray:
        rng = np.random.default_rng(self.seed)
        switches = rng.random(n_samples) < self.switch_probability
        switches[0] = False
        sign = np.where(np.cumsum(switches) % 2 == 0, 1.0, -1.0)
        return self.amplitude * sign


def create_rich_excitation(
    amplitude: float = 1.0,
    seed: Optional[int] = None
) -> ExcitationSignal:
    """Create a broadband random excitation mixed with slow sinusoids.

    Args:
        amplitude: Max amplitude
        seed: Random seed

    Returns:
        ExcitationSignal whose generate() sums both components
    """
    rng = np.random.default_rng(seed)
    sinusoidal = SinusoidalExcitation(
        amplitudes=[0.3 * amplitude, 0.2 * amplitude],
        frequencies=[0.01, 0.03],
        seed=int(rng.integers(10000))
    )
    random = RandomExcitation(
        amplitude=0.5 * amplitude,
        seed=int(rng.integers(10000))
    )
    return _SumExcitation([sinusoidal, random])


class _SumExcitation(ExcitationSignal):

    def __init__(self, signals: Sequence[ExcitationSignal]):
        super().__init__(seed=None)
        self.signals = list(signals)

    def generate(self, n_samples: int) -> np.ndarray:
        return np.sum([s.generate(n_samples) for s in self.signals], axis=0)
