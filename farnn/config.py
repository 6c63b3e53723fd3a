"""
FARNN Configuration Module

Handles all configuration settings for model-order determination.
Supports environment variables, .env files, and programmatic configuration.

Configuration can be set via:
1. Environment variables (FARNN_TAU, FARNN_M_EPS, FARNN_L_EPS, etc.)
2. .env file in the working directory
3. Programmatic configuration via create_config()

The search itself only ever sees an OrderConfig, which is immutable.
"""

import os
import dataclasses
from dataclasses import dataclass, field
from typing import Optional, Dict, Any
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


AGGREGATES = ("mean", "geometric")

# consecutive stable increments required before an order is committed
CONFIRMATION_STEPS = 2


def _env_optional_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return int(value)


def _env_scales(name: str) -> Dict[str, float]:
    """Parse "zn=0.1,xn=2" into a channel-to-factor mapping."""
    value = os.getenv(name, "")
    scales = {}
    for item in value.split(","):
        if not item.strip():
            continue
        channel, _, factor = item.partition("=")
        scales[channel.strip()] = float(factor)
    return scales


@dataclass(frozen=True)
class OrderConfig:
    """
    Parameters of the Lipschitz-quotient order search.

    Defaults for tau, m_eps and l_eps are the FARNN command-line defaults.
    """

    # Delay between input and output
    tau: int = 1

    # Stopping criterion for output order determination
    m_eps: float = 0.01

    # Stopping criterion for input order determination
    l_eps: float = 0.05

    # Highest evaluated candidate order; derived from N when None.
    # Committed orders are at most max_order - CONFIRMATION_STEPS.
    max_order: Optional[int] = None

    # Fraction of the largest quotients averaged into the index
    top_fraction: float = 0.05

    # Floor on the number of averaged quotients
    min_top: int = 1

    # Input order held fixed while the output order is searched
    initial_inorder: int = 1

    # Output order used by the quick estimate
    quick_order: int = 2

    # Multiply the index by sqrt(L + M) (He & Asada normalization)
    scale_by_dimension: bool = True

    # "mean" or "geometric"
    aggregate: str = "mean"

    # Rows of the pairwise distance matrix processed per block
    block_size: int = 512

    # joblib workers for the pairwise step
    n_jobs: int = 1

    def validate(self) -> None:
        """
        Validate configuration, raise if invalid.

        Raises:
            ValueError: If any parameter is out of range
        """
        if self.tau < 0:
            raise ValueError(f"tau must be non-negative, got {self.tau}")
        if self.m_eps < 0 or self.l_eps < 0:
            raise ValueError(
                f"m_eps and l_eps must be non-negative, got {self.m_eps}, {self.l_eps}"
            )
        if self.max_order is not None and self.max_order < CONFIRMATION_STEPS + 1:
            raise ValueError(
                f"max_order must be at least {CONFIRMATION_STEPS + 1} so an order can be "
                f"confirmed, got {self.max_order}"
            )
        if not 0.0 < self.top_fraction <= 1.0:
            raise ValueError(f"top_fraction must be in (0, 1], got {self.top_fraction}")
        if self.min_top < 1:
            raise ValueError(f"min_top must be at least 1, got {self.min_top}")
        if self.initial_inorder < 0:
            raise ValueError(f"initial_inorder must be non-negative, got {self.initial_inorder}")
        if self.quick_order < 1:
            raise ValueError(f"quick_order must be positive, got {self.quick_order}")
        if self.aggregate not in AGGREGATES:
            raise ValueError(f"aggregate must be one of {AGGREGATES}, got {self.aggregate!r}")
        if self.block_size < 1:
            raise ValueError(f"block_size must be positive, got {self.block_size}")
        if self.n_jobs == 0:
            raise ValueError("n_jobs must be non-zero")

    def resolve_max_order(self, n_samples: int) -> int:
        """Order ceiling for a sequence of n_samples."""
        if self.max_order is not None:
            return self.max_order
        return max(3, min(n_samples // 4, 10))

    def replace(self, **changes) -> "OrderConfig":
        """Return a copy with some fields changed."""
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "OrderConfig":
        """
        Create configuration from a dictionary.

        Unknown keys are rejected so that typos do not go unnoticed.
        """
        names = {f.name for f in dataclasses.fields(cls)}
        unknown = set(config_dict) - names
        if unknown:
            raise ValueError(f"Unknown order configuration keys: {sorted(unknown)}")
        config = cls(**config_dict)
        config.validate()
        return config

    def to_dict(self) -> Dict[str, Any]:
        """Export configuration to dictionary."""
        return dataclasses.asdict(self)


@dataclass
class PipelineConfig:
    """
    Main configuration for the order-determination pipeline.

    Example usage:
        # From environment variables
        config = PipelineConfig()

        # Programmatic configuration
        config = create_config(tau=0, m_eps=0.05, max_order=6)
    """

    order: OrderConfig = field(
        default_factory=lambda: OrderConfig(
            tau=int(os.getenv("FARNN_TAU", "1")),
            m_eps=float(os.getenv("FARNN_M_EPS", "0.01")),
            l_eps=float(os.getenv("FARNN_L_EPS", "0.05")),
            max_order=_env_optional_int("FARNN_MAX_ORDER"),
            top_fraction=float(os.getenv("FARNN_TOP_FRACTION", "0.05")),
            n_jobs=int(os.getenv("FARNN_N_JOBS", "1")),
        )
    )

    # Fraction of samples (from the start) used for order determination
    train_fraction: float = field(
        default_factory=lambda: float(os.getenv("FARNN_TRAIN_FRACTION", "0.6"))
    )

    # Output channel fed to the quick estimate (clamped to available channels)
    qn_channel: int = 2

    # Per-channel factors applied to the outputs before order determination
    output_scales: Dict[str, float] = field(
        default_factory=lambda: _env_scales("FARNN_OUTPUT_SCALES")
    )

    # Path to the pose/input data file (.mat or .npz)
    data_path: Optional[str] = field(
        default_factory=lambda: os.getenv("FARNN_DATA_PATH")
    )

    # Number of curve entries shown in reports
    report_head: int = 5

    # Logging settings
    log_level: str = field(
        default_factory=lambda: os.getenv("FARNN_LOG_LEVEL", "INFO")
    )
    log_file: Optional[str] = field(
        default_factory=lambda: os.getenv("FARNN_LOG_FILE")
    )

    def validate(self) -> None:
        """Validate all configuration sections."""
        self.order.validate()
        if not 0.0 < self.train_fraction <= 1.0:
            raise ValueError(
                f"train_fraction must be in (0, 1], got {self.train_fraction}"
            )
        if self.report_head < 0:
            raise ValueError(f"report_head must be non-negative, got {self.report_head}")
        for channel, factor in self.output_scales.items():
            if not factor > 0:
                raise ValueError(f"output scale for {channel!r} must be positive, got {factor}")

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        """Create configuration from environment variables."""
        return cls()

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "PipelineConfig":
        """
        Create configuration from a dictionary.

        Args:
            config_dict: Dictionary with configuration values

        Returns:
            PipelineConfig instance
        """
        return cls(
            order=OrderConfig.from_dict(config_dict.get("order", {})),
            train_fraction=config_dict.get("train_fraction", 0.6),
            qn_channel=config_dict.get("qn_channel", 2),
            output_scales=dict(config_dict.get("output_scales", {})),
            data_path=config_dict.get("data_path"),
            report_head=config_dict.get("report_head", 5),
            log_level=config_dict.get("log_level", "INFO"),
            log_file=config_dict.get("log_file"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Export configuration to dictionary."""
        return {
            "order": self.order.to_dict(),
            "train_fraction": self.train_fraction,
            "qn_channel": self.qn_channel,
            "output_scales": dict(self.output_scales),
            "data_path": self.data_path,
            "report_head": self.report_head,
            "log_level": self.log_level,
            "log_file": self.log_file,
        }


def get_default_config() -> PipelineConfig:
    """Get the default pipeline configuration from environment."""
    return PipelineConfig.from_env()


def create_config(
    data_path: Optional[str] = None,
    train_fraction: Optional[float] = None,
    log_level: Optional[str] = None,
    **kwargs
) -> PipelineConfig:
    """
    Convenience function to create a configuration.

    Args:
        data_path: Path to the data file
        train_fraction: Fraction of samples used for order determination
        log_level: Logging level name
        **kwargs: OrderConfig fields (tau, m_eps, l_eps, max_order, ...)

    Returns:
        Configured PipelineConfig

    Example:
        config = create_config(tau=0, m_eps=0.05, l_eps=0.05, max_order=6)
    """
    config = PipelineConfig()

    if data_path:
        config.data_path = data_path
    if train_fraction is not None:
        config.train_fraction = train_fraction
    if log_level:
        config.log_level = log_level

    if kwargs:
        config.order = config.order.replace(**kwargs)

    config.validate()
    return config
