"""
FARNN Order Determination Pipeline - Main Orchestrator

This module provides the main entry point for determining NARX model
orders from recorded data. It orchestrates the stages:
1. Split: keep the first train_fraction of the samples
2. Quick estimate: computeqn on one output channel (diagnostic only)
3. Order search: computeq independently for every output channel, after
   the configured per-channel output scaling

A failure in one channel is recorded on the result and does not stop the
other channels. No default order is ever substituted for a failed channel.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .config import PipelineConfig
from .data_collection.dataset import IODataset, load_dataset
from .order.errors import OrderDeterminationError, OrderSearchExhaustedError
from .order.search import OrderResult, OrderSearch, QuickOrderEstimator

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Configure root logging for a run, optionally mirrored to a file."""
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True
    )


@dataclass
class ChannelError:
    """Why a channel has no order."""
    stage: str
    error_type: str
    message: str
    order: Optional[tuple] = None


@dataclass
class PipelineResult:
    """
    Complete result of the order-determination pipeline.

    Contains the per-channel orders and every recorded failure.
    """
    # Input
    n_samples: int = 0
    n_train: int = 0
    output_names: Sequence[str] = ()

    # Stage 2 results
    qn: Optional[float] = None
    suggested_regressors: Optional[int] = None

    # Stage 3 results
    channel_results: Dict[str, OrderResult] = field(default_factory=dict)

    # Status
    errors: Dict[str, ChannelError] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)

    # Metadata
    total_time: float = 0.0

    @property
    def success(self) -> bool:
        """Whether every channel has an order."""
        return bool(self.channel_results) and not self.errors

    def system_order(self, name: str) -> int:
        """inorder + outorder of one channel."""
        return self.channel_results[name].system_order

    def summary(self, head: int = 5) -> List[str]:
        """Human-readable report lines."""
        lines = [f"samples: {self.n_samples} (order determination on {self.n_train})"]
        if self.qn is not None:
            lines.append(f"qn: {self.qn:.6g}")
            lines.append(f"Optimal number of input variables is: {self.suggested_regressors}")

        for name, res in self.channel_results.items():
            lines.append(
                f"[{name}] inorder: {res.inorder} outorder: {res.outorder} "
                f"system order: {res.system_order}"
            )
            for point in res.head(head):
                lines.append(
                    f"[{name}]   Lipschitz quotient head {point.phase} "
                    f"(L={point.in_order}, M={point.out_order}): {point.value:.6g}"
                )

        for name, err in self.errors.items():
            where = f" at order {err.order}" if err.order else ""
            lines.append(f"[{name}] {err.stage} failed{where}: {err.error_type}: {err.message}")

        lines.extend(f"warning: {w}" for w in self.warnings)
        return lines

    def to_dict(self) -> Dict[str, Any]:
        """Export result to dictionary."""
        return {
            "n_samples": self.n_samples,
            "n_train": self.n_train,
            "output_names": list(self.output_names),
            "qn": self.qn,
            "suggested_regressors": self.suggested_regressors,
            "channels": {name: res.to_dict() for name, res in self.channel_results.items()},
            "errors": {
                name: {
                    "stage": err.stage,
                    "error_type": err.error_type,
                    "message": err.message,
                    "order": list(err.order) if err.order else None,
                }
                for name, err in self.errors.items()
            },
            "success": self.success,
            "warnings": self.warnings,
            "total_time": self.total_time,
        }


class OrderDeterminationPipeline:
    """
    Main pipeline for determining model orders from a dataset.

    Example:
        pipeline = OrderDeterminationPipeline(create_config(tau=1))
        result = pipeline.run_file("data/posemat5.mat")
        if result.success:
            window = NARXWindow.from_orders(result.channel_results["zn"])
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        search: Optional[OrderSearch] = None,
        estimator: Optional[QuickOrderEstimator] = None
    ):
        """
        Initialize the pipeline.

        Args:
            config: Full pipeline configuration (environment defaults if None)
            search: Pre-configured order search (for advanced use/testing)
            estimator: Pre-configured quick estimator
        """
        self.config = config or PipelineConfig.from_env()
        self.config.validate()
        self.search = search or OrderSearch(self.config.order)
        self.estimator = estimator or QuickOrderEstimator(self.config.order)

    def run(
        self,
        dataset: IODataset,
        channels: Optional[Sequence] = None
    ) -> PipelineResult:
        """
        Determine orders for a dataset.

        Args:
            dataset: Input/output data
            channels: Output channels (names or indices), all if None

        Returns:
            PipelineResult with per-channel orders and errors
        """
        start_time = time.time()

        # Stage 1: Split
        train, _ = dataset.split(self.config.train_fraction)
        result = PipelineResult(
            n_samples=dataset.n_samples,
            n_train=train.n_samples,
            output_names=dataset.output_names
        )
        logger.info(
            f"Stage 1 - Split: {train.n_samples} of {dataset.n_samples} samples, "
            f"{dataset.n_outputs} output(s)"
        )

        # Stage 2: Quick estimate
        qn_channel = min(self.config.qn_channel, train.n_outputs - 1)
        logger.info(f"Stage 2 - Quick estimate on '{train.output_names[qn_channel]}'")
        try:
            result.qn = self.estimator.estimate(train.inputs, train.output(qn_channel))
            result.suggested_regressors = self.estimator.suggested_regressors(result.qn)
        except OrderDeterminationError as e:
            result.warnings.append(f"Quick estimate unavailable: {e}")
            logger.warning(f"Quick estimate failed: {e}")

        # Stage 3: Order search per channel, on rescaled outputs
        searched = self._apply_output_scales(train)
        selected = range(train.n_outputs) if channels is None else channels
        for channel in selected:
            index = train.output_names.index(channel) if isinstance(channel, str) else channel
            name = train.output_names[index]
            logger.info(f"Stage 3 - Order search on '{name}'")
            try:
                result.channel_results[name] = self.search.search(
                    searched.inputs, searched.output(index), channel=index
                )
            except OrderDeterminationError as e:
                result.errors[name] = ChannelError(
                    stage="order_search",
                    error_type=type(e).__name__,
                    message=str(e),
                    order=getattr(e, "order", None)
                )
                if isinstance(e, OrderSearchExhaustedError) and e.curve:
                    result.warnings.append(
                        f"{name}: last index before ceiling {e.curve[-1].value:.6g}"
                    )
                logger.error(f"Order search failed on '{name}': {e}")

        result.total_time = time.time() - start_time
        if result.success:
            logger.info(f"Pipeline completed successfully in {result.total_time:.3f}s")
        else:
            logger.warning(
                f"Pipeline finished with {len(result.errors)} failed channel(s) "
                f"in {result.total_time:.3f}s"
            )

        return result

    def _apply_output_scales(self, dataset: IODataset) -> IODataset:
        for name, factor in self.config.output_scales.items():
            if name not in dataset.output_names:
                raise ValueError(
                    f"Output scale given for unknown channel {name!r}; "
                    f"channels are {list(dataset.output_names)}"
                )
            logger.info(f"Scaling output '{name}' by {factor:g} for the order search")
            dataset = dataset.scale_output(name, factor)
        return dataset

    def run_file(self, filepath: Optional[str] = None, **load_kwargs) -> PipelineResult:
        """Load a dataset (.npz or .mat) and run the pipeline on it."""
        filepath = filepath or self.config.data_path
        if not filepath:
            raise ValueError("No data file given and FARNN_DATA_PATH is not set")
        logger.info(f"Parsing raw data from {filepath}")
        return self.run(load_dataset(filepath, **load_kwargs))


def create_pipeline(**kwargs) -> OrderDeterminationPipeline:
    """
    Convenience function to create a pipeline.

    Args:
        **kwargs: Passed to create_config (data_path, tau, m_eps, ...)

    Returns:
        Configured OrderDeterminationPipeline
    """
    from .config import create_config

    return OrderDeterminationPipeline(create_config(**kwargs))
