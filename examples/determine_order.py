#!/usr/bin/env python3
"""
Example: Determine NARX orders from recorded or synthetic data

With a file argument (.mat with in/xn/yn/zn/rolln/pitchn/yawn, or .npz)
the orders of every pose channel are determined. Without one, a
synthetic second-order output and a first-order output are generated.

Usage:
    python examples/determine_order.py [data/posemat5.mat]
"""

import sys

import matplotlib
matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np

from farnn import (
    ARXSystem,
    IODataset,
    NARXWindow,
    OrderDeterminationPipeline,
    create_config,
    setup_logging,
)
from farnn.data_collection.excitation_signals import create_rich_excitation
from farnn.plots import plot_quotient_curve


def synthetic_dataset(n_samples: int = 1000) -> IODataset:
    """Two channels driven by the same input."""
    u = create_rich_excitation(amplitude=1.0, seed=0).generate(n_samples)
    second = ARXSystem(a=[1.2, -0.5], b=[1.0], tau=1, nonlinearity=np.tanh).simulate(u)
    first = ARXSystem(a=[0.6], b=[0.8], tau=1).simulate(u)
    return IODataset(inputs=u, outputs=np.column_stack([second, first]),
                     output_names=("second", "first"))


def main():
    config = create_config(tau=1, m_eps=0.05, l_eps=0.05, max_order=6)
    setup_logging(config.log_level, config.log_file)
    pipeline = OrderDeterminationPipeline(config)

    if len(sys.argv) > 1:
        result = pipeline.run_file(sys.argv[1])
    else:
        result = pipeline.run(synthetic_dataset())

    print("=" * 60)
    for line in result.summary(head=config.report_head):
        print(line)
    print("=" * 60)

    fig, axes = plt.subplots(1, max(len(result.channel_results), 1),
                             figsize=(6 * max(len(result.channel_results), 1), 4),
                             squeeze=False)
    for ax, (name, res) in zip(axes[0], result.channel_results.items()):
        plot_quotient_curve(res, ax=ax, title=name)
    fig.tight_layout()
    fig.savefig("quotient_curves.png", dpi=150)
    print("Saved quotient_curves.png")

    # Size a NARX regressor window from the first successful channel
    for name, res in result.channel_results.items():
        window = NARXWindow.from_orders(res, tau=config.order.tau)
        print(f"[{name}] NARX features: {', '.join(window.feature_names())}")
        break

    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main())
