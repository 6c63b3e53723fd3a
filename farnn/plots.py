"""
Quotient curve plots.
"""

from typing import Optional

import matplotlib.pyplot as plt

from .order.search import INPUT_PHASE, OUTPUT_PHASE, OrderResult


def plot_quotient_curve(result: OrderResult, ax: Optional[plt.Axes] = None,
                        title: Optional[str] = None) -> plt.Axes:
    """Plot the Lipschitz index of each phase against the varied order.

    The committed orders are marked with vertical lines.
    """
    if ax is None:
        _, ax = plt.subplots(figsize=(7, 4))

    output_points = result.phase_curve(OUTPUT_PHASE)
    input_points = result.phase_curve(INPUT_PHASE)

    if output_points:
        ax.plot([p.out_order for p in output_points], [p.value for p in output_points],
                'o-', color='tab:blue', label='output order M')
        ax.axvline(result.outorder, color='tab:blue', linestyle='--', alpha=0.5)
    if input_points:
        ax.plot([p.in_order for p in input_points], [p.value for p in input_points],
                's-', color='tab:orange', label='input order L')
        ax.axvline(result.inorder, color='tab:orange', linestyle=':', alpha=0.5)

    ax.set_xlabel('candidate order')
    ax.set_ylabel('Lipschitz index')
    if title is None:
        title = f"inorder={result.inorder}, outorder={result.outorder}"
        if result.channel is not None:
            title = f"channel {result.channel}: {title}"
    ax.set_title(title)
    ax.grid(True, alpha=0.3)
    ax.legend()
    return ax
