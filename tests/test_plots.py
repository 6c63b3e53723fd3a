"""
Tests for quotient curve plots.
"""

import matplotlib
matplotlib.use("Agg")

import matplotlib.pyplot as plt
import pytest

from farnn.order.search import INPUT_PHASE, OUTPUT_PHASE, CurvePoint, OrderResult
from farnn.plots import plot_quotient_curve


@pytest.fixture
def result():
    curve = (
        CurvePoint(OUTPUT_PHASE, 1, 1, 2.0),
        CurvePoint(OUTPUT_PHASE, 1, 2, 1.5),
        CurvePoint(OUTPUT_PHASE, 1, 3, 1.49),
        CurvePoint(INPUT_PHASE, 1, 1, 2.0),
        CurvePoint(INPUT_PHASE, 2, 1, 1.99),
        CurvePoint(INPUT_PHASE, 3, 1, 1.98),
    )
    return OrderResult(inorder=1, outorder=1, curve=curve, channel=2, max_order=6)


class TestPlotQuotientCurve:

    def test_both_phases_drawn(self, result):
        """Test one line per phase plus one marker per committed order."""
        fig, ax = plt.subplots()
        returned = plot_quotient_curve(result, ax=ax)

        assert returned is ax
        assert len(ax.lines) == 4
        assert ax.get_title().startswith("channel 2")
        plt.close(fig)

    def test_creates_axes(self, result):
        ax = plot_quotient_curve(result, title="zn")

        assert ax.get_title() == "zn"
        plt.close(ax.figure)
