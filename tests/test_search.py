"""
Tests for the two-phase order search and the quick estimate.
"""

import math

import numpy as np
import pytest

from farnn.config import OrderConfig
from farnn.data_collection.dataset import ARXSystem
from farnn.data_collection.excitation_signals import RandomExcitation
from farnn.order.errors import (
    DegenerateDataError,
    InsufficientDataError,
    OrderSearchExhaustedError,
)
from farnn.order.lipschitz import LipschitzQuotientEngine
from farnn.order.regressors import build_regressors
from farnn.order.search import (
    INPUT_PHASE,
    OUTPUT_PHASE,
    CurvePoint,
    OrderResult,
    OrderSearch,
    QuickOrderEstimator,
    compute_q,
    compute_qn,
)


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def cumulative_data():
    """u = 1..8 and y(t) = y(t-1) + u(t-1)."""
    u = np.arange(1, 9, dtype=float)
    y = np.array([0, 1, 3, 6, 10, 15, 21, 28], dtype=float)
    return u, y


@pytest.fixture
def first_order_data():
    """Noise-free y(t) = 0.5 y(t-1) + u(t-1) driven by random input."""
    u = RandomExcitation(amplitude=1.0, seed=0).generate(300)
    y = ARXSystem(a=[0.5], b=[1.0], tau=0).simulate(u)
    return u, y


@pytest.fixture
def first_order_config():
    return OrderConfig(tau=0, m_eps=0.05, l_eps=0.05, max_order=6)


@pytest.fixture
def unrelated_data():
    """Independent uniform noise for input and output."""
    rng = np.random.default_rng(1)
    return rng.uniform(-1, 1, 300), rng.uniform(-1, 1, 300)


# =============================================================================
# ORDER SEARCH TESTS
# =============================================================================

class TestOrderSearch:
    """Tests for OrderSearch (computeq)."""

    def test_cumulative_sum_scenario(self, cumulative_data):
        """Test the 8-sample cumulative-sum data settles at (1, 1)."""
        u, y = cumulative_data
        config = OrderConfig(tau=1, m_eps=0.05, l_eps=0.05, max_order=4)
        result = OrderSearch(config).search(u, y)

        assert result.outorder == 1
        assert result.inorder == 1
        assert result.system_order == 2

    def test_cumulative_sum_curve(self, cumulative_data):
        """Test the curve values of the cumulative-sum data."""
        u, y = cumulative_data
        config = OrderConfig(tau=1, m_eps=0.05, l_eps=0.05, max_order=4)
        result = OrderSearch(config).search(u, y)

        values = [p.value for p in result.curve]
        expected = [
            6 / math.sqrt(10),              # L=1, M=1
            6 / math.sqrt(8),               # L=1, M=2
            16 / math.sqrt(60),             # L=1, M=3
            6 / math.sqrt(10),              # L=1, M=1
            8 * math.sqrt(3) / math.sqrt(44),   # L=2, M=1
            20 / math.sqrt(76),             # L=3, M=1
        ]
        assert values == pytest.approx(expected)
        assert [p.phase for p in result.curve] == [OUTPUT_PHASE] * 3 + [INPUT_PHASE] * 3

    def test_recovers_first_order_system(self, first_order_data, first_order_config):
        """Test y(t) = a y(t-1) + b u(t-1) gives inorder = outorder = 1."""
        u, y = first_order_data
        result = OrderSearch(first_order_config).search(u, y)

        assert (result.inorder, result.outorder) == (1, 1)

    def test_deterministic(self, first_order_data, first_order_config):
        """Test repeated searches give identical results."""
        u, y = first_order_data
        search = OrderSearch(first_order_config)

        assert search.search(u, y) == search.search(u, y)

    def test_parallel_matches_serial(self, first_order_data, first_order_config):
        """Test worker count and block size do not change the result."""
        u, y = first_order_data
        serial = OrderSearch(first_order_config).search(u, y)
        parallel = OrderSearch(first_order_config.replace(n_jobs=2, block_size=37)).search(u, y)

        assert serial == parallel

    def test_ceiling_terminates(self, unrelated_data):
        """Test eps = 0 hits the ceiling and raises instead of looping."""
        u, y = unrelated_data
        config = OrderConfig(tau=0, m_eps=0.0, l_eps=0.0, max_order=5)

        with pytest.raises(OrderSearchExhaustedError) as exc:
            OrderSearch(config).search(u, y)

        assert exc.value.max_order == 5
        assert len(exc.value.curve) >= 5
        assert all(isinstance(p, CurvePoint) for p in exc.value.curve)
        assert all(max(p.in_order, p.out_order) <= 5 for p in exc.value.curve)

    def test_ceiling_terminates_on_structured_data(self, first_order_data):
        """Test eps = 0 exhausts even where the index rises past the true order."""
        u, y = first_order_data
        config = OrderConfig(tau=0, m_eps=0.0, l_eps=0.0, max_order=5)

        with pytest.raises(OrderSearchExhaustedError) as exc:
            OrderSearch(config).search(u, y)

        assert exc.value.phase == OUTPUT_PHASE
        assert [p.out_order for p in exc.value.curve] == [1, 2, 3, 4, 5]

    def test_cumulative_sum_plain_mean_decreases(self, cumulative_data):
        """Test the unscaled index decreases on the cumulative-sum data.

        Its decreases all exceed 0.05, so with the plain mean the search
        runs into the ceiling; the default scaled index commits (1, 1).
        """
        u, y = cumulative_data
        config = OrderConfig(tau=1, m_eps=0.05, l_eps=0.05, max_order=4,
                             scale_by_dimension=False)

        with pytest.raises(OrderSearchExhaustedError) as exc:
            OrderSearch(config).search(u, y)

        values = [p.value for p in exc.value.curve]
        assert values[:3] == pytest.approx([3 / math.sqrt(5), 6 / math.sqrt(24), 8 / math.sqrt(60)])
        assert values[0] > values[1] > values[2] > values[3]

    def test_constant_output(self):
        """Test a constant output fails at the first candidate order."""
        u = np.random.default_rng(2).uniform(-1, 1, 50)
        y = np.full(50, 3.0)

        with pytest.raises(DegenerateDataError) as exc:
            OrderSearch(OrderConfig(tau=1)).search(u, y, channel=4)

        assert exc.value.order == (1, 1)
        assert exc.value.channel == 4

    def test_insufficient_data(self):
        """Test sequences too short for the first candidate."""
        with pytest.raises(InsufficientDataError):
            OrderSearch(OrderConfig(tau=1)).search([1.0, 2.0], [0.0, 1.0])

    def test_misaligned(self):
        """Test u and y of different lengths."""
        with pytest.raises(ValueError):
            OrderSearch().search(np.arange(10.0), np.arange(11.0))

    def test_inputs_not_mutated(self, first_order_data, first_order_config):
        """Test the search leaves its sequences untouched."""
        u, y = first_order_data
        u_before, y_before = u.copy(), y.copy()
        OrderSearch(first_order_config).search(u, y)

        np.testing.assert_array_equal(u, u_before)
        np.testing.assert_array_equal(y, y_before)

    def test_invalid_config(self):
        """Test the search validates its configuration."""
        with pytest.raises(ValueError):
            OrderSearch(OrderConfig(top_fraction=1.5))


class TestSearchChannels:
    """Tests for multi-output searches."""

    def test_each_channel_searched(self, first_order_data, first_order_config):
        """Test every output column gets its own result."""
        u, y0 = first_order_data
        y1 = ARXSystem(a=[-0.3], b=[0.8], tau=0).simulate(u)
        results = OrderSearch(first_order_config).search_channels(u, np.column_stack([y0, y1]))

        assert [r.channel for r in results] == [0, 1]
        assert all((r.inorder, r.outorder) == (1, 1) for r in results)

    def test_single_channel(self, cumulative_data):
        """Test a 1-D output is treated as channel 0."""
        u, y = cumulative_data
        config = OrderConfig(tau=1, m_eps=0.05, l_eps=0.05, max_order=4)
        results = OrderSearch(config).search_channels(u, y)

        assert len(results) == 1
        assert results[0].channel == 0


# =============================================================================
# RESULT TESTS
# =============================================================================

class TestOrderResult:
    """Tests for the OrderResult views."""

    @pytest.fixture
    def result(self):
        curve = (
            CurvePoint(OUTPUT_PHASE, 1, 1, 3.0),
            CurvePoint(OUTPUT_PHASE, 1, 2, 2.0),
            CurvePoint(OUTPUT_PHASE, 1, 3, 1.95),
            CurvePoint(OUTPUT_PHASE, 1, 4, 1.94),
            CurvePoint(INPUT_PHASE, 1, 2, 2.0),
            CurvePoint(INPUT_PHASE, 2, 2, 1.99),
            CurvePoint(INPUT_PHASE, 3, 2, 1.98),
        )
        return OrderResult(inorder=1, outorder=2, curve=curve, channel=0, max_order=6)

    def test_head(self, result):
        """Test the bounded prefix view."""
        assert result.head(5) == list(result.curve[:5])
        assert result.head(100) == list(result.curve)

    def test_curve_values(self, result):
        """Test (order_index, value) pairs."""
        assert result.curve_values()[:2] == [(2, 3.0), (3, 2.0)]

    def test_phase_curve(self, result):
        """Test filtering by phase."""
        assert len(result.phase_curve(OUTPUT_PHASE)) == 4
        assert len(result.phase_curve(INPUT_PHASE)) == 3

    def test_to_dict(self, result):
        """Test dictionary export."""
        d = result.to_dict()
        assert d["system_order"] == 3
        assert d["curve"][0] == {"phase": OUTPUT_PHASE, "in_order": 1, "out_order": 1, "value": 3.0}

    def test_immutable(self, result):
        """Test results cannot be modified."""
        with pytest.raises(AttributeError):
            result.inorder = 5


# =============================================================================
# QUICK ESTIMATE TESTS
# =============================================================================

class TestQuickOrderEstimator:
    """Tests for QuickOrderEstimator (computeqn)."""

    def test_matches_output_only_index(self, first_order_data, first_order_config):
        """Test qn is the index of output-only regressors of quick_order."""
        u, y = first_order_data
        qn = QuickOrderEstimator(first_order_config).estimate(u, y)

        regs = build_regressors(u, y, 0, first_order_config.quick_order, tau=0)
        expected = LipschitzQuotientEngine.from_config(first_order_config).index(regs, y)
        assert qn == pytest.approx(expected)
        assert qn > 0

    def test_suggested_regressors(self):
        """Test qn is rounded up."""
        assert QuickOrderEstimator.suggested_regressors(2.3) == 3
        assert QuickOrderEstimator.suggested_regressors(2.0) == 2

    def test_constant_output(self):
        """Test a constant output raises rather than returning NaN."""
        with pytest.raises(DegenerateDataError):
            QuickOrderEstimator().estimate(np.arange(20.0), np.ones(20))


class TestConvenienceFunctions:
    """Tests for compute_q and compute_qn."""

    def test_compute_q(self, cumulative_data):
        u, y = cumulative_data
        config = OrderConfig(tau=1, m_eps=0.05, l_eps=0.05, max_order=4)
        result = compute_q(u, y, config)

        assert (result.inorder, result.outorder) == (1, 1)

    def test_compute_qn(self, first_order_data, first_order_config):
        u, y = first_order_data
        assert compute_qn(u, y, first_order_config) == pytest.approx(
            QuickOrderEstimator(first_order_config).estimate(u, y)
        )


class TestStabilization:
    """Tests for the per-increment stability rule."""

    def test_rise_is_stable_with_tolerance(self):
        assert OrderSearch._is_stable(-0.2, 0.05)
        assert OrderSearch._is_stable(0.05, 0.05)
        assert not OrderSearch._is_stable(0.06, 0.05)

    def test_zero_eps_needs_exact_plateau(self):
        """Test a rise does not stabilize when eps is zero."""
        assert not OrderSearch._is_stable(-0.2, 0.0)
        assert not OrderSearch._is_stable(0.01, 0.0)
        assert OrderSearch._is_stable(0.0, 0.0)

    def test_committed_order_below_ceiling(self, first_order_data, first_order_config):
        """Test committed orders leave room for the two confirming steps."""
        u, y = first_order_data
        result = OrderSearch(first_order_config.replace(max_order=3)).search(u, y)

        assert max(result.inorder, result.outorder) <= result.max_order - 2
