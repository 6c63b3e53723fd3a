"""
Tests for configuration handling.
"""

import pytest

from farnn.config import OrderConfig, PipelineConfig, create_config


class TestOrderConfig:
    """Tests for OrderConfig."""

    def test_defaults(self):
        """Test the command-line defaults."""
        config = OrderConfig()

        assert config.tau == 1
        assert config.m_eps == 0.01
        assert config.l_eps == 0.05
        assert config.max_order is None
        config.validate()

    def test_frozen(self):
        config = OrderConfig()
        with pytest.raises(AttributeError):
            config.tau = 3

    def test_replace(self):
        config = OrderConfig().replace(tau=0, max_order=4)

        assert config.tau == 0
        assert config.max_order == 4
        assert OrderConfig().tau == 1

    @pytest.mark.parametrize("changes", [
        {"tau": -1},
        {"m_eps": -0.1},
        {"max_order": 0},
        {"max_order": 1},
        {"max_order": 2},
        {"top_fraction": 0.0},
        {"min_top": 0},
        {"aggregate": "median"},
        {"block_size": 0},
        {"n_jobs": 0},
    ])
    def test_validation(self, changes):
        """Test out-of-range parameters are rejected."""
        with pytest.raises(ValueError):
            OrderConfig(**changes).validate()

    def test_smallest_confirmable_ceiling(self):
        """Test a ceiling of three leaves room for two confirming steps."""
        OrderConfig(max_order=3).validate()

    def test_resolve_max_order(self):
        """Test the ceiling derived from the sequence length."""
        assert OrderConfig(max_order=7).resolve_max_order(10) == 7
        assert OrderConfig().resolve_max_order(8) == 3
        assert OrderConfig().resolve_max_order(24) == 6
        assert OrderConfig().resolve_max_order(1000) == 10

    def test_from_dict(self):
        config = OrderConfig.from_dict({"tau": 2, "l_eps": 0.1})

        assert config.tau == 2
        assert config.to_dict()["l_eps"] == 0.1

    def test_from_dict_unknown_key(self):
        """Test typos in keys are reported."""
        with pytest.raises(ValueError, match="m_epsilon"):
            OrderConfig.from_dict({"m_epsilon": 0.1})


class TestPipelineConfig:
    """Tests for PipelineConfig and environment overrides."""

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("FARNN_TAU", "0")
        monkeypatch.setenv("FARNN_MAX_ORDER", "8")
        monkeypatch.setenv("FARNN_TRAIN_FRACTION", "0.5")
        config = PipelineConfig.from_env()

        assert config.order.tau == 0
        assert config.order.max_order == 8
        assert config.train_fraction == 0.5

    def test_empty_max_order_env(self, monkeypatch):
        monkeypatch.setenv("FARNN_MAX_ORDER", "")
        assert PipelineConfig().order.max_order is None

    def test_invalid_train_fraction(self):
        config = PipelineConfig(train_fraction=1.5)
        with pytest.raises(ValueError):
            config.validate()

    def test_dict_round_trip(self):
        config = PipelineConfig(order=OrderConfig(tau=3), data_path="data/posemat5.mat")
        restored = PipelineConfig.from_dict(config.to_dict())

        assert restored.order == config.order
        assert restored.data_path == "data/posemat5.mat"

    def test_create_config(self):
        """Test order parameters pass through create_config."""
        config = create_config(data_path="x.mat", tau=0, m_eps=0.05)

        assert config.data_path == "x.mat"
        assert config.order.tau == 0
        assert config.order.m_eps == 0.05

    def test_create_config_validates(self):
        with pytest.raises(ValueError):
            create_config(top_fraction=2.0)

    def test_output_scales_env(self, monkeypatch):
        """Test per-channel scales parsed from the environment."""
        monkeypatch.setenv("FARNN_OUTPUT_SCALES", "zn=0.1, xn=2")
        config = PipelineConfig()

        assert config.output_scales == {"zn": 0.1, "xn": 2.0}
        assert PipelineConfig.from_dict(config.to_dict()).output_scales == config.output_scales

    def test_invalid_output_scale(self):
        config = PipelineConfig(output_scales={"zn": 0.0})
        with pytest.raises(ValueError):
            config.validate()
