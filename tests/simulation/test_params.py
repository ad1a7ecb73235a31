"""Tests for price dynamics calibration."""

import numpy as np
import pytest

from cdp_engine.simulation.params import PriceDynamicsParams, calibrate_price_params


def _gbm_series(n: int, daily_vol: float, seed: int) -> np.ndarray:
    rng = np.random.default_rng(seed)
    returns = rng.normal(0.0, daily_vol, n - 1)
    return 2000.0 * np.exp(np.concatenate([[0.0], np.cumsum(returns)]))


class TestCalibration:
    def test_too_few_observations_gives_defaults(self) -> None:
        assert calibrate_price_params([2000.0] * 10) == PriceDynamicsParams()

    def test_recovers_volatility(self) -> None:
        prices = _gbm_series(730, 0.5 / np.sqrt(365), seed=4)
        params = calibrate_price_params(list(prices))
        assert params.volatility == pytest.approx(0.5, abs=0.08)

    def test_detects_crash(self) -> None:
        prices = _gbm_series(365, 0.02, seed=9)
        prices[200:] *= 0.6
        params = calibrate_price_params(list(prices))
        assert params.jump_size < -0.3
        assert params.jump_intensity > 0.9

    def test_flat_series_hits_floors(self) -> None:
        params = calibrate_price_params([2000.0] * 60)
        assert params == PriceDynamicsParams(
            volatility=0.05, drift=0.0, jump_intensity=0.01, jump_size=-0.15
        )
