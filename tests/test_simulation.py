import pytest
import numpy as np

from garch.errors import InvalidParameters
from garch.simulation import simulate_garch, simulated_series


def test_simulated_frame():
    frame = simulate_garch(250, mu=0.0005, omega=1e-6, alpha=0.05, beta=0.9, seed=1)
    assert list(frame.columns) == ['returns', 'volatility']
    assert len(frame) == 250
    assert (frame['volatility'] > 0).all()
    assert frame.index.is_monotonic_increasing

    series = simulated_series(frame)
    assert len(series) == 250


def test_seed_is_reproducible():
    first = simulate_garch(100, kind='skew_student_t', shape={'nu': 6.0, 'skew': -0.2}, seed=3)
    second = simulate_garch(100, kind='skew_student_t', shape={'nu': 6.0, 'skew': -0.2}, seed=3)
    np.testing.assert_array_equal(first['returns'], second['returns'])


def test_long_run_variance():
    frame = simulate_garch(20000, omega=1e-6, alpha=0.05, beta=0.9, seed=5)
    assert np.var(frame['returns']) == pytest.approx(1e-6 / 0.05, rel=0.15)


def test_invalid_parameters():
    with pytest.raises(InvalidParameters):
        simulate_garch(100, alpha=0.5, beta=0.6)
    with pytest.raises(ValueError):
        simulate_garch(100, kind='student_t', shape={'lam': 0.1})


def test_skew_normal_is_rejected():
    with pytest.raises(ValueError, match="skew_normal"):
        simulate_garch(100, kind='skew_normal')
    with pytest.raises(ValueError):
        simulate_garch(100, kind='snorm', seed=1)
