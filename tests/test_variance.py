import pytest
import numpy as np

from garch.errors import InvalidParameters
from garch.models import GARCHParameters
from garch.variance import (conditional_variance_path, one_step_ahead_variance,
                            sample_variance, variance_recursion)


@pytest.fixture
def params():
    return GARCHParameters(mu=0.001, omega=1e-5, alpha=0.1, beta=0.8)


def test_recursion_matches_hand_computation(params):
    returns = np.array([0.01, -0.02, 0.015, 0.0])
    path = conditional_variance_path(params, returns)

    eps = returns - params.mu
    expected = [np.var(returns, ddof=1)]
    for t in range(1, len(returns)):
        expected.append(params.omega + params.alpha * eps[t - 1] ** 2 + params.beta * expected[-1])

    np.testing.assert_allclose(path.variance, expected)
    np.testing.assert_allclose(path.residuals, eps)
    assert len(path) == len(returns)


def test_explicit_seed_is_used(params):
    path = conditional_variance_path(params, np.array([0.01, -0.01, 0.02]), seed=4e-4)
    assert path.variance[0] == 4e-4


def test_path_is_read_only(params):
    path = conditional_variance_path(params, np.array([0.01, -0.01, 0.02]))
    with pytest.raises(ValueError):
        path.variance[0] = 1.0


def test_recursion_rejects_non_positive_variance():
    with pytest.raises(InvalidParameters) as exc:
        variance_recursion(np.array([0.1, 0.1, 0.1]), omega=-1.0, alpha=0.0, beta=0.0, seed=1e-4)
    assert exc.value.index == 1


def test_recursion_rejects_bad_seed():
    with pytest.raises(InvalidParameters):
        variance_recursion(np.array([0.1, 0.2]), omega=1e-5, alpha=0.1, beta=0.8, seed=0.0)


def test_sample_variance_needs_two_points():
    with pytest.raises(ValueError):
        sample_variance(np.array([0.01]))


def test_one_step_ahead_matches_recursion_form(params):
    returns = np.array([0.01, -0.02, 0.015, 0.03])
    path = conditional_variance_path(params, returns)
    expected = (params.omega + params.alpha * path.last_residual ** 2
                + params.beta * path.last_variance)
    assert one_step_ahead_variance(params, path) == pytest.approx(expected, rel=1e-12)


@pytest.mark.parametrize('kwargs', [
    {'omega': 0.0, 'alpha': 0.1, 'beta': 0.8},
    {'omega': 1e-5, 'alpha': -0.1, 'beta': 0.8},
    {'omega': 1e-5, 'alpha': 0.3, 'beta': 0.7},
    {'omega': float('nan'), 'alpha': 0.1, 'beta': 0.8},
])
def test_parameter_invariant(kwargs):
    with pytest.raises(InvalidParameters):
        GARCHParameters(mu=0.0, **kwargs)


def test_unconditional_variance(params):
    assert params.persistence == pytest.approx(0.9)
    assert params.unconditional_variance == pytest.approx(1e-4)
