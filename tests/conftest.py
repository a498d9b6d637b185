import sys
import os

# Add project root to Python path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if project_root not in sys.path:
    sys.path.append(project_root)

import matplotlib
matplotlib.use('Agg')

import pytest
import numpy as np
import pandas as pd

from models import ReturnSeries
from garch.simulation import simulate_garch


@pytest.fixture
def sample_returns():
    """Daily decimal returns with mild volatility clustering"""
    rng = np.random.default_rng(42)
    n_days = 300
    volatility = 0.01 * np.exp(rng.normal(0, 0.2, n_days))
    return rng.standard_normal(n_days) * volatility


@pytest.fixture
def sample_series(sample_returns):
    dates = pd.bdate_range('2015-01-01', periods=len(sample_returns))
    return ReturnSeries(dates=dates, values=sample_returns, name='risky')


@pytest.fixture
def short_series(sample_series):
    """60 observations, enough for a handful of walk-forward steps"""
    return sample_series.window(59, 60)


@pytest.fixture(scope='session')
def simulated_path():
    """Long normal GARCH(1,1) path with known parameters"""
    return simulate_garch(4000, mu=0.0, omega=2e-6, alpha=0.1, beta=0.85,
                          kind='normal', seed=12345)


@pytest.fixture
def market_frame():
    """Risky, risk-free and realized volatility columns on business days"""
    risky = simulate_garch(160, mu=3e-4, omega=2e-6, alpha=0.08, beta=0.9,
                           kind='student_t', shape={'nu': 6.0}, seed=7)
    riskfree = simulate_garch(160, mu=1e-4, omega=1e-8, alpha=0.05, beta=0.9, seed=11)
    return pd.DataFrame({
        'risky': risky['returns'],
        'riskfree': riskfree['returns'],
        'realized_vol': risky['volatility']
    }, index=risky.index)
