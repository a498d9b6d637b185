import pytest
import numpy as np
import pandas as pd

from garch.errors import MisalignedSeries
from strategy.metrics import rolling_realized_volatility, sharpe_ratio, static_benchmark_returns
from strategy.rebalancer import VolatilityTargetedRebalancer

DATES = pd.bdate_range('2021-03-01', periods=5)


@pytest.fixture
def rebalancer():
    return VolatilityTargetedRebalancer(riskfree_lookback=3)


@pytest.fixture
def returns():
    risky = pd.Series([0.01, -0.02, 0.015, 0.005, -0.01], index=DATES)
    riskfree = pd.Series([0.001, 0.0005, 0.0002, 0.001, 0.0008], index=DATES)
    return risky, riskfree


def test_inverse_variance_weights(rebalancer, returns):
    """sigma_risky = 0.01 and sigma_riskfree = 0.02 give 0.8 / 0.2"""
    risky, riskfree = returns
    states = rebalancer.rebalance(pd.Series(0.01, index=DATES), pd.Series(0.02, index=DATES),
                                  risky, riskfree)

    assert len(states) == 5
    for state, r, rf in zip(states, risky, riskfree):
        assert state.weight_risky == pytest.approx(0.8)
        assert state.weight_riskfree == pytest.approx(0.2)
        assert state.realized_return == pytest.approx(0.8 * r + 0.2 * rf)


def test_weights_sum_to_one_without_clipping(rebalancer, returns):
    risky, riskfree = returns
    risky_vol = pd.Series([0.001, 0.01, 0.05, 0.2, 0.02], index=DATES)
    riskfree_vol = pd.Series([0.0001, 0.02, 0.001, 0.01, 0.02], index=DATES)
    states = rebalancer.rebalance(risky_vol, riskfree_vol, risky, riskfree)

    for state in states:
        assert state.weight_risky + state.weight_riskfree == pytest.approx(1.0, abs=1e-15)
    assert states[0].weight_risky == pytest.approx(0.01 / 1.01)


def test_inner_join_on_dates(rebalancer, returns):
    risky, riskfree = returns
    states = rebalancer.rebalance(pd.Series(0.01, index=DATES[1:]), pd.Series(0.02, index=DATES[:4]),
                                  risky, riskfree)
    assert [s.date for s in states] == list(DATES[1:4])


def test_non_positive_volatility_raises(rebalancer, returns):
    risky, riskfree = returns
    with pytest.raises(ValueError):
        rebalancer.rebalance(pd.Series([0.01, 0.0, 0.01, 0.01, 0.01], index=DATES),
                             pd.Series(0.02, index=DATES), risky, riskfree)


def test_no_common_dates(rebalancer, returns):
    risky, riskfree = returns
    later = pd.bdate_range('2022-01-03', periods=5)
    with pytest.raises(MisalignedSeries):
        rebalancer.rebalance(pd.Series(0.01, index=later), pd.Series(0.02, index=DATES),
                             risky, riskfree)


def test_riskfree_volatility_is_lagged(rebalancer, returns):
    _, riskfree = returns
    vol = rebalancer.riskfree_volatility(riskfree)

    # First estimate uses the first three returns and is applied on the fourth date
    assert vol.index[0] == DATES[3]
    assert vol.iloc[0] == pytest.approx(np.std(riskfree.iloc[:3], ddof=1))
    assert len(vol) == 2


def test_to_dataframe(rebalancer, returns):
    risky, riskfree = returns
    states = rebalancer.rebalance(pd.Series(0.01, index=DATES), pd.Series(0.02, index=DATES),
                                  risky, riskfree)
    table = VolatilityTargetedRebalancer.to_dataframe(states)
    assert list(table.columns) == ['date', 'weight_risky', 'weight_riskfree', 'realized_return']
    assert len(table) == 5


def test_rolling_realized_volatility():
    returns = pd.Series(np.arange(10, dtype=float), index=pd.bdate_range('2020-01-01', periods=10))
    vol = rolling_realized_volatility(returns, lookback=4)
    assert len(vol) == 7
    assert vol.iloc[0] == pytest.approx(np.std([0, 1, 2, 3], ddof=1))
    with pytest.raises(ValueError):
        rolling_realized_volatility(returns, lookback=1)


def test_sharpe_ratio():
    values = [0.01, -0.005, 0.02, 0.0]
    assert sharpe_ratio(values) == pytest.approx(np.mean(values) / np.std(values, ddof=1))
    assert np.isnan(sharpe_ratio([0.5, 0.5, 0.5]))
    with pytest.raises(ValueError):
        sharpe_ratio([0.01])


def test_static_benchmark(returns):
    risky, riskfree = returns
    benchmark = static_benchmark_returns(risky, riskfree)
    np.testing.assert_allclose(benchmark, 0.6 * risky + 0.4 * riskfree)
    with pytest.raises(ValueError):
        static_benchmark_returns(risky, riskfree, weight_risky=1.5)
