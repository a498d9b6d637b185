"""Performance and risk measures for the backtest."""

import numpy as np
import pandas as pd

from garch.errors import MisalignedSeries


def rolling_realized_volatility(returns: pd.Series, lookback: int = 50) -> pd.Series:
    """Trailing sample standard deviation (ddof=1) over ``lookback`` observations

    The value on date t uses returns up to and including t; the first
    ``lookback - 1`` dates are dropped.
    """
    if lookback < 2:
        raise ValueError(f"lookback must be at least 2, got {lookback}")
    vol = returns.rolling(window=lookback, min_periods=lookback).std(ddof=1)
    return vol.dropna().rename('realized_volatility')


def sharpe_ratio(returns) -> float:
    """Mean over standard deviation (ddof=1) of a return series, unannualized"""
    values = np.asarray(returns, dtype=float)
    values = values[np.isfinite(values)]
    if values.size < 2:
        raise ValueError("Need at least 2 returns for a Sharpe ratio")
    std = np.std(values, ddof=1)
    if std == 0:
        return float('nan')
    return float(np.mean(values) / std)


def static_benchmark_returns(risky: pd.Series, riskfree: pd.Series,
                             weight_risky: float = 0.6) -> pd.Series:
    """Fixed-weight combination of the two assets on their common dates"""
    if not 0 <= weight_risky <= 1:
        raise ValueError(f"weight_risky must be in [0, 1], got {weight_risky}")
    joined = pd.concat({'risky': risky, 'riskfree': riskfree}, axis=1, join='inner').dropna()
    if joined.empty:
        raise MisalignedSeries("Risky and risk-free returns share no dates")
    combined = weight_risky * joined['risky'] + (1.0 - weight_risky) * joined['riskfree']
    return combined.rename('benchmark_return')
