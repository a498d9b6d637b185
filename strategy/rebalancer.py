from typing import List
import logging
import numpy as np
import pandas as pd

from garch.errors import MisalignedSeries
from models import PortfolioState
from .metrics import rolling_realized_volatility


class VolatilityTargetedRebalancer:
    """Inverse-variance allocation between a risky and a risk-free asset

    With c = 1 / (1/s1^2 + 1/s2^2) the risky weight is c / s1^2 and the
    risk-free weight is its complement. Weights are not clipped.
    """

    def __init__(self, riskfree_lookback: int = 50):
        """
        Initialize rebalancer

        Args:
            riskfree_lookback: Trailing window for the risk-free realized volatility
        """
        if riskfree_lookback < 2:
            raise ValueError(f"riskfree_lookback must be at least 2, got {riskfree_lookback}")
        self.riskfree_lookback = riskfree_lookback
        self.logger = logging.getLogger('strategy.rebalancer')

    @staticmethod
    def risky_weight(risky_vol: float, riskfree_vol: float) -> float:
        if not (np.isfinite(risky_vol) and np.isfinite(riskfree_vol)):
            raise ValueError(f"Volatilities must be finite, got {risky_vol}, {riskfree_vol}")
        if risky_vol <= 0 or riskfree_vol <= 0:
            raise ValueError(f"Volatilities must be positive, got {risky_vol}, {riskfree_vol}")
        inv_risky = 1.0 / risky_vol ** 2
        inv_riskfree = 1.0 / riskfree_vol ** 2
        c = 1.0 / (inv_risky + inv_riskfree)
        return c * inv_risky

    def riskfree_volatility(self, riskfree_returns: pd.Series) -> pd.Series:
        """Risk-free volatility known at the close of the previous date, keyed by the date it is used"""
        vol = rolling_realized_volatility(riskfree_returns, self.riskfree_lookback)
        next_dates = riskfree_returns.index[1:]
        lagged = pd.Series(vol.reindex(riskfree_returns.index[:-1]).to_numpy(),
                           index=next_dates, name='riskfree_volatility')
        return lagged.dropna()

    def rebalance(self, risky_vol: pd.Series, riskfree_vol: pd.Series,
                  risky_returns: pd.Series, riskfree_returns: pd.Series) -> List[PortfolioState]:
        """One portfolio state per date common to all four date-keyed inputs

        Raises:
            MisalignedSeries: inputs share no dates
            ValueError: a volatility input is non-positive or non-finite
        """
        joined = pd.concat({
            'risky_vol': risky_vol,
            'riskfree_vol': riskfree_vol,
            'risky_return': risky_returns,
            'riskfree_return': riskfree_returns
        }, axis=1, join='inner').dropna().sort_index()

        if joined.empty:
            raise MisalignedSeries("Volatility and return inputs share no dates")

        states = [
            PortfolioState.from_risky_weight(
                date=date,
                weight_risky=self.risky_weight(row.risky_vol, row.riskfree_vol),
                risky_return=row.risky_return,
                riskfree_return=row.riskfree_return
            )
            for date, row in zip(joined.index, joined.itertuples(index=False))
        ]

        weights = np.array([s.weight_risky for s in states])
        self.logger.info(
            f"Rebalanced {len(states)} days from {joined.index[0]:%Y-%m-%d} "
            f"to {joined.index[-1]:%Y-%m-%d}: mean risky weight {weights.mean():.3f} "
            f"(min {weights.min():.3f}, max {weights.max():.3f})"
        )
        return states

    @staticmethod
    def to_dataframe(states: List[PortfolioState]) -> pd.DataFrame:
        """Backtest table with one row per date"""
        columns = ['date', 'weight_risky', 'weight_riskfree', 'realized_return']
        if not states:
            return pd.DataFrame(columns=columns)
        return pd.DataFrame([
            {
                'date': s.date,
                'weight_risky': s.weight_risky,
                'weight_riskfree': s.weight_riskfree,
                'realized_return': s.realized_return
            }
            for s in states
        ], columns=columns)
