"""
Market data loading and alignment for the volatility backtest.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union
import numpy as np
import pandas as pd

from garch.errors import MisalignedSeries
from models import ReturnSeries
from data_manager.data_validator import DataValidator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MarketData:
    """Date-aligned backtest inputs"""
    risky: ReturnSeries
    riskfree: ReturnSeries
    realized: pd.Series

    def __len__(self) -> int:
        return len(self.risky)

    @property
    def dates(self) -> pd.DatetimeIndex:
        return self.risky.dates

    def between(self, start=None, end=None) -> 'MarketData':
        risky = self.risky.between(start, end)
        return MarketData(
            risky=risky,
            riskfree=self.riskfree.between(start, end),
            realized=self.realized.reindex(risky.dates)
        )


def align_inputs(risky: pd.Series, riskfree: pd.Series, realized: pd.Series) -> MarketData:
    """Inner-join the three inputs on date and drop rows missing any field

    Raises:
        MisalignedSeries: nothing is left after the join
    """
    joined = pd.concat({
        'risky': risky,
        'riskfree': riskfree,
        'realized': realized
    }, axis=1, join='inner')
    n_joined = len(joined)
    joined = joined.replace([np.inf, -np.inf], np.nan).dropna().sort_index()

    if joined.empty:
        raise MisalignedSeries("Risky returns, risk-free returns and realized volatility share no dates")
    if n_joined > len(joined):
        logger.warning(f"Dropped {n_joined - len(joined)} rows with missing or non-finite values")

    index = pd.DatetimeIndex(joined.index)
    return MarketData(
        risky=ReturnSeries(dates=index, values=joined['risky'].to_numpy(), name='risky'),
        riskfree=ReturnSeries(dates=index, values=joined['riskfree'].to_numpy(), name='riskfree'),
        realized=pd.Series(joined['realized'].to_numpy(), index=index, name='realized')
    )


class DataLoader:
    def __init__(self, date_column: str = 'date',
                 risky_column: str = 'risky',
                 riskfree_column: str = 'riskfree',
                 realized_column: str = 'realized_vol',
                 prices: bool = False,
                 validate: bool = True):
        """
        Initialize data loader

        Args:
            date_column: Column holding the observation date
            risky_column: Risky asset column (log returns, or prices when prices=True)
            riskfree_column: Risk-free asset column (log returns, or prices when prices=True)
            realized_column: Realized volatility proxy for the risky asset
            prices: Convert the two asset columns from price levels to log returns
            validate: Run DataValidator on the loaded returns and log any issues
        """
        self.date_column = date_column
        self.risky_column = risky_column
        self.riskfree_column = riskfree_column
        self.realized_column = realized_column
        self.prices = prices
        self.validate = validate
        self.validator = DataValidator()
        self.logger = logging.getLogger('data_manager.loader')

    def load_csv(self, file_path: Union[str, Path]) -> MarketData:
        """Load backtest inputs from a CSV file"""
        df = pd.read_csv(file_path)
        missing = [c for c in (self.date_column, self.risky_column,
                               self.riskfree_column, self.realized_column)
                   if c not in df.columns]
        if missing:
            raise ValueError(f"Missing required columns in {file_path}: {missing}")

        df[self.date_column] = pd.to_datetime(df[self.date_column])
        df = df.set_index(self.date_column).sort_index()
        return self.load_frame(df, source=str(file_path))

    def load_frame(self, df: pd.DataFrame, source: str = 'frame') -> MarketData:
        """Build MarketData from a date-indexed frame with the configured columns"""
        risky = df[self.risky_column].astype(float)
        riskfree = df[self.riskfree_column].astype(float)
        if self.prices:
            risky = self._log_returns(risky)
            riskfree = self._log_returns(riskfree)

        if self.validate:
            for name, series in (('risky', risky), ('riskfree', riskfree)):
                is_valid, issues = self.validator.validate_returns(series)
                for issue in issues:
                    self.logger.warning(f"{source} {name}: {issue}")

        data = align_inputs(risky, riskfree, df[self.realized_column].astype(float))
        self._log_data_quality_summary(data, source)
        return data

    @staticmethod
    def _log_returns(prices: pd.Series) -> pd.Series:
        if (prices.dropna() <= 0).any():
            raise ValueError(f"Non-positive prices in {prices.name}")
        return np.log(prices).diff()

    def _log_data_quality_summary(self, data: MarketData, source: str):
        self.logger.info(
            f"\nLoaded {source}:"
            f"\n  Observations: {len(data):,}"
            f"\n  Date range: {data.dates[0]:%Y-%m-%d} to {data.dates[-1]:%Y-%m-%d}"
            f"\n  Risky return std: {np.std(data.risky.values, ddof=1):.6f}"
            f"\n  Risk-free return std: {np.std(data.riskfree.values, ddof=1):.6f}"
            f"\n  Mean realized volatility: {data.realized.mean():.6f}"
        )
