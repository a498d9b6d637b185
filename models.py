"""Common data models used across the project."""

from dataclasses import dataclass
from datetime import datetime
import numpy as np
import pandas as pd
from typing import Optional, Union


@dataclass(frozen=True, eq=False)
class ReturnSeries:
    """Ordered, immutable sequence of (date, log-return) pairs"""
    dates: pd.DatetimeIndex
    values: np.ndarray
    name: str = 'returns'

    def __post_init__(self):
        dates = pd.DatetimeIndex(self.dates)
        values = np.array(self.values, dtype=float).ravel()

        if len(dates) != len(values):
            raise ValueError(
                f"Length mismatch: {len(dates)} dates vs {len(values)} returns"
            )
        if not dates.is_unique:
            raise ValueError(f"Duplicate dates in {self.name}")
        if not dates.is_monotonic_increasing:
            raise ValueError(f"Dates in {self.name} must be strictly increasing")
        if not np.all(np.isfinite(values)):
            raise ValueError(f"Non-finite returns in {self.name}")

        values.setflags(write=False)
        object.__setattr__(self, 'dates', dates)
        object.__setattr__(self, 'values', values)

    @classmethod
    def from_series(cls, series: pd.Series, name: Optional[str] = None) -> 'ReturnSeries':
        """Build from a date-indexed pandas Series (missing values are dropped)"""
        series = series.dropna()
        return cls(
            dates=pd.DatetimeIndex(series.index),
            values=series.to_numpy(dtype=float),
            name=name or (str(series.name) if series.name is not None else 'returns')
        )

    def to_series(self) -> pd.Series:
        return pd.Series(self.values, index=self.dates, name=self.name)

    def __len__(self) -> int:
        return len(self.values)

    def window(self, end: int, size: int) -> 'ReturnSeries':
        """Trailing window of ``size`` observations ending at position ``end`` (inclusive)"""
        start = end - size + 1
        if start < 0 or end >= len(self):
            raise IndexError(
                f"Window [{start}, {end}] outside series of length {len(self)}"
            )
        return ReturnSeries(
            dates=self.dates[start:end + 1],
            values=self.values[start:end + 1],
            name=self.name
        )

    def between(self, start: Optional[Union[str, datetime]] = None,
                end: Optional[Union[str, datetime]] = None) -> 'ReturnSeries':
        """Sub-series restricted to [start, end]"""
        mask = np.ones(len(self), dtype=bool)
        if start is not None:
            mask &= self.dates >= pd.Timestamp(start)
        if end is not None:
            mask &= self.dates <= pd.Timestamp(end)
        return ReturnSeries(dates=self.dates[mask], values=self.values[mask], name=self.name)


@dataclass(frozen=True)
class PortfolioState:
    """Two-asset allocation for one day and the return it realized"""
    date: datetime
    weight_risky: float
    weight_riskfree: float
    realized_return: float

    @classmethod
    def from_risky_weight(cls, date: datetime, weight_risky: float,
                          risky_return: float, riskfree_return: float) -> 'PortfolioState':
        """Full-investment state: the risk-free weight is the exact complement"""
        weight_riskfree = 1.0 - weight_risky
        return cls(
            date=date,
            weight_risky=float(weight_risky),
            weight_riskfree=float(weight_riskfree),
            realized_return=float(weight_risky * risky_return + weight_riskfree * riskfree_return)
        )
