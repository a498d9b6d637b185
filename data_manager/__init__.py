"""
Data management package for the volatility backtest.
Handles data loading, validation, and result storage.
"""

from .data_loader import DataLoader, MarketData, align_inputs
from .data_validator import DataValidator
from .database import ResultsDatabase

__all__ = ['DataLoader', 'MarketData', 'align_inputs', 'DataValidator', 'ResultsDatabase']
