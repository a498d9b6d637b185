"""Utility functions and classes for the volatility backtest"""

from .progress import ProgressMonitor
from .visualization import VolatilityVisualizer

__all__ = ['ProgressMonitor', 'VolatilityVisualizer']
