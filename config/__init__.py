"""Run configuration for the volatility backtest."""

from .settings import BacktestConfig

__all__ = ['BacktestConfig']
