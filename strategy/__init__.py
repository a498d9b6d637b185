"""
Portfolio strategy package.
Volatility-targeted two-asset allocation and performance metrics.
"""

from .rebalancer import VolatilityTargetedRebalancer
from .metrics import rolling_realized_volatility, sharpe_ratio, static_benchmark_returns

__all__ = ['VolatilityTargetedRebalancer', 'rolling_realized_volatility',
           'sharpe_ratio', 'static_benchmark_returns']
