"""
GARCH modeling package for volatility forecasting.
Implements GARCH(1,1) estimation under several innovation distributions,
walk-forward forecasting and distribution comparison.
"""

from .distributions import DistributionKind, get_distribution, parse_kinds
from .errors import (GARCHError, FitError, InsufficientHistory, NonConvergent,
                     InvalidParameters, UnknownDistribution, MisalignedSeries)
from .models import GARCHParameters, ConditionalVariancePath, FitResult, ForecastRecord
from .variance import conditional_variance_path, one_step_ahead_variance
from .estimator import GARCHEstimator
from .forecaster import GARCHForecaster
from .comparator import AccuracyTally, ComparisonResult, DistributionComparator

__all__ = [
    'DistributionKind', 'get_distribution', 'parse_kinds',
    'GARCHError', 'FitError', 'InsufficientHistory', 'NonConvergent',
    'InvalidParameters', 'UnknownDistribution', 'MisalignedSeries',
    'GARCHParameters', 'ConditionalVariancePath', 'FitResult', 'ForecastRecord',
    'conditional_variance_path', 'one_step_ahead_variance',
    'GARCHEstimator', 'GARCHForecaster',
    'AccuracyTally', 'ComparisonResult', 'DistributionComparator',
]
