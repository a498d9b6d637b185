"""
Validation of daily log-return series before they enter the backtest.
"""

import pandas as pd
import numpy as np
from typing import List, Tuple


class DataValidator:
    """Validates date-indexed return series."""

    def __init__(self, max_abs_return: float = 1.0):
        # A daily log return beyond this is treated as a data error
        self.max_abs_return = max_abs_return

    def validate_returns(self, series: pd.Series) -> Tuple[bool, List[str]]:
        """
        Validates a return series.

        Args:
            series: Returns indexed by date

        Returns:
            Tuple of (is_valid, list_of_issues)
        """
        issues = []
        name = series.name if series.name is not None else 'returns'

        try:
            dates = pd.DatetimeIndex(series.index)
        except (TypeError, ValueError):
            return False, [f"{name}: index is not a date index"]

        duplicates = dates[dates.duplicated()]
        if len(duplicates):
            issues.append(
                f"{name}: {len(duplicates)} duplicate dates "
                f"(first at {duplicates[0]:%Y-%m-%d})"
            )

        if not dates.is_monotonic_increasing:
            issues.append(f"{name}: dates are not in increasing order")

        # The first return of a price-derived series is always missing
        missing_count = int(series.iloc[1:].isna().sum())
        if missing_count > 0:
            issues.append(f"{name}: {missing_count} missing values")

        values = series.to_numpy(dtype=float)
        n_inf = int(np.isinf(values).sum())
        if n_inf:
            issues.append(f"{name}: {n_inf} infinite values")

        issues.extend(self._validate_bounds(series, -self.max_abs_return,
                                            self.max_abs_return, str(name)))
        return len(issues) == 0, issues

    def _validate_bounds(self, series: pd.Series, min_val: float, max_val: float, name: str) -> List[str]:
        """Validates that values fall within expected bounds."""
        issues = []

        below_min = series[series < min_val]
        if not below_min.empty:
            issues.append(
                f"{name}: {len(below_min)} values below minimum of {min_val} "
                f"(first occurrence at {below_min.index[0]})"
            )

        above_max = series[series > max_val]
        if not above_max.empty:
            issues.append(
                f"{name}: {len(above_max)} values above maximum of {max_val} "
                f"(first occurrence at {above_max.index[0]})"
            )

        return issues
