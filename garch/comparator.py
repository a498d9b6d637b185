"""Score forecast sequences of several distributions against realized volatility."""

from typing import Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple, Union
import logging
import numpy as np
import pandas as pd
import statsmodels.api as sm

from .distributions import DistributionKind, parse_kinds
from .errors import MisalignedSeries
from .models import ForecastRecord


class AccuracyTally:
    """Hit count per distribution kind"""

    def __init__(self, kinds: Optional[Sequence[DistributionKind]] = None):
        self.counts: Dict[DistributionKind, int] = {k: 0 for k in parse_kinds(kinds)}

    def increment(self, kind: DistributionKind):
        kind = DistributionKind.parse(kind)
        if kind not in self.counts:
            raise KeyError(f"{kind.value} is not tallied")
        self.counts[kind] += 1

    def __getitem__(self, kind) -> int:
        return self.counts[DistributionKind.parse(kind)]

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    @property
    def best(self) -> DistributionKind:
        """Kind with the most wins; ties go to the lower enumeration index"""
        return min(self.counts, key=lambda k: (-self.counts[k], k.order))

    def as_series(self) -> pd.Series:
        return pd.Series(
            {k.value: v for k, v in self.counts.items()},
            name='wins', dtype=int
        )

    def __repr__(self) -> str:
        inner = ', '.join(f"{k.value}={v}" for k, v in self.counts.items())
        return f"AccuracyTally({inner})"


class ComparisonResult(NamedTuple):
    per_step_best: pd.Series
    tally: AccuracyTally


RealizedInput = Union[pd.Series, Iterable[Tuple[object, float]]]


class DistributionComparator:
    def __init__(self, kinds: Optional[Sequence[Union[str, DistributionKind]]] = None):
        """
        Initialize comparator

        Args:
            kinds: Kinds to score; defaults to every kind present in the forecasts
        """
        self.kinds = parse_kinds(kinds) if kinds is not None else None
        self.logger = logging.getLogger('garch.comparator')

    def compare(self, forecasts_by_kind: Dict[DistributionKind, List[ForecastRecord]],
                realized: RealizedInput) -> ComparisonResult:
        """Pick the kind closest to realized volatility on each common date

        Raises:
            MisalignedSeries: no date is shared by every forecast sequence and the realized series
        """
        aligned = self.align(forecasts_by_kind, realized)
        kinds = [DistributionKind.parse(c) for c in aligned.columns if c != 'realized']

        errors = aligned[[k.value for k in kinds]].sub(aligned['realized'], axis=0).abs()
        errors_arr = errors.to_numpy()
        tally = AccuracyTally(kinds)
        winners = []
        for row in errors_arr:
            # Columns are in enumeration order; strict < keeps the earlier kind on ties
            best = 0
            for j in range(1, len(kinds)):
                if row[j] < row[best]:
                    best = j
            tally.increment(kinds[best])
            winners.append(kinds[best])

        per_step_best = pd.Series(winners, index=aligned.index, name='best_distribution')

        self.logger.info(
            f"Compared {len(kinds)} distributions over {len(aligned)} dates: {tally}, "
            f"best={tally.best.value}"
        )
        return ComparisonResult(per_step_best=per_step_best, tally=tally)

    def align(self, forecasts_by_kind: Dict[DistributionKind, List[ForecastRecord]],
              realized: RealizedInput) -> pd.DataFrame:
        """Inner-join forecasts (by target date) and realized volatility

        One column per kind in enumeration order plus ``realized``.
        """
        if not forecasts_by_kind:
            raise ValueError("No forecasts to compare")

        parsed = {DistributionKind.parse(k): v for k, v in forecasts_by_kind.items()}
        kinds = self.kinds if self.kinds is not None else parse_kinds(list(parsed))
        missing = [k.value for k in kinds if k not in parsed]
        if missing:
            raise ValueError(f"No forecasts supplied for {missing}")

        columns = {k.value: self._forecast_series(parsed[k]) for k in kinds}
        columns['realized'] = self._realized_series(realized)

        aligned = pd.concat(columns, axis=1, join='inner').dropna().sort_index()
        if aligned.empty:
            raise MisalignedSeries("Forecasts and realized volatility share no dates")

        dropped = max(len(s) for s in columns.values()) - len(aligned)
        if dropped > 0:
            self.logger.debug(f"Dropped {dropped} dates not common to every input")
        return aligned

    def accuracy_table(self, forecasts_by_kind: Dict[DistributionKind, List[ForecastRecord]],
                       realized: RealizedInput) -> pd.DataFrame:
        """Loss metrics and Mincer-Zarnowitz regression per kind over the common dates"""
        aligned = self.align(forecasts_by_kind, realized)
        tally = self.compare(forecasts_by_kind, realized).tally
        actual = aligned['realized']

        rows = []
        for column in aligned.columns.drop('realized'):
            forecast = aligned[column]
            error = forecast - actual
            row = {
                'distribution': column,
                'n_obs': len(forecast),
                'mae': float(error.abs().mean()),
                'rmse': float(np.sqrt((error ** 2).mean())),
                'qlike': self._qlike(forecast, actual),
                'wins': tally[column]
            }
            row.update(self._mincer_zarnowitz(forecast, actual))
            rows.append(row)

        return pd.DataFrame(rows).set_index('distribution')

    @staticmethod
    def _qlike(forecast: pd.Series, actual: pd.Series) -> float:
        """QLIKE loss on variances; NaN when a realized value is zero"""
        h = forecast.to_numpy() ** 2
        rv = actual.to_numpy() ** 2
        if np.any(rv <= 0):
            return float('nan')
        ratio = rv / h
        return float(np.mean(ratio - np.log(ratio) - 1.0))

    def _mincer_zarnowitz(self, forecast: pd.Series, actual: pd.Series) -> Dict[str, float]:
        """OLS of realized on forecast: unbiased forecasts give intercept 0, slope 1"""
        if len(forecast) < 3 or np.ptp(forecast.to_numpy()) == 0:
            return {'mz_intercept': np.nan, 'mz_slope': np.nan, 'mz_r_squared': np.nan}

        X = sm.add_constant(forecast.to_numpy())
        results = sm.OLS(actual.to_numpy(), X).fit()
        return {
            'mz_intercept': float(results.params[0]),
            'mz_slope': float(results.params[1]),
            'mz_r_squared': float(results.rsquared)
        }

    @staticmethod
    def _forecast_series(records: Sequence[ForecastRecord]) -> pd.Series:
        pairs = [(r.target_date, r.predicted_volatility) for r in records
                 if not r.is_missing and r.target_date is not None]
        if not pairs:
            return pd.Series(dtype=float)
        dates, values = zip(*pairs)
        return pd.Series(values, index=pd.DatetimeIndex(dates), dtype=float)

    @staticmethod
    def _realized_series(realized: RealizedInput) -> pd.Series:
        if isinstance(realized, pd.Series):
            series = realized.astype(float)
            series.index = pd.DatetimeIndex(series.index)
            return series
        pairs = list(realized)
        if not pairs:
            return pd.Series(dtype=float)
        dates, values = zip(*pairs)
        return pd.Series(values, index=pd.DatetimeIndex(dates), dtype=float)
