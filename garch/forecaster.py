from typing import Dict, List, Optional, Sequence, Union
import numpy as np
import pandas as pd
import logging
from concurrent.futures import ProcessPoolExecutor
from pathlib import Path

from models import ReturnSeries
from utils.progress import ProgressMonitor
from .checkpoint import CheckpointManager
from .distributions import DistributionKind, parse_kinds
from .errors import FitError, InsufficientHistory, NonConvergent
from .estimator import GARCHEstimator
from .models import ForecastRecord
from .variance import one_step_ahead_variance

# Recorded failure reason -> exception raised when a strict run meets it again
_FAILURES = {error.reason: error for error in (FitError, InsufficientHistory, NonConvergent)}


def _forecast_step(estimator: GARCHEstimator, series: ReturnSeries, end: int,
                   window_size: int, kind: DistributionKind) -> ForecastRecord:
    """Fit the window ending at ``end`` and forecast the next period.

    Fit errors propagate; the caller decides whether they are fatal.
    """
    window = series.window(end, window_size)
    target_date = series.dates[end + 1] if end + 1 < len(series) else None
    fit = estimator.fit(window, kind)
    variance = one_step_ahead_variance(fit.params, fit.path)
    return ForecastRecord(
        date=series.dates[end],
        distribution=kind,
        predicted_volatility=float(np.sqrt(variance)),
        target_date=target_date,
        params=fit.params
    )


def _forecast_chunk(estimator: GARCHEstimator, series: ReturnSeries, ends: List[int],
                    window_size: int, kind: DistributionKind, strict: bool) -> List[Union[ForecastRecord, FitError]]:
    """Worker entry point: forecasts for a block of step indices"""
    out = []
    for end in ends:
        try:
            out.append(_forecast_step(estimator, series, end, window_size, kind))
        except FitError as e:
            if strict:
                raise
            out.append(e)
    return out


class GARCHForecaster:
    """Walk-forward one-step-ahead volatility forecasts over a rolling window"""

    def __init__(self, estimator: Optional[GARCHEstimator] = None,
                 window_size: int = 126,
                 strict: bool = False,
                 n_jobs: int = 1,
                 checkpoint_dir: Optional[Path] = None,
                 show_progress: bool = False):
        """
        Initialize forecaster

        Args:
            estimator: Estimator used for every window (defaults to one requiring window_size observations)
            window_size: Number of observations in each fitting window
            strict: Abort the run on the first fit failure instead of recording a missing forecast
            n_jobs: Worker processes for the per-step fits
            checkpoint_dir: Directory for per-distribution forecast checkpoints
            show_progress: Display a progress bar over the walk-forward steps
        """
        if window_size < 2:
            raise ValueError(f"window_size must be at least 2, got {window_size}")
        if n_jobs < 1:
            raise ValueError(f"n_jobs must be positive, got {n_jobs}")

        self.window_size = window_size
        self.estimator = estimator or GARCHEstimator(min_observations=window_size)
        self.strict = strict
        self.n_jobs = n_jobs
        self.show_progress = show_progress
        self.checkpoints = CheckpointManager(Path(checkpoint_dir)) if checkpoint_dir else None
        self.logger = logging.getLogger('garch.forecaster')

    def n_steps(self, series: ReturnSeries) -> int:
        return len(series) - self.window_size + 1

    def roll_forecast(self, series: ReturnSeries,
                      kind: Union[str, DistributionKind]) -> List[ForecastRecord]:
        """One forecast record per walk-forward step, in ascending date order

        Raises:
            InsufficientHistory: series shorter than the window
            FitError: first fit failure, in strict mode only
        """
        kind = DistributionKind.parse(kind)
        if len(series) < self.window_size:
            raise InsufficientHistory(
                f"Series has {len(series)} observations, window needs {self.window_size}"
            )

        if self.checkpoints is not None:
            cached = self.checkpoints.load_forecasts(series, kind, self.window_size,
                                                     self.checkpoint_settings())
            if cached is not None:
                self.logger.info(f"Loaded {len(cached)} {kind.value} forecasts from checkpoint")
                if self.strict:
                    self._raise_recorded_failure(cached)
                return cached

        n_steps = self.n_steps(series)
        ends = list(range(self.window_size - 1, len(series)))

        self.logger.info(
            f"\nRolling forecast setup ({kind.value}):"
            f"\n  Total observations: {len(series)}"
            f"\n  Window size: {self.window_size}"
            f"\n  Number of steps: {n_steps}"
            f"\n  First window: {series.dates[0]:%Y-%m-%d} to {series.dates[self.window_size - 1]:%Y-%m-%d}"
            f"\n  Last window: {series.dates[-self.window_size]:%Y-%m-%d} to {series.dates[-1]:%Y-%m-%d}"
        )

        # One slot per step, written exactly once
        slots: List[Optional[Union[ForecastRecord, FitError]]] = [None] * n_steps
        monitor = ProgressMonitor(total=n_steps, desc=f"{kind.value} forecasts",
                                  logger=self.logger, disable=not self.show_progress)
        try:
            if self.n_jobs == 1:
                for i, end in enumerate(ends):
                    slots[i] = _forecast_chunk(self.estimator, series, [end],
                                               self.window_size, kind, self.strict)[0]
                    monitor.update()
            else:
                # Contiguous blocks, so the first block that fails holds the earliest failure
                size = -(-len(ends) // self.n_jobs)
                chunks = [ends[i:i + size] for i in range(0, len(ends), size)]
                with ProcessPoolExecutor(max_workers=self.n_jobs) as executor:
                    futures = [
                        executor.submit(_forecast_chunk, self.estimator, series, chunk,
                                        self.window_size, kind, self.strict)
                        for chunk in chunks
                    ]
                    for chunk, future in zip(chunks, futures):
                        for end, outcome in zip(chunk, future.result()):
                            slots[end - self.window_size + 1] = outcome
                        monitor.update(len(chunk))
        finally:
            monitor.close()

        records = [self._to_record(outcome, series, end, kind)
                   for outcome, end in zip(slots, ends)]

        n_missing = sum(r.is_missing for r in records)
        if n_missing:
            self.logger.warning(f"{n_missing}/{n_steps} {kind.value} forecasts missing after fit failures")
        self.logger.info(f"Completed {n_steps - n_missing}/{n_steps} {kind.value} forecasts")

        if self.checkpoints is not None:
            self.checkpoints.save_forecasts(series, kind, self.window_size, records,
                                            self.checkpoint_settings())

        return records

    def checkpoint_settings(self) -> Dict[str, object]:
        """Everything besides the series that determines a forecast log"""
        return {'strict': self.strict, **self.estimator.settings()}

    def _raise_recorded_failure(self, records: Sequence[ForecastRecord]):
        for record in records:
            if record.is_missing:
                error = _FAILURES.get(record.failure, FitError)
                raise error(
                    f"Checkpointed {record.distribution.value} forecast for "
                    f"{record.date:%Y-%m-%d} failed: {record.failure}",
                    window_end=record.date
                )

    def roll_forecasts(self, series: ReturnSeries,
                       kinds: Optional[Sequence[Union[str, DistributionKind]]] = None
                       ) -> Dict[DistributionKind, List[ForecastRecord]]:
        """Forecast sequences for several distributions, keyed in enumeration order"""
        return {kind: self.roll_forecast(series, kind) for kind in parse_kinds(kinds)}

    def _to_record(self, outcome: Union[ForecastRecord, FitError], series: ReturnSeries,
                   end: int, kind: DistributionKind) -> ForecastRecord:
        if isinstance(outcome, ForecastRecord):
            return outcome
        self.logger.warning(
            f"No {kind.value} forecast for {series.dates[end]:%Y-%m-%d}: {outcome}"
        )
        return ForecastRecord(
            date=series.dates[end],
            distribution=kind,
            predicted_volatility=None,
            target_date=series.dates[end + 1] if end + 1 < len(series) else None,
            failure=outcome.reason
        )

    @staticmethod
    def to_dataframe(forecasts: Dict[DistributionKind, List[ForecastRecord]]) -> pd.DataFrame:
        """Forecast table with one row per (step, distribution)"""
        if not forecasts:
            raise ValueError("No forecasts available")

        records = []
        for kind, sequence in forecasts.items():
            for record in sequence:
                records.append({
                    'date': record.date,
                    'target_date': record.target_date,
                    'distribution': kind.value,
                    'predicted_volatility': (np.nan if record.is_missing
                                             else record.predicted_volatility),
                    'failure': record.failure
                })
        return pd.DataFrame(records)

    @staticmethod
    def to_series(records: Sequence[ForecastRecord], index: str = 'target_date') -> pd.Series:
        """Non-missing forecasts as a Series indexed by target or origin date"""
        if index not in ('date', 'target_date'):
            raise ValueError(f"index must be 'date' or 'target_date', got {index}")
        pairs = [(getattr(r, index), r.predicted_volatility) for r in records
                 if not r.is_missing and getattr(r, index) is not None]
        if not pairs:
            return pd.Series(dtype=float, name='predicted_volatility')
        dates, values = zip(*pairs)
        return pd.Series(values, index=pd.DatetimeIndex(dates), name='predicted_volatility')
