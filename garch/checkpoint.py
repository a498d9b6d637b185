from pathlib import Path
import hashlib
import json
import pickle
import logging
from typing import List, Mapping, Optional

from models import ReturnSeries
from .distributions import DistributionKind
from .models import ForecastRecord


class CheckpointManager:
    def __init__(self, checkpoint_dir: Path):
        self.checkpoint_dir = checkpoint_dir
        self.checkpoint_dir.mkdir(parents=True, exist_ok=True)
        self.logger = logging.getLogger('garch.checkpoint')

    @staticmethod
    def fingerprint(series: ReturnSeries) -> str:
        """Short hash of the dates and values of a series"""
        digest = hashlib.sha1()
        digest.update(series.dates.asi8.tobytes())
        digest.update(series.values.tobytes())
        return digest.hexdigest()[:16]

    @staticmethod
    def settings_key(settings: Optional[Mapping[str, object]]) -> str:
        """Short hash of the run settings that produced a forecast log"""
        payload = json.dumps(dict(settings or {}), sort_keys=True, default=str)
        return hashlib.sha1(payload.encode('utf-8')).hexdigest()[:12]

    def _checkpoint_file(self, series: ReturnSeries, kind: DistributionKind, window_size: int,
                         settings: Optional[Mapping[str, object]] = None) -> Path:
        return self.checkpoint_dir / (
            f"forecasts_{kind.value}_w{window_size}_{self.fingerprint(series)}"
            f"_{self.settings_key(settings)}.pkl"
        )

    def save_forecasts(self, series: ReturnSeries, kind: DistributionKind,
                       window_size: int, records: List[ForecastRecord],
                       settings: Optional[Mapping[str, object]] = None):
        """Save the forecast log of a completed rolling run"""
        checkpoint_file = self._checkpoint_file(series, kind, window_size, settings)
        with open(checkpoint_file, 'wb') as f:
            pickle.dump(records, f)
        self.logger.debug(f"Saved checkpoint {checkpoint_file.name}")

    def load_forecasts(self, series: ReturnSeries, kind: DistributionKind,
                       window_size: int,
                       settings: Optional[Mapping[str, object]] = None) -> Optional[List[ForecastRecord]]:
        """Load the forecast log if this exact run was checkpointed"""
        checkpoint_file = self._checkpoint_file(series, kind, window_size, settings)
        if checkpoint_file.exists():
            with open(checkpoint_file, 'rb') as f:
                return pickle.load(f)
        return None
