from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional
import pandas as pd

from garch.distributions import DistributionKind, parse_kinds


@dataclass
class BacktestConfig:
    """Parameters of one walk-forward backtest run"""
    window_size: int = 126
    horizon: int = 1
    riskfree_lookback: int = 50
    start: Optional[str] = None
    end: Optional[str] = None
    distributions: List[DistributionKind] = field(default_factory=lambda: list(DistributionKind))
    strict: bool = False
    n_jobs: int = 1
    benchmark_weight: float = 0.6
    max_iter: int = 500
    time_budget: Optional[float] = None
    variance_seed: str = 'sample'
    checkpoint_dir: Optional[Path] = None
    db_path: Optional[Path] = None

    def __post_init__(self):
        if self.window_size < 2:
            raise ValueError(f"window_size must be at least 2, got {self.window_size}")
        if self.horizon != 1:
            raise ValueError(f"Only one-step-ahead forecasts are supported, got horizon={self.horizon}")
        if self.riskfree_lookback < 2:
            raise ValueError(f"riskfree_lookback must be at least 2, got {self.riskfree_lookback}")
        if not 0 <= self.benchmark_weight <= 1:
            raise ValueError(f"benchmark_weight must be in [0, 1], got {self.benchmark_weight}")
        if self.n_jobs < 1:
            raise ValueError(f"n_jobs must be positive, got {self.n_jobs}")
        if self.max_iter < 1:
            raise ValueError(f"max_iter must be positive, got {self.max_iter}")
        if self.time_budget is not None and self.time_budget <= 0:
            raise ValueError(f"time_budget must be positive, got {self.time_budget}")
        if self.variance_seed not in ('sample', 'unconditional'):
            raise ValueError(f"Unknown variance seed policy: {self.variance_seed}")
        if self.start is not None and self.end is not None:
            if pd.Timestamp(self.start) > pd.Timestamp(self.end):
                raise ValueError(f"start {self.start} is after end {self.end}")

        self.distributions = parse_kinds(self.distributions)
        if self.checkpoint_dir is not None:
            self.checkpoint_dir = Path(self.checkpoint_dir)
        if self.db_path is not None:
            self.db_path = Path(self.db_path)

    @classmethod
    def from_dict(cls, values: Mapping[str, Any]) -> 'BacktestConfig':
        """Build from a mapping, ignoring keys that are not config fields and None values"""
        names = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in values.items() if k in names and v is not None}
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-serialisable view of the config"""
        out = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name == 'distributions':
                value = [k.value for k in value]
            elif isinstance(value, Path):
                value = str(value)
            out[f.name] = value
        return out
