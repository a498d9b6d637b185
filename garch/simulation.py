"""Synthetic GARCH(1,1) paths for tests and demonstrations."""

from typing import Mapping, Optional, Union
import numpy as np
import pandas as pd
from arch.univariate import ConstantMean, GARCH

from models import ReturnSeries
from .distributions import DistributionKind, get_distribution
from .models import GARCHParameters

# Kinds with an arch innovation simulator
SIMULATED_KINDS = (
    DistributionKind.NORMAL,
    DistributionKind.STUDENT_T,
    DistributionKind.SKEW_STUDENT_T,
)


def simulate_garch(n: int, mu: float = 0.0, omega: float = 1e-6,
                   alpha: float = 0.08, beta: float = 0.9,
                   kind: Union[str, DistributionKind] = DistributionKind.NORMAL,
                   shape: Optional[Mapping[str, float]] = None,
                   seed: Optional[int] = None,
                   burn: int = 500,
                   start: str = '2000-01-03') -> pd.DataFrame:
    """Simulate a constant-mean GARCH(1,1) path on business days

    Innovations come from arch, so only normal, Student-t and skew-t paths
    can be simulated; skew-normal is rejected with a ValueError.

    Returns:
        DataFrame indexed by date with ``returns`` and the true conditional ``volatility``
    """
    if n < 1:
        raise ValueError(f"n must be positive, got {n}")

    kind = DistributionKind.parse(kind)
    if kind not in SIMULATED_KINDS:
        raise ValueError(
            f"Cannot simulate {kind.value} innovations, "
            f"supported: {[k.value for k in SIMULATED_KINDS]}"
        )

    # Validates the parameter invariant before simulating
    GARCHParameters(mu=mu, omega=omega, alpha=alpha, beta=beta, shape=dict(shape or {}))

    dist = get_distribution(kind)
    shape = dict(shape or {})
    unknown = set(shape) - set(dist.shape_names)
    if unknown:
        raise ValueError(f"Unknown shape parameters for {kind.value}: {sorted(unknown)}")
    shape_values = [shape.get(p.name, p.neutral) for p in dist.shape_parameters]

    model = ConstantMean(None, volatility=GARCH(p=1, q=1),
                         distribution=dist.arch_distribution(seed))
    params = np.array([mu, omega, alpha, beta] + shape_values, dtype=float)
    sim = model.simulate(params, n, burn=burn)

    index = pd.bdate_range(start=start, periods=n)
    return pd.DataFrame({
        'returns': sim['data'].to_numpy(),
        'volatility': sim['volatility'].to_numpy()
    }, index=index)


def simulated_series(frame: pd.DataFrame, name: str = 'simulated') -> ReturnSeries:
    """ReturnSeries view of a simulate_garch() frame"""
    return ReturnSeries(dates=frame.index, values=frame['returns'].to_numpy(), name=name)
