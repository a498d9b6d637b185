from dataclasses import dataclass, field
from datetime import datetime
import math
import numpy as np
from typing import Dict, Mapping, Optional

from .distributions import DistributionKind
from .errors import InvalidParameters


@dataclass(frozen=True)
class GARCHParameters:
    """Fitted GARCH(1,1) parameters with constant mean"""
    mu: float
    omega: float
    alpha: float
    beta: float
    shape: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self):
        values = (self.mu, self.omega, self.alpha, self.beta, *self.shape.values())
        if not all(math.isfinite(v) for v in values):
            raise InvalidParameters(f"Non-finite parameter in {self}")
        if self.omega <= 0:
            raise InvalidParameters(f"omega must be positive, got {self.omega}")
        if self.alpha < 0 or self.beta < 0:
            raise InvalidParameters(
                f"alpha and beta must be non-negative, got alpha={self.alpha}, beta={self.beta}"
            )
        if self.alpha + self.beta >= 1:
            raise InvalidParameters(
                f"Non-stationary parameters: alpha + beta = {self.alpha + self.beta:.6f}"
            )
        object.__setattr__(self, 'shape', dict(self.shape))

    @property
    def persistence(self) -> float:
        return self.alpha + self.beta

    @property
    def unconditional_variance(self) -> float:
        """Long-run variance omega / (1 - alpha - beta)"""
        return self.omega / (1.0 - self.persistence)

    def to_dict(self) -> Dict[str, float]:
        return {
            'mu': self.mu,
            'omega': self.omega,
            'alpha': self.alpha,
            'beta': self.beta,
            **self.shape
        }


@dataclass(frozen=True, eq=False)
class ConditionalVariancePath:
    """Conditional variances and residuals aligned 1:1 with a fitting window"""
    variance: np.ndarray
    residuals: np.ndarray

    def __post_init__(self):
        variance = np.array(self.variance, dtype=float)
        residuals = np.array(self.residuals, dtype=float)
        if variance.shape != residuals.shape:
            raise ValueError("Variance and residual paths must have the same length")
        variance.setflags(write=False)
        residuals.setflags(write=False)
        object.__setattr__(self, 'variance', variance)
        object.__setattr__(self, 'residuals', residuals)

    def __len__(self) -> int:
        return len(self.variance)

    @property
    def volatility(self) -> np.ndarray:
        return np.sqrt(self.variance)

    @property
    def standardized_residuals(self) -> np.ndarray:
        return self.residuals / np.sqrt(self.variance)

    @property
    def last_variance(self) -> float:
        return float(self.variance[-1])

    @property
    def last_residual(self) -> float:
        return float(self.residuals[-1])


@dataclass(frozen=True, eq=False)
class FitResult:
    """Container for a single-window maximum likelihood fit"""
    distribution: DistributionKind
    params: GARCHParameters
    path: ConditionalVariancePath
    log_likelihood: float
    n_obs: int
    n_iterations: int = 0
    retried: bool = False

    @property
    def n_params(self) -> int:
        return 4 + len(self.params.shape)

    @property
    def aic(self) -> float:
        return 2 * self.n_params - 2 * self.log_likelihood

    @property
    def bic(self) -> float:
        return self.n_params * np.log(self.n_obs) - 2 * self.log_likelihood


@dataclass(frozen=True)
class ForecastRecord:
    """One-step-ahead volatility forecast made at the close of ``date``"""
    date: datetime
    distribution: DistributionKind
    predicted_volatility: Optional[float]
    target_date: Optional[datetime] = None
    params: Optional[GARCHParameters] = None
    failure: Optional[str] = None

    @property
    def is_missing(self) -> bool:
        return self.predicted_volatility is None
