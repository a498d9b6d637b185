from typing import Dict, Optional, Tuple, Union
import logging
import time
import numpy as np
from scipy.optimize import minimize

from models import ReturnSeries
from .distributions import DistributionKind, InnovationDistribution, get_distribution
from .errors import InsufficientHistory, InvalidParameters, NonConvergent
from .models import FitResult, GARCHParameters
from .variance import conditional_variance_path, sample_variance, variance_recursion

# Objective value returned for candidate vectors with an invalid variance path
_PENALTY = 1e10


class _AttemptFailed(Exception):
    """Single optimizer attempt did not produce a usable solution"""


class _BudgetExceeded(Exception):
    pass


class GARCHEstimator:
    """Maximum likelihood estimator for GARCH(1,1) with a constant mean"""

    def __init__(self, min_observations: int = 2,
                 max_iter: int = 500,
                 time_budget: Optional[float] = None,
                 stationarity_margin: float = 1e-3,
                 variance_seed: str = 'sample',
                 rescale: bool = True):
        """
        Initialize estimator

        Args:
            min_observations: Minimum window length accepted by fit()
            max_iter: Iteration budget per optimizer attempt
            time_budget: Optional wall-clock budget in seconds per optimizer attempt
            stationarity_margin: delta in the constraint alpha + beta <= 1 - delta
            variance_seed: 'sample' (window variance) or 'unconditional' (model variance)
            rescale: Fit percent returns when the data look like decimal returns
        """
        if min_observations < 2:
            raise ValueError(f"min_observations must be at least 2, got {min_observations}")
        if max_iter < 1:
            raise ValueError(f"max_iter must be positive, got {max_iter}")
        if not 0 < stationarity_margin < 1:
            raise ValueError(f"stationarity_margin must be in (0, 1), got {stationarity_margin}")
        if variance_seed not in ('sample', 'unconditional'):
            raise ValueError(f"Unknown variance seed policy: {variance_seed}")

        self.min_observations = min_observations
        self.max_iter = max_iter
        self.time_budget = time_budget
        self.stationarity_margin = stationarity_margin
        self.variance_seed = variance_seed
        self.rescale = rescale

        self.logger = logging.getLogger('garch.estimator')

    def settings(self) -> Dict[str, object]:
        """Settings that change the fitted parameters"""
        return {
            'min_observations': self.min_observations,
            'max_iter': self.max_iter,
            'time_budget': self.time_budget,
            'stationarity_margin': self.stationarity_margin,
            'variance_seed': self.variance_seed,
            'rescale': self.rescale,
        }

    def fit(self, window: Union[ReturnSeries, np.ndarray],
            kind: Union[str, DistributionKind]) -> FitResult:
        """Fit GARCH(1,1) to one window of returns

        Raises:
            UnknownDistribution: kind is not supported
            InsufficientHistory: window shorter than min_observations
            NonConvergent: optimizer failed on the initial guess and on the retry
        """
        kind = DistributionKind.parse(kind)
        dist = get_distribution(kind)
        returns, window_end = self._prepare_window(window)

        if returns.size < self.min_observations:
            raise InsufficientHistory(
                f"Window has {returns.size} observations, need at least {self.min_observations}",
                window_end=window_end
            )
        if sample_variance(returns) <= 0:
            raise NonConvergent("Window has zero variance", window_end=window_end)

        scale = self._scale_factor(returns)
        scaled = returns * scale
        x0 = self._get_starting_values(scaled, dist)

        retried = False
        try:
            x, n_iter = self._optimize(scaled, dist, x0)
        except _AttemptFailed as e:
            self.logger.debug(f"{kind.value} fit failed on initial guess ({e}), retrying")
            retried = True
            try:
                x, n_iter = self._optimize(scaled, dist, self._perturb(x0, scaled))
            except _AttemptFailed as retry_error:
                raise NonConvergent(
                    f"{kind.value} fit did not converge after retry: {retry_error}",
                    window_end=window_end
                ) from retry_error

        try:
            params = self._unscale(x, scale, dist)
            path = conditional_variance_path(params, returns, seed=self._seed(params, returns))
        except InvalidParameters as e:
            raise NonConvergent(
                f"{kind.value} fit produced invalid parameters: {e}", window_end=window_end
            ) from e

        log_likelihood = self._log_likelihood(path.residuals, path.variance, dist,
                                              list(params.shape.values()))

        self.logger.debug(
            f"Fitted {kind.value}: mu={params.mu:.6g} omega={params.omega:.6g} "
            f"alpha={params.alpha:.4f} beta={params.beta:.4f} "
            f"shape={params.shape} loglik={log_likelihood:.3f}"
        )

        return FitResult(
            distribution=kind,
            params=params,
            path=path,
            log_likelihood=float(log_likelihood),
            n_obs=int(returns.size),
            n_iterations=int(n_iter),
            retried=retried
        )

    def log_likelihood(self, params: GARCHParameters, returns: np.ndarray,
                       kind: Union[str, DistributionKind]) -> float:
        """Log-likelihood of ``returns`` under fixed parameters"""
        dist = get_distribution(kind)
        returns = np.asarray(returns, dtype=float)
        path = conditional_variance_path(params, returns, seed=self._seed(params, returns))
        shape = [params.shape[name] for name in dist.shape_names]
        return float(self._log_likelihood(path.residuals, path.variance, dist, shape))

    def _prepare_window(self, window) -> Tuple[np.ndarray, Optional[object]]:
        """Extract returns and the window end date"""
        if isinstance(window, ReturnSeries):
            end = window.dates[-1] if len(window) else None
            return np.asarray(window.values, dtype=float), end
        returns = np.asarray(window, dtype=float).ravel()
        if np.any(~np.isfinite(returns)):
            raise ValueError("Window contains missing or non-finite returns")
        return returns, None

    def _scale_factor(self, returns: np.ndarray) -> float:
        """Decimal returns are fitted in percent units"""
        if self.rescale and np.std(returns) < 0.1:
            return 100.0
        return 1.0

    def _seed(self, params: GARCHParameters, returns: np.ndarray) -> float:
        if self.variance_seed == 'unconditional':
            return params.unconditional_variance
        return sample_variance(returns)

    def _seed_value(self, omega: float, alpha: float, beta: float, variance: float) -> float:
        """Seed for a raw candidate vector"""
        if self.variance_seed == 'unconditional' and alpha + beta < 1:
            return omega / (1.0 - alpha - beta)
        return variance

    def _get_starting_values(self, returns: np.ndarray,
                             dist: InnovationDistribution) -> np.ndarray:
        """Initial guess: sample moments, alpha=0.05, beta=0.90, neutral shape"""
        alpha, beta = 0.05, 0.90
        variance = sample_variance(returns)
        return np.concatenate([
            [np.mean(returns), variance * (1.0 - alpha - beta), alpha, beta],
            dist.starting_values()
        ])

    def _perturb(self, x0: np.ndarray, returns: np.ndarray) -> np.ndarray:
        """Move alpha and beta half-way toward 0.5 for the retry"""
        x1 = x0.copy()
        x1[2] = 0.5 * (x0[2] + 0.5)
        x1[3] = 0.5 * (x0[3] + 0.5)
        x1[1] = sample_variance(returns) * (1.0 - x1[2] - x1[3])
        return x1

    def _bounds(self, returns: np.ndarray, dist: InnovationDistribution):
        variance = sample_variance(returns)
        return [
            (float(np.min(returns)), float(np.max(returns))),
            (variance * 1e-6, variance * 10.0),
            (0.0, 1.0),
            (0.0, 1.0),
        ] + dist.bounds()

    def _optimize(self, returns: np.ndarray, dist: InnovationDistribution,
                  x0: np.ndarray) -> Tuple[np.ndarray, int]:
        """One SLSQP attempt; raises _AttemptFailed instead of returning a bad fit"""
        bounds = self._bounds(returns, dist)
        ceiling = 1.0 - self.stationarity_margin
        constraints = [{
            'type': 'ineq',
            'fun': lambda x: ceiling - x[2] - x[3],
            'jac': lambda x: np.concatenate([[0.0, 0.0, -1.0, -1.0], np.zeros(len(x) - 4)])
        }]
        variance = sample_variance(returns)
        deadline = time.monotonic() + self.time_budget if self.time_budget else None

        try:
            result = minimize(
                self._objective,
                x0,
                args=(returns, dist, variance, deadline),
                method='SLSQP',
                bounds=bounds,
                constraints=constraints,
                options={'maxiter': self.max_iter, 'ftol': 1e-8}
            )
        except _BudgetExceeded:
            raise _AttemptFailed(f"time budget of {self.time_budget}s exhausted")

        if not result.success:
            raise _AttemptFailed(result.message)
        if not np.isfinite(result.fun) or result.fun >= _PENALTY:
            raise _AttemptFailed("objective is not finite at the solution")

        lower = np.array([b[0] for b in bounds])
        upper = np.array([b[1] for b in bounds])
        x = np.clip(result.x, lower, upper)
        if x[1] <= lower[1] * (1 + 1e-6):
            raise _AttemptFailed("omega collapsed to its lower bound")
        if x[2] + x[3] > ceiling:
            excess = x[2] + x[3] - ceiling
            x[3] = max(x[3] - excess, 0.0)

        return x, int(getattr(result, 'nit', 0))

    def _objective(self, x: np.ndarray, returns: np.ndarray,
                   dist: InnovationDistribution, variance: float,
                   deadline: Optional[float]) -> float:
        """Negative log-likelihood of a candidate vector"""
        if deadline is not None and time.monotonic() > deadline:
            raise _BudgetExceeded()

        mu, omega, alpha, beta = x[:4]
        residuals = returns - mu
        try:
            sigma2 = variance_recursion(
                residuals, omega, alpha, beta,
                self._seed_value(omega, alpha, beta, variance)
            )
        except InvalidParameters:
            return _PENALTY

        ll = self._log_likelihood(residuals, sigma2, dist, x[4:])
        if not np.isfinite(ll):
            return _PENALTY
        return -ll

    @staticmethod
    def _log_likelihood(residuals: np.ndarray, sigma2: np.ndarray,
                        dist: InnovationDistribution, shape) -> float:
        """Sum of log f(eps / sigma) - log sigma"""
        z = residuals / np.sqrt(sigma2)
        return float(np.sum(dist.log_density(z, shape) - 0.5 * np.log(sigma2)))

    def _unscale(self, x: np.ndarray, scale: float,
                 dist: InnovationDistribution) -> GARCHParameters:
        return GARCHParameters(
            mu=float(x[0] / scale),
            omega=float(x[1] / scale ** 2),
            alpha=float(x[2]),
            beta=float(x[3]),
            shape=dist.shape_dict(x[4:])
        )
