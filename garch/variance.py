"""
GARCH(1,1) conditional variance recursion.

    eps_d     = r_d - mu
    sigma2_1  = sample variance of the window (or a supplied seed)
    sigma2_d  = omega + alpha * eps_{d-1}^2 + beta * sigma2_{d-1}

All functions are pure: the path is rebuilt from the parameters and the window
on every call and nothing is carried between windows.
"""

import numpy as np
from typing import Optional

from .errors import InvalidParameters
from .models import ConditionalVariancePath, GARCHParameters


def sample_variance(returns: np.ndarray) -> float:
    """Seed variance for the recursion"""
    returns = np.asarray(returns, dtype=float)
    if returns.size < 2:
        raise ValueError("Need at least 2 observations for a sample variance")
    return float(np.var(returns, ddof=1))


def variance_recursion(residuals: np.ndarray, omega: float, alpha: float,
                       beta: float, seed: float) -> np.ndarray:
    """Run the recursion on raw floats.

    Works for any candidate vector the optimizer proposes, including ones that
    break the stationarity constraint. Raises InvalidParameters as soon as a
    variance is non-positive or non-finite.
    """
    eps = np.asarray(residuals, dtype=float)
    n = eps.size
    sigma2 = np.empty(n, dtype=float)
    sigma2[0] = seed
    if not np.isfinite(seed) or seed <= 0:
        raise InvalidParameters(f"Invalid seed variance {seed}", index=0)

    eps_sq = eps * eps
    for t in range(1, n):
        sigma2[t] = omega + alpha * eps_sq[t - 1] + beta * sigma2[t - 1]
        if not np.isfinite(sigma2[t]) or sigma2[t] <= 0:
            raise InvalidParameters(
                f"Conditional variance {sigma2[t]} at position {t}", index=t
            )
    return sigma2


def conditional_variance_path(params: GARCHParameters, returns: np.ndarray,
                              seed: Optional[float] = None) -> ConditionalVariancePath:
    """Conditional variance path for a window of returns.

    Args:
        params: GARCH parameters
        returns: Window of returns in the same units as the parameters
        seed: Initial variance; defaults to the window's sample variance

    Returns:
        ConditionalVariancePath aligned with ``returns``
    """
    returns = np.asarray(returns, dtype=float)
    residuals = returns - params.mu
    if seed is None:
        seed = sample_variance(returns)
    sigma2 = variance_recursion(residuals, params.omega, params.alpha, params.beta, seed)
    return ConditionalVariancePath(variance=sigma2, residuals=residuals)


def one_step_ahead_variance(params: GARCHParameters, path: ConditionalVariancePath) -> float:
    """E[sigma2_{W+1}] in mean-reverting form around the unconditional variance"""
    long_run = params.unconditional_variance
    forecast = (
        long_run
        + params.alpha * (path.last_residual ** 2 - long_run)
        + params.beta * (path.last_variance - long_run)
    )
    if not np.isfinite(forecast) or forecast <= 0:
        raise InvalidParameters(f"Invalid one-step variance forecast {forecast}")
    return float(forecast)
