"""Exception hierarchy for GARCH estimation and the walk-forward backtest."""

from typing import Optional


class GARCHError(Exception):
    """Base class for all errors raised by the volatility engine"""


class FitError(GARCHError):
    """Raised when a single window cannot be fitted.

    Recoverable per walk-forward step unless the forecaster runs in strict mode.
    """

    reason = 'fit_error'

    def __init__(self, message: str, window_end: Optional[object] = None):
        super().__init__(message)
        self.window_end = window_end

    def __reduce__(self):
        # Keeps window_end when raised inside a worker process
        return self.__class__, (str(self), self.window_end)


class InsufficientHistory(FitError):
    """Window is shorter than the required minimum"""

    reason = 'insufficient_history'


class NonConvergent(FitError):
    """Optimizer failed to converge after the retry"""

    reason = 'non_convergent'


class InvalidParameters(GARCHError):
    """Parameter vector violates the model constraints or produced a bad variance path"""

    def __init__(self, message: str, index: Optional[int] = None):
        super().__init__(message)
        self.index = index


class UnknownDistribution(GARCHError, ValueError):
    """Requested innovation distribution is not supported"""


class MisalignedSeries(GARCHError, ValueError):
    """Input series share no common dates after the join"""
