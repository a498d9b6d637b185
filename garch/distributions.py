"""
Innovation distributions for GARCH(1,1) maximum likelihood.

Every distribution is parametrized for standardized residuals (zero mean,
unit variance), so the conditional variance of the model is sigma2 itself.
The set is closed: Normal, Skew-Normal, Student-t and Skew-Student-t.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
import numpy as np
from scipy import stats
from arch.univariate import Normal, SkewStudent, StudentsT
from arch.univariate.distribution import Distribution
from typing import Dict, List, Optional, Sequence, Tuple, Union

from .errors import UnknownDistribution


class DistributionKind(Enum):
    """Supported innovation distributions in tie-break order"""
    NORMAL = 'normal'
    SKEW_NORMAL = 'skew_normal'
    STUDENT_T = 'student_t'
    SKEW_STUDENT_T = 'skew_student_t'

    @property
    def order(self) -> int:
        return list(DistributionKind).index(self)

    @classmethod
    def parse(cls, value: Union[str, 'DistributionKind']) -> 'DistributionKind':
        """Resolve an enum member, enum value or common alias"""
        if isinstance(value, DistributionKind):
            return value
        key = str(value).strip().lower().replace('-', '_')
        if key in _ALIASES:
            return _ALIASES[key]
        raise UnknownDistribution(f"Unsupported distribution: {value!r}")


_ALIASES: Dict[str, DistributionKind] = {
    'normal': DistributionKind.NORMAL,
    'norm': DistributionKind.NORMAL,
    'gaussian': DistributionKind.NORMAL,
    'skew_normal': DistributionKind.SKEW_NORMAL,
    'skewnormal': DistributionKind.SKEW_NORMAL,
    'snorm': DistributionKind.SKEW_NORMAL,
    'student_t': DistributionKind.STUDENT_T,
    'studentst': DistributionKind.STUDENT_T,
    't': DistributionKind.STUDENT_T,
    'std': DistributionKind.STUDENT_T,
    'skew_student_t': DistributionKind.SKEW_STUDENT_T,
    'skewstudent': DistributionKind.SKEW_STUDENT_T,
    'skewt': DistributionKind.SKEW_STUDENT_T,
    'sstd': DistributionKind.SKEW_STUDENT_T,
}


@dataclass(frozen=True)
class ShapeParameter:
    """Name, box bounds and neutral starting value of a shape parameter"""
    name: str
    lower: float
    upper: float
    neutral: float


class InnovationDistribution(ABC):
    """Log-density of a standardized innovation plus its parameter contract"""

    kind: DistributionKind
    shape_parameters: Tuple[ShapeParameter, ...] = ()

    @property
    def n_shape(self) -> int:
        return len(self.shape_parameters)

    @property
    def shape_names(self) -> List[str]:
        return [p.name for p in self.shape_parameters]

    def bounds(self) -> List[Tuple[float, float]]:
        return [(p.lower, p.upper) for p in self.shape_parameters]

    def starting_values(self) -> np.ndarray:
        return np.array([p.neutral for p in self.shape_parameters], dtype=float)

    def shape_dict(self, shape: Sequence[float]) -> Dict[str, float]:
        return {p.name: float(v) for p, v in zip(self.shape_parameters, shape)}

    @abstractmethod
    def log_density(self, z: np.ndarray, shape: Sequence[float] = ()) -> np.ndarray:
        """Log-density of each standardized residual in ``z``"""


class _ArchBackedDistribution(InnovationDistribution):
    """Delegates to an ``arch`` distribution evaluated with unit variance"""

    _arch_class = Normal

    def __init__(self):
        self._dist = self._arch_class()

    def log_density(self, z: np.ndarray, shape: Sequence[float] = ()) -> np.ndarray:
        z = np.asarray(z, dtype=float)
        return self._dist.loglikelihood(
            np.asarray(shape, dtype=float), z, np.ones_like(z), individual=True
        )

    def arch_distribution(self, seed: Optional[int] = None) -> Distribution:
        """Equivalent ``arch`` distribution, used for simulation"""
        return self._arch_class(seed=np.random.default_rng(seed))


class NormalDistribution(_ArchBackedDistribution):
    kind = DistributionKind.NORMAL
    shape_parameters = ()
    _arch_class = Normal


class StudentTDistribution(_ArchBackedDistribution):
    kind = DistributionKind.STUDENT_T
    shape_parameters = (ShapeParameter('nu', 2.05, 100.0, 8.0),)
    _arch_class = StudentsT


class SkewStudentTDistribution(_ArchBackedDistribution):
    """Hansen (1994) skewed Student-t; skew is lambda in (-1, 1)"""
    kind = DistributionKind.SKEW_STUDENT_T
    shape_parameters = (
        ShapeParameter('nu', 2.05, 100.0, 8.0),
        ShapeParameter('skew', -0.99, 0.99, 0.0),
    )
    _arch_class = SkewStudent


class SkewNormalDistribution(InnovationDistribution):
    """Azzalini skew-normal rescaled to zero mean and unit variance"""
    kind = DistributionKind.SKEW_NORMAL
    shape_parameters = (ShapeParameter('skew', -10.0, 10.0, 0.0),)

    def log_density(self, z: np.ndarray, shape: Sequence[float] = (0.0,)) -> np.ndarray:
        a = float(shape[0])
        delta = a / np.sqrt(1.0 + a * a)
        mean = np.sqrt(2.0 / np.pi) * delta
        std = np.sqrt(1.0 - 2.0 * delta * delta / np.pi)
        # Z = (X - mean) / std with X ~ SN(a)
        return stats.skewnorm.logpdf(np.asarray(z, dtype=float), a, loc=-mean / std, scale=1.0 / std)


_REGISTRY: Dict[DistributionKind, InnovationDistribution] = {
    DistributionKind.NORMAL: NormalDistribution(),
    DistributionKind.SKEW_NORMAL: SkewNormalDistribution(),
    DistributionKind.STUDENT_T: StudentTDistribution(),
    DistributionKind.SKEW_STUDENT_T: SkewStudentTDistribution(),
}


def get_distribution(kind: Union[str, DistributionKind]) -> InnovationDistribution:
    """Distribution implementation for a kind or alias"""
    return _REGISTRY[DistributionKind.parse(kind)]


def parse_kinds(kinds: Optional[Sequence[Union[str, DistributionKind]]] = None) -> List[DistributionKind]:
    """Parse, de-duplicate and sort kinds into enumeration order"""
    if kinds is None:
        return list(DistributionKind)
    parsed = {DistributionKind.parse(k) for k in kinds}
    if not parsed:
        raise UnknownDistribution("At least one distribution must be requested")
    return sorted(parsed, key=lambda k: k.order)
