import pytest
import numpy as np
from scipy import stats
from scipy.integrate import trapezoid

from garch.distributions import DistributionKind, get_distribution, parse_kinds
from garch.errors import UnknownDistribution

GRID = np.linspace(-60, 60, 600001)

SHAPES = {
    DistributionKind.NORMAL: [],
    DistributionKind.SKEW_NORMAL: [3.0],
    DistributionKind.STUDENT_T: [8.0],
    DistributionKind.SKEW_STUDENT_T: [8.0, -0.3],
}


@pytest.mark.parametrize('kind', list(DistributionKind))
def test_density_is_standardized(kind):
    """Each density integrates to one with zero mean and unit variance"""
    density = np.exp(get_distribution(kind).log_density(GRID, SHAPES[kind]))
    assert trapezoid(density, GRID) == pytest.approx(1.0, abs=1e-4)
    assert trapezoid(GRID * density, GRID) == pytest.approx(0.0, abs=1e-3)
    assert trapezoid(GRID ** 2 * density, GRID) == pytest.approx(1.0, abs=5e-3)


def test_normal_matches_scipy():
    z = np.array([-1.5, 0.0, 2.0])
    np.testing.assert_allclose(get_distribution('normal').log_density(z), stats.norm.logpdf(z))


def test_neutral_skew_reduces_to_symmetric():
    z = np.linspace(-3, 3, 13)
    np.testing.assert_allclose(
        get_distribution('skew_normal').log_density(z, [0.0]),
        stats.norm.logpdf(z), atol=1e-12
    )
    np.testing.assert_allclose(
        get_distribution('skew_student_t').log_density(z, [8.0, 0.0]),
        get_distribution('student_t').log_density(z, [8.0]), atol=1e-10
    )


def test_shape_contract():
    dist = get_distribution(DistributionKind.SKEW_STUDENT_T)
    assert dist.shape_names == ['nu', 'skew']
    assert dist.bounds() == [(2.05, 100.0), (-0.99, 0.99)]
    np.testing.assert_array_equal(dist.starting_values(), [8.0, 0.0])
    assert get_distribution('normal').n_shape == 0


@pytest.mark.parametrize('alias,kind', [
    ('norm', DistributionKind.NORMAL),
    ('snorm', DistributionKind.SKEW_NORMAL),
    ('std', DistributionKind.STUDENT_T),
    ('StudentsT', DistributionKind.STUDENT_T),
    ('sstd', DistributionKind.SKEW_STUDENT_T),
    ('skew-student-t', DistributionKind.SKEW_STUDENT_T),
])
def test_aliases(alias, kind):
    assert DistributionKind.parse(alias) is kind


def test_unknown_distribution():
    with pytest.raises(UnknownDistribution):
        DistributionKind.parse('cauchy')
    # Also a ValueError for callers that only know the builtin
    with pytest.raises(ValueError):
        get_distribution('laplace')


def test_parse_kinds_orders_and_dedupes():
    kinds = parse_kinds(['sstd', 'normal', 'norm', 'student_t'])
    assert kinds == [DistributionKind.NORMAL, DistributionKind.STUDENT_T,
                     DistributionKind.SKEW_STUDENT_T]
    assert parse_kinds() == list(DistributionKind)
    with pytest.raises(UnknownDistribution):
        parse_kinds([])


def test_enumeration_order():
    assert [k.order for k in DistributionKind] == [0, 1, 2, 3]
