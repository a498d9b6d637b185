import pytest
from pathlib import Path

from config import BacktestConfig
from garch.distributions import DistributionKind
from garch.errors import UnknownDistribution


def test_defaults():
    config = BacktestConfig()
    assert config.window_size == 126
    assert config.horizon == 1
    assert config.riskfree_lookback == 50
    assert config.benchmark_weight == 0.6
    assert config.distributions == list(DistributionKind)


def test_distribution_names_are_parsed():
    config = BacktestConfig(distributions=['sstd', 'norm'])
    assert config.distributions == [DistributionKind.NORMAL, DistributionKind.SKEW_STUDENT_T]
    with pytest.raises(UnknownDistribution):
        BacktestConfig(distributions=['cauchy'])


@pytest.mark.parametrize('kwargs', [
    {'window_size': 1},
    {'horizon': 5},
    {'riskfree_lookback': 1},
    {'benchmark_weight': 1.2},
    {'n_jobs': 0},
    {'max_iter': 0},
    {'time_budget': -1.0},
    {'variance_seed': 'backcast'},
    {'start': '2021-01-01', 'end': '2020-01-01'},
])
def test_validation(kwargs):
    with pytest.raises(ValueError):
        BacktestConfig(**kwargs)


def test_dict_round_trip(tmp_path):
    config = BacktestConfig.from_dict({
        'window_size': 60,
        'distributions': ['normal', 'student_t'],
        'db_path': str(tmp_path / 'runs.db'),
        'strict': None,
        'output_dir': 'ignored'
    })
    assert config.db_path == tmp_path / 'runs.db'
    assert config.strict is False

    values = config.to_dict()
    assert values['distributions'] == ['normal', 'student_t']
    assert values['db_path'] == str(tmp_path / 'runs.db')
    assert BacktestConfig.from_dict(values) == config
