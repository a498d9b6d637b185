import pytest
import logging
import numpy as np
import pandas as pd

from config import BacktestConfig
from data_manager import ResultsDatabase, align_inputs
from garch.distributions import DistributionKind
from run_backtest import initialize_components, main, run_analysis


@pytest.fixture
def config():
    return BacktestConfig(window_size=60, riskfree_lookback=20,
                          distributions=['normal', 'student_t'])


@pytest.fixture
def market_data(market_frame):
    return align_inputs(market_frame['risky'], market_frame['riskfree'],
                        market_frame['realized_vol'])


def test_run_analysis(config, market_data):
    components = initialize_components(config)
    results = run_analysis(components, market_data, config, logging.getLogger('test'))

    n_steps = len(market_data) - config.window_size + 1
    assert len(results['forecast_table']) == 2 * n_steps
    assert list(results['forecasts']) == [DistributionKind.NORMAL, DistributionKind.STUDENT_T]
    assert results['best_distribution'] in config.distributions
    # The last forecast has no realized value to score against
    assert 0 < results['comparison'].tally.total <= n_steps - 1

    backtest = results['backtest_table']
    # Forecast targets start at the date after the first full window
    assert backtest['date'].iloc[0] >= market_data.dates[config.window_size]
    np.testing.assert_allclose(backtest['weight_risky'] + backtest['weight_riskfree'], 1.0)
    assert backtest['date'].is_monotonic_increasing

    assert np.isfinite(results['strategy_sharpe'])
    assert np.isfinite(results['benchmark_sharpe'])
    assert (results['benchmark_returns'].index == pd.DatetimeIndex(backtest['date'])).all()


def test_run_analysis_date_range(market_data):
    start = market_data.dates[100]
    end = market_data.dates[130]
    config = BacktestConfig(window_size=60, riskfree_lookback=20, distributions=['normal'],
                            start=str(start.date()), end=str(end.date()))
    results = run_analysis(initialize_components(config), market_data, config)

    backtest = results['backtest_table']
    assert backtest['date'].iloc[0] >= start
    assert backtest['date'].iloc[-1] <= end
    assert 0 < len(backtest) <= 31


def test_main(market_frame, tmp_path):
    csv_path = tmp_path / 'market.csv'
    market_frame.rename_axis('date').reset_index().to_csv(csv_path, index=False)
    db_path = tmp_path / 'runs.db'
    handlers_before = list(logging.getLogger().handlers)

    results = main([
        str(csv_path),
        '--output-dir', str(tmp_path / 'out'),
        '--window-size', '60',
        '--riskfree-lookback', '20',
        '--distributions', 'normal', 'skew_normal',
        '--db-path', str(db_path),
        '--no-plots'
    ])

    assert (tmp_path / 'out' / 'forecasts.csv').exists()
    assert (tmp_path / 'out' / 'backtest.csv').exists()
    assert list((tmp_path / 'out' / 'logs').glob('backtest_*.log'))

    with ResultsDatabase(db_path) as db:
        runs = db.get_runs()
        assert len(runs) == 1
        assert runs['best_distribution'].iloc[0] == results['best_distribution'].value
        assert len(db.get_backtest(int(runs['run_id'].iloc[0]))) == len(results['backtest_table'])

    root = logging.getLogger()
    for handler in root.handlers[:]:
        if handler not in handlers_before:
            root.removeHandler(handler)
            handler.close()
