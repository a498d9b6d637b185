import pytest
import numpy as np
import pandas as pd
import matplotlib.pyplot as plt

from utils.visualization import VolatilityVisualizer


@pytest.fixture
def visualizer():
    """Create visualizer instance"""
    viz = VolatilityVisualizer()
    yield viz
    viz.close_all()


@pytest.fixture
def sample_results():
    rng = np.random.default_rng(42)
    dates = pd.bdate_range('2021-01-04', periods=40)
    forecast_table = pd.concat([
        pd.DataFrame({
            'date': dates - pd.offsets.BDay(1),
            'target_date': dates,
            'distribution': kind,
            'predicted_volatility': 0.01 + rng.normal(0, 0.001, len(dates)),
            'failure': None
        })
        for kind in ('normal', 'student_t')
    ], ignore_index=True)
    weights = rng.uniform(0.5, 1.1, len(dates))
    backtest_table = pd.DataFrame({
        'date': dates,
        'weight_risky': weights,
        'weight_riskfree': 1 - weights,
        'realized_return': rng.normal(0, 0.01, len(dates))
    })
    return {
        'forecast_table': forecast_table,
        'realized': pd.Series(0.01 + rng.normal(0, 0.001, len(dates)), index=dates),
        'tally': pd.Series({'normal': 25, 'student_t': 15}, name='wins'),
        'best_distribution': 'normal',
        'backtest_table': backtest_table,
        'benchmark_returns': pd.Series(rng.normal(0, 0.008, len(dates)), index=dates),
        'strategy_sharpe': 0.05,
        'benchmark_sharpe': 0.03
    }


def test_plot_forecasts(visualizer, sample_results, tmp_path):
    save_path = tmp_path / 'forecasts.png'
    fig = visualizer.plot_forecasts(sample_results['forecast_table'], sample_results['realized'],
                                    title='Forecasts', save_path=save_path)
    assert isinstance(fig, plt.Figure)
    assert save_path.exists()
    # One line per distribution plus realized
    assert len(fig.axes[0].get_lines()) == 3


def test_plot_forecasts_empty(visualizer):
    with pytest.raises(ValueError):
        visualizer.plot_forecasts(pd.DataFrame(columns=['target_date', 'distribution',
                                                        'predicted_volatility']))


def test_plot_tally(visualizer, sample_results):
    fig = visualizer.plot_tally(sample_results['tally'])
    assert len(fig.axes[0].patches) == 2


def test_plot_results(visualizer, sample_results, tmp_path):
    written = visualizer.plot_results(sample_results, tmp_path / 'plots')
    assert len(written) == 4
    assert all(path.exists() for path in written)


def test_context_manager_closes_figures(sample_results):
    with VolatilityVisualizer() as viz:
        viz.plot_weights(sample_results['backtest_table'])
        assert plt.get_fignums()
    assert not plt.get_fignums()
