from typing import Dict, List, Optional
import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns
from pathlib import Path
import logging

logger = logging.getLogger(__name__)

class VolatilityVisualizer:
    """Plots for the volatility forecasting backtest"""

    def __init__(self, style: str = 'seaborn-v0_8'):
        """
        Initialize visualizer

        Parameters:
        -----------
        style : str
            Matplotlib style to use. Default is 'seaborn-v0_8'.
            Available styles can be listed with `plt.style.available`
        """
        try:
            plt.style.use(style)
        except OSError:
            plt.style.use('default')
            logger.warning(f"Style '{style}' not found, using default style")

        self.colors = plt.rcParams['axes.prop_cycle'].by_key()['color']

    def _color(self, i: int) -> str:
        return self.colors[i % len(self.colors)]

    def plot_forecasts(self,
                       forecast_table: pd.DataFrame,
                       realized: Optional[pd.Series] = None,
                       title: Optional[str] = None,
                       save_path: Optional[Path] = None) -> plt.Figure:
        """
        Plot predicted volatility per distribution against realized volatility

        Parameters:
        -----------
        forecast_table : DataFrame
            Columns target_date, distribution, predicted_volatility
        realized : Series, optional
            Realized volatility indexed by date
        title : str, optional
            Plot title
        save_path : Path, optional
            Path to save figure
        """
        if forecast_table.empty:
            raise ValueError("Empty input data")

        fig, ax = plt.subplots(figsize=(12, 6))

        table = forecast_table.dropna(subset=['target_date', 'predicted_volatility'])
        for i, (distribution, group) in enumerate(table.groupby('distribution', sort=False)):
            ax.plot(group['target_date'], group['predicted_volatility'],
                    label=distribution, color=self._color(i), linewidth=1)

        if realized is not None:
            ax.plot(realized.index, realized.to_numpy(), label='realized',
                    color='k', linestyle='--', alpha=0.6, linewidth=1)

        ax.set_xlabel('Date')
        ax.set_ylabel('Daily Volatility')
        if title:
            ax.set_title(title)
        ax.legend()

        if save_path:
            fig.savefig(save_path)

        return fig

    def plot_tally(self,
                   tally: pd.Series,
                   title: Optional[str] = None,
                   save_path: Optional[Path] = None) -> plt.Figure:
        """Bar chart of per-step wins by distribution"""
        fig, ax = plt.subplots(figsize=(8, 5))
        sns.barplot(x=list(tally.index), y=tally.to_numpy(), ax=ax, color=self._color(0))
        ax.set_xlabel('Distribution')
        ax.set_ylabel('Wins')
        ax.set_title(title or 'Closest forecast by distribution')

        if save_path:
            fig.savefig(save_path)

        return fig

    def plot_weights(self,
                     backtest_table: pd.DataFrame,
                     title: Optional[str] = None,
                     save_path: Optional[Path] = None) -> plt.Figure:
        """Risky and risk-free weights over time"""
        fig, ax = plt.subplots(figsize=(12, 5))
        ax.plot(backtest_table['date'], backtest_table['weight_risky'],
                label='risky', color=self._color(0))
        ax.plot(backtest_table['date'], backtest_table['weight_riskfree'],
                label='risk-free', color=self._color(1))
        ax.axhline(y=0, color='k', linestyle='--', alpha=0.5)
        ax.set_xlabel('Date')
        ax.set_ylabel('Weight')
        if title:
            ax.set_title(title)
        ax.legend()
        ax.grid(True)

        if save_path:
            fig.savefig(save_path)

        return fig

    def plot_cumulative_returns(self,
                                strategy_returns: pd.Series,
                                benchmark_returns: pd.Series,
                                title: Optional[str] = None,
                                save_path: Optional[Path] = None) -> plt.Figure:
        """Cumulative log returns of the strategy and the static benchmark"""
        fig, (ax1, ax2) = plt.subplots(2, 1, figsize=(12, 8))

        ax1.plot(strategy_returns.index, strategy_returns.cumsum(),
                 label='vol-targeted', color=self._color(0))
        ax1.plot(benchmark_returns.index, benchmark_returns.cumsum(),
                 label='static benchmark', color=self._color(1))
        ax1.set_xlabel('Date')
        ax1.set_ylabel('Cumulative Return')
        ax1.legend()
        ax1.grid(True)

        sns.histplot(strategy_returns, ax=ax2, bins=50, color=self._color(0),
                     label='vol-targeted', stat='density', alpha=0.5)
        sns.histplot(benchmark_returns, ax=ax2, bins=50, color=self._color(1),
                     label='static benchmark', stat='density', alpha=0.5)
        ax2.set_title('Daily Return Distribution')
        ax2.legend()

        if title:
            fig.suptitle(title)

        plt.tight_layout()

        if save_path:
            fig.savefig(save_path)

        return fig

    def close_all(self):
        """Close all open figures"""
        plt.close('all')

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close_all()

    def plot_results(self, results: Dict, output_path: Path, show_plots: bool = False) -> List[Path]:
        """Plot backtest results and save to output directory"""
        try:
            output_path.mkdir(parents=True, exist_ok=True)

            if results['backtest_table'].empty:
                raise ValueError("No results to plot")

            written = []
            best = results['best_distribution']

            path = output_path / 'forecasts.png'
            self.plot_forecasts(results['forecast_table'], results.get('realized'),
                                title=f"One-step volatility forecasts (best: {best})",
                                save_path=path)
            written.append(path)

            path = output_path / 'accuracy_tally.png'
            self.plot_tally(results['tally'], save_path=path)
            written.append(path)

            path = output_path / 'weights.png'
            self.plot_weights(results['backtest_table'],
                              title=f"Volatility-targeted weights ({best})", save_path=path)
            written.append(path)

            strategy = results['backtest_table'].set_index('date')['realized_return']
            path = output_path / 'cumulative_returns.png'
            self.plot_cumulative_returns(
                strategy, results['benchmark_returns'],
                title=(f"Sharpe: strategy {results['strategy_sharpe']:.4f}, "
                       f"benchmark {results['benchmark_sharpe']:.4f}"),
                save_path=path
            )
            written.append(path)

            if show_plots:
                plt.show()

            self.close_all()
            logger.info(f"Saved {len(written)} plots to {output_path}")
            return written

        except Exception as e:
            logging.getLogger('utils.visualization').error(f"Error plotting results: {str(e)}")
            raise
