#!/usr/bin/env python
"""
Walk-forward volatility backtest pipeline.
Coordinates rolling GARCH forecasts, distribution comparison and the
volatility-targeted two-asset rebalancing.
"""
import sys
import argparse
from pathlib import Path
import logging
from datetime import datetime
import pandas as pd
from typing import Dict, List, Optional
import time
import traceback

# Add project root to path
project_root = Path(__file__).parent
if str(project_root) not in sys.path:
    sys.path.append(str(project_root))

from config import BacktestConfig
from data_manager import DataLoader, MarketData, ResultsDatabase
from garch.comparator import DistributionComparator
from garch.estimator import GARCHEstimator
from garch.forecaster import GARCHForecaster
from strategy.metrics import sharpe_ratio, static_benchmark_returns
from strategy.rebalancer import VolatilityTargetedRebalancer
from utils.visualization import VolatilityVisualizer


def setup_logging(output_dir: Path, level: int = logging.INFO) -> logging.Logger:
    """
    Configure logging with both file and console handlers

    Parameters:
    -----------
    output_dir : Path
        Directory for log file

    Returns:
    --------
    logging.Logger
        Configured logger
    """
    log_dir = output_dir / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"backtest_{timestamp}.log"

    # Handlers go on the root logger so the garch/strategy/data_manager loggers are captured
    root = logging.getLogger()
    root.setLevel(level)

    file_handler = logging.FileHandler(log_file)
    file_handler.setLevel(level)
    file_handler.setFormatter(
        logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(
        logging.Formatter('%(message)s')
    )

    root.addHandler(file_handler)
    root.addHandler(console_handler)

    return logging.getLogger("backtest")


def load_market_data(data_file: Path, logger: logging.Logger, **loader_kwargs) -> MarketData:
    """Load the aligned backtest inputs"""
    logger.info(f"Reading data from: {data_file}")
    try:
        return DataLoader(**loader_kwargs).load_csv(data_file)
    except Exception as e:
        logger.error(f"Error loading data: {str(e)}")
        raise


def initialize_components(config: BacktestConfig, logger: Optional[logging.Logger] = None,
                          show_progress: bool = False) -> Dict:
    """Initialize all analysis components"""
    if logger is None:
        logger = logging.getLogger('backtest')

    logger.info("Creating GARCH estimator...")
    estimator = GARCHEstimator(
        min_observations=config.window_size,
        max_iter=config.max_iter,
        time_budget=config.time_budget,
        variance_seed=config.variance_seed
    )

    logger.info("Creating forecaster...")
    forecaster = GARCHForecaster(
        estimator=estimator,
        window_size=config.window_size,
        strict=config.strict,
        n_jobs=config.n_jobs,
        checkpoint_dir=config.checkpoint_dir,
        show_progress=show_progress
    )

    return {
        'estimator': estimator,
        'forecaster': forecaster,
        'comparator': DistributionComparator(config.distributions),
        'rebalancer': VolatilityTargetedRebalancer(riskfree_lookback=config.riskfree_lookback),
        'visualizer': VolatilityVisualizer()
    }


def run_analysis(components: Dict, market_data: MarketData, config: BacktestConfig,
                 logger: Optional[logging.Logger] = None) -> Dict:
    """Run forecasts, comparison and rebalancing; returns all result tables"""
    if logger is None:
        logger = logging.getLogger('backtest')
    logger.info("Starting analysis pipeline...")

    forecaster = components['forecaster']
    comparator = components['comparator']
    rebalancer = components['rebalancer']

    try:
        timings = {}
        start_time = time.time()

        forecasts = forecaster.roll_forecasts(market_data.risky, config.distributions)
        forecast_table = forecaster.to_dataframe(forecasts)
        timings['forecasts'] = time.time() - start_time

        comparison = comparator.compare(forecasts, market_data.realized)
        accuracy_table = comparator.accuracy_table(forecasts, market_data.realized)
        best = comparison.tally.best
        logger.info(f"Best distribution: {best.value} ({comparison.tally})")

        # Forecast made at the close of t-1 drives the weight held over t
        risky_vol = forecaster.to_series(forecasts[best], index='target_date')
        risky_returns = market_data.risky.to_series()
        riskfree_returns = market_data.riskfree.to_series()
        riskfree_vol = rebalancer.riskfree_volatility(riskfree_returns)

        risky_vol = _restrict(risky_vol, config.start, config.end)
        states = rebalancer.rebalance(risky_vol, riskfree_vol, risky_returns, riskfree_returns)
        backtest_table = rebalancer.to_dataframe(states)

        strategy_returns = backtest_table.set_index('date')['realized_return']
        benchmark_returns = static_benchmark_returns(
            risky_returns, riskfree_returns, config.benchmark_weight
        ).reindex(strategy_returns.index)

        strategy_sharpe = sharpe_ratio(strategy_returns)
        benchmark_sharpe = sharpe_ratio(benchmark_returns)
        timings['total'] = time.time() - start_time

        logger.info(
            f"\nBacktest summary:"
            f"\n  Days: {len(states)}"
            f"\n  Strategy Sharpe ({best.value}): {strategy_sharpe:.4f}"
            f"\n  Benchmark Sharpe ({config.benchmark_weight:.0%} risky): {benchmark_sharpe:.4f}"
            f"\n  Forecast time: {timings['forecasts']:.1f}s, total: {timings['total']:.1f}s"
        )

        return {
            'forecast_table': forecast_table,
            'forecasts': forecasts,
            'comparison': comparison,
            'tally': comparison.tally.as_series(),
            'accuracy_table': accuracy_table,
            'best_distribution': best,
            'portfolio_states': states,
            'backtest_table': backtest_table,
            'benchmark_returns': benchmark_returns,
            'realized': market_data.realized,
            'strategy_sharpe': strategy_sharpe,
            'benchmark_sharpe': benchmark_sharpe
        }

    except Exception as e:
        logger.error(f"Error in analysis pipeline: {str(e)}")
        logger.debug(f"Traceback: {traceback.format_exc()}")
        raise


def _restrict(series: pd.Series, start=None, end=None) -> pd.Series:
    if start is not None:
        series = series[series.index >= pd.Timestamp(start)]
    if end is not None:
        series = series[series.index <= pd.Timestamp(end)]
    return series


def save_results(results: Dict, config: BacktestConfig, output_dir: Path,
                 logger: logging.Logger) -> Optional[int]:
    """Write CSV tables and, when configured, store the run in DuckDB"""
    output_dir.mkdir(parents=True, exist_ok=True)
    results['forecast_table'].to_csv(output_dir / 'forecasts.csv', index=False)
    results['accuracy_table'].to_csv(output_dir / 'accuracy.csv')
    results['backtest_table'].to_csv(output_dir / 'backtest.csv', index=False)
    logger.info(f"Saved result tables to {output_dir}")

    if config.db_path is None:
        return None

    with ResultsDatabase(config.db_path) as db:
        run_id = db.store_run(config)
        db.store_forecasts(run_id, results['forecasts'])
        db.store_tally(run_id, results['comparison'].tally)
        db.store_backtest(run_id, results['portfolio_states'])
        db.finish_run(run_id, results['best_distribution'],
                      results['strategy_sharpe'], results['benchmark_sharpe'])
    return run_id


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Rolling GARCH(1,1) volatility forecasts and volatility-targeted allocation"
    )
    parser.add_argument('data', type=Path, help="CSV with date, asset and realized volatility columns")
    parser.add_argument('--output-dir', type=Path, default=Path('results'))
    parser.add_argument('--window-size', type=int)
    parser.add_argument('--riskfree-lookback', type=int)
    parser.add_argument('--start')
    parser.add_argument('--end')
    parser.add_argument('--distributions', nargs='+',
                        help="Any of normal, skew_normal, student_t, skew_student_t")
    parser.add_argument('--strict', action='store_true', default=None,
                        help="Abort on the first fit failure")
    parser.add_argument('--n-jobs', type=int)
    parser.add_argument('--benchmark-weight', type=float)
    parser.add_argument('--max-iter', type=int)
    parser.add_argument('--time-budget', type=float)
    parser.add_argument('--variance-seed', choices=['sample', 'unconditional'])
    parser.add_argument('--checkpoint-dir', type=Path)
    parser.add_argument('--db-path', type=Path)
    parser.add_argument('--prices', action='store_true',
                        help="Asset columns hold price levels instead of log returns")
    parser.add_argument('--date-column', default='date')
    parser.add_argument('--risky-column', default='risky')
    parser.add_argument('--riskfree-column', default='riskfree')
    parser.add_argument('--realized-column', default='realized_vol')
    parser.add_argument('--no-plots', action='store_true')
    parser.add_argument('--progress', action='store_true', help="Show a progress bar")
    return parser


def main(argv: Optional[List[str]] = None) -> Dict:
    """Main entry point with configuration and setup"""
    args = build_parser().parse_args(argv)
    output_dir = args.output_dir
    output_dir.mkdir(parents=True, exist_ok=True)

    logger = setup_logging(output_dir)
    logger.info("Starting volatility backtest pipeline...")

    try:
        config = BacktestConfig.from_dict(vars(args))
        market_data = load_market_data(
            args.data, logger,
            date_column=args.date_column,
            risky_column=args.risky_column,
            riskfree_column=args.riskfree_column,
            realized_column=args.realized_column,
            prices=args.prices
        )

        logger.info("Initializing analysis components...")
        components = initialize_components(config, logger, show_progress=args.progress)

        results = run_analysis(components, market_data, config, logger)
        save_results(results, config, output_dir, logger)

        if not args.no_plots:
            logger.info("Generating visualizations...")
            with components['visualizer'] as visualizer:
                visualizer.plot_results(results, output_dir / "plots")

        logger.info("Pipeline completed successfully")
        return results

    except Exception as e:
        logger.error(f"Pipeline failed: {str(e)}")
        logger.error(f"Traceback: {traceback.format_exc()}")
        raise


def cli():
    """Console script entry point"""
    main()


if __name__ == "__main__":
    cli()
