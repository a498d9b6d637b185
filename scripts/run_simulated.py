"""
Demonstration run on simulated data: a Student-t GARCH(1,1) risky asset,
a low-volatility normal GARCH risk-free asset, and the true conditional
volatility of the risky asset as the realized proxy.
"""

import logging
from pathlib import Path
import sys

# Add parent directory to path to import our modules
sys.path.append(str(Path(__file__).parent.parent))

from config import BacktestConfig
from data_manager import align_inputs
from garch.simulation import simulate_garch
from run_backtest import initialize_components, run_analysis, save_results

N_DAYS = 1000
WINDOW_SIZE = 250

if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler('simulated_run.log'),
            logging.StreamHandler()
        ]
    )
    logger = logging.getLogger('simulated')
    output_path = Path("results/simulated")

    try:
        logger.info("Simulating inputs...")
        risky = simulate_garch(N_DAYS, mu=3e-4, omega=2e-6, alpha=0.08, beta=0.9,
                               kind='student_t', shape={'nu': 6.0}, seed=7)
        riskfree = simulate_garch(N_DAYS, mu=1e-4, omega=1e-8, alpha=0.05, beta=0.9, seed=11)
        market_data = align_inputs(risky['returns'], riskfree['returns'], risky['volatility'])

        config = BacktestConfig(window_size=WINDOW_SIZE, n_jobs=2)
        components = initialize_components(config, logger, show_progress=True)
        results = run_analysis(components, market_data, config, logger)
        save_results(results, config, output_path, logger)

        with components['visualizer'] as visualizer:
            visualizer.plot_results(results, output_path / "plots")

        print(results['accuracy_table'])
        logger.info("Simulated run completed successfully")

    except Exception as e:
        logger.error(f"Simulated run failed: {str(e)}")
        raise
