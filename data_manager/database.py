import logging
from pathlib import Path
from typing import Dict, List, Optional, Union
import json
import duckdb
import pandas as pd
import numpy as np
from datetime import datetime

from config import BacktestConfig
from garch.comparator import AccuracyTally
from garch.distributions import DistributionKind
from garch.models import ForecastRecord
from models import PortfolioState


class ResultsDatabase:
    def __init__(self, db_path: Union[str, Path] = ':memory:'):
        """Initialize database connection"""
        self.logger = logging.getLogger('data_manager.database')
        self.db_path = str(db_path)

        if self.db_path != ':memory:':
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        self.conn = duckdb.connect(self.db_path)
        self._initialize_tables()
        self.logger.info(f"Initialized database at {self.db_path}")

    def _initialize_tables(self):
        """Create tables if they don't exist"""
        self.conn.execute("""
            CREATE SEQUENCE IF NOT EXISTS run_id_seq;

            CREATE TABLE IF NOT EXISTS runs (
                run_id INTEGER PRIMARY KEY DEFAULT nextval('run_id_seq'),
                created_at TIMESTAMP,
                config JSON,
                best_distribution VARCHAR,
                strategy_sharpe DOUBLE,
                benchmark_sharpe DOUBLE
            );

            CREATE TABLE IF NOT EXISTS forecasts (
                run_id INTEGER,
                date TIMESTAMP,
                target_date TIMESTAMP,
                distribution VARCHAR,
                predicted_volatility DOUBLE,
                failure VARCHAR,
                parameters JSON
            );

            CREATE TABLE IF NOT EXISTS accuracy_tally (
                run_id INTEGER,
                distribution VARCHAR,
                wins INTEGER
            );

            CREATE TABLE IF NOT EXISTS portfolio_backtest (
                run_id INTEGER,
                date TIMESTAMP,
                weight_risky DOUBLE,
                weight_riskfree DOUBLE,
                realized_return DOUBLE
            );
        """)

    def store_run(self, config: BacktestConfig) -> int:
        """Register a run and return its id"""
        run_id = self.conn.execute("""
            INSERT INTO runs (created_at, config)
            VALUES (?, ?)
            RETURNING run_id
        """, (datetime.now(), json.dumps(config.to_dict()))).fetchone()[0]
        self.logger.info(f"Registered run {run_id}")
        return int(run_id)

    def finish_run(self, run_id: int, best_distribution: DistributionKind,
                   strategy_sharpe: float, benchmark_sharpe: float):
        """Record the summary of a completed run"""
        self.conn.execute("""
            UPDATE runs
            SET best_distribution = ?, strategy_sharpe = ?, benchmark_sharpe = ?
            WHERE run_id = ?
        """, (best_distribution.value, self._nullable(strategy_sharpe),
              self._nullable(benchmark_sharpe), run_id))

    def store_forecasts(self, run_id: int,
                        forecasts: Dict[DistributionKind, List[ForecastRecord]]) -> int:
        """Store every forecast record of a run"""
        rows = []
        for kind, records in forecasts.items():
            for r in records:
                rows.append((
                    run_id,
                    pd.Timestamp(r.date).to_pydatetime(),
                    pd.Timestamp(r.target_date).to_pydatetime() if r.target_date is not None else None,
                    kind.value,
                    r.predicted_volatility,
                    r.failure,
                    json.dumps(r.params.to_dict()) if r.params is not None else None
                ))
        if rows:
            self.conn.executemany("""
                INSERT INTO forecasts (
                    run_id, date, target_date, distribution,
                    predicted_volatility, failure, parameters
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """, rows)
        self.logger.info(f"Stored {len(rows)} forecasts for run {run_id}")
        return len(rows)

    def store_tally(self, run_id: int, tally: AccuracyTally):
        rows = [(run_id, kind.value, int(wins)) for kind, wins in tally.counts.items()]
        self.conn.executemany("""
            INSERT INTO accuracy_tally (run_id, distribution, wins) VALUES (?, ?, ?)
        """, rows)

    def store_backtest(self, run_id: int, states: List[PortfolioState]) -> int:
        rows = [
            (run_id, pd.Timestamp(s.date).to_pydatetime(), s.weight_risky,
             s.weight_riskfree, s.realized_return)
            for s in states
        ]
        if rows:
            self.conn.executemany("""
                INSERT INTO portfolio_backtest (
                    run_id, date, weight_risky, weight_riskfree, realized_return
                ) VALUES (?, ?, ?, ?, ?)
            """, rows)
        self.logger.info(f"Stored {len(rows)} portfolio states for run {run_id}")
        return len(rows)

    def get_runs(self) -> pd.DataFrame:
        return self.conn.execute("SELECT * FROM runs ORDER BY run_id").df()

    def get_forecasts(self, run_id: int,
                      distribution: Optional[Union[str, DistributionKind]] = None) -> pd.DataFrame:
        """Forecast table of a run, optionally for one distribution"""
        query = """
            SELECT date, target_date, distribution, predicted_volatility, failure
            FROM forecasts
            WHERE run_id = ?
        """
        params = [run_id]
        if distribution is not None:
            query += " AND distribution = ?"
            params.append(DistributionKind.parse(distribution).value)
        query += " ORDER BY distribution, date"
        return self.conn.execute(query, params).df()

    def get_tally(self, run_id: int) -> pd.Series:
        results = self.conn.execute("""
            SELECT distribution, wins FROM accuracy_tally WHERE run_id = ?
        """, [run_id]).fetchall()
        order = {k.value: k.order for k in DistributionKind}
        results = sorted(results, key=lambda row: order[row[0]])
        return pd.Series({d: w for d, w in results}, name='wins', dtype=int)

    def get_backtest(self, run_id: int) -> pd.DataFrame:
        return self.conn.execute("""
            SELECT date, weight_risky, weight_riskfree, realized_return
            FROM portfolio_backtest
            WHERE run_id = ?
            ORDER BY date
        """, [run_id]).df()

    @staticmethod
    def _nullable(value: float) -> Optional[float]:
        return None if value is None or not np.isfinite(value) else float(value)

    def close(self):
        """Close database connection"""
        if hasattr(self, 'conn'):
            self.conn.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
