from setuptools import setup, find_packages

setup(
    name="garch-vol-targeting",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*", "scripts"]),
    py_modules=["models", "run_backtest"],
    install_requires=[
        "numpy",
        "pandas",
        "scipy",
        "arch>=6.0",
        "matplotlib",
        "seaborn",
        "duckdb",
        "statsmodels",
        "tqdm",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": ["garch-backtest=run_backtest:cli"],
    },
    python_requires=">=3.8",
)
