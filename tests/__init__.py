"""
forecast-harness Test Suite

Tests organized by layer:
- test_series.py — TimeSeries invariants, preparation and validation gates
- test_partition.py — Train/validation partitioning (no leakage, boundaries)
- test_baselines.py — Naive, seasonal naive, moving average, horizon contract
- test_models.py — Option validation and statsmodels-backed forecasters
- test_metrics.py — Accuracy metrics, zero policy, mode tagging
- test_backtesting.py — Rolling-origin partitions and backtest tables
- test_comparison.py — Model comparison and leaderboard
- test_pipeline.py — Configuration, tasks and CLI smoke tests (synthetic data)
"""
