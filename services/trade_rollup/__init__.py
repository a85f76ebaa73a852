# Trade Rollup
"""
Resumable rollup of raw exchange executions.

Executions sharing a timestamp in trades_<source> are folded into one row of
ref_trades_<source> (total amount, mean price).
"""
