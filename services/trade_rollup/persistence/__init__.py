# Trade Rollup Persistence
# PostgreSQL access for raw trades and their aggregates

"""
Persistence module for the rollup pipeline.

Components:
- TradeTableRepository: DDL, bulk transfer and aggregation statements
- DatabaseConnection: Per-worker connection scope
"""

from .repository import BatchOutcome, TradeTableRepository
from .connection import DatabaseConnection

__all__ = [
    "BatchOutcome",
    "TradeTableRepository",
    "DatabaseConnection",
]
