"""
Trade Rollup Errors

Every failure that aborts a worker derives from RollupError. Running out of
rows is never an error: phases report it through their return values.
"""


class RollupError(Exception):
    """Base exception for all trade rollup failures."""


class InvalidSourceNameError(RollupError, ValueError):
    """Raised when a data source identifier cannot be turned into table names."""


class ConnectionSetupError(RollupError):
    """Raised when a worker cannot open its database connection."""


class StatementError(RollupError):
    """Raised when a DDL, DML or COPY statement fails."""


class SourceTableMissingError(RollupError):
    """Raised when the raw trades table for a source does not exist."""


class BulkTransferError(RollupError):
    """Raised when the file-based timestamp export/load round-trip fails."""
