"""
Table Naming

Derives every table name used for one data source and guards the only strings
that are ever interpolated into SQL text.

Naming convention (must match tables left by earlier runs):
    source   trades_<source>
    target   ref_trades_<source>
    index    step1__trades_<source>
    working  tmp__step1__trades_<source>
    result   step2__trades_<source>
"""

import re
import time
from dataclasses import dataclass
from pathlib import Path

from .constants import (
    BULK_FILE_TEMPLATE,
    INDEX_TABLE_PREFIX,
    MAX_IDENTIFIER_LENGTH,
    RESULT_TABLE_PREFIX,
    SOURCE_TABLE_PREFIX,
    TARGET_TABLE_PREFIX,
    WORKING_TABLE_PREFIX,
)
from .errors import InvalidSourceNameError


_IDENTIFIER_PATTERN = re.compile(r"^[a-z0-9_]+$")

# Longest name derived from a source: tmp__step1__trades_<source>
_LONGEST_PREFIX = WORKING_TABLE_PREFIX + INDEX_TABLE_PREFIX + SOURCE_TABLE_PREFIX


def validate_source_name(source: str) -> str:
    """
    Check that a data source identifier yields valid table names.

    Args:
        source: Exchange identifier (e.g. "bffx")

    Returns:
        The identifier, unchanged

    Raises:
        InvalidSourceNameError: If the identifier is empty, contains characters
            outside [a-z0-9_], or would overflow the identifier length limit
    """
    if not isinstance(source, str) or not _IDENTIFIER_PATTERN.match(source):
        raise InvalidSourceNameError(
            f"Invalid data source {source!r}: only lowercase letters, digits and '_' are allowed"
        )
    if len(_LONGEST_PREFIX) + len(source) > MAX_IDENTIFIER_LENGTH:
        raise InvalidSourceNameError(
            f"Invalid data source {source!r}: derived table names exceed "
            f"{MAX_IDENTIFIER_LENGTH} characters"
        )
    return source


def quote_identifier(name: str) -> str:
    """Quote a table name for SQL text after checking its character set."""
    if not _IDENTIFIER_PATTERN.match(name) or len(name) > MAX_IDENTIFIER_LENGTH:
        raise InvalidSourceNameError(f"Refusing to quote unsafe identifier {name!r}")
    return f'"{name}"'


@dataclass(frozen=True)
class TableNames:
    """All table names for one data source."""

    source_id: str
    source: str
    target: str
    index: str
    working_index: str
    result: str

    @classmethod
    def for_source(cls, source: str) -> "TableNames":
        """Derive table names from a validated source identifier."""
        validate_source_name(source)
        source_table = f"{SOURCE_TABLE_PREFIX}{source}"
        index_table = f"{INDEX_TABLE_PREFIX}{source_table}"
        return cls(
            source_id=source,
            source=source_table,
            target=f"{TARGET_TABLE_PREFIX}{source_table}",
            index=index_table,
            working_index=f"{WORKING_TABLE_PREFIX}{index_table}",
            result=f"{RESULT_TABLE_PREFIX}{source_table}",
        )


def bulk_file_path(directory: Path, source: str) -> Path:
    """
    Build a collision-free path for one bulk transfer round.

    The nanosecond clock keeps names unique across rounds and runs; the
    source identifier keeps concurrent workers apart.
    """
    validate_source_name(source)
    return Path(directory) / BULK_FILE_TEMPLATE.format(source=source, stamp=time.time_ns())
