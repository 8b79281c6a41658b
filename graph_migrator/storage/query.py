"""
Helpers for turning query result rows into typed values.

Each helper takes an iterable of rows (driver records or plain dicts) and
a converter for a single row:

- get_single: first row converted, or None when there are no rows
- single: first row converted, NoRecordsFound when there are no rows
- collect_all: every row converted, skipping rows that fail conversion

Example:
    >>> rows = [{"version": 1}]
    >>> single(rows, MigrationRecord.model_validate)
    MigrationRecord(version=1)
"""

import logging
from collections.abc import Callable, Iterable
from typing import TypeVar

from graph_migrator.exceptions import NoRecordsFound, QueryError

logger = logging.getLogger(__name__)

Row = TypeVar("Row")
T = TypeVar("T")


def get_single(rows: Iterable[Row], convert: Callable[[Row], T]) -> T | None:
    """
    Convert the first row, or return None if there is none.

    Raises:
        QueryError: If the row exists but cannot be converted
    """
    for row in rows:
        try:
            return convert(row)
        except (ValueError, KeyError, TypeError) as e:
            raise QueryError(f"Failed to convert query result: {e}") from e
    return None


def single(rows: Iterable[Row], convert: Callable[[Row], T]) -> T:
    """
    Convert the first row.

    Raises:
        NoRecordsFound: If there are no rows
        QueryError: If the row cannot be converted
    """
    result = get_single(rows, convert)
    if result is None:
        raise NoRecordsFound("No records were found")
    return result


def collect_all(rows: Iterable[Row], convert: Callable[[Row], T]) -> list[T]:
    """
    Convert every row, dropping the ones that fail conversion.

    Dropped rows are logged at DEBUG level.
    """
    output: list[T] = []
    for row in rows:
        try:
            output.append(convert(row))
        except (ValueError, KeyError, TypeError) as e:
            logger.debug(f"Skipping row that failed conversion: {e}")
    return output
