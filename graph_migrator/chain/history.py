"""
Read back the recorded migration chain.

read_chain() returns every DataModelMigration ordered by version, each paired
with the version its PREVIOUS_MIGRATION edge points to. find_migration()
looks up a single record by any unique property (the runner uses file_name).
"""

import logging
from typing import Any

from graph_migrator.config.constants import (
    MIGRATION_LABEL,
    PREVIOUS_MIGRATION,
    VERSION_KEY,
)
from graph_migrator.models import ChainEntry, MigrationRecord
from graph_migrator.storage.base import GraphStore, GraphTransaction
from graph_migrator.storage.query import collect_all, get_single

logger = logging.getLogger(__name__)


def _sort_key(record: MigrationRecord) -> tuple[int, Any]:
    # numbers before strings so mixed chains still sort deterministically
    if isinstance(record.version, (int, float)):
        return (0, record.version)
    return (1, str(record.version))


def find_migration(tx: GraphTransaction, key: str, value: Any) -> MigrationRecord | None:
    """Return the migration whose `key` property equals value, or None."""
    node = tx.find_node(MIGRATION_LABEL, key, value)
    return get_single([node] if node is not None else [], MigrationRecord.model_validate)


def read_chain(store: GraphStore) -> list[ChainEntry]:
    """
    List recorded migrations with their predecessor versions.

    Nodes that do not form a valid MigrationRecord (no version) are skipped.

    Returns:
        ChainEntry list sorted by version
    """
    with store.transaction() as tx:
        records = collect_all(
            tx.list_nodes(MIGRATION_LABEL), MigrationRecord.model_validate
        )
        entries = []
        for record in sorted(records, key=_sort_key):
            target = tx.find_target(
                MIGRATION_LABEL, VERSION_KEY, record.version, PREVIOUS_MIGRATION
            )
            entries.append(
                ChainEntry(
                    record=record,
                    previous_version=target.get(VERSION_KEY) if target else None,
                )
            )

    logger.debug(f"Read {len(entries)} migrations from the chain")
    return entries
