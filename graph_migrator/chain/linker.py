"""
Migration version chain linker.

Records a new DataModelMigration node and, when a migration with the
declared previous version already exists, links the new node to it with a
PREVIOUS_MIGRATION relationship. Repeated over a series of migrations this
builds an append-only lineage graph:

    (3)-[:PREVIOUS_MIGRATION]->(2)-[:PREVIOUS_MIGRATION]->(1)

Node creation is unconditional; only the edge depends on the predecessor
existing. A missing predecessor is not an error.

The three steps (optional lookup, create, conditional link) run on the
transaction handed in by the caller, so they commit or roll back together.
Uniqueness of `version` is the store's job (a uniqueness constraint); a
duplicate surfaces as WriteConflict from create_node(). Errors propagate
unmodified and nothing is retried here.

Example:
    >>> with store.transaction() as tx:
    ...     record = link_migration(tx, {"version": 2, "name": "add index"}, 1)
    >>> record.version
    2
"""

import logging
from collections.abc import Mapping
from typing import Any

from graph_migrator.config.constants import (
    MIGRATION_LABEL,
    PREVIOUS_MIGRATION,
    VERSION_KEY,
)
from graph_migrator.exceptions import WriteConflict
from graph_migrator.models import MigrationRecord, Version
from graph_migrator.storage.base import GraphStore, GraphTransaction

logger = logging.getLogger(__name__)


def link_migration(
    tx: GraphTransaction,
    record_data: Mapping[str, Any],
    previous_version: Version | None = None,
    *,
    enforce_linear_history: bool = False,
) -> MigrationRecord:
    """
    Create a migration node and link it to its predecessor if one exists.

    Args:
        tx: Open store transaction; the caller commits it
        record_data: Full property set of the new migration, including `version`
        previous_version: Version of the migration this one follows, or None
            for the first migration of a chain
        enforce_linear_history: If True, refuse to link to a predecessor that
            already has a successor

    Returns:
        MigrationRecord built from the stored node properties

    Raises:
        ValueError: If record_data has no usable version
        WriteConflict: If the version already exists, or linear history is
            enforced and the predecessor already has a successor
        StorageUnavailable: If the store cannot be reached
    """
    # Validate before touching the store
    MigrationRecord.model_validate(dict(record_data))

    previous = None
    if previous_version is not None:
        previous = tx.find_node(MIGRATION_LABEL, VERSION_KEY, previous_version)
        if previous is None:
            logger.debug(
                f"No migration with version {previous_version!r}, "
                f"recording version {record_data[VERSION_KEY]!r} without a predecessor"
            )

    if previous is not None and enforce_linear_history:
        # Held until commit, so concurrent linkers count successors one at a time
        tx.lock_node(MIGRATION_LABEL, VERSION_KEY, previous_version)
        successors = tx.count_incoming(
            MIGRATION_LABEL, VERSION_KEY, previous_version, PREVIOUS_MIGRATION
        )
        if successors > 0:
            raise WriteConflict(
                f"Migration {previous_version!r} already has a successor; "
                f"linear history forbids linking {record_data[VERSION_KEY]!r} to it"
            )

    created = tx.create_node(MIGRATION_LABEL, dict(record_data))
    record = MigrationRecord.model_validate(created)

    if previous is not None:
        tx.create_edge(
            MIGRATION_LABEL,
            VERSION_KEY,
            record.version,
            PREVIOUS_MIGRATION,
            previous_version,
        )

    logger.debug(
        f"Recorded migration {record.version!r}",
        extra={
            "context": {
                "previous_version": previous_version,
                "linked": previous is not None,
            }
        },
    )
    return record


def record_migration(
    store: GraphStore,
    record_data: Mapping[str, Any],
    previous_version: Version | None = None,
    *,
    enforce_linear_history: bool = False,
) -> MigrationRecord:
    """
    Run link_migration() in its own transaction on the store.

    Args:
        store: Graph store to write to
        record_data: Full property set of the new migration, including `version`
        previous_version: Version of the predecessor, or None
        enforce_linear_history: See link_migration()

    Returns:
        The committed MigrationRecord

    Raises:
        WriteConflict, StorageUnavailable: Propagated from the store
    """
    with store.transaction() as tx:
        return link_migration(
            tx,
            record_data,
            previous_version,
            enforce_linear_history=enforce_linear_history,
        )
