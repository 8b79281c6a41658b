"""
Storage interface for Graph Migrator.

Defines the graph-store contract that the chain linker and migration
runner depend on. The store is always injected, never a module-level
singleton, so the same code runs against Neo4j in production and the
in-memory store in tests.

Key components:
- GraphTransaction: Protocol for work performed inside one transaction
- GraphStore: Protocol for a store that hands out transactions
- validate_identifier: Guard for labels, keys and relationship types

Labels, property keys and relationship types cannot be passed as Cypher
parameters, so they are interpolated into query text. Every such name goes
through validate_identifier() first.

Example:
    >>> with store.transaction() as tx:
    ...     previous = tx.find_node("DataModelMigration", "version", 1)
    ...     tx.create_node("DataModelMigration", {"version": 2})
    # Commits on normal exit, rolls back if the block raises
"""

import re
from contextlib import AbstractContextManager
from typing import Any, Protocol

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def validate_identifier(name: str) -> str:
    """
    Ensure a label, property key or relationship type is a plain identifier.

    Args:
        name: Candidate identifier

    Returns:
        The name unchanged

    Raises:
        ValueError: If name contains anything but letters, digits and underscores
    """
    if not isinstance(name, str) or not _IDENTIFIER_RE.match(name):
        raise ValueError(f"Invalid graph identifier: {name!r}")
    return name


class GraphTransaction(Protocol):
    """
    Operations available inside a single store transaction.

    Node handles are plain property dicts. Nodes are addressed by
    (label, key, value), which assumes key is unique for the label.
    """

    def find_node(self, label: str, key: str, value: Any) -> dict[str, Any] | None:
        """Return the properties of the node with label and key == value, or None."""
        ...

    def create_node(self, label: str, properties: dict[str, Any]) -> dict[str, Any]:
        """
        Create a node and return its stored properties.

        Raises:
            WriteConflict: If a uniqueness constraint is violated
        """
        ...

    def create_edge(
        self,
        label: str,
        key: str,
        source_value: Any,
        rel_type: str,
        target_value: Any,
    ) -> None:
        """
        Create (source)-[:rel_type]->(target) between two existing nodes.

        Raises:
            QueryError: If either endpoint does not exist
        """
        ...

    def lock_node(self, label: str, key: str, value: Any) -> None:
        """
        Take a write lock on the node, held until the transaction ends.

        Reads made after the lock see every change committed by other
        transactions that locked the same node first.
        """
        ...

    def count_incoming(self, label: str, key: str, value: Any, rel_type: str) -> int:
        """Count rel_type edges pointing at the node."""
        ...

    def find_target(
        self, label: str, key: str, value: Any, rel_type: str
    ) -> dict[str, Any] | None:
        """Return the node an outgoing rel_type edge points to, or None."""
        ...

    def list_nodes(self, label: str) -> list[dict[str, Any]]:
        """Return the properties of every node with the label."""
        ...

    def run(self, statement: str, parameters: dict[str, Any] | None = None) -> None:
        """Execute an arbitrary Cypher statement, discarding its result."""
        ...


class GraphStore(Protocol):
    """A graph-capable backing store with transactional execution."""

    def transaction(self) -> AbstractContextManager[GraphTransaction]:
        """
        Open a transaction.

        The context manager commits when the block exits normally and
        rolls back when it raises.

        Raises:
            StorageUnavailable: If the store cannot be reached
        """
        ...

    def ensure_unique_constraint(self, label: str, key: str) -> None:
        """Create a uniqueness constraint on (label, key) if missing."""
        ...

    def verify_connectivity(self) -> None:
        """
        Check the store can be reached.

        Raises:
            StorageUnavailable: If it cannot
        """
        ...

    def close(self) -> None:
        """Release connections held by the store."""
        ...
