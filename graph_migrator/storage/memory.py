"""
In-memory graph store.

A process-local implementation of the GraphStore protocol, used by the test
suite and by embedders that want the linker without a database. It mirrors
the guarantees the linker relies on from a real database:

- Transactions are serialized by a lock, and writes are staged on a private
  copy of the graph that replaces the shared state only on commit
- Uniqueness constraints reject duplicate (label, key) values with WriteConflict
- An unavailable store raises StorageUnavailable when a transaction is opened

Raw Cypher passed to run() is not interpreted. Statements are recorded in
`executed_statements` once their transaction commits, and an optional
`on_run` hook lets callers simulate failing statements.
"""

import copy
import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

from graph_migrator.exceptions import QueryError, StorageUnavailable, WriteConflict

from .base import validate_identifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Edge:
    label: str
    key: str
    source_value: Any
    rel_type: str
    target_value: Any


@dataclass
class _GraphState:
    nodes: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    edges: list[_Edge] = field(default_factory=list)
    statements: list[tuple[str, dict[str, Any]]] = field(default_factory=list)


class InMemoryTransaction:
    """Staged view of the graph for one transaction."""

    def __init__(
        self,
        state: _GraphState,
        constraints: set[tuple[str, str]],
        on_run: Callable[[str, dict[str, Any]], None] | None = None,
    ):
        self._state = state
        self._constraints = constraints
        self._on_run = on_run

    def find_node(self, label: str, key: str, value: Any) -> dict[str, Any] | None:
        validate_identifier(label)
        validate_identifier(key)
        for node in self._state.nodes.get(label, []):
            if key in node and node[key] == value:
                return dict(node)
        return None

    def create_node(self, label: str, properties: dict[str, Any]) -> dict[str, Any]:
        validate_identifier(label)

        for constrained_label, key in self._constraints:
            if constrained_label != label or key not in properties:
                continue
            if self.find_node(label, key, properties[key]) is not None:
                raise WriteConflict(
                    f"{label} with {key}={properties[key]!r} already exists"
                )

        node = dict(properties)
        self._state.nodes.setdefault(label, []).append(node)
        return dict(node)

    def create_edge(
        self,
        label: str,
        key: str,
        source_value: Any,
        rel_type: str,
        target_value: Any,
    ) -> None:
        validate_identifier(rel_type)
        if self.find_node(label, key, source_value) is None:
            raise QueryError(f"Source node {label}({key}={source_value!r}) not found")
        if self.find_node(label, key, target_value) is None:
            raise QueryError(f"Target node {label}({key}={target_value!r}) not found")

        self._state.edges.append(
            _Edge(label, key, source_value, rel_type, target_value)
        )

    def lock_node(self, label: str, key: str, value: Any) -> None:
        # Transactions already run one at a time under the store lock
        validate_identifier(label)
        validate_identifier(key)

    def count_incoming(self, label: str, key: str, value: Any, rel_type: str) -> int:
        return sum(
            1
            for edge in self._state.edges
            if edge.label == label
            and edge.key == key
            and edge.rel_type == rel_type
            and edge.target_value == value
        )

    def find_target(
        self, label: str, key: str, value: Any, rel_type: str
    ) -> dict[str, Any] | None:
        for edge in self._state.edges:
            if (
                edge.label == label
                and edge.key == key
                and edge.rel_type == rel_type
                and edge.source_value == value
            ):
                return self.find_node(label, key, edge.target_value)
        return None

    def list_nodes(self, label: str) -> list[dict[str, Any]]:
        validate_identifier(label)
        return [dict(node) for node in self._state.nodes.get(label, [])]

    def run(self, statement: str, parameters: dict[str, Any] | None = None) -> None:
        parameters = parameters or {}
        if self._on_run is not None:
            self._on_run(statement, parameters)
        self._state.statements.append((statement, parameters))


class InMemoryGraphStore:
    """
    GraphStore implementation holding the graph in process memory.

    Attributes:
        available: When False, opening a transaction raises StorageUnavailable
        on_run: Optional hook called for every run() statement; raising from
            it aborts the transaction

    Example:
        >>> store = InMemoryGraphStore()
        >>> store.ensure_unique_constraint("DataModelMigration", "version")
        >>> with store.transaction() as tx:
        ...     tx.create_node("DataModelMigration", {"version": 1})
        >>> store.node_count("DataModelMigration")
        1
    """

    def __init__(
        self,
        available: bool = True,
        on_run: Callable[[str, dict[str, Any]], None] | None = None,
    ):
        self.available = available
        self.on_run = on_run
        self._state = _GraphState()
        self._constraints: set[tuple[str, str]] = set()
        self._lock = threading.Lock()

    @contextmanager
    def transaction(self) -> Iterator[InMemoryTransaction]:
        if not self.available:
            raise StorageUnavailable("In-memory store is marked unavailable")

        with self._lock:
            staged = copy.deepcopy(self._state)
            tx = InMemoryTransaction(staged, set(self._constraints), self.on_run)
            try:
                yield tx
            except BaseException:
                logger.debug("Rolling back in-memory transaction")
                raise
            self._state = staged

    def ensure_unique_constraint(self, label: str, key: str) -> None:
        validate_identifier(label)
        validate_identifier(key)
        with self._lock:
            values = [
                node[key] for node in self._state.nodes.get(label, []) if key in node
            ]
            if len(values) != len({repr(v) for v in values}):
                raise WriteConflict(
                    f"Cannot add uniqueness constraint on {label}.{key}: "
                    f"duplicate values exist"
                )
            self._constraints.add((label, key))

    def verify_connectivity(self) -> None:
        if not self.available:
            raise StorageUnavailable("In-memory store is marked unavailable")

    def close(self) -> None:
        pass

    # Inspection helpers

    @property
    def executed_statements(self) -> list[str]:
        """Committed run() statements in execution order."""
        return [statement for statement, _ in self._state.statements]

    def node_count(self, label: str) -> int:
        return len(self._state.nodes.get(label, []))

    def edges(self, rel_type: str) -> list[tuple[Any, Any]]:
        """(source_value, target_value) pairs of committed rel_type edges."""
        return [
            (edge.source_value, edge.target_value)
            for edge in self._state.edges
            if edge.rel_type == rel_type
        ]
