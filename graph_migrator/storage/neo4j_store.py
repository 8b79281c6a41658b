"""
Neo4j implementation of the GraphStore protocol.

Wraps the official neo4j Python driver. Every store operation runs inside an
explicit transaction on a session bound to the configured database, and
driver exceptions are translated into the Graph Migrator hierarchy:

    neo4j ConstraintError               -> WriteConflict
    ServiceUnavailable, SessionExpired  -> StorageUnavailable
    AuthError                           -> StorageUnavailable
    any other Neo4jError / DriverError  -> QueryError

Example:
    >>> store = open_neo4j_store(runtime_config)
    >>> with store.transaction() as tx:
    ...     tx.find_node("DataModelMigration", "version", 1)
    >>> store.close()

Security:
    - Node properties and lookup values are always sent as query parameters
    - Labels, keys and relationship types are validated identifiers
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from neo4j import Driver, GraphDatabase, Transaction
from neo4j.exceptions import (
    AuthError,
    ConstraintError,
    DriverError,
    Neo4jError,
    ServiceUnavailable,
    SessionExpired,
)

from graph_migrator.config.schema import RuntimeConfig
from graph_migrator.exceptions import QueryError, StorageUnavailable, WriteConflict

from .base import validate_identifier
from .query import collect_all, get_single, single
from .retry_config import create_retry_decorator

logger = logging.getLogger(__name__)


@contextmanager
def translate_errors(action: str) -> Iterator[None]:
    """
    Re-raise neo4j driver errors as Graph Migrator storage errors.

    Args:
        action: Short description used in the error message
    """
    try:
        yield
    except ConstraintError as e:
        raise WriteConflict(f"{action} violated a constraint: {e}") from e
    except (ServiceUnavailable, SessionExpired) as e:
        raise StorageUnavailable(f"{action} failed, database unreachable: {e}") from e
    except AuthError as e:
        raise StorageUnavailable(f"{action} failed, authentication rejected: {e}") from e
    except Neo4jError as e:
        raise QueryError(f"{action} failed: {e}") from e
    except DriverError as e:
        raise QueryError(f"{action} failed: {e}") from e


def _node_properties(record: Any, alias: str = "n") -> dict[str, Any]:
    return dict(record[alias])


class Neo4jTransaction:
    """GraphTransaction over an open neo4j driver transaction."""

    def __init__(self, tx: Transaction):
        self._tx = tx

    def find_node(self, label: str, key: str, value: Any) -> dict[str, Any] | None:
        query = (
            f"MATCH (n:{validate_identifier(label)} "
            f"{{{validate_identifier(key)}: $value}}) RETURN n LIMIT 1"
        )
        with translate_errors(f"Lookup of {label}.{key}"):
            result = self._tx.run(query, value=value)
            return get_single(result, _node_properties)

    def create_node(self, label: str, properties: dict[str, Any]) -> dict[str, Any]:
        # Property keys travel inside $properties, never in the query text
        query = f"CREATE (n:{validate_identifier(label)}) SET n = $properties RETURN n"
        with translate_errors(f"Creation of {label} node"):
            result = self._tx.run(query, properties=properties)
            return single(result, _node_properties)

    def create_edge(
        self,
        label: str,
        key: str,
        source_value: Any,
        rel_type: str,
        target_value: Any,
    ) -> None:
        label = validate_identifier(label)
        key = validate_identifier(key)
        query = (
            f"MATCH (a:{label} {{{key}: $source}}), (b:{label} {{{key}: $target}}) "
            f"CREATE (a)-[r:{validate_identifier(rel_type)}]->(b) "
            f"RETURN count(r) AS created"
        )
        with translate_errors(f"Creation of {rel_type} edge"):
            result = self._tx.run(query, source=source_value, target=target_value)
            created = single(result, lambda record: record["created"])

        if created != 1:
            raise QueryError(
                f"Expected to create one {rel_type} edge from {source_value!r} "
                f"to {target_value!r}, created {created}"
            )

    def lock_node(self, label: str, key: str, value: Any) -> None:
        # Writing a property takes the node's write lock until commit or rollback
        query = (
            f"MATCH (n:{validate_identifier(label)} "
            f"{{{validate_identifier(key)}: $value}}) "
            f"SET n._lock = true REMOVE n._lock"
        )
        with translate_errors(f"Lock of {label}.{key}"):
            self._tx.run(query, value=value).consume()

    def count_incoming(self, label: str, key: str, value: Any, rel_type: str) -> int:
        label = validate_identifier(label)
        query = (
            f"MATCH (:{label})-[r:{validate_identifier(rel_type)}]->"
            f"(n:{label} {{{validate_identifier(key)}: $value}}) "
            f"RETURN count(r) AS total"
        )
        with translate_errors(f"Count of incoming {rel_type} edges"):
            result = self._tx.run(query, value=value)
            return single(result, lambda record: record["total"])

    def find_target(
        self, label: str, key: str, value: Any, rel_type: str
    ) -> dict[str, Any] | None:
        label = validate_identifier(label)
        query = (
            f"MATCH (n:{label} {{{validate_identifier(key)}: $value}})"
            f"-[:{validate_identifier(rel_type)}]->(m:{label}) RETURN m LIMIT 1"
        )
        with translate_errors(f"Lookup of {rel_type} target"):
            result = self._tx.run(query, value=value)
            return get_single(result, lambda record: _node_properties(record, "m"))

    def list_nodes(self, label: str) -> list[dict[str, Any]]:
        query = f"MATCH (n:{validate_identifier(label)}) RETURN n"
        with translate_errors(f"Listing of {label} nodes"):
            result = self._tx.run(query)
            return collect_all(result, _node_properties)

    def run(self, statement: str, parameters: dict[str, Any] | None = None) -> None:
        with translate_errors("Statement"):
            self._tx.run(statement, parameters or {}).consume()


class Neo4jGraphStore:
    """
    GraphStore backed by a neo4j Driver.

    The store owns the driver and closes it in close().

    Attributes:
        database: Target database name (None uses the server default)
    """

    def __init__(self, driver: Driver, database: str | None = None):
        self._driver = driver
        self.database = database

    @contextmanager
    def transaction(self) -> Iterator[Neo4jTransaction]:
        with translate_errors("Opening transaction"):
            session = self._driver.session(database=self.database)

        try:
            with translate_errors("Opening transaction"):
                tx = session.begin_transaction()

            try:
                yield Neo4jTransaction(tx)
            except BaseException:
                logger.debug("Rolling back Neo4j transaction")
                # close() rolls back an uncommitted transaction
                with translate_errors("Rollback"):
                    tx.close()
                raise

            with translate_errors("Commit"):
                tx.commit()
        finally:
            session.close()

    def ensure_unique_constraint(self, label: str, key: str) -> None:
        label = validate_identifier(label)
        key = validate_identifier(key)
        name = f"{label.lower()}_{key.lower()}_unique"
        query = (
            f"CREATE CONSTRAINT {name} IF NOT EXISTS "
            f"FOR (n:{label}) REQUIRE n.{key} IS UNIQUE"
        )
        with translate_errors(f"Creation of constraint {name}"):
            with self._driver.session(database=self.database) as session:
                session.run(query).consume()
        logger.debug(f"Ensured uniqueness constraint {name}")

    def verify_connectivity(self) -> None:
        with translate_errors("Connectivity check"):
            self._driver.verify_connectivity()

    def close(self) -> None:
        self._driver.close()


def open_neo4j_store(config: RuntimeConfig, retry: bool = True) -> Neo4jGraphStore:
    """
    Create a Neo4jGraphStore from runtime configuration and verify it is reachable.

    Connectivity is retried with exponential backoff (see retry_config)
    so that a database that is still starting does not fail the run.

    Args:
        config: RuntimeConfig with resolved password
        retry: Set False to fail on the first unsuccessful connectivity check

    Returns:
        A connected Neo4jGraphStore

    Raises:
        StorageUnavailable: If the database is still unreachable after retrying
    """
    driver = GraphDatabase.driver(
        config.neo4j.uri,
        auth=(config.neo4j.username, config.password),
        connection_timeout=config.neo4j.connection_timeout,
    )
    store = Neo4jGraphStore(driver, database=config.neo4j.database)

    verify = store.verify_connectivity
    if retry:
        verify = create_retry_decorator()(verify)

    try:
        verify()
    except StorageUnavailable:
        store.close()
        raise

    logger.info(
        f"Connected to Neo4j at {config.neo4j.uri}",
        extra={"context": {"database": config.neo4j.database or "default"}},
    )
    return store
