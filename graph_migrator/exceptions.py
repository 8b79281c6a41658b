"""
Custom exceptions for Graph Migrator.

This module provides a hierarchy of exceptions that enable type-safe error
handling throughout the application. All exceptions inherit from the base
GraphMigratorError for consistent catching.

Exception Hierarchy:
    GraphMigratorError (base)
    ├── ConfigurationError
    │   ├── ConfigFileNotFoundError
    │   ├── ConfigValidationError
    │   └── CredentialsMissingError
    ├── StorageError
    │   ├── WriteConflict
    │   ├── StorageUnavailable
    │   └── QueryError
    │       └── NoRecordsFound
    └── MigrationError
        ├── ChecksumMismatchError
        └── MigrationExecutionError

Usage:
    from graph_migrator.exceptions import WriteConflict

    try:
        record_migration(store, {"version": 3}, previous_version=2)
    except WriteConflict as e:
        logger.error(f"Version already recorded: {e}")
        sys.exit(2)
"""


class GraphMigratorError(Exception):
    """
    Base exception for all Graph Migrator errors.

    All custom exceptions in this application should inherit from this class.
    This enables catching all application-specific errors with a single except clause.
    """

    pass


# ============================================================================
# Configuration Errors
# ============================================================================


class ConfigurationError(GraphMigratorError):
    """
    Base class for configuration-related errors.

    Should be caught and result in exit code 1 (configuration error).
    """

    pass


class ConfigFileNotFoundError(ConfigurationError):
    """
    Configuration file does not exist at the specified path.

    Example:
        raise ConfigFileNotFoundError("/path/to/graph-migrator.yaml")
    """

    pass


class ConfigValidationError(ConfigurationError):
    """
    Configuration file is invalid (schema validation failed).

    Example:
        raise ConfigValidationError("Field 'neo4j.uri' must use a bolt or neo4j scheme")
    """

    pass


class CredentialsMissingError(ConfigurationError):
    """
    Environment variable holding the database password is not set.

    Example:
        raise CredentialsMissingError("NEO4J_PASSWORD environment variable not set")
    """

    pass


# ============================================================================
# Storage Errors
# ============================================================================


class StorageError(GraphMigratorError):
    """
    Base class for backing store errors.

    Should be caught and result in exit code 2 (storage error).
    """

    pass


class WriteConflict(StorageError):
    """
    A write violated an identity or uniqueness rule of the store.

    Raised when a migration record with the same version already exists,
    or when linear history is enforced and the predecessor already has
    a successor.

    Example:
        raise WriteConflict("DataModelMigration with version=2 already exists")
    """

    pass


class StorageUnavailable(StorageError):
    """
    The backing store could not be reached.

    Example:
        raise StorageUnavailable("Unable to connect to neo4j://localhost:7687")
    """

    pass


class QueryError(StorageError):
    """
    A query failed to execute or its result could not be converted.

    Example:
        raise QueryError("Invalid input 'CRATE': expected 'CREATE'")
    """

    pass


class NoRecordsFound(QueryError):
    """A query that must return a row returned none."""

    pass


# ============================================================================
# Migration Errors
# ============================================================================


class MigrationError(GraphMigratorError):
    """
    Base class for migration run errors.

    Should be caught and result in exit code 3 (migration error).
    """

    pass


class ChecksumMismatchError(MigrationError):
    """
    An already applied migration file was modified after it was applied.

    Attributes:
        file_name: Name of the migration file
        expected: Checksum recorded in the graph
        actual: Checksum of the file on disk

    Example:
        raise ChecksumMismatchError(
            "001_init.cypher was modified after being applied",
            file_name="001_init.cypher",
            expected="ab12...",
            actual="cd34...",
        )
    """

    def __init__(
        self,
        message: str,
        file_name: str | None = None,
        expected: str | None = None,
        actual: str | None = None,
    ):
        super().__init__(message)
        self.file_name = file_name
        self.expected = expected
        self.actual = actual


class MigrationExecutionError(MigrationError):
    """
    The Cypher body of a migration file failed to execute.

    Example:
        raise MigrationExecutionError("002_index.cypher failed: Invalid input")
    """

    pass
