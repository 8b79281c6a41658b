"""
Record types for Graph Migrator.

Key components:
- MigrationRecord: A migration node as stored in the graph (version + opaque properties)
- MigrationNode: The property set written for a file-based migration
- FileMigration: A migration file discovered on disk
- MigrationOutcome: Result of processing one file during a run
- ChainEntry: One link of the recorded version chain
- parameterize: Convert a model into a Cypher parameter mapping

MigrationRecord and MigrationNode are Pydantic models so that node
properties read back from a store are validated on the way in, and
serialized to plain JSON-compatible values on the way out.

Example:
    >>> node = MigrationNode(
    ...     checksum="9f86d0...",
    ...     file_name="001_init.cypher",
    ...     cypher_text="CREATE INDEX ...",
    ...     version=1,
    ...     timestamp="2025-11-02T08:30:45Z",
    ... )
    >>> parameterize(node)["version"]
    1
"""

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, StrictFloat, StrictInt, StrictStr, field_validator

from graph_migrator.exceptions import QueryError

# Scalars a version may take; kept exactly as stored (no bool, no coercion)
Version = StrictInt | StrictFloat | StrictStr


class MigrationRecord(BaseModel):
    """
    One applied data-model migration as stored in the graph.

    Identity is the ``version`` attribute. Every other property supplied by
    the caller (file name, checksum, timestamp, ...) is kept verbatim as an
    extra field and is opaque to the linker.

    Attributes:
        version: Unique, comparable identifier of the migration
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    version: Version

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: Version) -> Version:
        """Reject empty string versions."""
        if isinstance(v, str) and (not v or v.isspace()):
            raise ValueError("version cannot be empty")
        return v

    @property
    def properties(self) -> dict[str, Any]:
        """All node properties, version included."""
        return self.model_dump()


class MigrationNode(BaseModel):
    """
    Property set of a migration node created from a migration file.

    Attributes:
        checksum: SHA-256 hex digest of the file content
        file_name: Base name of the migration file
        cypher_text: Cypher body of the migration
        version: Position of the migration in the chain (1-based)
        timestamp: ISO 8601 UTC timestamp of when it was applied
    """

    checksum: str
    file_name: str
    cypher_text: str
    version: int
    timestamp: str


@dataclass(frozen=True)
class FileMigration:
    """
    A migration discovered on disk.

    Attributes:
        checksum: SHA-256 hex digest of cypher_text
        file_name: Base name of the file (e.g., "001_init.cypher")
        cypher_text: Full file content
    """

    checksum: str
    file_name: str
    cypher_text: str


@dataclass(frozen=True)
class MigrationOutcome:
    """
    Result of processing a single migration file during a run.

    Attributes:
        file_name: Migration file name
        status: "applied" if executed in this run, "skipped" if already applied
        version: Chain version of the migration node
    """

    file_name: str
    status: Literal["applied", "skipped"]
    version: Version


@dataclass(frozen=True)
class ChainEntry:
    """A recorded migration together with the version it points back to."""

    record: MigrationRecord
    previous_version: Version | None


def parameterize(instance: BaseModel) -> dict[str, Any]:
    """
    Convert a Pydantic model into a mapping usable as Cypher parameters.

    Values are dumped in JSON mode so only primitive types (str, int,
    float, bool, None, lists and dicts of those) reach the driver.

    Args:
        instance: Any Pydantic model instance

    Returns:
        dict of property name to primitive value

    Raises:
        QueryError: If the model cannot be serialized
    """
    try:
        return instance.model_dump(mode="json")
    except ValueError as e:
        raise QueryError(f"Failed to serialize {type(instance).__name__}: {e}") from e
