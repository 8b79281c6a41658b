"""
Run Cypher migration files against a graph store.

GraphMigrator discovers `.cyp` / `.cypher` files in a folder, applies the ones
that have not been applied yet and records each applied file as a
DataModelMigration node in the version chain.

Migration Philosophy:
- Migrations are one-way (no downgrades)
- Files are applied in file-name order; prefix them (001_, 002_, ...)
- A file is identified by its name; its SHA-256 checksum must never change
  once applied
- Each file's Cypher runs in its own transaction, and its chain node is
  recorded in a second transaction once the first has committed

For the file at position i (0-based) the recorded node gets version i + 1
and is linked to version i when that exists. The first file therefore has
no predecessor.

Example:
    >>> migrator = GraphMigrator()
    >>> migrations = migrator.gather_migrations(Path("./migrations"))
    >>> outcomes = migrator.run_migrations(store, migrations)
    >>> [o.status for o in outcomes]
    ['skipped', 'applied']
"""

import hashlib
import logging
from pathlib import Path

from graph_migrator.chain import find_migration, record_migration
from graph_migrator.config.constants import (
    DEFAULT_MIGRATION_EXTENSIONS,
    FILE_NAME_KEY,
    MIGRATION_LABEL,
    VERSION_KEY,
)
from graph_migrator.exceptions import (
    ChecksumMismatchError,
    MigrationExecutionError,
    QueryError,
)
from graph_migrator.models import (
    FileMigration,
    MigrationNode,
    MigrationOutcome,
    parameterize,
)
from graph_migrator.storage.base import GraphStore
from graph_migrator.utils.logging import log_with_context
from graph_migrator.utils.time import utc_timestamp

logger = logging.getLogger(__name__)


def calculate_checksum(content: str) -> str:
    """Return the SHA-256 hex digest of the migration text."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


class GraphMigrator:
    """
    Applies migration files and records them as a chain of nodes.

    Attributes:
        extensions: File extensions treated as migrations (lowercase, with dot)
        enforce_linear_history: Passed to the chain linker for every node
    """

    def __init__(
        self,
        extensions: tuple[str, ...] | list[str] = DEFAULT_MIGRATION_EXTENSIONS,
        enforce_linear_history: bool = False,
    ):
        self.extensions = tuple(ext.lower() for ext in extensions)
        self.enforce_linear_history = enforce_linear_history

    def gather_migrations(self, folder_path: Path) -> list[FileMigration]:
        """
        Collect every migration file in the folder, sorted by file name.

        Sub-directories and files with other extensions are ignored. A
        folder that does not exist or cannot be listed yields an empty list,
        and individual files that cannot be read are skipped with a warning.

        Args:
            folder_path: Directory to scan (not recursive)

        Returns:
            FileMigration list in application order
        """
        folder_path = Path(folder_path)
        try:
            entries = sorted(folder_path.iterdir(), key=lambda p: p.name)
        except OSError as e:
            logger.warning(f"Cannot read migrations folder {folder_path}: {e}")
            return []

        migrations = []
        for entry in entries:
            migration = self.process_file(entry)
            if migration is not None:
                migrations.append(migration)

        logger.debug(f"Gathered {len(migrations)} migrations from {folder_path}")
        return migrations

    def process_file(self, file_path: Path) -> FileMigration | None:
        """Build a FileMigration for a migration file, or None for anything else."""
        if not file_path.is_file() or file_path.suffix.lower() not in self.extensions:
            return None

        try:
            cypher_text = file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Skipping unreadable migration {file_path.name}: {e}")
            return None

        return FileMigration(
            checksum=calculate_checksum(cypher_text),
            file_name=file_path.name,
            cypher_text=cypher_text,
        )

    def run_migrations(
        self, store: GraphStore, migrations: list[FileMigration]
    ) -> list[MigrationOutcome]:
        """
        Apply every migration that has not been applied yet.

        Stops at the first failure; migrations before it stay applied.

        Args:
            store: Graph store to migrate
            migrations: Files in application order (see gather_migrations)

        Returns:
            One MigrationOutcome per file

        Raises:
            ChecksumMismatchError: If an applied file was modified since
            MigrationExecutionError: If a file's Cypher fails
            WriteConflict, StorageUnavailable: Propagated from the store
        """
        logger.info(f"Running migrations for {len(migrations)} files")

        store.ensure_unique_constraint(MIGRATION_LABEL, VERSION_KEY)

        outcomes = []
        for counter, migration in enumerate(migrations):
            outcomes.append(self.up_migration(counter, store, migration))

        return outcomes

    def up_migration(
        self, counter: int, store: GraphStore, migration: FileMigration
    ) -> MigrationOutcome:
        """
        Apply one migration unless it was already applied.

        Args:
            counter: 0-based position of the file in the run
            store: Graph store to migrate
            migration: File to apply

        Returns:
            MigrationOutcome with status "applied" or "skipped"
        """
        with store.transaction() as tx:
            existing = find_migration(tx, FILE_NAME_KEY, migration.file_name)

        if existing is not None:
            recorded_checksum = existing.properties.get("checksum")
            if recorded_checksum != migration.checksum:
                log_with_context(
                    logger,
                    logging.ERROR,
                    "CHECKSUM MISMATCH - wrong checksum",
                    context={
                        "expected": recorded_checksum,
                        "actual": migration.checksum,
                    },
                    migration=migration.file_name,
                )
                raise ChecksumMismatchError(
                    f"{migration.file_name} was modified after being applied",
                    file_name=migration.file_name,
                    expected=recorded_checksum,
                    actual=migration.checksum,
                )

            log_with_context(
                logger, logging.INFO, "SKIP - up to date", migration=migration.file_name
            )
            return MigrationOutcome(
                file_name=migration.file_name,
                status="skipped",
                version=existing.version,
            )

        version = self.create_migration_node(counter, store, migration)

        log_with_context(
            logger,
            logging.INFO,
            "DONE - migrated",
            context={"version": version},
            migration=migration.file_name,
        )
        return MigrationOutcome(
            file_name=migration.file_name, status="applied", version=version
        )

    def create_migration_node(
        self, counter: int, store: GraphStore, migration: FileMigration
    ) -> int:
        """
        Execute the migration's Cypher, then record its node in the chain.

        Returns:
            The version given to the new node (counter + 1)
        """
        try:
            with store.transaction() as tx:
                tx.run(migration.cypher_text)
        except QueryError as e:
            raise MigrationExecutionError(
                f"{migration.file_name} failed to execute: {e}"
            ) from e

        node = MigrationNode(
            checksum=migration.checksum,
            file_name=migration.file_name,
            cypher_text=migration.cypher_text,
            version=counter + 1,
            timestamp=utc_timestamp(),
        )

        record = record_migration(
            store,
            parameterize(node),
            previous_version=counter,
            enforce_linear_history=self.enforce_linear_history,
        )
        return record.version
