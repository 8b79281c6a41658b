"""
Configuration schema models for Graph Migrator.

This module defines Pydantic models for validating and parsing the
graph-migrator.yaml file. All models use Pydantic v2 field validators.

Models:
    Neo4jSettings: Connection settings (uri, username, password env var, database)
    MigrationSettings: Where migrations live and how the chain is linked
    MigratorConfig: Root configuration model (validates entire YAML)
    RuntimeConfig: Runtime configuration with the resolved password
"""

from pathlib import Path

from pydantic import BaseModel, field_validator

from .constants import DEFAULT_MIGRATION_EXTENSIONS

ALLOWED_URI_SCHEMES = (
    "bolt",
    "bolt+s",
    "bolt+ssc",
    "neo4j",
    "neo4j+s",
    "neo4j+ssc",
)


class Neo4jSettings(BaseModel):
    """
    Neo4j connection settings from graph-migrator.yaml.

    The password itself never appears in the file; env_password names
    the environment variable that holds it.

    Attributes:
        uri: Bolt/neo4j connection URI (e.g., "neo4j://localhost:7687")
        username: Database user
        env_password: Environment variable containing the password
        database: Target database name (None uses the server default)
        connection_timeout: Seconds to wait when opening a connection
    """

    uri: str = "neo4j://localhost:7687"
    username: str = "neo4j"
    env_password: str = "NEO4J_PASSWORD"
    database: str | None = None
    connection_timeout: float = 30.0

    @field_validator("uri")
    @classmethod
    def validate_uri(cls, v: str) -> str:
        """Validate the URI uses a scheme the driver understands."""
        scheme, sep, rest = v.partition("://")
        if not sep or not rest:
            raise ValueError(f"uri must look like scheme://host:port, got: {v}")
        if scheme not in ALLOWED_URI_SCHEMES:
            raise ValueError(
                f"uri scheme must be one of {ALLOWED_URI_SCHEMES}, got: {scheme}"
            )
        if "@" in rest:
            raise ValueError("uri must not embed credentials, use env_password instead")
        return v

    @field_validator("username", "env_password")
    @classmethod
    def validate_non_empty(cls, v: str) -> str:
        """Validate string fields are non-empty."""
        if not v or v.isspace():
            raise ValueError("value cannot be empty")
        return v

    @field_validator("connection_timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Validate connection_timeout is positive."""
        if v <= 0:
            raise ValueError(f"connection_timeout must be positive, got: {v}")
        return v


class MigrationSettings(BaseModel):
    """
    Migration discovery and chain settings.

    Attributes:
        directory: Folder containing .cyp/.cypher migration files
        extensions: File extensions treated as migrations
        enforce_linear_history: Refuse to give a migration a second successor
    """

    directory: str = "./migrations"
    extensions: list[str] = list(DEFAULT_MIGRATION_EXTENSIONS)
    enforce_linear_history: bool = False

    @field_validator("directory")
    @classmethod
    def validate_directory(cls, v: str) -> str:
        """Validate directory is non-empty."""
        if not v or v.isspace():
            raise ValueError("directory cannot be empty")
        return v

    @field_validator("extensions")
    @classmethod
    def validate_extensions(cls, v: list[str]) -> list[str]:
        """Normalize extensions to lowercase with a leading dot."""
        if not v:
            raise ValueError("extensions must contain at least one entry")

        normalized = []
        for ext in v:
            ext = ext.strip().lower()
            if not ext or ext == ".":
                raise ValueError("extensions cannot contain empty values")
            normalized.append(ext if ext.startswith(".") else f".{ext}")
        return normalized


class MigratorConfig(BaseModel):
    """
    Root configuration model for graph-migrator.yaml.

    Attributes:
        neo4j: Connection settings
        migrations: Migration discovery settings
    """

    neo4j: Neo4jSettings = Neo4jSettings()
    migrations: MigrationSettings = MigrationSettings()


class RuntimeConfig(BaseModel):
    """
    Runtime configuration with the database password resolved.

    Built by config.loader.load_config(); never serialized to disk.

    Attributes:
        neo4j: Connection settings
        migrations: Migration discovery settings
        password: Password resolved from neo4j.env_password
        config_dir: Directory of the config file, used to resolve relative paths
    """

    neo4j: Neo4jSettings
    migrations: MigrationSettings
    password: str
    config_dir: Path

    @property
    def migrations_dir(self) -> Path:
        """Migration directory resolved relative to the config file."""
        directory = Path(self.migrations.directory).expanduser()
        if directory.is_absolute():
            return directory
        return (self.config_dir / directory).resolve()
