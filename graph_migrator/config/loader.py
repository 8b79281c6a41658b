"""
Configuration loader for Graph Migrator.

This module loads YAML configuration files, validates them with Pydantic models,
and resolves the database password from the environment to create a RuntimeConfig.

Functions:
    load_config: Main entrypoint to load and validate graph-migrator.yaml
    resolve_password: Helper to resolve the password environment variable
"""

import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from graph_migrator.exceptions import (
    ConfigFileNotFoundError,
    ConfigValidationError,
    CredentialsMissingError,
)

from .schema import MigratorConfig, RuntimeConfig


def load_config(config_path: str | Path) -> RuntimeConfig:
    """
    Load graph-migrator.yaml and resolve the password from the environment.

    This function:
    1. Loads YAML from the specified path
    2. Validates structure using the MigratorConfig Pydantic model
    3. Resolves the password environment variable
    4. Returns RuntimeConfig ready for opening a store

    Args:
        config_path: Path to graph-migrator.yaml (relative or absolute)

    Returns:
        RuntimeConfig with resolved password and validated configuration

    Raises:
        ConfigFileNotFoundError: If config file doesn't exist at the specified path
        ConfigValidationError: If YAML is invalid or config validation fails
        CredentialsMissingError: If the password environment variable is unset

    Security:
        - Passwords are loaded from environment variables only
        - Uses yaml.safe_load() to prevent code injection
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise ConfigFileNotFoundError(f"Configuration file not found: {config_path}")

    try:
        with config_path.open(encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigValidationError(f"Invalid YAML syntax in {config_path}: {e}") from e
    except OSError as e:
        raise ConfigValidationError(
            f"Failed to read configuration file {config_path}: {e}"
        ) from e

    # An empty file means "all defaults"
    if raw_config is None:
        raw_config = {}

    if not isinstance(raw_config, dict):
        raise ConfigValidationError(
            f"Configuration root must be a mapping in {config_path}"
        )

    try:
        migrator_config = MigratorConfig.model_validate(raw_config)
    except ValidationError as e:
        error_messages = []
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            msg = error["msg"]
            error_messages.append(f"  - {loc}: {msg}")

        raise ConfigValidationError(
            f"Configuration validation failed in {config_path}:\n"
            + "\n".join(error_messages)
        ) from e

    password = resolve_password(migrator_config)

    return RuntimeConfig(
        neo4j=migrator_config.neo4j,
        migrations=migrator_config.migrations,
        password=password,
        config_dir=config_path.resolve().parent,
    )


def resolve_password(config: MigratorConfig) -> str:
    """
    Resolve the Neo4j password from the configured environment variable.

    Args:
        config: Validated MigratorConfig

    Returns:
        The password string

    Raises:
        CredentialsMissingError: If the variable is unset or empty
    """
    env_var = config.neo4j.env_password
    password = os.environ.get(env_var)

    if not password:
        raise CredentialsMissingError(
            f"Environment variable {env_var} is not set "
            f"(required for Neo4j user '{config.neo4j.username}')"
        )

    return password
