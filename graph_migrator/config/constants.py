"""
Configuration constants for Graph Migrator.

This module contains global constants used across the application
to avoid tight coupling between modules.
"""

# Label of migration nodes in the graph
MIGRATION_LABEL = "DataModelMigration"

# Relationship pointing from a migration to the one it follows
PREVIOUS_MIGRATION = "PREVIOUS_MIGRATION"

# Property identifying a migration node
VERSION_KEY = "version"

# Property used to detect already applied migration files
FILE_NAME_KEY = "file_name"

# File extensions recognised as Cypher migrations
DEFAULT_MIGRATION_EXTENSIONS = (".cyp", ".cypher")

# Default config file looked up by the CLI
DEFAULT_CONFIG_FILE = "graph-migrator.yaml"
