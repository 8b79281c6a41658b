"""
Migration version chain.

Key exports:
    - link_migration: Record a migration and link it to its predecessor inside a transaction
    - record_migration: link_migration() in its own transaction
    - read_chain: List recorded migrations with their predecessors
    - find_migration: Look up one recorded migration by a unique property
"""

from .history import find_migration, read_chain
from .linker import link_migration, record_migration

__all__ = [
    "find_migration",
    "link_migration",
    "read_chain",
    "record_migration",
]
