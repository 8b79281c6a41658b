#!/usr/bin/env python3
"""
Build and inspect a migration chain without a running database.

This script demonstrates how to:
- Record migration nodes with record_migration()
- Link to a predecessor, or record without one when it does not exist
- Handle a duplicate version (WriteConflict)
- Read the chain back with read_chain()

Swap InMemoryGraphStore for open_neo4j_store(load_config(...)) to run the
same calls against Neo4j.

Usage:
    python examples/code-examples/record_chain.py
"""

import sys

from graph_migrator.chain import read_chain, record_migration
from graph_migrator.config.constants import MIGRATION_LABEL, VERSION_KEY
from graph_migrator.exceptions import WriteConflict
from graph_migrator.storage.memory import InMemoryGraphStore


def main() -> int:
    store = InMemoryGraphStore()
    store.ensure_unique_constraint(MIGRATION_LABEL, VERSION_KEY)

    record_migration(store, {"version": 1, "name": "create people"})
    record_migration(store, {"version": 2, "name": "index titles"}, previous_version=1)
    # Version 99 was never recorded, so version 3 starts a new root
    record_migration(store, {"version": 3, "name": "hotfix"}, previous_version=99)

    try:
        record_migration(store, {"version": 2, "name": "again"}, previous_version=1)
    except WriteConflict as e:
        print(f"Rejected duplicate: {e}")

    print()
    print("version  previous  name")
    for entry in read_chain(store):
        previous = "-" if entry.previous_version is None else entry.previous_version
        name = entry.record.properties.get("name", "")
        print(f"{entry.record.version:>7}  {previous:>8}  {name}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
