"""
Entry point for running Graph Migrator as a module.

Enables execution via:
    python -m graph_migrator [command] [options]

This is equivalent to running the installed CLI:
    graph-migrator [command] [options]

Examples:
    python -m graph_migrator --help
    python -m graph_migrator migrate --config graph-migrator.yaml
    python -m graph_migrator status --config graph-migrator.yaml
"""

from graph_migrator.cli import app

if __name__ == "__main__":
    app()
