"""
Tests for CLI module - commands, output modes and exit codes.

The Neo4j connection is replaced by an InMemoryGraphStore by patching
graph_migrator.cli.open_neo4j_store, so every command runs end to end
against real migration files without a database.

Commands:
    - migrate: apply, skip, checksum mismatch, failing migration
    - status: chain listing in text, JSON and quiet modes
    - validate: config validation without connecting
    - link: recording single nodes with and without predecessor
    - main callback: --version and bare invocation

Exit Codes:
    - 0: Success
    - 1: Configuration error
    - 2: Storage error
    - 3: Migration error
"""

import json
import re
from unittest.mock import patch

import pytest
import yaml
from typer.testing import CliRunner

from graph_migrator.cli import (
    EXIT_CONFIG_ERROR,
    EXIT_MIGRATION_ERROR,
    EXIT_STORAGE_ERROR,
    EXIT_SUCCESS,
    _parse_scalar,
    app,
)
from graph_migrator.config.constants import PREVIOUS_MIGRATION
from graph_migrator.exceptions import QueryError, StorageUnavailable
from graph_migrator.storage.memory import InMemoryGraphStore

ANSI_PATTERN = re.compile(r"\x1b\[[0-9;]*m")

# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def cli_runner():
    """Return CliRunner for testing Typer apps."""
    return CliRunner()


@pytest.fixture(autouse=True)
def reset_output_mode():
    """Reset global output_mode after each test."""
    from graph_migrator.utils.console import output_mode

    output_mode.reset()
    yield
    output_mode.reset()


@pytest.fixture(autouse=True)
def no_log_handlers():
    """Keep JSON log lines out of captured CLI output."""
    with patch("graph_migrator.cli.setup_logging"):
        yield


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    """Write a config file next to a migrations folder with two files."""
    monkeypatch.setenv("TEST_NEO4J_PASSWORD", "s3cret-password")

    migrations = tmp_path / "migrations"
    migrations.mkdir()
    (migrations / "001_init.cypher").write_text(
        "CREATE CONSTRAINT user_id IF NOT EXISTS FOR (u:User) REQUIRE u.id IS UNIQUE",
        encoding="utf-8",
    )
    (migrations / "002_seed.cypher").write_text(
        "MERGE (:User {id: 1, name: 'admin'})", encoding="utf-8"
    )

    config_path = tmp_path / "graph-migrator.yaml"
    config_path.write_text(
        yaml.dump(
            {
                "neo4j": {
                    "uri": "bolt://localhost:7687",
                    "env_password": "TEST_NEO4J_PASSWORD",
                },
                "migrations": {"directory": "migrations"},
            }
        ),
        encoding="utf-8",
    )
    return config_path


@pytest.fixture
def store():
    return InMemoryGraphStore()


@pytest.fixture
def patched_store(store):
    """Make the CLI connect to the in-memory store."""
    with patch("graph_migrator.cli.open_neo4j_store", return_value=store) as mock_open:
        yield mock_open


def _json(result) -> dict:
    return json.loads(result.stdout)


# ============================================================================
# migrate
# ============================================================================


class TestMigrateCommand:
    def test_migrate_applies_all_files(self, cli_runner, config_file, store, patched_store):
        result = cli_runner.invoke(app, ["migrate", "--config", str(config_file)])

        assert result.exit_code == EXIT_SUCCESS, result.output
        assert "2 applied" in result.output
        assert store.edges(PREVIOUS_MIGRATION) == [(2, 1)]
        patched_store.assert_called_once()

    def test_migrate_json_output(self, cli_runner, config_file, patched_store):
        result = cli_runner.invoke(
            app, ["migrate", "--config", str(config_file), "--format", "json"]
        )

        assert result.exit_code == EXIT_SUCCESS
        data = _json(result)
        assert data["status"] == "success"
        assert data["applied"] == 2
        assert data["skipped"] == 0
        assert data["migrations"] == [
            {"file_name": "001_init.cypher", "status": "applied", "version": 1},
            {"file_name": "002_seed.cypher", "status": "applied", "version": 2},
        ]
        assert not ANSI_PATTERN.search(result.stdout)

    def test_second_run_reports_up_to_date(self, cli_runner, config_file, patched_store):
        cli_runner.invoke(app, ["migrate", "--config", str(config_file)])

        result = cli_runner.invoke(
            app, ["migrate", "--config", str(config_file), "--format", "json"]
        )

        assert result.exit_code == EXIT_SUCCESS
        data = _json(result)
        assert data["applied"] == 0
        assert data["skipped"] == 2

    def test_quiet_mode_is_tab_separated(self, cli_runner, config_file, patched_store):
        result = cli_runner.invoke(app, ["migrate", "-c", str(config_file), "--quiet"])

        assert result.exit_code == EXIT_SUCCESS
        lines = result.stdout.strip().splitlines()
        assert lines == ["001_init.cypher\tapplied\t1", "002_seed.cypher\tapplied\t2"]

    def test_dir_option_overrides_config(
        self, cli_runner, config_file, tmp_path, store, patched_store
    ):
        other = tmp_path / "other"
        other.mkdir()
        (other / "001_only.cypher").write_text("RETURN 1", encoding="utf-8")

        result = cli_runner.invoke(
            app,
            ["migrate", "-c", str(config_file), "--dir", str(other), "--format", "json"],
        )

        assert result.exit_code == EXIT_SUCCESS
        assert [m["file_name"] for m in _json(result)["migrations"]] == ["001_only.cypher"]
        assert store.executed_statements == ["RETURN 1"]

    def test_no_retry_flag_is_passed_through(self, cli_runner, config_file, patched_store):
        cli_runner.invoke(app, ["migrate", "-c", str(config_file), "--no-retry"])

        assert patched_store.call_args.kwargs == {"retry": False}

    def test_checksum_mismatch_exits_migration_error(
        self, cli_runner, config_file, tmp_path, patched_store
    ):
        cli_runner.invoke(app, ["migrate", "-c", str(config_file)])
        (tmp_path / "migrations" / "001_init.cypher").write_text(
            "CREATE (n:Changed)", encoding="utf-8"
        )

        result = cli_runner.invoke(
            app, ["migrate", "-c", str(config_file), "--format", "json"]
        )

        assert result.exit_code == EXIT_MIGRATION_ERROR
        data = _json(result)
        assert data["status"] == "error"
        assert "001_init.cypher" in data["error"]

    def test_failing_migration_exits_migration_error(
        self, cli_runner, config_file, tmp_path
    ):
        def reject_merge(statement, parameters):
            if statement.startswith("MERGE"):
                raise QueryError("Invalid input")

        failing_store = InMemoryGraphStore(on_run=reject_merge)
        with patch("graph_migrator.cli.open_neo4j_store", return_value=failing_store):
            result = cli_runner.invoke(app, ["migrate", "-c", str(config_file)])

        assert result.exit_code == EXIT_MIGRATION_ERROR
        assert "Migration failed" in result.output
        assert failing_store.executed_statements == [
            (tmp_path / "migrations" / "001_init.cypher").read_text(encoding="utf-8")
        ]

    def test_unreachable_database_exits_storage_error(self, cli_runner, config_file):
        with patch(
            "graph_migrator.cli.open_neo4j_store",
            side_effect=StorageUnavailable("connection refused"),
        ):
            result = cli_runner.invoke(app, ["migrate", "-c", str(config_file)])

        assert result.exit_code == EXIT_STORAGE_ERROR
        assert "Database unavailable" in result.output

    def test_missing_password_exits_config_error(
        self, cli_runner, config_file, monkeypatch, patched_store
    ):
        monkeypatch.delenv("TEST_NEO4J_PASSWORD")

        result = cli_runner.invoke(app, ["migrate", "-c", str(config_file)])

        assert result.exit_code == EXIT_CONFIG_ERROR
        assert "TEST_NEO4J_PASSWORD" in result.output
        patched_store.assert_not_called()

    def test_invalid_format_exits_config_error(self, cli_runner, config_file):
        result = cli_runner.invoke(
            app, ["migrate", "-c", str(config_file), "--format", "xml"]
        )

        assert result.exit_code == EXIT_CONFIG_ERROR
        assert "Invalid format" in result.output

    def test_missing_config_file_is_usage_error(self, cli_runner, tmp_path):
        result = cli_runner.invoke(app, ["migrate", "-c", str(tmp_path / "nope.yaml")])

        assert result.exit_code != EXIT_SUCCESS


# ============================================================================
# status
# ============================================================================


class TestStatusCommand:
    def test_status_json_lists_chain(self, cli_runner, config_file, patched_store):
        cli_runner.invoke(app, ["migrate", "-c", str(config_file)])

        result = cli_runner.invoke(app, ["status", "-c", str(config_file), "-f", "json"])

        assert result.exit_code == EXIT_SUCCESS
        data = _json(result)
        assert data["count"] == 2
        assert [(row["version"], row["previous_version"]) for row in data["chain"]] == [
            (1, None),
            (2, 1),
        ]
        assert data["chain"][0]["file_name"] == "001_init.cypher"

    def test_status_quiet(self, cli_runner, config_file, patched_store):
        cli_runner.invoke(app, ["migrate", "-c", str(config_file)])

        result = cli_runner.invoke(app, ["status", "-c", str(config_file), "--quiet"])

        assert result.stdout.strip().splitlines() == [
            "1\t\t001_init.cypher",
            "2\t1\t002_seed.cypher",
        ]

    def test_status_empty_chain(self, cli_runner, config_file, patched_store):
        result = cli_runner.invoke(app, ["status", "-c", str(config_file)])

        assert result.exit_code == EXIT_SUCCESS
        assert "No migrations recorded yet" in result.output

    def test_status_unreachable_database(self, cli_runner, config_file):
        with patch(
            "graph_migrator.cli.open_neo4j_store",
            side_effect=StorageUnavailable("connection refused"),
        ):
            result = cli_runner.invoke(app, ["status", "-c", str(config_file)])

        assert result.exit_code == EXIT_STORAGE_ERROR


# ============================================================================
# validate
# ============================================================================


class TestValidateCommand:
    def test_validate_does_not_connect(self, cli_runner, config_file, patched_store):
        result = cli_runner.invoke(app, ["validate", "-c", str(config_file)])

        assert result.exit_code == EXIT_SUCCESS
        assert "Configuration is valid" in result.output
        assert "001_init.cypher" in result.output
        patched_store.assert_not_called()

    def test_validate_json(self, cli_runner, config_file, tmp_path):
        result = cli_runner.invoke(
            app, ["validate", "-c", str(config_file), "--format", "json"]
        )

        assert result.exit_code == EXIT_SUCCESS
        data = _json(result)
        assert data["valid"] is True
        assert data["uri"] == "bolt://localhost:7687"
        assert data["migrations_dir"] == str((tmp_path / "migrations").resolve())
        assert [m["file_name"] for m in data["migrations"]] == [
            "001_init.cypher",
            "002_seed.cypher",
        ]

    def test_validate_invalid_yaml(self, cli_runner, tmp_path):
        config_path = tmp_path / "broken.yaml"
        config_path.write_text("neo4j: [unclosed", encoding="utf-8")

        result = cli_runner.invoke(app, ["validate", "-c", str(config_path)])

        assert result.exit_code == EXIT_CONFIG_ERROR
        assert "Configuration error" in result.output


# ============================================================================
# link
# ============================================================================


class TestLinkCommand:
    def test_link_first_migration(self, cli_runner, config_file, store, patched_store):
        result = cli_runner.invoke(app, ["link", "1", "-c", str(config_file)])

        assert result.exit_code == EXIT_SUCCESS, result.output
        assert "no predecessor" in result.output
        assert store.edges(PREVIOUS_MIGRATION) == []

    def test_link_to_existing_predecessor(
        self, cli_runner, config_file, store, patched_store
    ):
        cli_runner.invoke(app, ["link", "1", "-c", str(config_file)])

        result = cli_runner.invoke(
            app,
            [
                "link",
                "2",
                "-c",
                str(config_file),
                "--previous",
                "1",
                "--prop",
                "name=add index",
                "--format",
                "json",
            ],
        )

        assert result.exit_code == EXIT_SUCCESS
        data = _json(result)
        assert data["record"] == {"version": 2, "name": "add index"}
        assert data["previous_version"] == 1
        assert store.edges(PREVIOUS_MIGRATION) == [(2, 1)]

    def test_link_missing_predecessor_still_records(
        self, cli_runner, config_file, store, patched_store
    ):
        result = cli_runner.invoke(
            app, ["link", "3", "-c", str(config_file), "--previous", "99", "-f", "json"]
        )

        assert result.exit_code == EXIT_SUCCESS
        assert _json(result)["previous_version"] is None
        assert store.node_count("DataModelMigration") == 1

    def test_link_string_versions(self, cli_runner, config_file, store, patched_store):
        cli_runner.invoke(app, ["link", "v1", "-c", str(config_file)])
        cli_runner.invoke(app, ["link", "v2", "-c", str(config_file), "-p", "v1"])

        assert store.edges(PREVIOUS_MIGRATION) == [("v2", "v1")]

    def test_link_padded_version_stays_string(
        self, cli_runner, config_file, store, patched_store
    ):
        cli_runner.invoke(app, ["link", "7", "-c", str(config_file)])

        result = cli_runner.invoke(
            app, ["link", "007", "-c", str(config_file), "-p", "7", "-f", "json"]
        )

        assert result.exit_code == EXIT_SUCCESS, result.output
        assert _json(result)["record"] == {"version": "007"}
        assert store.edges(PREVIOUS_MIGRATION) == [("007", 7)]

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("0", 0),
            ("42", 42),
            ("-3", -3),
            ("007", "007"),
            ("+7", "+7"),
            (" 7", " 7"),
            ("1_000", "1_000"),
            ("v1", "v1"),
        ],
    )
    def test_parse_scalar(self, raw, expected):
        result = _parse_scalar(raw)

        assert result == expected
        assert type(result) is type(expected)

    def test_link_duplicate_version_exits_storage_error(
        self, cli_runner, config_file, store, patched_store
    ):
        cli_runner.invoke(app, ["link", "1", "-c", str(config_file)])

        result = cli_runner.invoke(app, ["link", "1", "-c", str(config_file)])

        assert result.exit_code == EXIT_STORAGE_ERROR
        assert "Write conflict" in result.output
        assert store.node_count("DataModelMigration") == 1

    def test_link_invalid_prop_exits_config_error(
        self, cli_runner, config_file, patched_store
    ):
        result = cli_runner.invoke(
            app, ["link", "1", "-c", str(config_file), "--prop", "no-equals-sign"]
        )

        assert result.exit_code == EXIT_CONFIG_ERROR
        patched_store.assert_not_called()

    def test_link_blank_version_exits_config_error(
        self, cli_runner, config_file, patched_store
    ):
        result = cli_runner.invoke(app, ["link", " ", "-c", str(config_file)])

        assert result.exit_code == EXIT_CONFIG_ERROR
        assert "Invalid migration record" in result.output


# ============================================================================
# main callback
# ============================================================================


def test_version_flag(cli_runner):
    result = cli_runner.invoke(app, ["--version"])

    assert result.exit_code == EXIT_SUCCESS
    assert "graph-migrator" in result.output


def test_no_command_lists_commands(cli_runner):
    result = cli_runner.invoke(app, [])

    assert result.exit_code == EXIT_SUCCESS
    assert "migrate" in result.output
    assert "link" in result.output
