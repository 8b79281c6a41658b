"""
Tests for models.py - record types and parameterize().
"""

import pytest
from pydantic import ValidationError

from graph_migrator.models import (
    FileMigration,
    MigrationNode,
    MigrationRecord,
    parameterize,
)


class TestMigrationRecord:
    """Test MigrationRecord validation and extra properties."""

    def test_int_and_str_versions_are_preserved(self):
        assert MigrationRecord(version=3).version == 3
        assert MigrationRecord(version="3").version == "3"

    def test_versions_are_not_coerced(self):
        assert MigrationRecord(version=1.5).version == 1.5
        assert type(MigrationRecord.model_validate({"version": 2}).version) is int

    @pytest.mark.parametrize("version", [True, False, None, [1]])
    def test_non_scalar_or_bool_version_is_invalid(self, version):
        with pytest.raises(ValidationError):
            MigrationRecord.model_validate({"version": version})

    def test_extra_properties_are_kept(self):
        record = MigrationRecord.model_validate({"version": 1, "checksum": "abc"})
        assert record.properties == {"version": 1, "checksum": "abc"}

    def test_missing_version_is_invalid(self):
        with pytest.raises(ValidationError):
            MigrationRecord.model_validate({"checksum": "abc"})

    @pytest.mark.parametrize("version", ["", "   "])
    def test_blank_version_is_invalid(self, version):
        with pytest.raises(ValidationError, match="version cannot be empty"):
            MigrationRecord(version=version)

    def test_record_is_immutable(self):
        record = MigrationRecord(version=1)
        with pytest.raises(ValidationError):
            record.version = 2


class TestParameterize:
    """Test parameterize() output."""

    def test_migration_node_becomes_plain_dict(self):
        node = MigrationNode(
            checksum="abc",
            file_name="001_init.cypher",
            cypher_text="CREATE (n:Thing)",
            version=1,
            timestamp="2025-11-02T08:30:45Z",
        )

        assert parameterize(node) == {
            "checksum": "abc",
            "file_name": "001_init.cypher",
            "cypher_text": "CREATE (n:Thing)",
            "version": 1,
            "timestamp": "2025-11-02T08:30:45Z",
        }

    def test_record_extras_are_included(self):
        record = MigrationRecord.model_validate({"version": "v2", "tags": ["a", "b"]})
        assert parameterize(record) == {"version": "v2", "tags": ["a", "b"]}


def test_file_migration_is_frozen():
    migration = FileMigration(checksum="abc", file_name="a.cypher", cypher_text="")
    with pytest.raises(AttributeError):
        migration.checksum = "other"
