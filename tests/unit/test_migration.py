"""
Unit tests for migration data models and filename parsing.

Tests cover:
- Filename grammar (valid, invalid, edge cases)
- Version parse failures
- Equality, hashing and ordering by version
- Filename and string rendering
"""

import dataclasses
import re
from pathlib import Path

import pytest

from sqlmigrate import migration as migration_module
from sqlmigrate.errors import InvalidMigrationFilename, MigrationVersionError
from sqlmigrate.migration import (
    Direction,
    MigrationFile,
    MigrationRecord,
    parse_migration_filename,
)


class TestParseMigrationFilename:
    """Test the filename grammar."""

    def test_parse_up_file(self):
        entry = parse_migration_filename('2023100100_test.up.sql', '/srv/migrations')

        assert entry.version == 2023100100
        assert entry.name == 'test'
        assert entry.direction is Direction.UP
        assert entry.path == Path('/srv/migrations/2023100100_test.up.sql')

    def test_parse_down_file(self):
        entry = parse_migration_filename('2023100101_test2.down.sql')

        assert entry.version == 2023100101
        assert entry.name == 'test2'
        assert entry.direction is Direction.DOWN

    def test_name_may_contain_dots_and_underscores(self):
        entry = parse_migration_filename('2023100100_add_users.v2.up.sql')
        assert entry.name == 'add_users.v2'

    def test_leading_zeros(self):
        entry = parse_migration_filename('0000000042_answer.up.sql')
        assert entry.version == 42

    @pytest.mark.parametrize('filename', [
        '123_short.up.sql',
        '20231001000_eleven_digits.up.sql',
        '2023100100_test.sql',
        '2023100100_test.sideways.sql',
        '2023100100_test.up.sql.bak',
        'README.md',
        'v2023100100_test.up.sql',
    ])
    def test_invalid_filenames(self, filename):
        with pytest.raises(InvalidMigrationFilename, match='not formatted correctly'):
            parse_migration_filename(filename)

    def test_invalid_filename_is_value_error(self):
        with pytest.raises(ValueError):
            parse_migration_filename('nope.sql')

    def test_unparsable_version(self, monkeypatch):
        """A name that matches the grammar but not int() is fatal."""
        monkeypatch.setattr(
            migration_module,
            'MIGRATION_PATTERN',
            re.compile(r'^(\w{10})_(.*)\.(up|down)\.sql$')
        )

        with pytest.raises(MigrationVersionError, match='abcdefghij_x.up.sql'):
            parse_migration_filename('abcdefghij_x.up.sql')


class TestMigrationRecord:
    """Test record identity and rendering."""

    def test_equality_by_version_only(self):
        assert MigrationRecord(2023100100, 'test') == MigrationRecord(2023100100, 'renamed')
        assert MigrationRecord(2023100100, 'test') != MigrationRecord(2023100101, 'test')

    def test_hash_by_version(self):
        records = {MigrationRecord(1, 'a'), MigrationRecord(1, 'b'), MigrationRecord(2, 'a')}
        assert len(records) == 2

    def test_file_matches_record(self):
        entry = parse_migration_filename('2023100100_test.up.sql')
        assert entry == MigrationRecord(2023100100, 'test')
        assert entry.record() == MigrationRecord(2023100100, 'test')
        assert type(entry.record()) is MigrationRecord

    def test_sorting(self):
        records = [MigrationRecord(3, 'c'), MigrationRecord(1, 'a'), MigrationRecord(2, 'b')]
        assert [r.version for r in sorted(records)] == [1, 2, 3]
        assert [r.version for r in sorted(records, reverse=True)] == [3, 2, 1]

    def test_str_and_filename(self):
        record = MigrationRecord(42, 'answer')

        assert str(record) == '0000000042_answer'
        assert record.filename(Direction.UP) == '0000000042_answer.up.sql'
        assert record.filename(Direction.DOWN) == '0000000042_answer.down.sql'

    def test_immutable(self):
        record = MigrationRecord(2023100100, 'test')
        with pytest.raises(dataclasses.FrozenInstanceError):
            record.version = 1

    def test_to_dict(self):
        assert MigrationRecord(2023100100, 'test').to_dict() == {
            'version': 2023100100,
            'name': 'test',
        }

    def test_repr(self):
        entry = MigrationFile(1, 'a', Direction.UP, Path('x'))
        assert repr(entry) == '<MigrationFile(v1, a, up)>'
        assert repr(entry.record()) == '<MigrationRecord(v1, a)>'
