"""
Migration data models and the filename grammar.

A migration lives on disk as a pair of files:

    2023100100_create_users.up.sql
    2023100100_create_users.down.sql

The ten digit version orders migrations; fixed width keeps lexical and
numeric ordering identical. Parsing a filename is a pure function so it
can be tested without touching a filesystem.
"""

import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Union

from sqlmigrate.errors import InvalidMigrationFilename, MigrationVersionError

# <10-digit version>_<name>.<up|down>.sql
MIGRATION_PATTERN = re.compile(r'^(\d{10})_(.*)\.(up|down)\.sql$')


class Direction(Enum):
    """Which way a migration file moves the schema."""
    UP = 'up'
    DOWN = 'down'


@dataclass(frozen=True, eq=False)
class MigrationRecord:
    """
    A migration identified by version, as stored in the bookkeeping table.

    Two records are the same migration when their versions match; the name
    only feeds diagnostics and filename construction.

    Attributes:
        version: Ordering key, unique per direction
        name: Descriptive slug from the filename

    Example:
        >>> record = MigrationRecord(version=2023100100, name='test')
        >>> str(record)
        '2023100100_test'
        >>> record.filename(Direction.DOWN)
        '2023100100_test.down.sql'
    """

    version: int
    name: str

    def filename(self, direction: Direction) -> str:
        """Build the on-disk filename for this migration."""
        return f'{self}.{direction.value}.sql'

    def __eq__(self, other):
        if not isinstance(other, MigrationRecord):
            return NotImplemented
        return self.version == other.version

    def __hash__(self):
        return hash(self.version)

    def __lt__(self, other: 'MigrationRecord') -> bool:
        if not isinstance(other, MigrationRecord):
            return NotImplemented
        return self.version < other.version

    def __str__(self) -> str:
        return f'{self.version:010d}_{self.name}'

    def __repr__(self) -> str:
        return f'<MigrationRecord(v{self.version}, {self.name})>'

    def to_dict(self) -> dict:
        return {'version': self.version, 'name': self.name}


@dataclass(frozen=True, eq=False)
class MigrationFile(MigrationRecord):
    """
    A catalog entry: a migration record plus its direction and file path.

    Attributes:
        direction: Direction.UP or Direction.DOWN
        path: Path of the file the entry was parsed from
    """

    direction: Direction
    path: Path

    def record(self) -> MigrationRecord:
        """Strip the file details down to the bookkeeping record."""
        return MigrationRecord(version=self.version, name=self.name)

    def __repr__(self) -> str:
        return (
            f'<MigrationFile(v{self.version}, {self.name}, '
            f'{self.direction.value})>'
        )


def parse_migration_filename(
    filename: str,
    base_path: Union[str, Path] = '.'
) -> MigrationFile:
    """
    Parse a migration filename into a catalog entry.

    Args:
        filename: Bare filename, e.g. '2023100100_test.up.sql'
        base_path: Directory the file lives in, used to resolve ``path``

    Returns:
        MigrationFile for the filename

    Raises:
        InvalidMigrationFilename: If the name does not match the grammar
        MigrationVersionError: If the version segment is not an integer

    Example:
        >>> entry = parse_migration_filename('2023100101_test2.up.sql')
        >>> entry.version, entry.name, entry.direction
        (2023100101, 'test2', <Direction.UP: 'up'>)
    """
    match = MIGRATION_PATTERN.match(filename)
    if not match:
        raise InvalidMigrationFilename(
            f'file {filename} is not formatted correctly'
        )

    version_str, name, direction = match.groups()
    try:
        version = int(version_str)
    except ValueError as e:
        raise MigrationVersionError(
            f'failed extracting version for {filename}: {e}'
        ) from e

    return MigrationFile(
        version=version,
        name=name,
        direction=Direction(direction),
        path=Path(base_path) / filename,
    )
