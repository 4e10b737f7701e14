"""
Migration catalog reader.

Scans a flat directory of migration files and yields the ordered set of
up migrations available on disk. The catalog is rebuilt on every call;
nothing is cached between invocations.
"""

import logging
from pathlib import Path
from typing import List, Union

from sqlmigrate.errors import DuplicateMigrationError, InvalidMigrationFilename
from sqlmigrate.migration import (
    Direction,
    MigrationFile,
    MigrationRecord,
    parse_migration_filename,
)


class MigrationCatalog:
    """
    Reads migration files from a single directory.

    Expected layout:
        migrations/
            2023100100_test.up.sql
            2023100100_test.down.sql
            2023100101_test2.up.sql
            2023100101_test2.down.sql

    Attributes:
        base_path: Directory holding the migration files
        logger: Logger receiving warnings about skipped files

    Example:
        >>> catalog = MigrationCatalog(Path('./migrations'))
        >>> catalog.scan()
        [<MigrationFile(v2023100100, test, up)>, <MigrationFile(v2023100101, test2, up)>]
    """

    def __init__(self, base_path: Union[str, Path], logger=None):
        self.base_path = Path(base_path)
        self.logger = logger or logging.getLogger(__name__)

    def scan(self) -> List[MigrationFile]:
        """
        List the up migrations available on disk.

        Directories and hidden entries are ignored. Files that do not follow
        the naming grammar are skipped with a warning. A name that matches the
        grammar but carries an unparsable version aborts the scan.

        Returns:
            Up migrations sorted by version ascending (possibly empty)

        Raises:
            OSError: If the directory cannot be listed
            MigrationVersionError: If a matching name has a bad version
            DuplicateMigrationError: If two files share version and direction
        """
        seen = {Direction.UP: {}, Direction.DOWN: {}}

        for entry in self.base_path.iterdir():
            if entry.name.startswith('.') or entry.is_dir():
                continue

            try:
                migration = parse_migration_filename(entry.name, self.base_path)
            except InvalidMigrationFilename:
                self.logger.warning(
                    'file %s is not formatted correctly', entry.name
                )
                continue

            existing = seen[migration.direction].get(migration.version)
            if existing is not None:
                raise DuplicateMigrationError(
                    f'duplicate {migration.direction.value} migration version '
                    f'{migration.version:010d}: {existing.path.name} and '
                    f'{entry.name}'
                )
            seen[migration.direction][migration.version] = migration

        available = sorted(seen[Direction.UP].values())
        self.logger.debug(
            'found %d up migration(s) in %s', len(available), self.base_path
        )
        return available

    def up_path(self, migration: MigrationRecord) -> Path:
        """Path of the up file for a migration."""
        if isinstance(migration, MigrationFile) and migration.direction is Direction.UP:
            return migration.path
        return self.base_path / migration.filename(Direction.UP)

    def down_path(self, migration: MigrationRecord) -> Path:
        """Path of the down file for a migration."""
        return self.base_path / migration.filename(Direction.DOWN)

    def read_body(self, path: Path) -> str:
        """
        Read a migration body.

        The content is handed to the database untouched; only the UTF-8
        decoding needed to build a statement happens here.

        Raises:
            OSError: If the file cannot be read
        """
        return path.read_bytes().decode('utf-8')
