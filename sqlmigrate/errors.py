"""
Exception types raised by the migration engine.

Database and filesystem failures are not wrapped: SQLAlchemy's DBAPIError and
OSError reach the caller unchanged. The types here cover conditions the
engine itself detects.
"""


class MigrationError(Exception):
    """Base class for all migration engine errors."""
    pass


class NoMigrationsError(MigrationError):
    """The migrations directory holds no usable up migrations.

    Callers that tolerate an empty directory catch this explicitly.
    """

    def __init__(self, message='no migrations found'):
        super().__init__(message)


class InvalidMigrationFilename(MigrationError, ValueError):
    """Filename does not follow <version>_<name>.<up|down>.sql."""
    pass


class MigrationVersionError(MigrationError, ValueError):
    """Filename matched the grammar but its version could not be parsed."""
    pass


class DuplicateMigrationError(MigrationError):
    """Two files of the same direction share a version."""
    pass


class InconsistentStateError(MigrationError):
    """Bookkeeping rows could not be decoded into migration records."""
    pass


class MissingDownFileError(MigrationError):
    """An applied migration has no down file on disk.

    Attributes:
        migration: The MigrationRecord that could not be rolled back
    """

    def __init__(self, migration):
        self.migration = migration
        super().__init__(f'could not find down file for version {migration}')


class RollbackFailedError(MigrationError):
    """Rolling back a failed batch raised as well.

    The rollback failure is the exception's __cause__; the error that
    triggered the rollback is kept on ``original``.
    """

    def __init__(self, rollback_error, original):
        self.original = original
        super().__init__(
            f'failed to rollback migration transaction: {rollback_error}'
        )
