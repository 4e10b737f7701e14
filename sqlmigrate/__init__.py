"""
Versioned SQL schema migrations tracked in a __migrations table.

This package provides:
- MigrationRecord / MigrationFile: Data models for migrations
- MigrationCatalog: Discovery of migration files on disk
- BookkeepingTable: Access to the applied-migrations table
- MigrationExecutor: Transactional execution of migration batches
- Migrator / new_migrator: migrate_up, migrate_down and status
- create_engine: Async engine with transactional DDL on SQLite
"""

from .bookkeeping import BOOKKEEPING_TABLE, BookkeepingTable
from .catalog import MigrationCatalog
from .database import create_engine
from .errors import (
    DuplicateMigrationError,
    InconsistentStateError,
    InvalidMigrationFilename,
    MigrationError,
    MigrationVersionError,
    MissingDownFileError,
    NoMigrationsError,
    RollbackFailedError,
)
from .executor import MigrationExecutor, split_sql_statements, split_sqlite_script
from .migration import (
    Direction,
    MigrationFile,
    MigrationRecord,
    parse_migration_filename,
)
from .migrator import MigrationStatus, Migrator, new_migrator
from .reconciler import UpPlan, plan_down, plan_up

__all__ = [
    'BOOKKEEPING_TABLE',
    'BookkeepingTable',
    'Direction',
    'DuplicateMigrationError',
    'InconsistentStateError',
    'InvalidMigrationFilename',
    'MigrationCatalog',
    'MigrationError',
    'MigrationExecutor',
    'MigrationFile',
    'MigrationRecord',
    'MigrationStatus',
    'MigrationVersionError',
    'Migrator',
    'MissingDownFileError',
    'NoMigrationsError',
    'RollbackFailedError',
    'UpPlan',
    'create_engine',
    'new_migrator',
    'parse_migration_filename',
    'plan_down',
    'plan_up',
    'split_sql_statements',
    'split_sqlite_script',
]
