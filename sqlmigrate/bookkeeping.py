"""
The __migrations bookkeeping table.

One row per successfully applied migration, keyed by version. A row is
inserted in the same transaction that runs the up body and deleted in the
same transaction that runs the down body, so the table only ever reflects
committed work.
"""

import logging
import zlib
from typing import List

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from sqlmigrate.errors import InconsistentStateError
from sqlmigrate.migration import MigrationRecord

BOOKKEEPING_TABLE = '__migrations'

# Session-independent key for pg_advisory_xact_lock
ADVISORY_LOCK_KEY = zlib.crc32(BOOKKEEPING_TABLE.encode('utf-8'))


class BookkeepingTable:
    """
    Reads and writes applied-migration rows.

    All methods except ensure() run on a connection the caller already
    opened a transaction on; none of them commit.
    """

    def __init__(self, logger=None):
        self.logger = logger or logging.getLogger(__name__)

    async def ensure(self, engine: AsyncEngine) -> None:
        """Create the bookkeeping table if it does not exist.

        Safe to call repeatedly. Errors from the database propagate.
        """
        async with engine.begin() as conn:
            await conn.execute(text(f"""
                CREATE TABLE IF NOT EXISTS {BOOKKEEPING_TABLE} (
                    version BIGINT PRIMARY KEY,
                    name TEXT NOT NULL
                )
            """))

        self.logger.debug('Ensured %s table exists', BOOKKEEPING_TABLE)

    async def lock(self, conn: AsyncConnection) -> None:
        """
        Serialize migrators for the rest of the current transaction.

        PostgreSQL takes a transaction-scoped advisory lock. SQLite engines
        built by sqlmigrate.database.create_engine already hold the database
        write lock from BEGIN IMMEDIATE, so nothing is emitted there.
        """
        if conn.dialect.name == 'postgresql':
            await conn.execute(
                text('SELECT pg_advisory_xact_lock(:key)'),
                {'key': ADVISORY_LOCK_KEY}
            )

    async def fetch_applied(self, conn: AsyncConnection) -> List[MigrationRecord]:
        """All applied migrations, ascending by version."""
        result = await conn.execute(text(
            f'SELECT version, name FROM {BOOKKEEPING_TABLE} ORDER BY version'
        ))
        return self._decode(result.all())

    async def fetch_applied_above(
        self,
        conn: AsyncConnection,
        version: int
    ) -> List[MigrationRecord]:
        """Applied migrations newer than ``version``, descending."""
        result = await conn.execute(
            text(
                f'SELECT version, name FROM {BOOKKEEPING_TABLE} '
                f'WHERE version > :version ORDER BY version DESC'
            ),
            {'version': version}
        )
        return self._decode(result.all())

    async def record_applied(
        self,
        conn: AsyncConnection,
        migration: MigrationRecord
    ) -> None:
        await conn.execute(
            text(
                f'INSERT INTO {BOOKKEEPING_TABLE} (version, name) '
                f'VALUES (:version, :name)'
            ),
            {'version': migration.version, 'name': migration.name}
        )

    async def forget(
        self,
        conn: AsyncConnection,
        migration: MigrationRecord
    ) -> None:
        await conn.execute(
            text(f'DELETE FROM {BOOKKEEPING_TABLE} WHERE version = :version'),
            {'version': migration.version}
        )

    @staticmethod
    def _decode(rows) -> List[MigrationRecord]:
        records = []
        for version, name in rows:
            if version is None or name is None:
                raise InconsistentStateError(
                    f'undecodable row in {BOOKKEEPING_TABLE}: '
                    f'version={version!r} name={name!r}'
                )
            records.append(MigrationRecord(version=int(version), name=str(name)))
        return records
