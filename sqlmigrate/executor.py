#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Transactional execution of migration batches.

A batch (every migration applied or rolled back by one invocation) runs in
a single transaction: either every body and bookkeeping change commits, or
none of them do.

Bodies are opaque scripts. SQLite bodies are cut into statements with
SQLite's own completeness check (so trigger bodies stay whole), asyncpg
bodies go to the server in one simple-query call, and any other driver gets
the body as one batch. split_sql_statements is a fallback for drivers that
accept one statement per call.
"""
import logging
import re
import sqlite3
from contextlib import asynccontextmanager
from typing import List, Sequence

from sqlalchemy.ext.asyncio import AsyncConnection

from sqlmigrate.bookkeeping import BookkeepingTable
from sqlmigrate.catalog import MigrationCatalog
from sqlmigrate.errors import MissingDownFileError, RollbackFailedError
from sqlmigrate.migration import MigrationRecord

# $$ or $tag$ opening a PostgreSQL dollar-quoted string
DOLLAR_QUOTE = re.compile(r'\$(?:[A-Za-z_][A-Za-z0-9_]*)?\$')


def split_sql_statements(sql: str) -> List[str]:
    """Split SQL text into individual statements.

    Splits on semicolons outside quoted literals, dollar-quoted strings and
    comments. Statements made only of comments are dropped. Compound
    statements with inner semicolons that are not quoted (SQLite triggers)
    cannot be split this way; see split_sqlite_script.

    Args:
        sql: SQL string with one or more statements

    Returns:
        List of statements without trailing semicolons
    """
    statements = []
    start = 0
    has_sql = False
    i = 0
    end = len(sql)

    while i < end:
        char = sql[i]

        if sql.startswith('--', i):
            newline = sql.find('\n', i)
            i = end if newline == -1 else newline
            continue

        if sql.startswith('/*', i):
            close = sql.find('*/', i + 2)
            i = end if close == -1 else close + 2
            continue

        if char in ("'", '"'):
            # A doubled quote closes and reopens, which scans the same
            close = sql.find(char, i + 1)
            i = end if close == -1 else close + 1
            has_sql = True
            continue

        if char == '$':
            match = DOLLAR_QUOTE.match(sql, i)
            if match:
                close = sql.find(match.group(), match.end())
                i = end if close == -1 else close + len(match.group())
                has_sql = True
                continue

        if char == ';':
            if has_sql:
                statements.append(sql[start:i].strip())
            start = i + 1
            has_sql = False
        elif not char.isspace():
            has_sql = True
        i += 1

    if has_sql:
        statements.append(sql[start:].strip())
    return statements


def split_sqlite_script(script: str) -> List[str]:
    """Cut a SQLite script into complete statements.

    Pieces are accumulated up to each semicolon until
    sqlite3.complete_statement accepts them, so literals, comments and
    CREATE TRIGGER ... BEGIN ... END bodies are read the way SQLite reads
    them. Trailing text without a semicolon is kept as a last statement.
    """
    statements = []
    pending = ''
    pieces = script.split(';')

    for piece in pieces[:-1]:
        pending += piece + ';'
        if sqlite3.complete_statement(pending):
            if split_sql_statements(pending):
                statements.append(pending.strip())
            pending = ''

    pending += pieces[-1]
    if split_sql_statements(pending):
        statements.append(pending.strip())
    return statements


class MigrationExecutor:
    """
    Runs migration bodies and bookkeeping changes inside one transaction.

    Attributes:
        catalog: Resolves and reads migration files
        bookkeeping: Writes the __migrations rows
        logger: Logger for per-migration progress
        split_statements: Run each statement found by split_sql_statements
            separately instead of handing the body to the driver

    Example:
        executor = MigrationExecutor(catalog, BookkeepingTable())

        async with engine.connect() as conn:
            async with executor.transaction(conn):
                await executor.apply(conn, plan.unapplied)
    """

    def __init__(
        self,
        catalog: MigrationCatalog,
        bookkeeping: BookkeepingTable,
        logger=None,
        split_statements: bool = False
    ):
        self.catalog = catalog
        self.bookkeeping = bookkeeping
        self.logger = logger or logging.getLogger(__name__)
        self.split_statements = split_statements

    @asynccontextmanager
    async def transaction(self, conn: AsyncConnection):
        """
        Open the batch transaction on ``conn``.

        Commits when the block exits cleanly. Any exception raised inside the
        block, cancellation included, rolls the transaction back and is
        re-raised. If the rollback fails as well, RollbackFailedError is raised
        from the rollback failure and the triggering error is kept on its
        ``original`` attribute.

        A commit failure is re-raised as-is. What reached the database is
        then unknown: inspect the __migrations table before retrying.
        """
        trans = await conn.begin()
        try:
            yield trans
        except BaseException as e:
            try:
                await trans.rollback()
            except Exception as rollback_error:
                self.logger.error(
                    'Failed to rollback migration transaction: %s',
                    rollback_error
                )
                raise RollbackFailedError(rollback_error, e) from rollback_error
            raise

        try:
            await trans.commit()
        except Exception as e:
            self.logger.error(
                'Commit of migration batch failed, database state is '
                'indeterminate; inspect the bookkeeping table before '
                'retrying: %s',
                e
            )
            raise

    async def apply(
        self,
        conn: AsyncConnection,
        migrations: Sequence[MigrationRecord]
    ) -> None:
        """
        Apply up migrations in ascending version order.

        Must run inside transaction(). Errors propagate so the transaction
        rolls back the whole batch.

        Raises:
            OSError: If an up file cannot be read
            sqlalchemy.exc.DBAPIError: If a body or the bookkeeping insert fails
                (asyncpg bodies raise asyncpg.PostgresError)
        """
        for migration in sorted(migrations):
            body = self.catalog.read_body(self.catalog.up_path(migration))

            self.logger.info('applying migration %s', migration)
            await self._execute_body(conn, body)
            await self.bookkeeping.record_applied(conn, migration)

    async def rollback(
        self,
        conn: AsyncConnection,
        migrations: Sequence[MigrationRecord]
    ) -> None:
        """
        Roll back migrations in descending version order.

        Must run inside transaction().

        Raises:
            MissingDownFileError: If a migration has no down file
            OSError: If a down file exists but cannot be read
            sqlalchemy.exc.DBAPIError: If a body or the bookkeeping delete fails
        """
        for migration in sorted(migrations, reverse=True):
            down_path = self.catalog.down_path(migration)
            if not down_path.exists():
                raise MissingDownFileError(migration)

            body = self.catalog.read_body(down_path)

            self.logger.info('rolling back migration %s', migration)
            await self._execute_body(conn, body)
            await self.bookkeeping.forget(conn, migration)

    async def _execute_body(self, conn: AsyncConnection, body: str) -> None:
        if self.split_statements:
            statements = split_sql_statements(body)
        elif conn.dialect.name == 'sqlite':
            statements = split_sqlite_script(body)
        elif conn.dialect.driver == 'asyncpg':
            await self._execute_asyncpg_script(conn, body)
            return
        else:
            statements = [body]

        for stmt in statements:
            await conn.exec_driver_sql(stmt)

    async def _execute_asyncpg_script(self, conn: AsyncConnection, body: str) -> None:
        """Send the whole body through asyncpg's simple query protocol.

        Prepared statements take one statement each, so the body bypasses
        SQLAlchemy and goes to the asyncpg connection inside the open
        transaction.
        """
        raw = await conn.get_raw_connection()
        driver_conn = raw.driver_connection

        if not driver_conn.is_in_transaction():
            # The adapter starts its transaction on the first statement it runs
            await conn.exec_driver_sql('SELECT 1')

        await driver_conn.execute(body)
