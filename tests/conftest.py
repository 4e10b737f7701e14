"""
Global pytest configuration and fixtures for sqlmigrate tests

Provides:
- Migration directory builder
- File-backed SQLite engine
- Helpers for inspecting tables and bookkeeping rows
"""

import pytest
from sqlalchemy import text

from sqlmigrate.database import create_engine


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom settings"""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")


# ============================================================================
# Migration Files
# ============================================================================

@pytest.fixture
def migrations_dir(tmp_path):
    """Empty directory for migration files."""
    path = tmp_path / "migrations"
    path.mkdir()
    return path


@pytest.fixture
def write_migration(migrations_dir):
    """Write an up (and optionally down) file for a migration."""

    def _write(version, name, up_sql, down_sql=None):
        (migrations_dir / f"{version}_{name}.up.sql").write_text(up_sql)
        if down_sql is not None:
            (migrations_dir / f"{version}_{name}.down.sql").write_text(down_sql)

    return _write


@pytest.fixture
def standard_migrations(write_migration):
    """The two-table migration pair used across integration tests."""
    write_migration(
        2023100100, "test",
        "CREATE TABLE test_table_1 (id INTEGER PRIMARY KEY, label TEXT);",
        "DROP TABLE test_table_1;",
    )
    write_migration(
        2023100101, "test2",
        "CREATE TABLE test_table_2 (id INTEGER PRIMARY KEY, label TEXT);",
        "DROP TABLE test_table_2;",
    )


# ============================================================================
# Database
# ============================================================================

@pytest.fixture
async def engine(tmp_path):
    """File-backed SQLite engine with transactional DDL."""
    engine = create_engine(str(tmp_path / "test.db"))
    yield engine
    await engine.dispose()


@pytest.fixture
def table_names(engine):
    """Return the set of user tables in the test database."""

    async def _table_names():
        async with engine.connect() as conn:
            result = await conn.execute(text(
                "SELECT name FROM sqlite_master WHERE type = 'table'"
            ))
            return {row[0] for row in result}

    return _table_names


@pytest.fixture
def bookkeeping_rows(engine):
    """Return the (version, name) rows of __migrations, ascending."""

    async def _rows():
        async with engine.connect() as conn:
            result = await conn.execute(text(
                "SELECT version, name FROM __migrations ORDER BY version"
            ))
            return [tuple(row) for row in result]

    return _rows
