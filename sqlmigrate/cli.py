#!/usr/bin/env python3
"""
Command line entry point.

Usage:
    sqlmigrate --database-url migrations.db --path ./migrations up
    sqlmigrate --config migrate.yaml down 2023100100
    sqlmigrate --config migrate.yaml status
"""
import argparse
import asyncio
import json
import logging
import sys

from sqlmigrate.config import (
    LOG_FORMAT,
    ConfigError,
    config_from_dict,
    configure_logger,
    load_config,
    parse_log_level,
)
from sqlmigrate.database import create_engine
from sqlmigrate.errors import MigrationError, NoMigrationsError
from sqlmigrate.migrator import new_migrator

logger = logging.getLogger('sqlmigrate')


def build_parser():
    parser = argparse.ArgumentParser(
        prog='sqlmigrate',
        description='Apply and roll back versioned SQL migrations'
    )
    parser.add_argument('--config', help='JSON or YAML configuration file')
    parser.add_argument('--database-url', help='SQLAlchemy URL or SQLite file path')
    parser.add_argument('--path', help='Directory holding migration files')
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level (default: INFO)'
    )
    parser.add_argument(
        '--timeout',
        type=float,
        help='Cancel the run after this many seconds'
    )

    commands = parser.add_subparsers(dest='command', required=True)

    up = commands.add_parser('up', help='Apply all pending migrations')
    up.add_argument(
        '--allow-empty',
        action='store_true',
        help='Exit successfully when no migration files are found'
    )

    down = commands.add_parser('down', help='Roll back to a version')
    down.add_argument('target', type=int, help='Version to roll back to')

    commands.add_parser('status', help='Show applied and pending migrations')

    return parser


def resolve_config(args):
    """Merge the config file (if any) with command line overrides."""
    overrides = {
        'database_url': args.database_url,
        'migrations_path': args.path,
        'log_level': args.log_level,
        'timeout': args.timeout,
    }

    if args.config:
        return load_config(args.config, overrides)
    return config_from_dict({}, overrides)


async def run(args, config):
    engine = create_engine(config.database_url)
    try:
        migrator = await new_migrator(
            engine,
            logger,
            config.migrations_path,
            split_statements=config.split_statements
        )

        if args.command == 'up':
            try:
                applied = await migrator.migrate_up(timeout=config.timeout)
            except NoMigrationsError:
                if not args.allow_empty:
                    raise
                logger.warning('no migrations found in %s', config.migrations_path)
                return 0
            for migration in applied:
                print(f'applied {migration}')

        elif args.command == 'down':
            rolled_back = await migrator.migrate_down(
                args.target,
                timeout=config.timeout
            )
            for migration in rolled_back:
                print(f'rolled back {migration}')

        elif args.command == 'status':
            status = await migrator.status()
            print(json.dumps(status.to_dict(), indent=2))

        return 0
    finally:
        await engine.dispose()


def main(argv=None):
    args = build_parser().parse_args(argv)

    try:
        config = resolve_config(args)
        log_level = parse_log_level(config.log_level)
    except (ConfigError, OSError, ValueError) as e:
        print(f'sqlmigrate: configuration error: {e}', file=sys.stderr)
        return 1

    configure_logger(logger, config.log_file, LOG_FORMAT, log_level)

    try:
        return asyncio.run(run(args, config))
    except (MigrationError, OSError, TimeoutError) as e:
        logger.error('%s failed: %s', args.command, e)
        return 1
    except Exception as e:
        logger.error('%s failed: %s', args.command, e, exc_info=True)
        return 1


if __name__ == '__main__':
    sys.exit(main())
