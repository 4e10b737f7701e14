"""
Reconciliation of the on-disk catalog against applied state.

Pure functions: callers read the bookkeeping table once, inside the
transaction that will execute the batch, and pass the rows in here.
"""

from dataclasses import dataclass, field
from typing import Iterable, List

from sqlmigrate.migration import MigrationFile, MigrationRecord


@dataclass
class UpPlan:
    """
    Outcome of comparing the catalog with the bookkeeping table.

    Attributes:
        unapplied: Catalog entries with no bookkeeping row, ascending
        divergent: Bookkeeping rows with no catalog entry, ascending
    """
    unapplied: List[MigrationFile] = field(default_factory=list)
    divergent: List[MigrationRecord] = field(default_factory=list)


def plan_up(
    available: Iterable[MigrationFile],
    applied: Iterable[MigrationRecord]
) -> UpPlan:
    """
    Work out which migrations still need applying.

    Matching is by version only. Applied rows without a file on disk end up
    in ``divergent``; they never block the plan.

    Example:
        >>> plan = plan_up(catalog.scan(), applied_rows)
        >>> [m.version for m in plan.unapplied]
        [2023100101]
    """
    available = sorted(available)
    applied = sorted(applied)
    applied_versions = {m.version for m in applied}
    available_versions = {m.version for m in available}

    return UpPlan(
        unapplied=[m for m in available if m.version not in applied_versions],
        divergent=[m for m in applied if m.version not in available_versions],
    )


def plan_down(
    applied: Iterable[MigrationRecord],
    target_version: int
) -> List[MigrationRecord]:
    """
    Work out which applied migrations to undo to get back to a version.

    Returns:
        Records with version > target_version, newest first
    """
    return sorted(
        (m for m in applied if m.version > target_version),
        reverse=True,
    )
