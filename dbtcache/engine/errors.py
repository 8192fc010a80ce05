"""Exception hierarchy for the project cache.

Public container operations catch these and log them; they exist so
internal layers can signal a specific failure mode to the coordinator.
"""
from __future__ import annotations

from pathlib import Path


class ProjectCacheError(Exception):
    """Base exception for all project cache errors."""


class CacheNotBuiltError(ProjectCacheError):
    """An operation needed the project cache before the first rebuild."""
    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(
            f"Cannot {operation}: project cache has not been built yet"
        )


class DiscoveryError(ProjectCacheError):
    """Scanning a workspace root for projects failed."""
    def __init__(self, root: Path | str, reason: str):
        self.root = Path(root)
        self.reason = reason
        super().__init__(f"Project discovery failed under {root}: {reason}")


class ProjectHandleError(ProjectCacheError):
    """A single project handle failed to refresh or dispose."""
    def __init__(self, project_root: Path | str, reason: str):
        self.project_root = Path(project_root)
        self.reason = reason
        super().__init__(f"Project {project_root}: {reason}")


class InterpreterNotFoundError(ProjectCacheError):
    """No usable Python interpreter for running dbt."""
    def __init__(self, python_path: str | None):
        self.python_path = python_path
        super().__init__(
            f"Python interpreter not usable: {python_path or '<unset>'}"
        )
