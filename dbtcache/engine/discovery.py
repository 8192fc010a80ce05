"""Find dbt projects under a workspace root.

A project root is any directory holding the project descriptor. The
installed-packages directory is pruned during the walk, and so is any
directory named after the virtualenv ignore token.
"""
from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path

from .errors import DiscoveryError

logger = logging.getLogger(__name__)


def discover_projects(
    root: Path | str,
    project_file: str = "dbt_project.yml",
    modules_dir: str = "dbt_modules",
    ignore_token: str = "site-packages",
) -> list[Path]:
    """Return the project roots under *root*, de-duplicated, in walk order."""
    root = Path(root)
    if not root.is_dir():
        raise DiscoveryError(root, "not a directory")

    def _on_walk_error(exc: OSError) -> None:
        if exc.filename and Path(exc.filename) == root:
            raise DiscoveryError(root, exc.strerror or str(exc)) from exc
        logger.warning("discover_projects: skipping %s: %s", exc.filename, exc)

    found: list[Path] = []
    seen: set[Path] = set()
    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_walk_error):
        # Prune in place so os.walk never descends into them.
        dirnames[:] = sorted(
            d for d in dirnames if d != modules_dir and d != ignore_token
        )
        if project_file not in filenames:
            continue
        project_root = Path(dirpath)
        if ignore_token in project_root.parts:
            continue
        if project_root not in seen:
            seen.add(project_root)
            found.append(project_root)

    logger.debug("discover_projects: %d project(s) under %s", len(found), root)
    return found


async def discover_projects_async(
    root: Path | str,
    project_file: str = "dbt_project.yml",
    modules_dir: str = "dbt_modules",
    ignore_token: str = "site-packages",
) -> list[Path]:
    """Run discover_projects in a worker thread."""
    return await asyncio.to_thread(
        discover_projects, root, project_file, modules_dir, ignore_token,
    )
