"""Map file paths to the project that owns them."""
from __future__ import annotations

import os
from collections.abc import Iterable
from pathlib import Path


def find_project_root(
    path: Path | str, roots: Iterable[Path | str]
) -> Path | None:
    """Return the project root containing *path*, or None.

    A root matches when ``root + separator`` is a prefix of *path*, so a
    path equal to a root does not match. Nested roots resolve to the
    most specific one.
    """
    target = os.fspath(path)
    best: str | None = None
    for root in roots:
        root_str = os.fspath(root).rstrip(os.sep) or os.sep
        prefix = root_str if root_str.endswith(os.sep) else root_str + os.sep
        if target.startswith(prefix) and (best is None or len(root_str) > len(best)):
            best = root_str
    return Path(best) if best is not None else None


def package_name(
    path: Path | str, root: Path | str, modules_dir: str = "dbt_modules"
) -> str | None:
    """Return the vendored package *path* lives in, relative to *root*."""
    target = os.fspath(path)
    root_str = os.fspath(root).rstrip(os.sep)
    if not target.startswith(root_str + os.sep):
        return None
    segments = target[len(root_str):].lstrip(os.sep).split(os.sep)
    if len(segments) > 1 and segments[0] == modules_dir and segments[1]:
        return segments[1]
    return None
