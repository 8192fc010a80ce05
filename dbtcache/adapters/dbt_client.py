"""Tool-runner binding: the dbt installation behind one interpreter.

The container forwards source-file edits here. The client records them
per project so a command runner can pick them up; it never runs dbt
commands itself.
"""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from dbtcache.adapters.events import SourceFileChangedEvent
from dbtcache.engine.errors import InterpreterNotFoundError

logger = logging.getLogger(__name__)


class DbtClient:
    """Binds the container to the dbt package of a Python interpreter."""

    def __init__(self, python_path: str, *, check_timeout_seconds: float = 30.0) -> None:
        if not python_path:
            raise InterpreterNotFoundError(python_path)
        self.python_path = python_path
        self.check_timeout_seconds = check_timeout_seconds
        self.dbt_installed: bool | None = None
        self._pending: dict[Path | None, list[Path]] = {}
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    async def check_if_dbt_installed(self) -> bool:
        """Probe ``python -c "import dbt"`` and remember the answer."""
        try:
            proc = await asyncio.create_subprocess_exec(
                self.python_path, "-c", "import dbt",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            _, stderr = await asyncio.wait_for(
                proc.communicate(), timeout=self.check_timeout_seconds
            )
        except FileNotFoundError:
            logger.warning("dbt check: interpreter not found: %s", self.python_path)
            self.dbt_installed = False
            return False
        except OSError as exc:
            logger.warning("dbt check: cannot run %s: %s", self.python_path, exc)
            self.dbt_installed = False
            return False
        except asyncio.TimeoutError:
            logger.warning(
                "dbt check: %s timed out after %.1fs",
                self.python_path, self.check_timeout_seconds,
            )
            proc.kill()
            await proc.wait()
            self.dbt_installed = False
            return False

        self.dbt_installed = proc.returncode == 0
        if self.dbt_installed:
            logger.info("dbt is installed for %s", self.python_path)
        else:
            logger.warning(
                "dbt is not installed for %s: %s",
                self.python_path,
                stderr.decode("utf-8", errors="replace").strip()[:200],
            )
        return self.dbt_installed

    def on_source_file_changed(self, event: SourceFileChangedEvent) -> None:
        if self._disposed:
            return
        changes = self._pending.setdefault(event.project_root, [])
        if event.path not in changes:
            changes.append(event.path)
        logger.debug(
            "Source file changed: %s (project %s)", event.path, event.project_root,
        )

    def take_pending_changes(self, project_root: Path | None = None) -> list[Path]:
        """Return and clear recorded edits for one project, or for all."""
        if project_root is not None:
            return self._pending.pop(project_root, [])
        changes = [path for paths in self._pending.values() for path in paths]
        self._pending.clear()
        return changes

    def dispose(self) -> None:
        """Drop recorded state; the client ignores events afterwards."""
        self._disposed = True
        self._pending.clear()
