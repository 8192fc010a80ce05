"""Default project handle for a single dbt project root."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path

import yaml

from .errors import ProjectHandleError
from .lifecycle import validate_transition
from .models import ProjectInfo, ProjectState

logger = logging.getLogger(__name__)

ProjectChangedCallback = Callable[["DbtProject"], None]


def _read_descriptor(path: Path) -> tuple[tuple[int, int], str | None]:
    """Return ((mtime_ns, size), project name) for a descriptor file."""
    stat = path.stat()
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    name = data.get("name") if isinstance(data, dict) else None
    return (stat.st_mtime_ns, stat.st_size), (str(name) if name else None)


class DbtProject:
    """Tracks the descriptor of one project root across refreshes.

    ``on_changed`` fires when the descriptor's (mtime, size) fingerprint
    moves or the handle changes state, e.g. ACTIVE to FAILED when the
    descriptor becomes unreadable. A refresh that finds neither is silent.
    """

    def __init__(
        self,
        root: Path,
        *,
        project_file: str = "dbt_project.yml",
        generation: int = 0,
        on_changed: ProjectChangedCallback | None = None,
    ) -> None:
        self.root = Path(root)
        self.project_file = project_file
        self.generation = generation
        self.name: str | None = None
        self.state = ProjectState.PENDING
        self._on_changed = on_changed
        self._fingerprint: tuple[int, int] | None = None
        self._lock = asyncio.Lock()

    @property
    def descriptor_path(self) -> Path:
        return self.root / self.project_file

    @property
    def disposed(self) -> bool:
        return self.state == ProjectState.DISPOSED

    def info(self) -> ProjectInfo:
        return ProjectInfo(
            root=self.root, name=self.name, generation=self.generation, state=self.state,
        )

    def _transition(self, target: ProjectState) -> None:
        validate_transition(self.state, target, subject=f"project {self.root}")
        self.state = target

    async def refresh(self) -> None:
        """Re-read the descriptor and report fingerprint or state changes."""
        async with self._lock:
            if self.disposed:
                logger.debug("refresh: %s already disposed, skipping", self.root)
                return
            previous = self.state
            error: Exception | None = None
            changed = False
            try:
                fingerprint, name = await asyncio.to_thread(
                    _read_descriptor, self.descriptor_path
                )
            except (OSError, yaml.YAMLError) as exc:
                error = exc

            # dispose() may have run while the read was in flight
            if self.disposed:
                if error is not None:
                    raise ProjectHandleError(self.root, f"refresh failed: {error}") from error
                return
            if error is None:
                changed = fingerprint != self._fingerprint
                self._fingerprint = fingerprint
                self.name = name
                self._transition(ProjectState.ACTIVE)
            else:
                self._transition(ProjectState.FAILED)
            changed = changed or self.state != previous

        if changed:
            logger.debug(
                "refresh: %s changed (name=%s, state=%s)",
                self.root, self.name, self.state.value,
            )
            if self._on_changed is not None:
                self._on_changed(self)
        if error is not None:
            raise ProjectHandleError(self.root, f"refresh failed: {error}") from error

    async def dispose(self) -> None:
        """Release the handle. Safe to call more than once."""
        if self.disposed:
            return
        self._transition(ProjectState.DISPOSED)
        self._on_changed = None
        logger.debug("dispose: %s (generation %d)", self.root, self.generation)

    def __repr__(self) -> str:
        return (
            f"DbtProject(root={str(self.root)!r}, generation={self.generation}, "
            f"state={self.state.value})"
        )
