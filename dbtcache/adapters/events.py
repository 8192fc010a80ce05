"""Event types raised by the project container.

Observers receive these synchronously; the tool-runner binding receives
source-file events.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from dbtcache.engine.models import ProjectInfo


@dataclass
class ContainerEvent:
    """Base event from the project container."""
    event_type: str = ""
    generation: int = 0


@dataclass
class ManifestCacheChangedEvent(ContainerEvent):
    """The project cache was rebuilt or a project's derived state moved."""
    event_type: str = "manifest_cache_changed"
    added: tuple[ProjectInfo, ...] = ()
    removed: tuple[Path, ...] = ()
    updated: tuple[ProjectInfo, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.updated)


@dataclass
class SourceFileChangedEvent(ContainerEvent):
    """A file inside a tracked project was edited."""
    event_type: str = "source_file_changed"
    path: Path = field(default_factory=Path)
    project_root: Path | None = None
