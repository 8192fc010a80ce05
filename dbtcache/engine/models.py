"""Core data models for the project cache.

Enums, dataclasses and protocols shared by the engine and adapters.
Single source of truth to avoid circular imports.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Protocol, runtime_checkable


class ProjectState(str, Enum):
    """Project handle lifecycle states. See lifecycle.py for transition rules."""
    PENDING = "pending"
    ACTIVE = "active"
    FAILED = "failed"
    DISPOSED = "disposed"


@runtime_checkable
class ProjectHandle(Protocol):
    """What the container needs from a per-project object."""

    root: Path

    async def refresh(self) -> None: ...

    async def dispose(self) -> None: ...


@dataclass(frozen=True)
class ProjectInfo:
    """Public description of a tracked project."""
    root: Path
    name: str | None = None
    generation: int = 0
    state: ProjectState | None = None


@dataclass(frozen=True)
class CacheGeneration:
    """Immutable snapshot of the project cache produced by one rebuild."""

    generation: int
    projects: Mapping[Path, Any] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @classmethod
    def build(cls, generation: int, projects: dict[Path, Any]) -> CacheGeneration:
        return cls(generation=generation, projects=MappingProxyType(dict(projects)))

    @property
    def roots(self) -> list[Path]:
        return list(self.projects.keys())

    def __len__(self) -> int:
        return len(self.projects)
