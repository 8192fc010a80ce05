"""Project cache coordinator.

Owns the mapping from project root to project handle, rebuilds it when the
workspace structure changes, fans out refreshes, and notifies observers.

The cache is an immutable ``CacheGeneration`` snapshot swapped in one
assignment. ``create_manifests()`` and ``try_refresh_all()`` hold the same
lock, so a refresh never runs against a half-built generation. Lookups
read whichever snapshot is current when they are called.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any

from dbtcache.adapters.dbt_client import DbtClient
from dbtcache.adapters.event_bus import ObserverRegistry, Subscription
from dbtcache.adapters.events import ManifestCacheChangedEvent, SourceFileChangedEvent
from dbtcache.adapters.python_env import PythonEnvironment

from .config import ContainerConfig
from .discovery import discover_projects_async
from .errors import CacheNotBuiltError, DiscoveryError
from .models import CacheGeneration, ProjectInfo
from .project import DbtProject
from .resolver import find_project_root, package_name

logger = logging.getLogger(__name__)

# Signature: factory(root, generation, on_changed) -> handle
ProjectFactory = Callable[[Path, int, Callable[[Any], None]], Any]


class DbtProjectContainer:
    """Top-level coordinator for discovered dbt projects."""

    def __init__(
        self,
        config: ContainerConfig | None = None,
        workspace_roots: Iterable[Path | str] = (),
        *,
        project_factory: ProjectFactory | None = None,
    ) -> None:
        self.config = config or ContainerConfig()
        self._workspace_roots: list[Path] = [Path(r) for r in workspace_roots]
        self._project_factory = project_factory or self._default_project_factory
        self._cache: CacheGeneration | None = None
        self._generation = 0
        self._rebuild_lock = asyncio.Lock()
        self._observers = ObserverRegistry()
        self._dbt_client: DbtClient | None = None
        self._unsubscribe_interpreter: Callable[[], None] | None = None

    # ── Host inputs ────────────────────────────────────────────

    @property
    def workspace_roots(self) -> list[Path]:
        return list(self._workspace_roots)

    def set_workspace_roots(self, roots: Iterable[Path | str]) -> None:
        """Replace the workspace roots; applies on the next rebuild."""
        self._workspace_roots = [Path(r) for r in roots]

    # ── Cache lifecycle ────────────────────────────────────────

    def _default_project_factory(
        self, root: Path, generation: int, on_changed: Callable[[Any], None]
    ) -> DbtProject:
        return DbtProject(
            root,
            project_file=self.config.project_file,
            generation=generation,
            on_changed=on_changed,
        )

    async def _discover_all(self) -> list[Path]:
        roots: list[Path] = []
        for workspace_root in self._workspace_roots:
            found = await discover_projects_async(
                workspace_root,
                self.config.project_file,
                self.config.modules_dir,
                self.config.ignore_token,
            )
            for project_root in found:
                if project_root not in roots:
                    roots.append(project_root)
        return roots

    async def create_manifests(self) -> None:
        """Rebuild the cache from a fresh scan of every workspace root."""
        async with self._rebuild_lock:
            previous = self._cache
            if not self._workspace_roots and previous is None:
                logger.debug("create_manifests: no workspace roots configured")
                return

            try:
                project_roots = await self._discover_all()
            except DiscoveryError as exc:
                logger.error(
                    "create_manifests: %s; keeping generation %s",
                    exc, previous.generation if previous else "<none>",
                )
                return

            if previous is not None:
                await self._dispose_generation(previous)

            generation = self._generation + 1
            projects: dict[Path, Any] = {}
            for root in project_roots:
                try:
                    projects[root] = self._project_factory(
                        root, generation, self._make_change_callback(generation),
                    )
                except Exception:
                    logger.exception("create_manifests: cannot create project %s", root)

            self._generation = generation
            self._cache = CacheGeneration.build(generation, projects)
            logger.info(
                "create_manifests: generation %d with %d project(s)",
                generation, len(projects),
            )

        old_roots = set(previous.roots) if previous else set()
        event = ManifestCacheChangedEvent(
            generation=generation,
            added=tuple(
                self._info(root, handle)
                for root, handle in projects.items()
                if root not in old_roots
            ),
            removed=tuple(root for root in old_roots if root not in projects),
        )
        if not event.is_empty:
            self.raise_manifest_changed_event(event)

    async def _dispose_generation(self, cache: CacheGeneration) -> None:
        for root, handle in cache.projects.items():
            try:
                await handle.dispose()
            except Exception:
                logger.exception("Failed to dispose project %s", root)

    async def try_refresh_all(self) -> None:
        """Refresh every project of the current generation."""
        async with self._rebuild_lock:
            cache = self._cache
            if cache is None:
                logger.error("%s", CacheNotBuiltError("refresh projects"))
                return
            handles = list(cache.projects.items())
            results = await asyncio.gather(
                *(handle.refresh() for _, handle in handles),
                return_exceptions=True,
            )
        for (root, _), result in zip(handles, results):
            if isinstance(result, BaseException):
                logger.error("Refresh failed for %s: %s", root, result)

    async def rebuild_and_refresh(self) -> None:
        await self.create_manifests()
        await self.try_refresh_all()

    async def dispose(self) -> None:
        """Tear down the current generation and the dbt client."""
        async with self._rebuild_lock:
            if self._cache is not None:
                await self._dispose_generation(self._cache)
                self._cache = None
        if self._unsubscribe_interpreter is not None:
            self._unsubscribe_interpreter()
            self._unsubscribe_interpreter = None
        if self._dbt_client is not None:
            self._dbt_client.dispose()
            self._dbt_client = None

    # ── Read access ────────────────────────────────────────────

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def has_cache(self) -> bool:
        return self._cache is not None

    @property
    def project_roots(self) -> list[Path]:
        return self._cache.roots if self._cache is not None else []

    def projects(self) -> list[ProjectInfo]:
        cache = self._cache
        if cache is None:
            return []
        return [self._info(root, handle) for root, handle in cache.projects.items()]

    def get_project(self, root: Path | str) -> Any | None:
        cache = self._cache
        return cache.projects.get(Path(root)) if cache is not None else None

    @staticmethod
    def _info(root: Path, handle: Any) -> ProjectInfo:
        if hasattr(handle, "info"):
            return handle.info()
        return ProjectInfo(root=root, generation=getattr(handle, "generation", 0))

    def _require_cache(self, operation: str) -> CacheGeneration:
        if self._cache is None:
            raise CacheNotBuiltError(operation)
        return self._cache

    # ── Observers ──────────────────────────────────────────────

    def add_provider(self, provider: Any) -> Subscription | None:
        """Register a cache-changed observer.

        *provider* is either an object with ``on_manifest_cache_changed``
        or a plain callable taking the event.
        """
        if self.config.require_cache_for_providers and self._cache is None:
            logger.error("%s", CacheNotBuiltError("add a cache observer"))
            return None
        callback = getattr(provider, "on_manifest_cache_changed", provider)
        if not callable(callback):
            raise TypeError(f"Not a cache observer: {provider!r}")
        return self._observers.subscribe(callback)

    def raise_manifest_changed_event(self, event: ManifestCacheChangedEvent) -> None:
        self._observers.publish(event)

    def _make_change_callback(self, generation: int) -> Callable[[Any], None]:
        def _on_project_changed(handle: Any) -> None:
            if generation != self._generation or self._cache is None:
                logger.debug(
                    "Dropping change from stale generation %d (current %d)",
                    generation, self._generation,
                )
                return
            root = Path(handle.root)
            self.raise_manifest_changed_event(
                ManifestCacheChangedEvent(
                    generation=generation,
                    updated=(self._info(root, handle),),
                )
            )

        return _on_project_changed

    # ── Source file edits ──────────────────────────────────────

    def raise_source_file_changed_event(self, event: SourceFileChangedEvent) -> None:
        if self._dbt_client is not None:
            self._dbt_client.on_source_file_changed(event)

    def notify_source_file_changed(self, path: Path | str) -> None:
        """Forward an edit of *path* if it belongs to a tracked project."""
        project_root = self.get_project_rootpath(path)
        if project_root is None:
            return
        self.raise_source_file_changed_event(
            SourceFileChangedEvent(
                generation=self._generation,
                path=Path(path),
                project_root=project_root,
            )
        )

    # ── Path resolution ────────────────────────────────────────

    def get_project_rootpath(self, path: Path | str) -> Path | None:
        try:
            cache = self._require_cache("resolve a project root")
        except CacheNotBuiltError as exc:
            logger.error("%s", exc)
            return None
        return find_project_root(path, cache.roots)

    def get_package_name(self, path: Path | str) -> str | None:
        project_root = self.get_project_rootpath(path)
        if project_root is None:
            return None
        return package_name(path, project_root, self.config.modules_dir)

    # ── Tool-runner binding ────────────────────────────────────

    @property
    def dbt_client(self) -> DbtClient | None:
        return self._dbt_client

    async def create_dbt_client(self, python_env: PythonEnvironment | None = None) -> None:
        """Bind a DbtClient to the resolved interpreter and follow changes."""
        python_env = python_env or PythonEnvironment(self.config.python_path)
        python_path = python_env.resolve()
        if python_path is None:
            logger.info("create_dbt_client: no Python interpreter found")
            return

        if self._unsubscribe_interpreter is not None:
            self._unsubscribe_interpreter()
        self._unsubscribe_interpreter = python_env.on_did_change(self._replace_dbt_client)
        await self._replace_dbt_client(python_path)

    async def _replace_dbt_client(self, python_path: str | None) -> None:
        if self._dbt_client is not None:
            self._dbt_client.dispose()
            self._dbt_client = None
        if python_path is None:
            logger.warning("Interpreter unset, dbt client removed")
            return
        client = DbtClient(
            python_path,
            check_timeout_seconds=self.config.dbt_check_timeout_seconds,
        )
        self._dbt_client = client
        await client.check_if_dbt_installed()

    def __repr__(self) -> str:
        return (
            f"DbtProjectContainer(roots={len(self._workspace_roots)}, "
            f"generation={self._generation}, projects={len(self.project_roots)})"
        )

