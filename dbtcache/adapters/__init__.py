"""Adapters package - Bridge between the project container and its hosts.

Observer registry, events, the file-system watcher, interpreter
resolution and the dbt tool-runner binding.
"""
from __future__ import annotations

__all__ = [
    "ObserverRegistry",
    "Subscription",
    "ManifestCacheChangedEvent",
    "SourceFileChangedEvent",
    "DbtClient",
    "PythonEnvironment",
    "Debouncer",
    "ProjectFolderWatcher",
]

from dbtcache.adapters.event_bus import ObserverRegistry, Subscription
from dbtcache.adapters.events import ManifestCacheChangedEvent, SourceFileChangedEvent
from dbtcache.adapters.dbt_client import DbtClient
from dbtcache.adapters.python_env import PythonEnvironment
from dbtcache.adapters.watcher import Debouncer, ProjectFolderWatcher
