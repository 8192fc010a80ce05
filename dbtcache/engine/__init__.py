"""Project cache engine: discovery, path resolution and the coordinator."""
from .models import CacheGeneration, ProjectHandle, ProjectInfo, ProjectState
from .config import ContainerConfig
from .errors import (
    CacheNotBuiltError,
    DiscoveryError,
    InterpreterNotFoundError,
    ProjectCacheError,
    ProjectHandleError,
)
from .discovery import discover_projects, discover_projects_async
from .resolver import find_project_root, package_name

__all__ = [
    # Coordinator (lazy import to avoid circular deps)
    "DbtProjectContainer",
    "DbtProject",
    # Models
    "CacheGeneration",
    "ProjectHandle",
    "ProjectInfo",
    "ProjectState",
    # Config
    "ContainerConfig",
    # YAML config (lazy import)
    "WorkspaceConfig",
    "load_yaml_config",
    # Discovery / resolution
    "discover_projects",
    "discover_projects_async",
    "find_project_root",
    "package_name",
    # Errors
    "CacheNotBuiltError",
    "DiscoveryError",
    "InterpreterNotFoundError",
    "ProjectCacheError",
    "ProjectHandleError",
]


def __getattr__(name: str):
    if name == "DbtProjectContainer":
        from .container import DbtProjectContainer
        return DbtProjectContainer
    if name == "DbtProject":
        from .project import DbtProject
        return DbtProject
    if name == "WorkspaceConfig":
        from .yaml_config import WorkspaceConfig
        return WorkspaceConfig
    if name == "load_yaml_config":
        from .yaml_config import load_yaml_config
        return load_yaml_config
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
