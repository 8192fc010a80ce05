"""YAML configuration loader.

Loads a single YAML file describing the workspace roots and container
settings. A global ``~/.dbtcache/config.yaml`` is merged beneath it.

Example YAML:
    workspace:
      roots:
        - ~/src/analytics
        - ./warehouse          # relative to this file

    container:
      project_file: dbt_project.yml
      modules_dir: dbt_modules
      create_debounce_seconds: 2.0
      require_cache_for_providers: false

    python:
      path: /opt/venvs/dbt/bin/python
      dbt_check_timeout_seconds: 30
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .config import ContainerConfig

logger = logging.getLogger(__name__)


@dataclass
class WorkspaceConfig:
    """Complete parsed YAML configuration."""
    container: ContainerConfig
    workspace_roots: list[Path] = field(default_factory=list)


def _global_config_path() -> Path:
    """Return the global settings path (~/.dbtcache/config.yaml)."""
    return Path.home() / ".dbtcache" / "config.yaml"


def _load_optional_yaml(path: Path, label: str) -> dict:
    """Load an optional YAML file, returning {} when missing or broken."""
    if not path.is_file():
        logger.debug("_load_optional_yaml: %s not found at %s", label, path)
        return {}
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        logger.warning(
            "_load_optional_yaml: YAML parse error in %s (%s): %s",
            label, path, exc,
        )
        return {}
    except OSError as exc:
        logger.warning(
            "_load_optional_yaml: cannot read %s (%s): %s", label, path, exc,
        )
        return {}
    if not isinstance(data, dict):
        logger.warning("_load_optional_yaml: %s is not a mapping, ignoring", path)
        return {}
    logger.info("_load_optional_yaml: loaded %s from %s", label, path)
    return data


def _resolve_root(raw: str, base_dir: Path) -> Path:
    root = Path(raw).expanduser()
    if not root.is_absolute():
        root = base_dir / root
    return root.resolve()


def load_yaml_config(path: str | Path) -> WorkspaceConfig:
    """Load and parse a YAML config file.

    Precedence (highest wins): sections in *path*, then the global
    ``~/.dbtcache/config.yaml``. Workspace roots are not merged: the
    file's own ``workspace.roots`` replaces the global list when present.
    """
    path = Path(path)
    try:
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.error(
            "load_yaml_config: config file not found at %s (absolute path: %s)",
            path, path.absolute(),
        )
        raise
    except yaml.YAMLError as exc:
        logger.error("load_yaml_config: YAML parse error in %s: %s", path, exc)
        raise

    global_raw = _load_optional_yaml(_global_config_path(), "global config")

    container_raw = {
        **(global_raw.get("container") or {}),
        **(raw.get("container") or {}),
    }
    python_raw = {
        **(global_raw.get("python") or {}),
        **(raw.get("python") or {}),
    }

    container = ContainerConfig(
        project_file=str(container_raw.get(
            "project_file", ContainerConfig.project_file
        )),
        modules_dir=str(container_raw.get(
            "modules_dir", ContainerConfig.modules_dir
        )),
        ignore_token=str(container_raw.get(
            "ignore_token", ContainerConfig.ignore_token
        )),
        create_debounce_seconds=float(container_raw.get(
            "create_debounce_seconds", ContainerConfig.create_debounce_seconds
        )),
        require_cache_for_providers=bool(container_raw.get(
            "require_cache_for_providers",
            ContainerConfig.require_cache_for_providers,
        )),
        python_path=python_raw.get("path") or None,
        dbt_check_timeout_seconds=float(python_raw.get(
            "dbt_check_timeout_seconds",
            ContainerConfig.dbt_check_timeout_seconds,
        )),
        log_level=str(container_raw.get("log_level", ContainerConfig.log_level)),
    )

    workspace_raw = raw.get("workspace") or {}
    roots_raw = workspace_raw.get("roots")
    base_dir = path.parent.resolve()
    if roots_raw is None:
        roots_raw = (global_raw.get("workspace") or {}).get("roots") or []
        base_dir = _global_config_path().parent
    if isinstance(roots_raw, str):
        roots_raw = [roots_raw]

    roots: list[Path] = []
    for entry in roots_raw:
        root = _resolve_root(str(entry), base_dir)
        if root not in roots:
            roots.append(root)

    logger.info(
        "Config loaded from %s: roots=%d project_file=%s modules_dir=%s python=%s",
        path.name,
        len(roots),
        container.project_file,
        container.modules_dir,
        container.python_path or "<auto>",
    )
    return WorkspaceConfig(container=container, workspace_roots=roots)
