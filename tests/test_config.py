from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from dbtcache.engine import yaml_config
from dbtcache.engine.config import ContainerConfig
from dbtcache.engine.yaml_config import load_yaml_config


@pytest.fixture(autouse=True)
def _no_global_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        yaml_config, "_global_config_path", lambda: tmp_path / "global" / "config.yaml"
    )


def test_defaults() -> None:
    cfg = ContainerConfig()
    assert cfg.project_file == "dbt_project.yml"
    assert cfg.modules_dir == "dbt_modules"
    assert cfg.ignore_token == "site-packages"
    assert cfg.create_debounce_seconds == 2.0
    assert cfg.require_cache_for_providers is False


def test_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DBTCACHE_MODULES_DIR", "dbt_packages")
    monkeypatch.setenv("DBTCACHE_CREATE_DEBOUNCE", "0.5")
    monkeypatch.setenv("DBTCACHE_REQUIRE_CACHE_FOR_PROVIDERS", "yes")
    monkeypatch.setenv("DBTCACHE_PYTHON_PATH", "/opt/venv/bin/python")

    cfg = ContainerConfig.from_env()

    assert cfg.modules_dir == "dbt_packages"
    assert cfg.create_debounce_seconds == 0.5
    assert cfg.require_cache_for_providers is True
    assert cfg.python_path == "/opt/venv/bin/python"


def test_yaml_config_resolves_relative_roots(tmp_path: Path) -> None:
    config_path = tmp_path / "dbtcache.yaml"
    config_path.write_text(
        "workspace:\n"
        "  roots:\n"
        "    - ./warehouse\n"
        "    - /abs/analytics\n"
        "    - ./warehouse\n"
        "container:\n"
        "  modules_dir: dbt_packages\n"
        "  create_debounce_seconds: 0.25\n"
        "python:\n"
        "  path: /opt/venv/bin/python\n"
    )

    cfg = load_yaml_config(config_path)

    assert cfg.workspace_roots == [
        (tmp_path / "warehouse").resolve(),
        Path("/abs/analytics").resolve(),
    ]
    assert cfg.container.modules_dir == "dbt_packages"
    assert cfg.container.create_debounce_seconds == 0.25
    assert cfg.container.python_path == "/opt/venv/bin/python"


def test_global_config_merged_beneath(tmp_path: Path) -> None:
    global_path = tmp_path / "global" / "config.yaml"
    global_path.parent.mkdir()
    global_path.write_text(
        "container:\n"
        "  modules_dir: dbt_packages\n"
        "  log_level: DEBUG\n"
        "workspace:\n"
        "  roots: [/srv/dbt]\n"
    )
    config_path = tmp_path / "dbtcache.yaml"
    config_path.write_text("container:\n  log_level: WARNING\n")

    cfg = load_yaml_config(config_path)

    assert cfg.container.modules_dir == "dbt_packages"
    assert cfg.container.log_level == "WARNING"
    assert cfg.workspace_roots == [Path("/srv/dbt").resolve()]


def test_broken_global_config_is_ignored(tmp_path: Path) -> None:
    global_path = tmp_path / "global" / "config.yaml"
    global_path.parent.mkdir()
    global_path.write_text("container: [unclosed\n")
    config_path = tmp_path / "dbtcache.yaml"
    config_path.write_text("workspace:\n  roots: []\n")

    cfg = load_yaml_config(config_path)

    assert cfg.workspace_roots == []
    assert cfg.container.modules_dir == "dbt_modules"


def test_missing_config_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_yaml_config(tmp_path / "absent.yaml")


def test_invalid_yaml_raises(tmp_path: Path) -> None:
    config_path = tmp_path / "bad.yaml"
    config_path.write_text("workspace: [oops\n")
    with pytest.raises(yaml.YAMLError):
        load_yaml_config(config_path)
