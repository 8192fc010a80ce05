from __future__ import annotations

from pathlib import Path

from dbtcache.engine.resolver import find_project_root, package_name


def test_file_inside_project_resolves_to_root() -> None:
    roots = [Path("/ws/proj")]
    assert find_project_root("/ws/proj/models/a.sql", roots) == Path("/ws/proj")


def test_file_outside_any_project_is_not_found() -> None:
    assert find_project_root("/ws/other/x", [Path("/ws/proj")]) is None


def test_root_itself_is_not_found() -> None:
    assert find_project_root("/ws/proj", [Path("/ws/proj")]) is None


def test_sibling_with_shared_prefix_does_not_match() -> None:
    assert find_project_root("/ws/project2/models/a.sql", [Path("/ws/proj")]) is None


def test_nested_roots_prefer_most_specific() -> None:
    roots = [Path("/ws/outer"), Path("/ws/outer/inner")]
    assert find_project_root("/ws/outer/inner/m.sql", roots) == Path("/ws/outer/inner")
    assert find_project_root("/ws/outer/m.sql", roots) == Path("/ws/outer")


def test_no_roots() -> None:
    assert find_project_root("/ws/proj/a.sql", []) is None


def test_vendored_package_name() -> None:
    path = "/ws/proj/dbt_modules/pkgA/models/b.sql"
    assert package_name(path, "/ws/proj", "dbt_modules") == "pkgA"


def test_modules_dir_alone_has_no_package() -> None:
    assert package_name("/ws/proj/dbt_modules", "/ws/proj", "dbt_modules") is None


def test_project_file_is_not_in_a_package() -> None:
    assert package_name("/ws/proj/models/a.sql", "/ws/proj", "dbt_modules") is None


def test_modules_dir_deeper_than_root_is_not_a_package() -> None:
    path = "/ws/proj/models/dbt_modules/pkg/a.sql"
    assert package_name(path, "/ws/proj", "dbt_modules") is None
