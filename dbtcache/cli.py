"""CLI entry point for the project cache.

Usage:
    python -m dbtcache list ~/src/analytics
    python -m dbtcache resolve models/orders.sql --root ~/src/analytics
    python -m dbtcache watch --config dbtcache.yaml
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from dbtcache.adapters.events import ManifestCacheChangedEvent
from dbtcache.adapters.python_env import PythonEnvironment
from dbtcache.adapters.watcher import ProjectFolderWatcher
from dbtcache.engine.config import ContainerConfig
from dbtcache.engine.container import DbtProjectContainer
from dbtcache.engine.models import ProjectState
from dbtcache.engine.yaml_config import load_yaml_config


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dbtcache",
        description="Discover dbt projects in workspace roots and keep the index live",
    )
    parser.add_argument(
        "--config", "-c",
        default=None,
        help="YAML config file with workspace roots and container settings",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Also write logs to this file (rotated at 2 MB)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    list_cmd = sub.add_parser("list", help="Print discovered projects")
    list_cmd.add_argument("roots", nargs="*", help="Workspace roots")

    resolve_cmd = sub.add_parser(
        "resolve", help="Print the project and vendored package owning a path",
    )
    resolve_cmd.add_argument("path", help="File path to resolve")
    resolve_cmd.add_argument(
        "--root", "-r",
        action="append",
        default=[],
        dest="roots",
        help="Workspace root (repeatable)",
    )

    watch_cmd = sub.add_parser("watch", help="Watch roots and log cache changes")
    watch_cmd.add_argument("roots", nargs="*", help="Workspace roots")
    watch_cmd.add_argument(
        "--no-dbt-check",
        action="store_true",
        help="Skip probing the interpreter for a dbt installation",
    )
    return parser


def _configure_logging(level_name: str, verbose: bool, log_file: str | None) -> None:
    level = logging.DEBUG if verbose else getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        datefmt="%H:%M:%S",
    )
    if log_file:
        handler = RotatingFileHandler(
            log_file, maxBytes=2_000_000, backupCount=5, encoding="utf-8"
        )
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s [pid=%(process)d] %(message)s"
        ))
        logging.getLogger().addHandler(handler)


def _resolve_inputs(args: argparse.Namespace) -> tuple[ContainerConfig, list[Path]]:
    if args.config:
        workspace = load_yaml_config(args.config)
        config, roots = workspace.container, workspace.workspace_roots
    else:
        config, roots = ContainerConfig.from_env(), []
    if args.roots:
        roots = [Path(r).expanduser().resolve() for r in args.roots]
    return config, roots


def _print_event(event: ManifestCacheChangedEvent) -> None:
    for info in event.added:
        print(f"+ {info.root}  {info.name or ''}".rstrip())
    for root in event.removed:
        print(f"- {root}")
    for info in event.updated:
        status = " (failed)" if info.state == ProjectState.FAILED else ""
        print(f"~ {info.root}  {info.name or ''}{status}".rstrip())
    sys.stdout.flush()


async def _run_list(container: DbtProjectContainer) -> int:
    await container.rebuild_and_refresh()
    for info in container.projects():
        print(f"{info.root}\t{info.name or '-'}")
    return 0


async def _run_resolve(container: DbtProjectContainer, path: str) -> int:
    await container.create_manifests()
    target = Path(path).expanduser().resolve()
    project_root = container.get_project_rootpath(target)
    if project_root is None:
        print(f"{target}: not inside a dbt project")
        return 1
    package = container.get_package_name(target)
    print(f"project: {project_root}")
    print(f"package: {package or '-'}")
    return 0


async def _run_watch(container: DbtProjectContainer, check_dbt: bool) -> int:
    container.add_provider(_print_event)
    if check_dbt:
        await container.create_dbt_client(PythonEnvironment(container.config.python_path))
    await container.rebuild_and_refresh()

    watcher = ProjectFolderWatcher(container)
    watcher.start()
    try:
        await asyncio.Event().wait()
    finally:
        watcher.stop()
        await watcher.wait_idle()
        await container.dispose()
    return 0


def main(argv: list[str] | None = None) -> None:
    args = _build_parser().parse_args(argv)
    config, roots = _resolve_inputs(args)
    _configure_logging(config.log_level, args.verbose, args.log_file)

    if not roots:
        print("Error: no workspace roots given (pass roots or --config).")
        sys.exit(2)

    container = DbtProjectContainer(config, roots)
    try:
        if args.command == "list":
            code = asyncio.run(_run_list(container))
        elif args.command == "resolve":
            code = asyncio.run(_run_resolve(container, args.path))
        else:
            code = asyncio.run(_run_watch(container, not args.no_dbt_check))
    except KeyboardInterrupt:
        print("\nInterrupted.")
        code = 130
    sys.exit(code)


if __name__ == "__main__":
    main()
