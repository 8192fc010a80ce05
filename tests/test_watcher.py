from __future__ import annotations

import asyncio
import os
from pathlib import Path

import pytest
from watchdog.events import DirMovedEvent

from dbtcache.adapters.watcher import Debouncer, ProjectFolderWatcher, _TopLevelHandler
from dbtcache.engine.config import ContainerConfig


class FakeContainer:
    def __init__(self, roots=(), delay: float = 0.05) -> None:
        self.config = ContainerConfig(create_debounce_seconds=delay)
        self.workspace_roots = [Path(r) for r in roots]
        self.rebuilds = 0
        self.fail = False

    async def rebuild_and_refresh(self) -> None:
        self.rebuilds += 1
        if self.fail:
            raise RuntimeError("rebuild failed")


@pytest.mark.asyncio
async def test_debouncer_coalesces_rapid_triggers() -> None:
    runs: list[int] = []

    async def callback() -> None:
        runs.append(1)

    debouncer = Debouncer(0.05, callback)
    for _ in range(5):
        debouncer.trigger()
        await asyncio.sleep(0.01)
    assert debouncer.pending

    await asyncio.sleep(0.15)
    await debouncer.wait_idle()

    assert runs == [1]
    assert not debouncer.pending


@pytest.mark.asyncio
async def test_debouncer_cancel() -> None:
    runs: list[int] = []

    async def callback() -> None:
        runs.append(1)

    debouncer = Debouncer(0.02, callback)
    debouncer.trigger()
    debouncer.cancel()
    await asyncio.sleep(0.06)

    assert runs == []


@pytest.mark.asyncio
async def test_creation_events_are_debounced_into_one_rebuild() -> None:
    container = FakeContainer()
    watcher = ProjectFolderWatcher(container, roots=[])

    for name in ("a", "b", "c"):
        watcher.handle_event("created", Path("/ws") / name)
    await asyncio.sleep(0.01)
    assert container.rebuilds == 0

    await asyncio.sleep(0.15)
    await watcher.wait_idle()

    assert container.rebuilds == 1


@pytest.mark.asyncio
async def test_deletion_rebuilds_immediately() -> None:
    container = FakeContainer(delay=10.0)
    watcher = ProjectFolderWatcher(container, roots=[])

    watcher.handle_event("deleted", Path("/ws/a"))
    await watcher.wait_idle()

    assert container.rebuilds == 1


@pytest.mark.asyncio
async def test_rebuild_failure_is_contained(caplog) -> None:
    container = FakeContainer(delay=10.0)
    container.fail = True
    watcher = ProjectFolderWatcher(container, roots=[])

    watcher.handle_event("deleted", Path("/ws/a"))
    await watcher.wait_idle()

    assert container.rebuilds == 1
    assert "rebuild failed" in caplog.text


@pytest.mark.asyncio
async def test_stop_cancels_pending_creation() -> None:
    container = FakeContainer(delay=0.05)
    watcher = ProjectFolderWatcher(container, roots=[])

    watcher.handle_event("created", Path("/ws/a"))
    watcher.stop()
    await asyncio.sleep(0.1)

    assert container.rebuilds == 0


@pytest.mark.asyncio
async def test_dispatch_threadsafe_reaches_loop(tmp_path: Path) -> None:
    container = FakeContainer(roots=[tmp_path], delay=10.0)
    watcher = ProjectFolderWatcher(container)
    watcher.start()
    try:
        await asyncio.to_thread(
            watcher.dispatch_threadsafe, "deleted", str(tmp_path / "gone")
        )
        await asyncio.sleep(0.05)
        await watcher.wait_idle()
    finally:
        watcher.stop()

    assert container.rebuilds == 1
    assert not watcher.running


@pytest.mark.asyncio
async def test_real_directory_creation_triggers_rebuild(tmp_path: Path) -> None:
    container = FakeContainer(roots=[tmp_path], delay=0.1)
    watcher = ProjectFolderWatcher(container)
    watcher.start()
    try:
        (tmp_path / "new_project").mkdir()
        for _ in range(50):
            await asyncio.sleep(0.05)
            if container.rebuilds:
                break
        await watcher.wait_idle()
    finally:
        watcher.stop()

    assert container.rebuilds == 1


@pytest.mark.asyncio
async def test_rename_within_root_rebuilds_for_both_entries(tmp_path: Path) -> None:
    container = FakeContainer(roots=[tmp_path], delay=0.05)
    watcher = ProjectFolderWatcher(container)
    watcher.start()
    try:
        handler = _TopLevelHandler(watcher)
        handler.on_moved(DirMovedEvent(str(tmp_path / ".staging"), str(tmp_path / "proj")))
        await asyncio.sleep(0.2)
        await watcher.wait_idle()
    finally:
        watcher.stop()

    # one immediate rebuild for the old name, one debounced for the new
    assert container.rebuilds == 2


@pytest.mark.asyncio
async def test_move_out_of_root_only_counts_as_deletion(tmp_path: Path) -> None:
    root = tmp_path / "ws"
    root.mkdir()
    container = FakeContainer(roots=[root], delay=0.05)
    watcher = ProjectFolderWatcher(container)
    watcher.start()
    try:
        handler = _TopLevelHandler(watcher)
        handler.on_moved(DirMovedEvent(str(root / "proj"), str(tmp_path / "archive" / "proj")))
        await asyncio.sleep(0.2)
        await watcher.wait_idle()
    finally:
        watcher.stop()

    assert container.rebuilds == 1


def test_is_top_level(tmp_path: Path) -> None:
    watcher = ProjectFolderWatcher(FakeContainer(), roots=[tmp_path])
    assert watcher.is_top_level(tmp_path / "proj")
    assert not watcher.is_top_level(tmp_path / "proj" / "models")
    assert not watcher.is_top_level(tmp_path)


@pytest.mark.asyncio
async def test_real_directory_rename_triggers_rebuild(tmp_path: Path) -> None:
    staging = tmp_path / ".staging"
    staging.mkdir()
    (staging / "dbt_project.yml").write_text("name: proj\n")
    container = FakeContainer(roots=[tmp_path], delay=0.1)
    watcher = ProjectFolderWatcher(container)
    watcher.start()
    try:
        os.rename(staging, tmp_path / "proj")
        for _ in range(50):
            await asyncio.sleep(0.05)
            if container.rebuilds:
                break
        await asyncio.sleep(0.3)
        await watcher.wait_idle()
    finally:
        watcher.stop()

    assert container.rebuilds >= 1
