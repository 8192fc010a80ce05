"""Interpreter path resolution with change notification."""
from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

InterpreterListener = Callable[[str | None], Awaitable[None]]


class PythonEnvironment:
    """Holds the interpreter the tool-runner binding should use."""

    def __init__(self, python_path: str | None = None) -> None:
        self._python_path = python_path
        self._listeners: list[InterpreterListener] = []

    @property
    def configured_path(self) -> str | None:
        return self._python_path

    def resolve(self) -> str | None:
        """Configured interpreter if it exists, else python3/python on PATH."""
        if self._python_path:
            if os.path.isfile(self._python_path):
                return self._python_path
            logger.warning(
                "Configured interpreter %s does not exist, falling back to PATH",
                self._python_path,
            )
        for candidate in ("python3", "python"):
            found = shutil.which(candidate)
            if found:
                return found
        return None

    def on_did_change(self, listener: InterpreterListener) -> Callable[[], None]:
        """Register *listener*; returns a callable that removes it."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    async def set_python_path(self, python_path: str | None) -> None:
        if python_path == self._python_path:
            return
        logger.info(
            "Interpreter changed: %s -> %s",
            self._python_path or "<unset>", python_path or "<unset>",
        )
        self._python_path = python_path
        resolved = self.resolve()
        for listener in list(self._listeners):
            await listener(resolved)
