"""Project handle lifecycle state machine.

Defines valid transitions and enforces them. Invalid transitions
raise ValueError rather than silently proceeding.

State Diagram:

    PENDING ──┬──> ACTIVE <──> FAILED
              │
              └──> FAILED

    Any state ──> DISPOSED  (teardown on rebuild)
"""
from __future__ import annotations

from .models import ProjectState

VALID_TRANSITIONS: dict[ProjectState, set[ProjectState]] = {
    ProjectState.PENDING: {
        ProjectState.ACTIVE,
        ProjectState.FAILED,
        ProjectState.DISPOSED,
    },
    ProjectState.ACTIVE: {
        ProjectState.ACTIVE,  # repeated refresh
        ProjectState.FAILED,
        ProjectState.DISPOSED,
    },
    ProjectState.FAILED: {
        ProjectState.ACTIVE,  # descriptor fixed
        ProjectState.FAILED,
        ProjectState.DISPOSED,
    },
    ProjectState.DISPOSED: set(),
}


def validate_transition(
    current: ProjectState,
    target: ProjectState,
    *,
    subject: object = "project handle",
) -> None:
    """Raise ValueError unless *subject* may move from *current* to *target*."""
    allowed = VALID_TRANSITIONS[current]
    if target in allowed:
        return
    options = ", ".join(sorted(s.value for s in allowed)) or "none (terminal)"
    raise ValueError(
        f"{subject}: cannot go from {current.value} to {target.value} "
        f"(allowed: {options})"
    )
