"""Shared enums and models for mediamanager."""

from __future__ import annotations

from enum import StrEnum

# ── Loader lifecycle ──


class LoaderState(StrEnum):
    IDLE = "idle"
    FETCHING = "fetching"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATES


_TERMINAL_STATES = frozenset({
    LoaderState.SUCCEEDED,
    LoaderState.FAILED,
    LoaderState.CANCELLED,
})

# Legal transitions; anything else is rejected by the loader.
LOADER_TRANSITIONS: dict[LoaderState, frozenset[LoaderState]] = {
    LoaderState.IDLE: frozenset({LoaderState.FETCHING, LoaderState.CANCELLED}),
    LoaderState.FETCHING: frozenset({
        LoaderState.SUCCEEDED,
        LoaderState.FAILED,
        LoaderState.CANCELLED,
    }),
    LoaderState.SUCCEEDED: frozenset(),
    LoaderState.FAILED: frozenset(),
    LoaderState.CANCELLED: frozenset(),
}


def can_transition(current: LoaderState, target: LoaderState) -> bool:
    """Return True if ``current -> target`` is a legal loader transition."""
    return target in LOADER_TRANSITIONS[current]


# Bounding size for resize: (width, height). Zero on either axis disables resizing.
Bound = tuple[int, int]
