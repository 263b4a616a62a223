"""Upgrade state machine — enforces the per-scope upgrade lifecycle."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

from schemalift.exceptions import UpgradeStateError
from schemalift.types import UpgradeState

TransitionCallback = Callable[
    [str, UpgradeState, UpgradeState, "str | None"], Awaitable[None]
]

_ACTIVE = {
    UpgradeState.IDLE,
    UpgradeState.DETECTING,
    UpgradeState.MIGRATING,
    UpgradeState.RUNNING_SCRIPT,
    UpgradeState.MARKING_COMPLETE,
}

# Valid state transitions for one version-by-version upgrade pass
VALID_TRANSITIONS: dict[UpgradeState, set[UpgradeState]] = {
    UpgradeState.IDLE: {UpgradeState.DETECTING, UpgradeState.FAILED},
    UpgradeState.DETECTING: {
        UpgradeState.MIGRATING,
        UpgradeState.DONE,
        UpgradeState.FAILED,
    },
    UpgradeState.MIGRATING: {
        UpgradeState.RUNNING_SCRIPT,
        UpgradeState.MARKING_COMPLETE,  # no script for this version
        UpgradeState.FAILED,
    },
    UpgradeState.RUNNING_SCRIPT: {UpgradeState.MARKING_COMPLETE, UpgradeState.FAILED},
    UpgradeState.MARKING_COMPLETE: {
        UpgradeState.MIGRATING,  # next version
        UpgradeState.DONE,
        UpgradeState.FAILED,
    },
    UpgradeState.DONE: set(),  # terminal
    UpgradeState.FAILED: set(),  # terminal
}


class UpgradeStateMachine:
    """Tracks where one scope's upgrade pass is, and for which version.

    Only valid transitions occur; listeners are notified on every change.
    """

    def __init__(self, scope: str):
        self.scope = scope
        self._state = UpgradeState.IDLE
        self._version: str | None = None
        self._listeners: list[TransitionCallback] = []
        self._lock = asyncio.Lock()

    @property
    def state(self) -> UpgradeState:
        return self._state

    @property
    def version(self) -> str | None:
        return self._version

    @property
    def is_terminal(self) -> bool:
        return self._state not in _ACTIVE

    async def transition(self, target: UpgradeState, version: str | None = None) -> None:
        async with self._lock:
            valid = VALID_TRANSITIONS.get(self._state, set())
            if target not in valid:
                raise UpgradeStateError(
                    f"Cannot transition {self.scope} upgrade "
                    f"from {self._state.value} to {target.value}"
                )
            old = self._state
            self._state = target
            if version is not None:
                self._version = version
        # Notify listeners outside the lock
        for listener in self._listeners:
            await listener(self.scope, old, target, self._version)

    def on_transition(self, callback: TransitionCallback) -> None:
        self._listeners.append(callback)
