"""Release trigger: turns a watcher run into at most one build activation."""

from __future__ import annotations

import threading

from shiptag.services.release.model import TagOutcome


def should_trigger(outcome: TagOutcome | None) -> bool:
    """Any successful tag gate outcome authorizes a build.

    ``exists`` rebuilds and republishes the release for the current version;
    ``None`` is the manifest-unchanged case.
    """
    return outcome is not None


class ReleaseTrigger:
    """Edge-triggered, one-shot activation per watcher run id."""

    def __init__(self) -> None:
        self._fired: set[str] = set()
        self._lock = threading.Lock()

    def fire(self, run_id: str, outcome: TagOutcome | None) -> bool:
        if not should_trigger(outcome):
            return False
        with self._lock:
            if run_id in self._fired:
                return False
            self._fired.add(run_id)
        return True

    def has_fired(self, run_id: str) -> bool:
        with self._lock:
            return run_id in self._fired
