from __future__ import annotations

import threading

from shiptag.services.release.model import TagOutcome
from shiptag.services.release.trigger import ReleaseTrigger, should_trigger

PUSHED = TagOutcome(tag_name="v1.3.0", version="1.3.0", commit="abc", state="pushed")
EXISTS = TagOutcome(tag_name="v1.3.0", version="1.3.0", commit="abc", state="exists")


def test_successful_tag_outcomes_trigger() -> None:
    assert should_trigger(PUSHED)
    assert should_trigger(EXISTS)
    assert not should_trigger(None)


def test_fires_once_per_run() -> None:
    trigger = ReleaseTrigger()

    assert trigger.fire("run-1", PUSHED) is True
    assert trigger.fire("run-1", PUSHED) is False
    assert trigger.fire("run-2", PUSHED) is True
    assert trigger.has_fired("run-1")


def test_unchanged_manifest_does_not_fire() -> None:
    trigger = ReleaseTrigger()

    assert trigger.fire("run-1", None) is False
    assert not trigger.has_fired("run-1")


def test_existing_tag_fires_once_per_run() -> None:
    trigger = ReleaseTrigger()

    assert trigger.fire("run-1", EXISTS) is True
    assert trigger.fire("run-1", EXISTS) is False


def test_concurrent_fire_activates_once() -> None:
    trigger = ReleaseTrigger()
    fired: list[bool] = []
    lock = threading.Lock()

    def worker() -> None:
        result = trigger.fire("run-1", PUSHED)
        with lock:
            fired.append(result)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert fired.count(True) == 1
