"""Tests for the cue lifecycle scheduler."""

import logging

import pytest

from overlaycue.config import PlaybackConfig
from overlaycue.lifecycle import LifecycleScheduler, LifecycleState
from overlaycue.scenario import resolve
from overlaycue.timers import ManualTimers

from conftest import minimal_scenario


def _cue(cue_id, lifetime):
    return {
        "id": cue_id,
        "track": "subs",
        "domLifetime": lifetime,
        "root": {"id": f"{cue_id}-text", "eType": "text", "text": cue_id},
    }


def _scenario(*cues):
    return resolve(minimal_scenario(cues=list(cues)))


def _scheduler(scenario, **config):
    timers = ManualTimers()
    scheduler = LifecycleScheduler(PlaybackConfig(**config), timers)
    scheduler.load(scenario)
    return scheduler, timers


class TestLifecycleSequence:
    def test_preload_active_cleanup(self):
        scheduler, timers = _scheduler(_scenario(_cue("c", [2, 5])))

        assert scheduler.update(1.0) == []
        assert scheduler.state("c") == LifecycleState.UNMOUNTED

        assert scheduler.update(1.71) == ["c"]
        assert scheduler.state("c") == LifecycleState.PRELOADING

        scheduler.update(2.0)
        assert scheduler.state("c") == LifecycleState.ACTIVE

        assert scheduler.update(5.1) == ["c"]
        assert scheduler.state("c") == LifecycleState.CLEANUP_PENDING
        assert scheduler.has_pending_unmount("c")

    def test_seek_back_cancels_pending_unmount(self):
        scheduler, timers = _scheduler(_scenario(_cue("c", [2, 5])))
        scheduler.update(2.0)
        scheduler.update(5.1)
        scheduler.update(5.3)
        assert scheduler.is_mounted("c")

        scheduler.update(4.0)
        assert scheduler.is_active("c")
        assert not scheduler.has_pending_unmount("c")

        # The cancelled timer must not unmount the cue later.
        timers.advance(1.0)
        assert scheduler.is_mounted("c")

    def test_timer_unmounts_after_cleanup_delay(self):
        scheduler, timers = _scheduler(_scenario(_cue("c", [2, 5])))
        scheduler.update(2.0)
        scheduler.update(5.1)

        timers.advance(0.4)
        assert scheduler.is_mounted("c")
        timers.advance(0.2)
        assert not scheduler.is_mounted("c")
        assert scheduler.update(5.2) == []

    def test_far_overshoot_unmounts_without_timer(self):
        scheduler, _ = _scheduler(_scenario(_cue("c", [2, 5])))
        scheduler.update(3.0)
        assert scheduler.update(9.0) == []
        assert scheduler.stats["total_unmounts"] == 1

    def test_seek_before_preload_point_cleans_up(self):
        scheduler, _ = _scheduler(_scenario(_cue("c", [2, 5])))
        scheduler.update(3.0)
        scheduler.update(1.5)
        assert scheduler.state("c") == LifecycleState.CLEANUP_PENDING

    def test_update_is_idempotent(self):
        scheduler, timers = _scheduler(_scenario(_cue("c", [2, 5])))
        scheduler.update(5.1)
        assert scheduler.update(5.1) == scheduler.update(5.1)
        assert timers.pending == 0

    def test_mounted_in_document_order(self):
        scheduler, _ = _scheduler(_scenario(_cue("b", [0, 4]), _cue("a", [1, 4])))
        assert scheduler.update(2.0) == ["b", "a"]


class TestConfig:
    def test_preload_lookahead(self):
        scheduler, _ = _scheduler(_scenario(_cue("c", [2, 5])), preload_ms=1000)
        assert scheduler.update(1.0) == ["c"]

    def test_snap_to_frame(self):
        scheduler, _ = _scheduler(
            _scenario(_cue("c", [2, 5])), preload_ms=0, snap_to_frame=True, fps=10,
        )
        # 1.96 snaps to 2.0, inside domLifetime.
        scheduler.update(1.96)
        assert scheduler.is_active("c")


class TestMemoryLimit:
    def test_evicts_oldest_inactive(self, caplog):
        scenario = _scenario(
            _cue("a", [1.0, 1.5]),
            _cue("b", [1.2, 1.6]),
            _cue("now", [0, 10]),
        )
        scheduler, _ = _scheduler(scenario, max_mounted_cues=2, preload_ms=2000)
        with caplog.at_level(logging.WARNING, logger="overlaycue.lifecycle"):
            mounted = scheduler.update(0.5)
        assert mounted == ["b", "now"]
        assert "evicted 1 inactive cues" in caplog.text

    def test_never_evicts_active(self):
        scenario = _scenario(_cue("a", [0, 10]), _cue("b", [0, 10]), _cue("c", [0, 10]))
        scheduler, _ = _scheduler(scenario, max_mounted_cues=1)
        assert scheduler.update(5.0) == ["a", "b", "c"]


class TestLoad:
    def test_load_cancels_pending_and_unmounts(self):
        scheduler, timers = _scheduler(_scenario(_cue("c", [2, 5])))
        scheduler.update(2.0)
        scheduler.update(5.1)
        assert timers.pending == 1

        scheduler.load(_scenario(_cue("other", [0, 1])))
        assert timers.pending == 0
        assert not scheduler.is_mounted("c")

    def test_no_scenario(self):
        assert LifecycleScheduler().update(1.0) == []


class TestListeners:
    def test_event_sequence(self):
        scheduler, timers = _scheduler(_scenario(_cue("c", [2, 5])))
        events = []
        scheduler.add_listener(lambda e: events.append((e.type, e.cue_id)))

        for t in (1.8, 2.5, 5.2):
            scheduler.update(t)
        timers.advance(0.5)

        assert events == [
            ("mount", "c"), ("activate", "c"), ("deactivate", "c"), ("unmount", "c"),
        ]

    def test_remove_listener(self):
        scheduler, _ = _scheduler(_scenario(_cue("c", [2, 5])))
        events = []
        remove = scheduler.add_listener(events.append)
        remove()
        scheduler.update(3.0)
        assert events == []

    def test_failing_listener_does_not_break_update(self, caplog):
        scheduler, _ = _scheduler(_scenario(_cue("c", [2, 5])))

        def listener(event):
            raise RuntimeError("listener down")

        scheduler.add_listener(listener)
        with caplog.at_level(logging.ERROR, logger="overlaycue.lifecycle"):
            assert scheduler.update(3.0) == ["c"]
        assert "Lifecycle listener failed on mount" in caplog.text


@pytest.mark.parametrize("t, expected", [
    (1.6, LifecycleState.UNMOUNTED),
    (1.75, LifecycleState.PRELOADING),
    (3.5, LifecycleState.ACTIVE),
    (5.0, LifecycleState.ACTIVE),
])
def test_state_from_cold_start(t, expected):
    scheduler, _ = _scheduler(_scenario(_cue("c", [2, 5])))
    scheduler.update(t)
    assert scheduler.state("c") == expected
