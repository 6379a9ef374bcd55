"""Tests for the fire-and-forget background runner."""

from __future__ import annotations

import logging
import threading
import time

from prometheus_client import REGISTRY

from accounts_service.background import BackgroundRunner


def _outcome_count(outcome: str) -> float:
    return REGISTRY.get_sample_value("accounts_background_tasks_total", {"outcome": outcome}) or 0.0


def test_run_does_not_wait_for_the_unit():
    runner = BackgroundRunner(max_workers=1)
    release = threading.Event()
    done = threading.Event()

    def unit():
        release.wait(5)
        done.set()

    start = time.monotonic()
    assert runner.run(unit) is True
    assert time.monotonic() - start < 1
    assert not done.is_set()
    assert runner.in_flight == 1

    release.set()
    assert runner.shutdown(timeout=5) == []
    assert done.is_set()
    assert runner.in_flight == 0


def test_unit_failure_is_logged_not_raised(caplog):
    runner = BackgroundRunner(max_workers=1)
    failed_before = _outcome_count("failed")

    def explode():
        raise RuntimeError("smtp down")

    with caplog.at_level(logging.ERROR):
        assert runner.run(explode, name="welcome-email:7") is True
        assert runner.shutdown(timeout=5) == []

    assert "background unit 'welcome-email:7' failed" in caplog.text
    assert "smtp down" in caplog.text
    assert _outcome_count("failed") == failed_before + 1


def test_base_exception_in_unit_is_contained(caplog):
    runner = BackgroundRunner(max_workers=1)

    def abort():
        raise SystemExit(3)

    with caplog.at_level(logging.CRITICAL):
        runner.run(abort, name="aborting-unit")
        assert runner.shutdown(timeout=5) == []

    assert "background unit 'aborting-unit' aborted" in caplog.text


def test_units_receive_arguments():
    runner = BackgroundRunner(max_workers=2)
    received: list[tuple[str, dict]] = []

    runner.run(lambda recipient, data: received.append((recipient, data)), "ann@example.com", {"id": 1})
    runner.shutdown(timeout=5)

    assert received == [("ann@example.com", {"id": 1})]


def test_shutdown_drains_all_scheduled_units():
    runner = BackgroundRunner(max_workers=3)
    completed = []
    lock = threading.Lock()
    succeeded_before = _outcome_count("succeeded")

    def unit(index):
        time.sleep(0.01)
        with lock:
            completed.append(index)

    for index in range(20):
        runner.run(unit, index, name=f"unit-{index}")

    assert runner.shutdown(timeout=10) == []
    assert sorted(completed) == list(range(20))
    assert _outcome_count("succeeded") == succeeded_before + 20


def test_shutdown_reports_undrained_units_after_deadline(caplog):
    runner = BackgroundRunner(max_workers=1)
    release = threading.Event()

    runner.run(release.wait, 5, name="stuck")
    runner.run(lambda: None, name="queued")

    with caplog.at_level(logging.ERROR):
        start = time.monotonic()
        undrained = runner.shutdown(timeout=0.2)
        elapsed = time.monotonic() - start

    release.set()
    assert elapsed >= 0.2
    assert "stuck" in undrained
    assert "deadline elapsed" in caplog.text


def test_run_after_shutdown_is_rejected(caplog):
    runner = BackgroundRunner(max_workers=1)
    runner.shutdown(timeout=1)
    called = []

    with caplog.at_level(logging.WARNING):
        assert runner.run(lambda: called.append(True), name="late") is False

    assert runner.is_shutdown
    assert called == []
    assert "dropping unit 'late'" in caplog.text


def test_shutdown_is_idempotent():
    runner = BackgroundRunner(max_workers=1)
    assert runner.shutdown(timeout=1) == []
    assert runner.shutdown(timeout=1) == []
