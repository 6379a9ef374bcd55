"""Fire-and-forget execution of work that must not hold up a response.

Units run on a :class:`~concurrent.futures.ThreadPoolExecutor`. Each unit is
wrapped so that anything it raises is logged at the unit's boundary and never
reaches the code that scheduled it. In-flight units are tracked so that
:meth:`BackgroundRunner.shutdown` can drain them before the process exits.
"""

from __future__ import annotations

import itertools
import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable

from prometheus_client import Counter

log = logging.getLogger(__name__)

BACKGROUND_TASKS = Counter(
    "accounts_background_tasks_total",
    "Background units by outcome.",
    ["outcome"],
)


class BackgroundRunner:
    """Thread pool with per-unit fault isolation and a shutdown drain barrier.

    Parameters
    ----------
    max_workers:
        Number of worker threads available to detached units.
    """

    def __init__(self, max_workers: int = 4) -> None:
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="accounts-bg",
        )
        self._cond = threading.Condition()
        self._in_flight: dict[int, str] = {}
        self._ids = itertools.count(1)
        self._shutdown = False

    @property
    def in_flight(self) -> int:
        """Number of units scheduled but not yet finished."""
        with self._cond:
            return len(self._in_flight)

    @property
    def is_shutdown(self) -> bool:
        with self._cond:
            return self._shutdown

    def run(self, fn: Callable[..., Any], *args: Any, name: str | None = None) -> bool:
        """Schedule ``fn(*args)`` and return without waiting for it.

        Returns ``False`` when the runner no longer accepts work.
        """
        label = name or getattr(fn, "__name__", repr(fn))
        with self._cond:
            if self._shutdown:
                BACKGROUND_TASKS.labels(outcome="rejected").inc()
                log.warning("background runner is shut down, dropping unit '%s'", label)
                return False
            unit_id = next(self._ids)
            self._in_flight[unit_id] = label

        try:
            future: Future = self._executor.submit(self._execute, label, fn, args)
        except RuntimeError:
            self._finish(unit_id)
            BACKGROUND_TASKS.labels(outcome="rejected").inc()
            log.warning("executor shut down, cannot schedule unit '%s'", label)
            return False

        future.add_done_callback(lambda f, _id=unit_id, _label=label: self._on_done(f, _id, _label))
        return True

    def _execute(self, label: str, fn: Callable[..., Any], args: tuple) -> bool:
        """Run a unit, logging instead of raising. Returns whether it succeeded."""
        start = time.monotonic()
        try:
            fn(*args)
        except Exception:
            log.exception(
                "background unit '%s' failed after %.1fms",
                label,
                (time.monotonic() - start) * 1000,
            )
            return False
        log.debug("background unit '%s' completed in %.1fms", label, (time.monotonic() - start) * 1000)
        return True

    def _on_done(self, future: Future, unit_id: int, label: str) -> None:
        try:
            if future.cancelled():
                outcome = "failed"
                log.error("background unit '%s' was cancelled before it ran", label)
            elif future.exception() is not None:
                # Only BaseException subclasses get past _execute.
                outcome = "failed"
                log.critical(
                    "background unit '%s' aborted",
                    label,
                    exc_info=future.exception(),
                )
            else:
                outcome = "succeeded" if future.result() else "failed"
            BACKGROUND_TASKS.labels(outcome=outcome).inc()
        finally:
            self._finish(unit_id)

    def _finish(self, unit_id: int) -> None:
        with self._cond:
            self._in_flight.pop(unit_id, None)
            self._cond.notify_all()

    def shutdown(self, timeout: float | None = None) -> list[str]:
        """Stop accepting work and wait for in-flight units to finish.

        Parameters
        ----------
        timeout:
            Seconds to wait for the drain. ``None`` waits indefinitely.

        Returns
        -------
        list[str]
            Names of units still unfinished when the deadline passed. Empty
            when everything drained.
        """
        with self._cond:
            self._shutdown = True
            self._cond.wait_for(lambda: not self._in_flight, timeout=timeout)
            undrained = sorted(self._in_flight.values())

        if undrained:
            log.error(
                "background runner shutdown deadline elapsed with %d unit(s) outstanding: %s",
                len(undrained),
                ", ".join(undrained),
            )
            self._executor.shutdown(wait=False, cancel_futures=True)
        else:
            self._executor.shutdown(wait=True)
            log.info("background runner drained and shut down")
        return undrained
