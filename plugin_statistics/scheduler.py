"""
Background scheduling for periodic statistics reports.

``Scheduler`` is the interface the reporter depends on; hosts with their own
timer facility implement it. ``ThreadScheduler`` is the default, built on
daemon threads so that nothing runs on the host's main thread and nothing
keeps the host process alive at exit.
"""
import itertools
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional, Set

from loguru import logger


class ScheduledJob:
    """Handle to a repeating job."""

    def __init__(self, job_id: int, scheduler: "Scheduler"):
        self.job_id = job_id
        self._scheduler = scheduler

    def cancel(self):
        """Stop future runs of this job."""
        self._scheduler.cancel(self.job_id)

    def __repr__(self):
        return f"ScheduledJob(job_id={self.job_id})"


class Scheduler(ABC):
    """Runs callbacks repeatedly on a background execution context."""

    @abstractmethod
    def schedule_repeating(self, callback: Callable[[], None], initial_delay: float, period: float) -> ScheduledJob:
        """Run callback after initial_delay seconds, then every period seconds."""

    @abstractmethod
    def cancel(self, job_id: int) -> None:
        """Stop future runs of a job. Unknown ids are ignored."""


class _RepeatingTimer:
    """Timer thread for one job.

    Deadlines are fixed-rate: start + initial_delay + k * period, independent
    of how long each run takes. Every run gets its own daemon thread, so a run
    that never returns delays neither later runs nor interpreter exit.
    """

    def __init__(self, job_id: int, callback: Callable[[], None], initial_delay: float, period: float):
        self.job_id = job_id
        self.callback = callback
        self.initial_delay = initial_delay
        self.period = period
        self.cancelled = threading.Event()
        self.runs: Set[threading.Thread] = set()
        self._runs_lock = threading.Lock()
        self._run_count = itertools.count(1)
        self.thread = threading.Thread(
            target=self._run,
            name=f"plugin-statistics-timer-{job_id}",
            daemon=True
        )

    def _run(self):
        next_run = time.monotonic() + self.initial_delay
        while not self.cancelled.wait(max(0.0, next_run - time.monotonic())):
            run = threading.Thread(
                target=self._invoke,
                name=f"plugin-statistics-run-{self.job_id}-{next(self._run_count)}",
                daemon=True
            )
            with self._runs_lock:
                self.runs.add(run)
            run.start()
            next_run += self.period

    def _invoke(self):
        try:
            if self.cancelled.is_set():
                return
            self.callback()
        except Exception as e:
            logger.opt(exception=e).error(f"Scheduled job {self.job_id} raised: {e}")
        finally:
            with self._runs_lock:
                self.runs.discard(threading.current_thread())

    def join(self, timeout: Optional[float] = None):
        """Wait for the timer thread and any runs in progress, each up to timeout."""
        self.thread.join(timeout=timeout)
        with self._runs_lock:
            runs = list(self.runs)
        for run in runs:
            run.join(timeout=timeout)


class ThreadScheduler(Scheduler):
    """Default scheduler running each job on daemon threads.

    Runs of the same job overlap when one takes longer than the period: a run
    stuck on a hung request never holds back the next deadline.
    """

    def __init__(self):
        self._timers: Dict[int, _RepeatingTimer] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()
        self._shutdown = False

    def schedule_repeating(self, callback: Callable[[], None], initial_delay: float, period: float) -> ScheduledJob:
        if period <= 0:
            raise ValueError(f"period must be positive, got {period}")
        if initial_delay < 0:
            raise ValueError(f"initial_delay must not be negative, got {initial_delay}")

        with self._lock:
            if self._shutdown:
                raise RuntimeError("Scheduler has been shut down")
            job_id = next(self._ids)
            timer = _RepeatingTimer(job_id, callback, initial_delay, period)
            self._timers[job_id] = timer
            timer.thread.start()

        logger.debug(f"Scheduled job {job_id}: first run in {initial_delay}s, then every {period}s")
        return ScheduledJob(job_id, self)

    def cancel(self, job_id: int) -> None:
        with self._lock:
            timer = self._timers.pop(job_id, None)
        if timer is None:
            return
        timer.cancelled.set()
        logger.debug(f"Cancelled job {job_id}")

    def is_scheduled(self, job_id: int) -> bool:
        with self._lock:
            return job_id in self._timers

    def shutdown(self, wait: bool = False, timeout: Optional[float] = None):
        """Cancel every job.

        Args:
            wait: Wait for timer threads and runs in progress to finish
            timeout: Max seconds to wait for each thread when waiting. With
                None a hung run blocks this call, never the interpreter exit.
        """
        with self._lock:
            self._shutdown = True
            timers = list(self._timers.values())
            self._timers.clear()

        for timer in timers:
            timer.cancelled.set()
        if wait:
            for timer in timers:
                timer.join(timeout=timeout)
        logger.debug(f"Scheduler shut down ({len(timers)} jobs cancelled)")
