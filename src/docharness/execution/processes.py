"""Process tracking for guaranteed subprocess teardown.

Every snippet subprocess is registered for exactly the span of its
``track()`` block. ``abort()`` flips the shared abort flag and stops every
process still registered, so an interrupt never leaves orphans behind.

Stopping a process follows the same escalation for timeouts and aborts::

    SIGTERM (process group on POSIX)
      └── wait kill_grace_seconds
            └── SIGKILL (process group on POSIX)
                  └── wait

Snippets are started in their own session on POSIX, so shell snippets
that spawn children are torn down as a group.
"""

from __future__ import annotations

import os
import signal
import subprocess
import threading
from collections.abc import Iterator
from contextlib import contextmanager

from docharness.core.logging import get_logger

logger = get_logger(__name__)

POSIX = os.name == "posix"


def popen_session_kwargs() -> dict[str, bool]:
    """Popen kwargs that put the child in its own process group."""
    return {"start_new_session": True} if POSIX else {}


class ProcessRegistry:
    """Thread-safe set of live snippet subprocesses plus the abort flag."""

    def __init__(self, kill_grace_seconds: float = 2.0):
        self._lock = threading.Lock()
        self._live: set[subprocess.Popen] = set()
        self._aborted = threading.Event()
        self.kill_grace_seconds = kill_grace_seconds

    @property
    def aborted(self) -> bool:
        return self._aborted.is_set()

    @property
    def live_count(self) -> int:
        with self._lock:
            return len(self._live)

    @contextmanager
    def track(self, process: subprocess.Popen) -> Iterator[subprocess.Popen]:
        """Register ``process``; on exit make sure it is dead and reaped."""
        with self._lock:
            self._live.add(process)
        try:
            if self.aborted:
                self.stop(process)
            yield process
        finally:
            if process.poll() is None:
                self.stop(process)
            with self._lock:
                self._live.discard(process)

    def stop(self, process: subprocess.Popen) -> None:
        """Terminate, then kill after the grace period. Idempotent."""
        if process.poll() is not None:
            return
        self._signal(process, kill=False)
        try:
            process.wait(timeout=self.kill_grace_seconds)
            return
        except subprocess.TimeoutExpired:
            logger.debug("process_kill_escalated", pid=process.pid)
        self._signal(process, kill=True)
        try:
            process.wait(timeout=self.kill_grace_seconds)
        except subprocess.TimeoutExpired:
            logger.error("process_unkillable", pid=process.pid)

    def abort(self) -> int:
        """Set the abort flag and stop every live process. Returns how many were stopped."""
        self._aborted.set()
        with self._lock:
            live = list(self._live)
        for process in live:
            self.stop(process)
        if live:
            logger.warning("processes_aborted", count=len(live))
        return len(live)

    @staticmethod
    def _signal(process: subprocess.Popen, *, kill: bool) -> None:
        try:
            if POSIX:
                os.killpg(process.pid, signal.SIGKILL if kill else signal.SIGTERM)
            elif kill:
                process.kill()
            else:
                process.terminate()
        except (ProcessLookupError, PermissionError):
            pass
