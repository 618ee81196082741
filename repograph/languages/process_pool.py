"""Bounded pool of external interpreter processes."""

from __future__ import annotations

import logging
import subprocess
import threading
import time
from collections.abc import Iterator, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass

from repograph.core.exceptions import ParseCancelledError

logger = logging.getLogger(__name__)

_POLL_INTERVAL = 0.2


@dataclass
class ProcessOutcome:
    """What a finished (or killed) process produced."""

    returncode: int | None
    stdout: str
    stderr: str
    timed_out: bool = False
    cancelled: bool = False
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not (self.timed_out or self.cancelled or self.error)

    def describe(self) -> str:
        """Human-readable reason for a failure."""
        if self.error:
            return self.error
        if self.timed_out:
            return "Timed out"
        if self.cancelled:
            return "Cancelled"
        detail = self.stderr.strip().splitlines()[-1] if self.stderr.strip() else ""
        return f"Exited with status {self.returncode}" + (f": {detail}" if detail else "")


def run_process(
    command: Sequence[str],
    timeout: float,
    cancel: threading.Event | None = None,
) -> ProcessOutcome:
    """Run one command, killing it on timeout or cancellation."""
    if cancel is not None and cancel.is_set():
        return ProcessOutcome(returncode=None, stdout="", stderr="", cancelled=True)

    deadline = time.monotonic() + timeout
    try:
        proc = subprocess.Popen(
            list(command),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
    except OSError as e:
        return ProcessOutcome(returncode=None, stdout="", stderr="", error=str(e))

    with proc:
        while True:
            try:
                stdout, stderr = proc.communicate(timeout=_POLL_INTERVAL)
                return ProcessOutcome(returncode=proc.returncode, stdout=stdout, stderr=stderr)
            except subprocess.TimeoutExpired:
                cancelled = cancel is not None and cancel.is_set()
                timed_out = time.monotonic() >= deadline
                if not (cancelled or timed_out):
                    continue
                proc.kill()
                stdout, stderr = proc.communicate()
                logger.debug("Killed %s (timed_out=%s)", command[0], timed_out and not cancelled)
                return ProcessOutcome(
                    returncode=proc.returncode,
                    stdout=stdout,
                    stderr=stderr,
                    timed_out=not cancelled,
                    cancelled=cancelled,
                )


class ProcessPool:
    """Runs command lines with at most ``max_workers`` processes alive at once.

    Each invocation gets its own timeout. Setting ``cancel`` kills running
    processes and makes :meth:`run` raise ParseCancelledError.
    """

    def __init__(
        self,
        max_workers: int,
        timeout: float,
        cancel: threading.Event | None = None,
    ) -> None:
        self._max_workers = max(1, max_workers)
        self._timeout = timeout
        self._cancel = cancel

    def run(self, commands: Sequence[Sequence[str]]) -> Iterator[tuple[int, ProcessOutcome]]:
        """Yield ``(index, outcome)`` pairs as commands finish."""
        if not commands:
            return

        with ThreadPoolExecutor(max_workers=min(self._max_workers, len(commands))) as executor:
            futures = {
                executor.submit(run_process, command, self._timeout, self._cancel): index
                for index, command in enumerate(commands)
            }
            try:
                for future in as_completed(futures):
                    outcome = future.result()
                    if outcome.cancelled:
                        raise ParseCancelledError("Parse cancelled")
                    yield futures[future], outcome
            finally:
                for future in futures:
                    future.cancel()
