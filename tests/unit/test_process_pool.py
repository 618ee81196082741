"""Unit tests for the interpreter process pool."""

import sys
import threading

import pytest

from repograph.core.exceptions import ParseCancelledError
from repograph.languages.process_pool import ProcessOutcome, ProcessPool, run_process


def python(code: str) -> list[str]:
    """Command line that runs a Python snippet in a child process."""
    return [sys.executable, "-c", code]


class TestRunProcess:
    """Tests for single process execution."""

    def test_captures_output(self) -> None:
        outcome = run_process(python("print('hello')"), timeout=30)

        assert outcome.ok
        assert outcome.stdout.strip() == "hello"
        assert outcome.returncode == 0

    def test_nonzero_exit(self) -> None:
        code = "import sys; sys.stderr.write('boom\\n'); sys.exit(3)"

        outcome = run_process(python(code), timeout=30)

        assert not outcome.ok
        assert outcome.returncode == 3
        assert outcome.describe() == "Exited with status 3: boom"

    def test_timeout_kills_process(self) -> None:
        outcome = run_process(python("import time; time.sleep(30)"), timeout=1)

        assert outcome.timed_out
        assert not outcome.ok
        assert outcome.describe() == "Timed out"

    def test_missing_binary(self) -> None:
        outcome = run_process(["repograph-no-such-binary-xyz"], timeout=5)

        assert not outcome.ok
        assert outcome.error

    def test_already_cancelled(self) -> None:
        cancel = threading.Event()
        cancel.set()

        outcome = run_process(python("print('never')"), timeout=30, cancel=cancel)

        assert outcome.cancelled
        assert outcome.stdout == ""


class TestProcessPool:
    """Tests for ProcessPool."""

    def test_runs_all_commands(self) -> None:
        commands = [python(f"print({i})") for i in range(5)]

        results = dict(ProcessPool(max_workers=2, timeout=30).run(commands))

        assert sorted(results) == [0, 1, 2, 3, 4]
        assert all(isinstance(o, ProcessOutcome) for o in results.values())
        assert [results[i].stdout.strip() for i in range(5)] == ["0", "1", "2", "3", "4"]

    def test_one_timeout_does_not_block_others(self) -> None:
        commands = [python("import time; time.sleep(30)"), python("print('fast')")]

        results = dict(ProcessPool(max_workers=2, timeout=2).run(commands))

        assert results[0].timed_out
        assert results[1].ok

    def test_empty(self) -> None:
        assert list(ProcessPool(max_workers=2, timeout=5).run([])) == []

    def test_cancel_raises(self) -> None:
        cancel = threading.Event()
        cancel.set()
        pool = ProcessPool(max_workers=1, timeout=30, cancel=cancel)

        with pytest.raises(ParseCancelledError):
            list(pool.run([python("print(1)")]))
