from __future__ import annotations

import sys
import threading
from pathlib import Path

import pytest

from lang_drift.cancel import CancelToken, OperationCancelledError
from lang_drift.git import GitCommandError, SubprocessRunner


def test_returns_stdout_of_successful_command(tmp_path: Path) -> None:
    runner = SubprocessRunner()

    output = runner.run(tmp_path, (sys.executable, "-c", "print('hello')"), "echo")

    assert output.strip() == "hello"


def test_non_zero_exit_reports_operation_and_stderr(tmp_path: Path) -> None:
    runner = SubprocessRunner()
    script = "import sys; sys.stderr.write('fatal: bad revision'); sys.exit(3)"

    with pytest.raises(GitCommandError) as excinfo:
        runner.run(tmp_path, (sys.executable, "-c", script), "list_merge_points")

    error = excinfo.value
    assert error.operation == "list_merge_points"
    assert error.returncode == 3
    assert "fatal: bad revision" in str(error)
    assert "list_merge_points" in str(error)


def test_missing_executable_is_a_command_error(tmp_path: Path) -> None:
    runner = SubprocessRunner()

    with pytest.raises(GitCommandError) as excinfo:
        runner.run(tmp_path, ("definitely-not-a-real-binary-xyz",), "fetch")

    assert excinfo.value.returncode is None


def test_pre_cancelled_token_never_starts_process(tmp_path: Path) -> None:
    marker = tmp_path / "started"
    cancel = CancelToken()
    cancel.cancel()
    script = f"open({str(marker)!r}, 'w').close()"

    with pytest.raises(OperationCancelledError):
        SubprocessRunner().run(tmp_path, (sys.executable, "-c", script), "pull", cancel)

    assert not marker.exists()


def test_cancel_kills_running_process(tmp_path: Path) -> None:
    cancel = CancelToken()
    timer = threading.Timer(0.3, cancel.cancel)
    timer.start()
    try:
        with pytest.raises(OperationCancelledError, match="fetch"):
            SubprocessRunner().run(
                tmp_path, (sys.executable, "-c", "import time; time.sleep(30)"), "fetch", cancel
            )
    finally:
        timer.cancel()


def test_timeout_kills_running_process(tmp_path: Path) -> None:
    runner = SubprocessRunner(timeout_seconds=0.3)

    with pytest.raises(GitCommandError, match="timed out"):
        runner.run(tmp_path, (sys.executable, "-c", "import time; time.sleep(30)"), "fetch")
