"""Subprocess execution of git commands with cancellation support."""

from __future__ import annotations

import subprocess
import time
from pathlib import Path
from typing import Protocol

from lang_drift.cancel import CancelToken, OperationCancelledError, check_cancelled

_POLL_SECONDS = 0.1


class GitCommandError(Exception):
    """Raised when a git invocation fails or cannot be started."""

    def __init__(
        self,
        operation: str,
        args: tuple[str, ...],
        returncode: int | None,
        stderr: str,
    ) -> None:
        detail = stderr.strip() or "no stderr output"
        super().__init__(
            f"git operation '{operation}' failed "
            f"(args={' '.join(args)!r}, returncode={returncode}): {detail}"
        )
        self.operation = operation
        self.args_used = args
        self.returncode = returncode
        self.stderr = stderr


class CommandRunner(Protocol):
    """Protocol for executing a command in a working directory."""

    def run(
        self,
        working_dir: Path,
        args: tuple[str, ...],
        operation: str,
        cancel: CancelToken | None = None,
    ) -> str: ...


class SubprocessRunner:
    """Runs commands through subprocess, killing them on cancel or timeout."""

    def __init__(self, timeout_seconds: float | None = None) -> None:
        self._timeout_seconds = timeout_seconds

    def run(
        self,
        working_dir: Path,
        args: tuple[str, ...],
        operation: str,
        cancel: CancelToken | None = None,
    ) -> str:
        """Run args in working_dir and return stdout, raising on failure."""
        check_cancelled(cancel, operation)
        try:
            process = subprocess.Popen(
                list(args),
                cwd=working_dir,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as error:
            raise GitCommandError(operation, args, None, str(error)) from error

        started = time.monotonic()
        while True:
            try:
                stdout, stderr = process.communicate(timeout=_POLL_SECONDS)
                break
            except subprocess.TimeoutExpired:
                if cancel is not None and cancel.cancelled:
                    _kill(process)
                    raise OperationCancelledError(operation) from None
                elapsed = time.monotonic() - started
                if self._timeout_seconds is not None and elapsed > self._timeout_seconds:
                    _kill(process)
                    raise GitCommandError(
                        operation,
                        args,
                        None,
                        f"timed out after {self._timeout_seconds} seconds",
                    ) from None

        if process.returncode != 0:
            raise GitCommandError(operation, args, process.returncode, stderr)
        return stdout


def _kill(process: subprocess.Popen[str]) -> None:
    process.kill()
    process.communicate()
