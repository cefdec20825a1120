"""Git working-copy backend: history queries and fetch/pull mutations."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Protocol

from lang_drift.cancel import CancelToken, check_cancelled
from lang_drift.git.command import CommandRunner, SubprocessRunner
from lang_drift.git.models import CommitRecord
from lang_drift.git.parsing import (
    COMMIT_FORMAT,
    DATE_FORMAT,
    output_to_lines,
    parse_commit_line,
    parse_commit_lines,
)
from lang_drift.security import resolve_repo_path


class RepoBackend(Protocol):
    """Read-mostly query facade over a version-controlled working copy."""

    def file_exists(self, path: str, cancel: CancelToken | None = None) -> bool: ...

    def list_files(self, dir_path: str, cancel: CancelToken | None = None) -> list[str]: ...

    def find_file_last_commit(
        self, path: str, cancel: CancelToken | None = None
    ) -> CommitRecord: ...

    def find_file_commits_after(
        self, path: str, commit_id: str, cancel: CancelToken | None = None
    ) -> list[CommitRecord]: ...

    def list_main_branch_commits(self, cancel: CancelToken | None = None) -> list[CommitRecord]: ...

    def list_ancestor_commits(
        self, commit_id: str, cancel: CancelToken | None = None
    ) -> list[CommitRecord]: ...

    def list_merge_points(
        self, commit_id: str, cancel: CancelToken | None = None
    ) -> list[CommitRecord]: ...

    def list_files_in_commit(
        self, commit_id: str, cancel: CancelToken | None = None
    ) -> list[str]: ...

    def list_commit_parents(
        self, commit_id: str, cancel: CancelToken | None = None
    ) -> list[str]: ...

    def list_files_between_commits(
        self, from_id: str, to_id: str, cancel: CancelToken | None = None
    ) -> list[str]: ...

    def fetch(self, cancel: CancelToken | None = None) -> None: ...

    def pull(self, cancel: CancelToken | None = None) -> None: ...

    def list_fresh_commits(self, cancel: CancelToken | None = None) -> list[CommitRecord]: ...


class LocalGitRepo:
    """RepoBackend implementation that shells out to the git binary."""

    def __init__(
        self,
        repo_root: Path,
        main_branch: str = "main",
        remote: str = "origin",
        runner: CommandRunner | None = None,
    ) -> None:
        self._repo_root = repo_root.resolve()
        self._main_branch = main_branch
        self._remote = remote
        self._runner: CommandRunner = runner or SubprocessRunner()

    @property
    def repo_root(self) -> Path:
        """Return the working-copy root."""
        return self._repo_root

    def clone(self, url: str, cancel: CancelToken | None = None) -> None:
        """Clone url into the working-copy root, creating it when missing."""
        check_cancelled(cancel, "clone")
        self._repo_root.mkdir(parents=True, exist_ok=True)
        self._git("clone", ("clone", url, "."), cancel)

    def file_exists(self, path: str, cancel: CancelToken | None = None) -> bool:
        """Return True when path is a file or directory in the working copy."""
        check_cancelled(cancel, "file exists")
        return resolve_repo_path(self._repo_root, path).exists()

    def list_files(self, dir_path: str, cancel: CancelToken | None = None) -> list[str]:
        """List files under dir_path relative to it, excluding .git metadata."""
        check_cancelled(cancel, "list files")
        base = resolve_repo_path(self._repo_root, dir_path)
        if not base.is_dir():
            raise FileNotFoundError(f"Directory does not exist in working copy: {dir_path}")
        files: list[str] = []
        for root, dirs, names in os.walk(base):
            dirs[:] = sorted(d for d in dirs if d != ".git")
            for name in sorted(names):
                full_path = Path(root) / name
                files.append(full_path.relative_to(base).as_posix())
        files.sort()
        return files

    def find_file_last_commit(self, path: str, cancel: CancelToken | None = None) -> CommitRecord:
        """Return the newest commit touching path, or an empty record."""
        output = self._git(
            "find_file_last_commit",
            ("log", "-1", COMMIT_FORMAT, DATE_FORMAT, "--", path),
            cancel,
        )
        if not output.strip():
            return CommitRecord.empty()
        return parse_commit_line(output_to_lines(output)[0])

    def find_file_commits_after(
        self, path: str, commit_id: str, cancel: CancelToken | None = None
    ) -> list[CommitRecord]:
        """Return commits touching path after commit_id, oldest first.

        An empty commit_id means no starting point: every commit touching path.
        """
        revision = (f"{commit_id}..",) if commit_id else ()
        output = self._git(
            "find_file_commits_after",
            ("log", "--reverse", COMMIT_FORMAT, DATE_FORMAT, *revision, "--", path),
            cancel,
        )
        return parse_commit_lines(output)

    def list_main_branch_commits(self, cancel: CancelToken | None = None) -> list[CommitRecord]:
        """Return first-parent history of the main branch, newest first."""
        output = self._git(
            "list_main_branch_commits",
            ("--no-pager", "log", self._main_branch, COMMIT_FORMAT, DATE_FORMAT, "--first-parent"),
            cancel,
        )
        return parse_commit_lines(output)

    def list_ancestor_commits(
        self, commit_id: str, cancel: CancelToken | None = None
    ) -> list[CommitRecord]:
        """Return first-parent ancestry of commit_id (inclusive), newest first."""
        output = self._git(
            "list_ancestor_commits",
            ("--no-pager", "log", COMMIT_FORMAT, DATE_FORMAT, "--first-parent", commit_id),
            cancel,
        )
        return parse_commit_lines(output)

    def list_merge_points(
        self, commit_id: str, cancel: CancelToken | None = None
    ) -> list[CommitRecord]:
        """Return merge commits on the ancestry path from commit_id to main, oldest first."""
        output = self._git(
            "list_merge_points",
            (
                "--no-pager",
                "log",
                "--ancestry-path",
                "--merges",
                "--reverse",
                COMMIT_FORMAT,
                DATE_FORMAT,
                f"{commit_id}..{self._main_branch}",
            ),
            cancel,
        )
        return parse_commit_lines(output)

    def list_files_in_commit(self, commit_id: str, cancel: CancelToken | None = None) -> list[str]:
        """Return paths changed directly by commit_id (empty for merge commits)."""
        output = self._git(
            "list_files_in_commit",
            ("diff-tree", "--no-commit-id", "--name-only", "-r", commit_id),
            cancel,
        )
        return output_to_lines(output)

    def list_commit_parents(self, commit_id: str, cancel: CancelToken | None = None) -> list[str]:
        """Return parent commit ids of commit_id."""
        output = self._git(
            "list_commit_parents",
            ("log", "-1", "--pretty=format:%P", commit_id),
            cancel,
        )
        return output.split()

    def list_files_between_commits(
        self, from_id: str, to_id: str, cancel: CancelToken | None = None
    ) -> list[str]:
        """Return paths that differ between two commits."""
        output = self._git(
            "list_files_between_commits",
            ("diff", "--name-only", from_id, to_id),
            cancel,
        )
        return output_to_lines(output)

    def fetch(self, cancel: CancelToken | None = None) -> None:
        """Fetch the remote without touching the working copy."""
        self._git("fetch", ("fetch", self._remote), cancel)

    def pull(self, cancel: CancelToken | None = None) -> None:
        """Fast-forward the local main branch from the remote."""
        self._git("pull", ("pull", "--ff-only", self._remote, self._main_branch), cancel)

    def list_fresh_commits(self, cancel: CancelToken | None = None) -> list[CommitRecord]:
        """Return commits on the remote main branch not yet merged locally."""
        output = self._git(
            "list_fresh_commits",
            (
                "--no-pager",
                "log",
                "--first-parent",
                COMMIT_FORMAT,
                DATE_FORMAT,
                f"{self._main_branch}..{self._remote}/{self._main_branch}",
            ),
            cancel,
        )
        return parse_commit_lines(output)

    def _git(self, operation: str, args: tuple[str, ...], cancel: CancelToken | None) -> str:
        return self._runner.run(self._repo_root, ("git", *args), operation, cancel)
