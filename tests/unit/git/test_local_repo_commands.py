from __future__ import annotations

from pathlib import Path

import pytest

from lang_drift.cancel import CancelToken, OperationCancelledError
from lang_drift.git import CommitRecord, LocalGitRepo
from lang_drift.security import PathBlockedError


class RecordingRunner:
    def __init__(self, outputs: dict[str, str] | None = None) -> None:
        self.outputs = outputs or {}
        self.calls: list[tuple[str, tuple[str, ...]]] = []

    def run(
        self,
        working_dir: Path,
        args: tuple[str, ...],
        operation: str,
        cancel: CancelToken | None = None,
    ) -> str:
        self.calls.append((operation, args))
        return self.outputs.get(operation, "")


FMT = ("--pretty=format:%H %cd %s", "--date=iso-strict")


def _repo(
    tmp_path: Path, outputs: dict[str, str] | None = None
) -> tuple[LocalGitRepo, RecordingRunner]:
    runner = RecordingRunner(outputs)
    return LocalGitRepo(tmp_path, main_branch="main", remote="origin", runner=runner), runner


def test_last_commit_uses_single_entry_log(tmp_path: Path) -> None:
    repo, runner = _repo(
        tmp_path, {"find_file_last_commit": "c9 2024-05-01T00:00:00Z Translate intro\n"}
    )

    commit = repo.find_file_last_commit("content/de/intro.md")

    assert commit == CommitRecord("c9", "2024-05-01T00:00:00Z", "Translate intro")
    assert runner.calls == [
        ("find_file_last_commit", ("git", "log", "-1", *FMT, "--", "content/de/intro.md"))
    ]


def test_last_commit_of_untracked_file_is_empty(tmp_path: Path) -> None:
    repo, _ = _repo(tmp_path)

    assert repo.find_file_last_commit("content/de/new.md") == CommitRecord.empty()


def test_commits_after_uses_exclusive_range(tmp_path: Path) -> None:
    repo, runner = _repo(tmp_path)

    repo.find_file_commits_after("content/en/intro.md", "c1")

    assert runner.calls[0][1] == (
        "git", "log", "--reverse", *FMT, "c1..", "--", "content/en/intro.md"
    )


def test_commits_after_empty_start_lists_full_history(tmp_path: Path) -> None:
    repo, runner = _repo(tmp_path)

    repo.find_file_commits_after("content/en/intro.md", "")

    assert runner.calls[0][1] == ("git", "log", "--reverse", *FMT, "--", "content/en/intro.md")


def test_history_queries_follow_first_parent(tmp_path: Path) -> None:
    repo, runner = _repo(tmp_path)

    repo.list_main_branch_commits()
    repo.list_ancestor_commits("b2")
    repo.list_fresh_commits()

    assert runner.calls == [
        ("list_main_branch_commits", ("git", "--no-pager", "log", "main", *FMT, "--first-parent")),
        ("list_ancestor_commits", ("git", "--no-pager", "log", *FMT, "--first-parent", "b2")),
        (
            "list_fresh_commits",
            ("git", "--no-pager", "log", "--first-parent", *FMT, "main..origin/main"),
        ),
    ]


def test_merge_points_use_ancestry_path_to_main(tmp_path: Path) -> None:
    repo, runner = _repo(tmp_path)

    repo.list_merge_points("b1")

    assert runner.calls[0][1] == (
        "git",
        "--no-pager",
        "log",
        "--ancestry-path",
        "--merges",
        "--reverse",
        *FMT,
        "b1..main",
    )


def test_file_and_parent_queries_split_output(tmp_path: Path) -> None:
    repo, _ = _repo(
        tmp_path,
        {
            "list_files_in_commit": "content/en/a.md\ncontent/en/b.md\n",
            "list_commit_parents": "p1 p2\n",
            "list_files_between_commits": "x.md\ny.md\n",
        },
    )

    assert repo.list_files_in_commit("c1") == ["content/en/a.md", "content/en/b.md"]
    assert repo.list_commit_parents("m1") == ["p1", "p2"]
    assert repo.list_files_between_commits("f1", "b1") == ["x.md", "y.md"]


def test_root_commit_has_no_parents(tmp_path: Path) -> None:
    repo, _ = _repo(tmp_path, {"list_commit_parents": "\n"})

    assert repo.list_commit_parents("root") == []


def test_fetch_and_pull_target_configured_remote(tmp_path: Path) -> None:
    runner = RecordingRunner()
    repo = LocalGitRepo(tmp_path, main_branch="trunk", remote="upstream", runner=runner)

    repo.fetch()
    repo.pull()

    assert runner.calls == [
        ("fetch", ("git", "fetch", "upstream")),
        ("pull", ("git", "pull", "--ff-only", "upstream", "trunk")),
    ]


def test_list_files_is_relative_sorted_and_recursive(tmp_path: Path) -> None:
    base = tmp_path / "content" / "de"
    (base / "docs" / "setup").mkdir(parents=True)
    (base / "OWNERS").write_text("x", encoding="utf-8")
    (base / "docs" / "index.md").write_text("x", encoding="utf-8")
    (base / "docs" / "setup" / "_index.md").write_text("x", encoding="utf-8")
    repo, _ = _repo(tmp_path)

    assert repo.list_files("/content/de") == ["OWNERS", "docs/index.md", "docs/setup/_index.md"]


def test_list_files_of_missing_directory_fails(tmp_path: Path) -> None:
    repo, _ = _repo(tmp_path)

    with pytest.raises(FileNotFoundError):
        repo.list_files("content/xx")


def test_file_exists_refuses_traversal(tmp_path: Path) -> None:
    (tmp_path / "content" / "en").mkdir(parents=True)
    (tmp_path / "content" / "en" / "a.md").write_text("x", encoding="utf-8")
    repo, _ = _repo(tmp_path)

    assert repo.file_exists("content/en/a.md")
    assert not repo.file_exists("content/en/missing.md")
    with pytest.raises(PathBlockedError):
        repo.file_exists("../outside.md")


def test_working_copy_queries_honour_cancellation(tmp_path: Path) -> None:
    (tmp_path / "content" / "de").mkdir(parents=True)
    (tmp_path / "content" / "de" / "a.md").write_text("x", encoding="utf-8")
    repo, _ = _repo(tmp_path)
    cancel = CancelToken()
    cancel.cancel()

    with pytest.raises(OperationCancelledError):
        repo.file_exists("content/de/a.md", cancel)
    with pytest.raises(OperationCancelledError):
        repo.list_files("content/de", cancel)
    assert repo.list_files("content/de", CancelToken()) == ["a.md"]
