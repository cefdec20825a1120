from __future__ import annotations

import pytest
from fakes import MemoryStore, ScriptedRepo, record

from lang_drift.cache import KeyedCache
from lang_drift.history import CommitGraph, GraphConsistencyError


def _repo_with_merge(parents: list[str]) -> ScriptedRepo:
    repo = ScriptedRepo()
    repo.main_branch = [record("M1"), record("A"), record("F")]
    repo.parents["M1"] = parents
    repo.ancestors["B"] = [record("B"), record("F")]
    repo.files_between[("F", "B")] = ["x.md", "y.md"]
    return repo


def test_files_come_from_branch_side_of_merge() -> None:
    repo = _repo_with_merge(["A", "B"])
    graph = CommitGraph(repo, KeyedCache(MemoryStore()))

    assert set(graph.merge_commit_files("M1")) == {"x.md", "y.md"}
    assert ("list_files_between_commits", "F", "B") in repo.calls


def test_branch_parent_may_be_first() -> None:
    repo = _repo_with_merge(["B", "A"])
    graph = CommitGraph(repo, KeyedCache(MemoryStore()))

    assert set(graph.merge_commit_files("M1")) == {"x.md", "y.md"}


def test_non_merge_commit_has_no_branch_files() -> None:
    repo = _repo_with_merge(["A"])
    graph = CommitGraph(repo, KeyedCache(MemoryStore()))

    assert graph.merge_commit_files("M1") == []


@pytest.mark.parametrize(
    ("parents", "message"),
    [
        (["A", "F"], "Both merge commit parents are on the main branch"),
        (["B", "C"], "No merge commit parent is on the main branch"),
        (["A", "B", "C"], "octopus"),
    ],
)
def test_unexpected_parent_shapes_are_consistency_errors(parents: list[str], message: str) -> None:
    repo = _repo_with_merge(parents)
    graph = CommitGraph(repo, KeyedCache(MemoryStore()))

    with pytest.raises(GraphConsistencyError, match=message):
        graph.merge_commit_files("M1")


def test_consistency_error_is_not_an_io_error() -> None:
    assert not issubclass(GraphConsistencyError, OSError)
