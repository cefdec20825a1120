from __future__ import annotations

from fakes import MemoryStore, ScriptedRepo, record

from lang_drift.cache import KeyedCache
from lang_drift.history import CATEGORY_FILE_UPDATES, CommitGraph


def test_last_commit_is_cached_per_path() -> None:
    repo = ScriptedRepo()
    repo.last_commits["content/de/a.md"] = record("c1")
    graph = CommitGraph(repo, KeyedCache(MemoryStore()))

    assert graph.find_file_last_commit("content/de/a.md") == record("c1")
    assert graph.find_file_last_commit("content/de/a.md") == record("c1")

    assert repo.count("find_file_last_commit") == 1


def test_untracked_path_yields_cached_empty_record() -> None:
    repo = ScriptedRepo()
    graph = CommitGraph(repo, KeyedCache(MemoryStore()))

    assert not graph.find_file_last_commit("content/de/new.md")
    assert not graph.find_file_last_commit("content/de/new.md")
    assert repo.count("find_file_last_commit") == 1


def test_commits_after_are_cached_per_start_point() -> None:
    repo = ScriptedRepo()
    repo.commits_after[("content/en/a.md", "f1")] = [record("c2"), record("c3")]
    repo.commits_after[("content/en/a.md", "f2")] = [record("c3")]
    store = MemoryStore()
    graph = CommitGraph(repo, KeyedCache(store))

    first = graph.find_file_commits_after("content/en/a.md", "f1")
    second = graph.find_file_commits_after("content/en/a.md", "f2")
    first_again = graph.find_file_commits_after("content/en/a.md", "f1")
    second_again = graph.find_file_commits_after("content/en/a.md", "f2")

    assert first == first_again == [record("c2"), record("c3")]
    assert second == second_again == [record("c3")]
    assert repo.count("find_file_commits_after") == 2
    assert len([key for key in store.entries if key[0] == CATEGORY_FILE_UPDATES]) == 1


def test_invalidate_path_drops_every_start_point() -> None:
    repo = ScriptedRepo()
    repo.commits_after[("content/en/a.md", "f1")] = [record("c2")]
    repo.last_commits["content/en/a.md"] = record("c2")
    graph = CommitGraph(repo, KeyedCache(MemoryStore()))
    graph.find_file_commits_after("content/en/a.md", "f1")
    graph.find_file_commits_after("content/en/a.md", "f2")
    graph.find_file_last_commit("content/en/a.md")

    graph.invalidate_path("content/en/a.md")
    graph.find_file_commits_after("content/en/a.md", "f1")
    graph.find_file_last_commit("content/en/a.md")

    assert repo.count("find_file_commits_after") == 3
    assert repo.count("find_file_last_commit") == 2


def test_main_branch_list_cached_until_invalidated() -> None:
    repo = ScriptedRepo()
    repo.main_branch = [record("c2"), record("c1")]
    graph = CommitGraph(repo, KeyedCache(MemoryStore()))

    graph.list_main_branch_commits()
    graph.list_main_branch_commits()
    graph.invalidate_main_branch_commits()
    repo.main_branch = [record("c3"), record("c2"), record("c1")]

    assert graph.list_main_branch_commits()[0] == record("c3")
    assert repo.count("list_main_branch_commits") == 2
