"""Cached commit-graph queries: fork points, merge points and refresh."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from lang_drift.cache import KeyedCache
from lang_drift.cancel import CancelToken, check_cancelled
from lang_drift.git import CommitRecord, RepoBackend
from lang_drift.history.codecs import (
    decode_commit,
    decode_commits,
    decode_commits_by_start,
    decode_optional_commit,
    encode_commit,
    encode_commits,
    encode_commits_by_start,
    encode_optional_commit,
)

CATEGORY_FILE_LAST_COMMIT = "git-file-last-commit"
CATEGORY_FILE_UPDATES = "git-file-updates"
CATEGORY_MAIN_BRANCH_COMMITS = "git-main-branch-commits"
CATEGORY_FORK_COMMIT = "git-fork-commit"
CATEGORY_MERGE_COMMIT = "git-merge-commit"

MAIN_BRANCH_KEY = ""


class GraphConsistencyError(Exception):
    """Raised when the commit graph violates an assumption of the resolver.

    These are data or programming defects, not transient failures; retrying the
    same query against the same repository state will fail the same way.
    """

    def __init__(self, reason: str, commit_id: str) -> None:
        super().__init__(f"{reason} (commit={commit_id})")
        self.reason = reason
        self.commit_id = commit_id


@dataclass(slots=True, frozen=True)
class RefreshSummary:
    """Outcome of one pull_refresh run."""

    fresh_commits: tuple[CommitRecord, ...]
    merge_commits: tuple[str, ...]
    invalidated_paths: tuple[str, ...]
    main_branch_invalidated: bool

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-ready representation."""
        return {
            "fresh_commits": [commit.to_dict() for commit in self.fresh_commits],
            "merge_commits": list(self.merge_commits),
            "invalidated_paths": list(self.invalidated_paths),
            "main_branch_invalidated": self.main_branch_invalidated,
        }


class CommitGraph:
    """Answers fork/merge questions about commits, memoized in a KeyedCache."""

    def __init__(self, backend: RepoBackend, cache: KeyedCache) -> None:
        self._backend = backend
        self._cache = cache

    def find_file_last_commit(self, path: str, cancel: CancelToken | None = None) -> CommitRecord:
        """Return the newest commit touching path (empty record when none)."""
        return self._cache.get(
            CATEGORY_FILE_LAST_COMMIT,
            path,
            lambda: self._backend.find_file_last_commit(path, cancel),
            encode=encode_commit,
            decode=decode_commit,
            cancel=cancel,
        )

    def find_file_commits_after(
        self, path: str, from_id: str, cancel: CancelToken | None = None
    ) -> list[CommitRecord]:
        """Return commits touching path after from_id, oldest first."""
        check_cancelled(cancel, f"cache get {CATEGORY_FILE_UPDATES}")
        found, stored = self._cache.lookup(CATEGORY_FILE_UPDATES, path, decode_commits_by_start)
        commits_by_start = stored if found and stored is not None else {}
        if from_id in commits_by_start:
            return commits_by_start[from_id]

        commits = self._backend.find_file_commits_after(path, from_id, cancel)
        check_cancelled(cancel, f"cache put {CATEGORY_FILE_UPDATES}")
        updated = dict(commits_by_start)
        updated[from_id] = commits
        self._cache.put(CATEGORY_FILE_UPDATES, path, updated, encode_commits_by_start)
        return commits

    def list_main_branch_commits(self, cancel: CancelToken | None = None) -> list[CommitRecord]:
        """Return the cached first-parent history of the main branch, newest first."""
        return self._cache.get(
            CATEGORY_MAIN_BRANCH_COMMITS,
            MAIN_BRANCH_KEY,
            lambda: self._backend.list_main_branch_commits(cancel),
            encode=encode_commits,
            decode=decode_commits,
            cancel=cancel,
        )

    def is_main_branch_commit(self, commit_id: str, cancel: CancelToken | None = None) -> bool:
        """Return True when commit_id is on the main branch's first-parent history."""
        return commit_id in self._main_branch_ids(cancel)

    def find_fork_commit(
        self,
        commit_id: str,
        cancel: CancelToken | None = None,
        *,
        main_branch_ids: set[str] | None = None,
    ) -> CommitRecord | None:
        """Return the nearest main-branch ancestor of commit_id.

        Returns None when commit_id is itself on the main branch. The result is
        cached permanently. Callers checking many commits may pass a prefetched
        main_branch_ids set.
        """
        return self._cache.get(
            CATEGORY_FORK_COMMIT,
            commit_id,
            lambda: self._resolve_fork(
                commit_id, self._resolve_main_ids(main_branch_ids, cancel), cancel
            ),
            encode=encode_optional_commit,
            decode=decode_optional_commit,
            cancel=cancel,
        )

    def find_merge_commit(
        self,
        commit_id: str,
        cancel: CancelToken | None = None,
        *,
        main_branch_ids: set[str] | None = None,
    ) -> CommitRecord | None:
        """Return the main-branch commit that merged commit_id.

        Returns None when commit_id is on the main branch or not merged yet. Only
        found merge commits are served from cache; None is recomputed on every call.
        """
        return self._cache.get(
            CATEGORY_MERGE_COMMIT,
            commit_id,
            lambda: self._resolve_merge(
                commit_id, self._resolve_main_ids(main_branch_ids, cancel), cancel
            ),
            is_invalid=lambda merge_commit: merge_commit is None,
            encode=encode_optional_commit,
            decode=decode_optional_commit,
            cancel=cancel,
        )

    def merge_commit_files(
        self, merge_commit_id: str, cancel: CancelToken | None = None
    ) -> list[str]:
        """List every file changed on the side branch merged by merge_commit_id."""
        main_ids = self._main_branch_ids(cancel)
        return self._merge_commit_files(
            merge_commit_id,
            main_ids,
            lambda branch_parent: self.find_fork_commit(branch_parent, cancel),
            cancel,
        )

    def invalidate_path(self, path: str) -> None:
        """Drop cached per-file history for path."""
        self._cache.invalidate_key(CATEGORY_FILE_LAST_COMMIT, path)
        self._cache.invalidate_key(CATEGORY_FILE_UPDATES, path)

    def invalidate_main_branch_commits(self) -> None:
        """Drop the cached main-branch commit list."""
        self._cache.invalidate_key(CATEGORY_MAIN_BRANCH_COMMITS, MAIN_BRANCH_KEY)

    def pull_refresh(self, cancel: CancelToken | None = None) -> RefreshSummary:
        """Fetch, invalidate cache entries touched by fresh commits, then pull."""
        self._backend.fetch(cancel)
        fresh_commits = self._backend.list_fresh_commits(cancel)

        changed_files: list[str] = []
        merge_commit_ids: list[str] = []
        for commit in fresh_commits:
            files = self._backend.list_files_in_commit(commit.commit_id, cancel)
            if not files:
                merge_commit_ids.append(commit.commit_id)
            changed_files.extend(files)

        if merge_commit_ids:
            # Fresh commits are on the remote main branch but not yet on the local one.
            main_ids = self._main_branch_ids(cancel) | {c.commit_id for c in fresh_commits}
            for merge_commit_id in merge_commit_ids:
                changed_files.extend(
                    self._merge_commit_files(
                        merge_commit_id,
                        main_ids,
                        lambda parent: self._resolve_fork(parent, main_ids, cancel),
                        cancel,
                    )
                )

        invalidated_paths = tuple(dict.fromkeys(changed_files))
        for path in invalidated_paths:
            self.invalidate_path(path)

        if fresh_commits:
            self.invalidate_main_branch_commits()

        check_cancelled(cancel, "pull")
        self._backend.pull(cancel)

        if fresh_commits:
            self.invalidate_main_branch_commits()

        return RefreshSummary(
            fresh_commits=tuple(fresh_commits),
            merge_commits=tuple(merge_commit_ids),
            invalidated_paths=invalidated_paths,
            main_branch_invalidated=bool(fresh_commits),
        )

    def _main_branch_ids(self, cancel: CancelToken | None) -> set[str]:
        return {commit.commit_id for commit in self.list_main_branch_commits(cancel)}

    def _resolve_main_ids(
        self, main_branch_ids: set[str] | None, cancel: CancelToken | None
    ) -> set[str]:
        if main_branch_ids is not None:
            return main_branch_ids
        return self._main_branch_ids(cancel)

    def _resolve_fork(
        self, commit_id: str, main_ids: set[str], cancel: CancelToken | None
    ) -> CommitRecord | None:
        if commit_id in main_ids:
            return None
        ancestors = self._backend.list_ancestor_commits(commit_id, cancel)
        fork_commit = _first_member(ancestors, main_ids)
        if fork_commit is None:
            raise GraphConsistencyError("No ancestor is on the main branch.", commit_id)
        return fork_commit

    def _resolve_merge(
        self, commit_id: str, main_ids: set[str], cancel: CancelToken | None
    ) -> CommitRecord | None:
        if commit_id in main_ids:
            return None
        merge_points = self._backend.list_merge_points(commit_id, cancel)
        if not merge_points:
            return None
        merge_commit = _first_member(merge_points, main_ids)
        if merge_commit is None:
            raise GraphConsistencyError(
                "Merge points exist but none is on the main branch.", commit_id
            )
        return merge_commit

    def _merge_commit_files(
        self,
        merge_commit_id: str,
        main_ids: set[str],
        fork_of: Callable[[str], CommitRecord | None],
        cancel: CancelToken | None,
    ) -> list[str]:
        parents = self._backend.list_commit_parents(merge_commit_id, cancel)
        if len(parents) < 2:
            return []
        if len(parents) > 2:
            raise GraphConsistencyError(
                f"Merge commit has {len(parents)} parents; octopus merges are unsupported.",
                merge_commit_id,
            )

        branch_parents = [parent for parent in parents if parent not in main_ids]
        if not branch_parents:
            raise GraphConsistencyError(
                "Both merge commit parents are on the main branch.", merge_commit_id
            )
        if len(branch_parents) > 1:
            raise GraphConsistencyError(
                "No merge commit parent is on the main branch.", merge_commit_id
            )

        branch_parent = branch_parents[0]
        fork_commit = fork_of(branch_parent)
        if fork_commit is None:
            raise GraphConsistencyError("Branch parent has no fork commit.", branch_parent)
        return self._backend.list_files_between_commits(
            fork_commit.commit_id, branch_parent, cancel
        )


def _first_member(commits: list[CommitRecord], commit_ids: set[str]) -> CommitRecord | None:
    for commit in commits:
        if commit.commit_id in commit_ids:
            return commit
    return None
