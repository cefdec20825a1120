"""Detects translated files whose origin-language file changed since sync."""

from __future__ import annotations

from pathlib import PurePosixPath

from lang_drift.cancel import CancelToken, check_cancelled
from lang_drift.content import (
    DEFAULT_CONTENT_DIR,
    DEFAULT_ORIGIN_LANG,
    lang_file_path,
    origin_file_path,
)
from lang_drift.git import RepoBackend
from lang_drift.history import CommitGraph
from lang_drift.seek.models import FileTranslationState, OriginStatus, OriginUpdate

DEFAULT_SKIP_FILES = ("OWNERS",)


class StalenessDetector:
    """Compares each translated file against its origin-language counterpart."""

    def __init__(
        self,
        graph: CommitGraph,
        backend: RepoBackend,
        content_dir: str = DEFAULT_CONTENT_DIR,
        origin_lang: str = DEFAULT_ORIGIN_LANG,
        skip_files: tuple[str, ...] = DEFAULT_SKIP_FILES,
    ) -> None:
        self._graph = graph
        self._backend = backend
        self._content_dir = content_dir
        self._origin_lang = origin_lang
        self._skip_files = frozenset(skip_files)

    def check_lang(
        self, lang_code: str, cancel: CancelToken | None = None
    ) -> list[FileTranslationState]:
        """Check every file of the language's content directory."""
        lang_dir = PurePosixPath(self._content_dir, lang_code).as_posix()
        rel_paths = [
            rel_path
            for rel_path in self._backend.list_files(lang_dir, cancel)
            if PurePosixPath(rel_path).name not in self._skip_files
        ]
        rel_paths.sort()
        return self.check_files(rel_paths, lang_code, cancel)

    def check_files(
        self,
        rel_paths: list[str],
        lang_code: str,
        cancel: CancelToken | None = None,
    ) -> list[FileTranslationState]:
        """Check the given language-relative paths, preserving input order."""
        main_branch_ids = {
            commit.commit_id for commit in self._graph.list_main_branch_commits(cancel)
        }
        results: list[FileTranslationState] = []
        for rel_path in rel_paths:
            check_cancelled(cancel, f"check {lang_code}")
            try:
                results.append(self._check_file(rel_path, lang_code, main_branch_ids, cancel))
            except Exception as error:
                error.add_note(
                    f"while checking {lang_file_path(rel_path, lang_code, self._content_dir)}"
                )
                raise
        return results

    def _check_file(
        self,
        rel_path: str,
        lang_code: str,
        main_branch_ids: set[str],
        cancel: CancelToken | None,
    ) -> FileTranslationState:
        lang_path = lang_file_path(rel_path, lang_code, self._content_dir)
        origin_path = origin_file_path(rel_path, self._origin_lang, self._content_dir)

        lang_last_commit = self._graph.find_file_last_commit(lang_path, cancel)
        fork_commit = None
        merge_commit = None
        if lang_last_commit:
            fork_commit = self._graph.find_fork_commit(
                lang_last_commit.commit_id, cancel, main_branch_ids=main_branch_ids
            )
            merge_commit = self._graph.find_merge_commit(
                lang_last_commit.commit_id, cancel, main_branch_ids=main_branch_ids
            )

        start_point = fork_commit if fork_commit is not None else lang_last_commit
        origin_commits = self._graph.find_file_commits_after(
            origin_path, start_point.commit_id, cancel
        )
        origin_exists = self._backend.file_exists(origin_path, cancel)

        if not origin_exists:
            status = OriginStatus.NOT_EXIST
        elif origin_commits:
            status = OriginStatus.MODIFIED
        else:
            status = OriginStatus.UNCHANGED

        updates = tuple(
            OriginUpdate(
                commit=commit,
                merge_commit=self._graph.find_merge_commit(
                    commit.commit_id, cancel, main_branch_ids=main_branch_ids
                ),
            )
            for commit in origin_commits
        )
        return FileTranslationState(
            lang_rel_path=rel_path,
            lang_last_commit=lang_last_commit,
            lang_fork_commit=fork_commit,
            lang_merge_commit=merge_commit,
            origin_status=status,
            origin_updates=updates,
        )
