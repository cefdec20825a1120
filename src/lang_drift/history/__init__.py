"""Commit graph resolution package."""

from .graph import (
    CATEGORY_FILE_LAST_COMMIT,
    CATEGORY_FILE_UPDATES,
    CATEGORY_FORK_COMMIT,
    CATEGORY_MAIN_BRANCH_COMMITS,
    CATEGORY_MERGE_COMMIT,
    MAIN_BRANCH_KEY,
    CommitGraph,
    GraphConsistencyError,
    RefreshSummary,
)

__all__ = [
    "CATEGORY_FILE_LAST_COMMIT",
    "CATEGORY_FILE_UPDATES",
    "CATEGORY_FORK_COMMIT",
    "CATEGORY_MAIN_BRANCH_COMMITS",
    "CATEGORY_MERGE_COMMIT",
    "MAIN_BRANCH_KEY",
    "CommitGraph",
    "GraphConsistencyError",
    "RefreshSummary",
]
