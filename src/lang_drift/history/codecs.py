"""JSON codecs for values stored by the commit graph cache."""

from __future__ import annotations

from lang_drift.git import CommitRecord


def encode_commit(commit: CommitRecord) -> dict[str, str]:
    return commit.to_dict()


def decode_commit(raw: object) -> CommitRecord:
    if not isinstance(raw, dict):
        raise ValueError("Stored commit must be an object.")
    return CommitRecord.from_dict(raw)


def encode_optional_commit(commit: CommitRecord | None) -> dict[str, str] | None:
    if commit is None:
        return None
    return commit.to_dict()


def decode_optional_commit(raw: object) -> CommitRecord | None:
    if raw is None:
        return None
    return decode_commit(raw)


def encode_commits(commits: list[CommitRecord]) -> list[dict[str, str]]:
    return [commit.to_dict() for commit in commits]


def decode_commits(raw: object) -> list[CommitRecord]:
    if not isinstance(raw, list):
        raise ValueError("Stored commit list must be an array.")
    return [decode_commit(item) for item in raw]


def encode_commits_by_start(
    commits_by_start: dict[str, list[CommitRecord]],
) -> dict[str, list[dict[str, str]]]:
    return {start: encode_commits(commits) for start, commits in commits_by_start.items()}


def decode_commits_by_start(raw: object) -> dict[str, list[CommitRecord]]:
    if not isinstance(raw, dict):
        raise ValueError("Stored file updates must be an object keyed by start commit.")
    return {str(start): decode_commits(commits) for start, commits in raw.items()}
