"""Typed results produced by the staleness detector."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from lang_drift.git import CommitRecord


class OriginStatus(str, Enum):
    """State of the origin-language file relative to a translation."""

    UNCHANGED = ""
    NOT_EXIST = "NOT_EXIST"
    MODIFIED = "MODIFIED"


@dataclass(slots=True, frozen=True)
class OriginUpdate:
    """One origin-language commit newer than the translation's sync point."""

    commit: CommitRecord
    merge_commit: CommitRecord | None

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-ready representation."""
        return {
            "commit": self.commit.to_dict(),
            "merge_commit": self.merge_commit.to_dict() if self.merge_commit else None,
        }


@dataclass(slots=True, frozen=True)
class FileTranslationState:
    """Staleness facts for one translated file."""

    lang_rel_path: str
    lang_last_commit: CommitRecord
    lang_fork_commit: CommitRecord | None
    lang_merge_commit: CommitRecord | None
    origin_status: OriginStatus
    origin_updates: tuple[OriginUpdate, ...]

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-ready representation."""
        return {
            "lang_rel_path": self.lang_rel_path,
            "lang_last_commit": self.lang_last_commit.to_dict(),
            "lang_fork_commit": _optional(self.lang_fork_commit),
            "lang_merge_commit": _optional(self.lang_merge_commit),
            "origin_status": self.origin_status.value,
            "origin_updates": [update.to_dict() for update in self.origin_updates],
        }


def _optional(commit: CommitRecord | None) -> dict[str, str] | None:
    if commit is None:
        return None
    return commit.to_dict()
