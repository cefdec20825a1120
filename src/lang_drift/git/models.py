"""Typed models for git history records."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field


@dataclass(slots=True, frozen=True)
class CommitRecord:
    """Single commit as reported by git log; equality is by commit_id."""

    commit_id: str
    date_time: str = field(compare=False)
    subject: str = field(compare=False)

    @classmethod
    def empty(cls) -> CommitRecord:
        """Return the zero-value record used when no commit exists."""
        return cls(commit_id="", date_time="", subject="")

    def __bool__(self) -> bool:
        return bool(self.commit_id)

    def to_dict(self) -> dict[str, str]:
        """Return a JSON-ready representation."""
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: dict[str, object]) -> CommitRecord:
        """Build a record from a stored mapping."""
        commit_id = payload.get("commit_id")
        date_time = payload.get("date_time")
        subject = payload.get("subject")
        if not isinstance(commit_id, str):
            raise ValueError("Commit record field 'commit_id' must be a string.")
        if not isinstance(date_time, str):
            raise ValueError("Commit record field 'date_time' must be a string.")
        if not isinstance(subject, str):
            raise ValueError("Commit record field 'subject' must be a string.")
        return cls(commit_id=commit_id, date_time=date_time, subject=subject)

