"""Parsing of the one-commit-per-line git log format."""

from __future__ import annotations

from lang_drift.git.models import CommitRecord

COMMIT_FORMAT = "--pretty=format:%H %cd %s"
DATE_FORMAT = "--date=iso-strict"


class CommitParseError(ValueError):
    """Raised when a git output line does not match '<id> <timestamp> <subject>'."""

    def __init__(self, line: str) -> None:
        super().__init__(f"Malformed commit line: {line!r}")
        self.line = line


def parse_commit_line(line: str) -> CommitRecord:
    """Parse one '<commit-id> <iso-timestamp> <subject>' line."""
    parts = line.rstrip("\n").split(" ", 2)
    if len(parts) != 3 or not parts[0] or not parts[1]:
        raise CommitParseError(line)
    return CommitRecord(commit_id=parts[0], date_time=parts[1], subject=parts[2])


def parse_commit_lines(output: str) -> list[CommitRecord]:
    """Parse git log output; blank output yields an empty list."""
    if not output.strip():
        return []
    return [parse_commit_line(line) for line in output_to_lines(output)]


def output_to_lines(output: str) -> list[str]:
    """Split command output into lines, dropping the trailing newline."""
    if not output.strip():
        return []
    return output.rstrip("\n").split("\n")
